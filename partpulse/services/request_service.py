"""
Request service: persistence side of the request lifecycle.

Legal transitions come from ``lifecycle``; this module applies them. Every
status change is a conditional UPDATE on (id, status, version) so two
approvers racing on the same request cannot both win. The ledger entry and
the activity entry are written in the same transaction as the status change.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional
import uuid

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from partpulse.config import settings
from partpulse.errors import (
    AlreadyTerminal,
    ConcurrentModification,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from partpulse.models.request import Request, RequestItem
from partpulse.services import activity_service, ledger_service, lifecycle
from partpulse.services.lifecycle import RequestStatus, Role
from partpulse.services.quote_pricing import ZERO, line_total, money

logger = structlog.get_logger()

EDITOR_ROLES = (
    Role.BUILDING_TECH,
    Role.MAINTENANCE_ORG,
    Role.TECH_DIRECTOR,
    Role.GOD_ADMIN,
)

QUANTITY_STEP = Decimal("0.001")


def _uuid(value, what: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        raise NotFound(f"{what} '{value}' not found")


async def _generate_request_number(session: AsyncSession) -> str:
    result = await session.execute(select(func.count(Request.id)))
    count = (result.scalar() or 0) + 1
    return f"{settings.REQUEST_NUMBER_PREFIX}-{count:06d}"


async def get_items(session: AsyncSession, request_id) -> list[RequestItem]:
    result = await session.execute(
        select(RequestItem)
        .where(RequestItem.request_id == request_id)
        .order_by(RequestItem.line_number)
    )
    return list(result.scalars().all())


async def get_request(session: AsyncSession, request_id) -> Request:
    request = await session.get(Request, _uuid(request_id, "Request"))
    if request is None:
        raise NotFound(f"Request '{request_id}' not found")
    return request


def _budget(items) -> Decimal:
    return money(
        sum(
            (line_total(item.quantity, item.estimated_unit_price) for item in items),
            ZERO,
        )
    )


def _quantity(value, line: int) -> Decimal:
    """Round to the stored scale (3 places) so the row and the budget agree."""
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Item {line} quantity must be a number", line_number=line)
    if not quantity.is_finite():
        raise ValidationError(f"Item {line} quantity must be a number", line_number=line)
    return quantity.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def _check_item(item: dict, line: int) -> dict:
    """Validate one item and return it with its quantity at stored precision."""
    if not (item.get("item_name") or "").strip():
        raise ValidationError(f"Item {line} needs a name", line_number=line)
    item = {**item, "quantity": _quantity(item.get("quantity"), line)}
    lifecycle.validate_items([item])
    return item


async def _swap(
    session: AsyncSession,
    request: Request,
    to_status: RequestStatus,
    expected_version: Optional[int] = None,
    **values,
) -> Request:
    """
    Compare-and-swap the request row from its current (status, version).

    Zero affected rows means someone else moved the request first.
    """
    if expected_version is not None and expected_version != request.version:
        raise ConcurrentModification(
            f"Request {request.request_number} changed since version {expected_version}",
            current_version=request.version,
        )

    await session.flush()
    result = await session.execute(
        update(Request)
        .where(
            Request.id == request.id,
            Request.status == request.status,
            Request.version == request.version,
        )
        .values(
            status=to_status.value,
            version=request.version + 1,
            updated_at=datetime.utcnow(),
            **values,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "request_swap_conflict",
            request_id=str(request.id),
            expected_status=request.status,
            expected_version=request.version,
        )
        raise ConcurrentModification(
            f"Request {request.request_number} was modified concurrently"
        )

    await session.refresh(request)
    return request


# ---------- CREATE / EDIT ----------


async def create_request(
    session: AsyncSession,
    submitter: dict,
    building_id: str,
    items: list[dict],
    priority: str = "NORMAL",
    description: Optional[str] = None,
    notes: Optional[str] = None,
) -> Request:
    """New request in DRAFT. Items may be empty; submit() enforces them."""
    try:
        priority = lifecycle.Priority(priority).value
    except ValueError:
        raise ValidationError(f"Unknown priority '{priority}'")

    items = [_check_item(item, line) for line, item in enumerate(items, start=1)]

    request = Request(
        request_number=await _generate_request_number(session),
        building_id=building_id,
        priority=priority,
        description=description,
        notes=notes,
        status=RequestStatus.DRAFT.value,
        submitter_id=_uuid(submitter["user_id"], "User"),
        submitter_email=submitter.get("email"),
        version=1,
    )
    session.add(request)
    try:
        await session.flush()
    except IntegrityError as exc:
        # Another create took the same number between count and insert
        logger.warning("request_number_taken", request_number=request.request_number)
        raise ConcurrentModification(
            f"Request number {request.request_number} was taken concurrently; retry"
        ) from exc

    rows = []
    for line, item in enumerate(items, start=1):
        row = RequestItem(
            request_id=request.id,
            line_number=line,
            item_name=item["item_name"],
            quantity=item["quantity"],
            unit=item.get("unit") or "pcs",
            estimated_unit_price=money(item.get("estimated_unit_price") or 0),
            specs=item.get("specs"),
        )
        session.add(row)
        rows.append(row)
    request.estimated_budget = _budget(rows)
    await session.flush()

    await activity_service.log_activity(
        session,
        request.id,
        activity_service.REQUEST_CREATED,
        actor_id=submitter["user_id"],
        actor_email=submitter.get("email"),
        details={
            "request_number": request.request_number,
            "item_count": len(rows),
            "estimated_budget": request.estimated_budget,
        },
    )
    logger.info(
        "request_created",
        request_id=str(request.id),
        request_number=request.request_number,
        items=len(rows),
    )
    return request


async def add_item(
    session: AsyncSession, request_id, item: dict, actor: dict
) -> RequestItem:
    request = await get_request(session, request_id)
    if lifecycle.is_terminal(request.status):
        raise AlreadyTerminal(f"Request is already {request.status}")
    if request.status != RequestStatus.DRAFT.value:
        raise InvalidTransition("Items can only be added while the request is a DRAFT")

    items = await get_items(session, request.id)
    line = max((i.line_number for i in items), default=0) + 1
    item = _check_item(item, line)

    row = RequestItem(
        request_id=request.id,
        line_number=line,
        item_name=item["item_name"],
        quantity=item["quantity"],
        unit=item.get("unit") or "pcs",
        estimated_unit_price=money(item.get("estimated_unit_price") or 0),
        specs=item.get("specs"),
    )
    session.add(row)
    request.estimated_budget = _budget(items + [row])
    request.updated_at = datetime.utcnow()
    await session.flush()

    await activity_service.log_activity(
        session,
        request.id,
        activity_service.ITEM_ADDED,
        actor_id=actor.get("user_id"),
        actor_email=actor.get("email"),
        details={"item_name": row.item_name, "quantity": row.quantity},
    )
    return row


async def amend(
    session: AsyncSession,
    request_id,
    actor: dict,
    changes: dict,
    item_changes: Optional[list[dict]] = None,
    expected_version: Optional[int] = None,
) -> Request:
    """
    Edit descriptive fields and item quantities/prices.

    The submitter may edit a DRAFT; approvers may edit any non-terminal
    request. Status and request_number are never touched here.
    """
    request = await get_request(session, request_id)
    if lifecycle.is_terminal(request.status):
        raise AlreadyTerminal(f"Request is already {request.status}")

    role = lifecycle.normalize_role(actor.get("role"))
    is_owner = str(request.submitter_id) == str(actor.get("user_id"))
    if role not in EDITOR_ROLES and not (
        is_owner and request.status == RequestStatus.DRAFT.value
    ):
        raise InvalidTransition(
            f"Role '{actor.get('role')}' cannot edit a request in {request.status}"
        )

    values = {}
    for name in ("description", "notes"):
        if name in changes:
            values[name] = changes[name]
    if changes.get("priority") is not None:
        try:
            values["priority"] = lifecycle.Priority(changes["priority"]).value
        except ValueError:
            raise ValidationError(f"Unknown priority '{changes['priority']}'")

    items = await get_items(session, request.id)
    by_id = {str(i.id): i for i in items}
    edited = []
    for change in item_changes or []:
        row = by_id.get(str(change.get("item_id")))
        if row is None:
            raise NotFound(f"Item '{change.get('item_id')}' not found on this request")
        merged = {
            "item_name": row.item_name,
            "quantity": change.get("quantity", row.quantity),
            "estimated_unit_price": change.get(
                "estimated_unit_price", row.estimated_unit_price
            ),
        }
        merged = _check_item(merged, row.line_number)
        row.quantity = merged["quantity"]
        row.estimated_unit_price = money(merged["estimated_unit_price"])
        edited.append(row.line_number)
    if edited:
        values["estimated_budget"] = _budget(items)

    if not values:
        return request

    request = await _swap(
        session,
        request,
        RequestStatus(request.status),
        expected_version=expected_version,
        **values,
    )
    await activity_service.log_activity(
        session,
        request.id,
        activity_service.REQUEST_EDITED,
        actor_id=actor.get("user_id"),
        actor_email=actor.get("email"),
        details={
            "fields": sorted(k for k in values if k != "estimated_budget"),
            "lines": edited,
        },
    )
    logger.info("request_amended", request_id=str(request.id), version=request.version)
    return request


# ---------- LIFECYCLE ----------


async def submit(
    session: AsyncSession,
    request_id,
    actor: dict,
    expected_version: Optional[int] = None,
) -> Request:
    request = await get_request(session, request_id)
    items = await get_items(session, request.id)
    to_status = lifecycle.submit(request.status, items)

    now = datetime.utcnow()
    request = await _swap(
        session,
        request,
        to_status,
        expected_version=expected_version,
        submitted_at=now,
    )
    await activity_service.log_activity(
        session,
        request.id,
        activity_service.REQUEST_SUBMITTED,
        actor_id=actor.get("user_id"),
        actor_email=actor.get("email"),
        details={"estimated_budget": request.estimated_budget},
    )
    logger.info(
        "request_submitted",
        request_id=str(request.id),
        request_number=request.request_number,
    )
    return request


async def decide(
    session: AsyncSession,
    request_id,
    actor: dict,
    decision: str,
    comments: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> Request:
    """
    Approve or reject at the actor's level.

    Exactly one ledger entry is appended and the status moves in the same
    transaction; any failure leaves both untouched once get_db() rolls back.
    """
    request = await get_request(session, request_id)
    transition = lifecycle.decide(request.status, actor.get("role"), decision, comments)

    values = {}
    if transition.to_status is RequestStatus.EXECUTED:
        values["completed_at"] = datetime.utcnow()
    request = await _swap(
        session,
        request,
        transition.to_status,
        expected_version=expected_version,
        **values,
    )

    await ledger_service.append(
        session,
        request_id=request.id,
        approval_level=transition.level,
        approver_role=transition.role.value,
        decision=transition.ledger_decision,
        approver_id=_uuid(actor["user_id"], "User") if actor.get("user_id") else None,
        approver_email=actor.get("email"),
        comments=(comments or "").strip() or None,
    )

    action = (
        activity_service.REQUEST_REJECTED
        if transition.to_status is RequestStatus.REJECTED
        else activity_service.REQUEST_APPROVED
    )
    await activity_service.log_activity(
        session,
        request.id,
        action,
        actor_id=actor.get("user_id"),
        actor_email=actor.get("email"),
        details={
            "approval_level": transition.level,
            "from_status": transition.from_status.value,
            "to_status": transition.to_status.value,
            "comments": comments,
        },
    )
    logger.info(
        "request_decided",
        request_id=str(request.id),
        level=transition.level,
        decision=transition.ledger_decision,
        status=request.status,
    )
    return request


async def execute(
    session: AsyncSession,
    request_id,
    actor: dict,
    supplier_id=None,
    quote_id: Optional[str] = None,
    assigned_to_email: Optional[str] = None,
    comments: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> Request:
    """Level-4 sign-off: DIRECTOR_APPROVED → EXECUTED, god_admin only."""
    request = await get_request(session, request_id)
    transition = lifecycle.execute(request.status, actor.get("role"))

    request = await _swap(
        session,
        request,
        transition.to_status,
        expected_version=expected_version,
        completed_at=datetime.utcnow(),
    )
    await ledger_service.append(
        session,
        request_id=request.id,
        approval_level=transition.level,
        approver_role=transition.role.value,
        decision=transition.ledger_decision,
        approver_id=_uuid(actor["user_id"], "User") if actor.get("user_id") else None,
        approver_email=actor.get("email"),
        comments=comments,
    )
    await activity_service.log_activity(
        session,
        request.id,
        activity_service.REQUEST_EXECUTED,
        actor_id=actor.get("user_id"),
        actor_email=actor.get("email"),
        details={
            "supplier_id": str(supplier_id) if supplier_id else None,
            "quote_id": quote_id,
            "assigned_to_email": assigned_to_email,
            "executed_at": request.completed_at,
        },
    )
    logger.info(
        "request_executed",
        request_id=str(request.id),
        request_number=request.request_number,
        quote_id=quote_id,
    )
    return request


# ---------- QUERIES ----------


async def list_requests(
    session: AsyncSession,
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    building_id: Optional[str] = None,
    submitter_id=None,
) -> tuple[list[Request], int]:
    q = select(Request)
    count_q = select(func.count(Request.id))
    if status:
        q = q.where(Request.status == status)
        count_q = count_q.where(Request.status == status)
    if building_id:
        q = q.where(Request.building_id == building_id)
        count_q = count_q.where(Request.building_id == building_id)
    if submitter_id:
        sid = _uuid(submitter_id, "User")
        q = q.where(Request.submitter_id == sid)
        count_q = count_q.where(Request.submitter_id == sid)

    total = (await session.execute(count_q)).scalar() or 0
    result = await session.execute(
        q.order_by(Request.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def pending_for_role(
    session: AsyncSession, role, building_id: Optional[str] = None
) -> list[Request]:
    """Requests waiting on this role's approval level, oldest first."""
    waiting = lifecycle.status_awaiting(role)
    if waiting is None:
        return []
    q = select(Request).where(Request.status == waiting.value)
    if building_id and lifecycle.normalize_role(role) is Role.BUILDING_TECH:
        q = q.where(Request.building_id == building_id)
    result = await session.execute(q.order_by(Request.submitted_at, Request.created_at))
    return list(result.scalars().all())
