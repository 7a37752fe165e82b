"""
Quote service: suppliers, quote requests, supplier responses, purchase orders.

    pending → responded → approved → ordered
                        ↘ rejected

A supplier response is priced once with quote_pricing and then frozen.
Status moves use the same (status, version) compare-and-swap as requests.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from partpulse.config import settings
from partpulse.errors import (
    ConcurrentModification,
    MissingComments,
    NotFound,
    ValidationError,
)
from partpulse.models.purchase_order import PurchaseOrder, PoLineItem
from partpulse.models.quote import QuoteItem, QuoteRequest, Supplier, SupplierResponse
from partpulse.models.request import Request
from partpulse.services import activity_service, lifecycle
from partpulse.services.lifecycle import OrderStatus, QuoteStatus, QUOTED_STATUSES
from partpulse.services.quote_pricing import (
    compute_totals,
    estimated_total,
    money,
    select_best_quote,
)

logger = structlog.get_logger()


def _uuid(value, what: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        raise NotFound(f"{what} '{value}' not found")


async def _next_number(session: AsyncSession, column, prefix: str) -> str:
    result = await session.execute(select(func.count(column)))
    count = (result.scalar() or 0) + 1
    return f"{prefix}-{count:06d}"


async def _flush_numbered(session: AsyncSession, what: str, number: str) -> None:
    """Flush a freshly numbered row; losing a numbering race is a retryable conflict."""
    try:
        await session.flush()
    except IntegrityError as exc:
        logger.warning("number_taken", what=what, number=number)
        raise ConcurrentModification(
            f"{what} number {number} was taken concurrently; retry"
        ) from exc


# ---------- SUPPLIERS ----------


async def create_supplier(
    session: AsyncSession,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    contact_name: Optional[str] = None,
) -> Supplier:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Supplier name is required")

    existing = await session.execute(select(Supplier).where(Supplier.name == name))
    if existing.scalar_one_or_none():
        raise ValidationError(f"Supplier '{name}' already exists")

    supplier = Supplier(name=name, email=email, phone=phone, contact_name=contact_name)
    session.add(supplier)
    await session.flush()
    logger.info("supplier_created", supplier_id=str(supplier.id), name=name)
    return supplier


async def get_supplier(session: AsyncSession, supplier_id) -> Supplier:
    supplier = await session.get(Supplier, _uuid(supplier_id, "Supplier"))
    if supplier is None:
        raise NotFound(f"Supplier '{supplier_id}' not found")
    return supplier


async def list_suppliers(session: AsyncSession) -> list[Supplier]:
    result = await session.execute(select(Supplier).order_by(Supplier.name))
    return list(result.scalars().all())


# ---------- QUOTE REQUESTS ----------


async def get_quote(session: AsyncSession, quote_request_id) -> QuoteRequest:
    quote = await session.get(QuoteRequest, _uuid(quote_request_id, "Quote request"))
    if quote is None:
        raise NotFound(f"Quote request '{quote_request_id}' not found")
    return quote


async def get_quote_items(session: AsyncSession, quote_request_id) -> list[QuoteItem]:
    result = await session.execute(
        select(QuoteItem)
        .where(QuoteItem.quote_request_id == quote_request_id)
        .order_by(QuoteItem.line_number)
    )
    return list(result.scalars().all())


async def get_response(
    session: AsyncSession, quote_request_id
) -> Optional[SupplierResponse]:
    result = await session.execute(
        select(SupplierResponse).where(
            SupplierResponse.quote_request_id == quote_request_id
        )
    )
    return result.scalar_one_or_none()


async def list_quotes(
    session: AsyncSession,
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    request_id=None,
    supplier_id=None,
) -> tuple[list[QuoteRequest], int]:
    q = select(QuoteRequest)
    count_q = select(func.count(QuoteRequest.id))
    if status:
        q = q.where(QuoteRequest.status == status)
        count_q = count_q.where(QuoteRequest.status == status)
    if request_id:
        rid = _uuid(request_id, "Request")
        q = q.where(QuoteRequest.request_id == rid)
        count_q = count_q.where(QuoteRequest.request_id == rid)
    if supplier_id:
        sid = _uuid(supplier_id, "Supplier")
        q = q.where(QuoteRequest.supplier_id == sid)
        count_q = count_q.where(QuoteRequest.supplier_id == sid)

    total = (await session.execute(count_q)).scalar() or 0
    result = await session.execute(
        q.order_by(QuoteRequest.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def create_quote_request(
    session: AsyncSession,
    supplier_id,
    items: list[dict],
    created_by,
    request_id=None,
    request_notes: Optional[str] = None,
) -> QuoteRequest:
    if not items:
        raise ValidationError("A quote request must list at least one item")
    supplier = await get_supplier(session, supplier_id)

    for idx, item in enumerate(items, start=1):
        if not (item.get("part_number") or "").strip():
            raise ValidationError(f"Item {idx} needs a part number")
        quantity = item.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError(f"Item {idx} quantity must be a positive integer")
        if item.get("unit_price") is not None and money(item["unit_price"]) < 0:
            raise ValidationError(f"Item {idx} unit price cannot be negative")

    quote = QuoteRequest(
        quote_id=await _next_number(
            session, QuoteRequest.id, settings.QUOTE_NUMBER_PREFIX
        ),
        supplier_id=supplier.id,
        request_id=_uuid(request_id, "Request") if request_id else None,
        status=QuoteStatus.PENDING.value,
        estimated_total=estimated_total(items),
        request_notes=request_notes,
        created_by=_uuid(created_by, "User"),
        version=1,
    )
    session.add(quote)
    await _flush_numbered(session, "Quote request", quote.quote_id)

    for idx, item in enumerate(items, start=1):
        session.add(
            QuoteItem(
                quote_request_id=quote.id,
                line_number=idx,
                part_number=item["part_number"].strip(),
                description=item.get("description"),
                quantity=item["quantity"],
                unit_price=(
                    money(item["unit_price"])
                    if item.get("unit_price") is not None
                    else None
                ),
                supplier_sku=item.get("supplier_sku"),
            )
        )
    await session.flush()

    logger.info(
        "quote_request_created",
        quote_id=quote.quote_id,
        supplier_id=str(supplier.id),
        items=len(items),
        estimated_total=str(quote.estimated_total),
    )
    return quote


async def _swap(
    session: AsyncSession,
    quote: QuoteRequest,
    to_status: QuoteStatus,
    expected_version: Optional[int] = None,
    **values,
) -> QuoteRequest:
    if expected_version is not None and expected_version != quote.version:
        raise ConcurrentModification(
            f"Quote {quote.quote_id} changed since version {expected_version}",
            current_version=quote.version,
        )

    await session.flush()
    result = await session.execute(
        update(QuoteRequest)
        .where(
            QuoteRequest.id == quote.id,
            QuoteRequest.status == quote.status,
            QuoteRequest.version == quote.version,
        )
        .values(
            status=to_status.value,
            version=quote.version + 1,
            updated_at=datetime.utcnow(),
            **values,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "quote_swap_conflict",
            quote_id=quote.quote_id,
            expected_status=quote.status,
            expected_version=quote.version,
        )
        raise ConcurrentModification(f"Quote {quote.quote_id} was modified concurrently")

    await session.refresh(quote)
    return quote


async def record_response(
    session: AsyncSession,
    quote_request_id,
    response: dict,
    expected_version: Optional[int] = None,
) -> SupplierResponse:
    """
    Price and store the supplier's answer; pending → responded.

    ``response["item_prices"]`` maps each quote line (by ``line_number``) to
    the supplier's ``unit_price``. Lines the supplier leaves out fall back
    to the price already on the quote item.
    """
    quote = await get_quote(session, quote_request_id)
    to_status = lifecycle.quote_transition(quote.status, "respond")

    items = await get_quote_items(session, quote.id)
    offered = {}
    for entry in response.get("item_prices") or []:
        line = entry.get("line_number")
        if line is None:
            raise ValidationError("Every quoted price needs a line_number")
        if int(line) in offered:
            raise ValidationError(f"Line {line} is priced more than once", line_number=int(line))
        offered[int(line)] = entry.get("unit_price")
    unknown = set(offered) - {item.line_number for item in items}
    if unknown:
        raise ValidationError(f"Unknown quote lines: {sorted(unknown)}")

    priced = [
        {
            "line_number": item.line_number,
            "part_number": item.part_number,
            "quantity": item.quantity,
            "unit_price": offered.get(item.line_number, item.unit_price),
        }
        for item in items
    ]
    totals = compute_totals(
        priced,
        transport=response.get("transport"),
        minimum_order_charge=response.get("minimum_order_charge"),
        other_charge_amount=response.get("other_charge_amount"),
    )

    lead_time = response.get("lead_time_days")
    if lead_time is not None and int(lead_time) < 0:
        raise ValidationError("Lead time cannot be negative")

    quote = await _swap(session, quote, to_status, expected_version=expected_version)

    record = SupplierResponse(
        quote_request_id=quote.id,
        item_prices=[line.as_dict() for line in totals.lines],
        transport=totals.transport,
        minimum_order_charge=totals.minimum_order_charge,
        other_charge_amount=totals.other_charge_amount,
        other_charge_description=response.get("other_charge_description"),
        subtotal=totals.subtotal,
        total_charges=totals.total_charges,
        grand_total=totals.grand_total,
        quoted_price_per_unit=totals.quoted_price_per_unit,
        delivery_date=response.get("delivery_date"),
        payment_terms=response.get("payment_terms") or settings.DEFAULT_PAYMENT_TERMS,
        lead_time_days=lead_time,
        notes=response.get("notes"),
        attachments=list(response.get("attachments") or []),
        responded_at=datetime.utcnow(),
    )
    session.add(record)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise ConcurrentModification(
            f"Quote {quote.quote_id} already has a supplier response"
        ) from exc

    logger.info(
        "quote_response_recorded",
        quote_id=quote.quote_id,
        grand_total=str(totals.grand_total),
        price_per_unit=str(totals.quoted_price_per_unit),
    )
    return record


async def review(
    session: AsyncSession,
    quote_request_id,
    decision: str,
    comments: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> QuoteRequest:
    """responded → approved | rejected. Rejections must say why."""
    decision = (decision or "").strip().lower()
    if decision not in ("approve", "reject"):
        raise ValidationError(
            f"Unknown decision '{decision}'; expected 'approve' or 'reject'"
        )
    if decision == "reject" and not (comments or "").strip():
        raise MissingComments("Rejecting a quote requires comments")

    quote = await get_quote(session, quote_request_id)
    to_status = lifecycle.quote_transition(quote.status, decision)
    quote = await _swap(
        session,
        quote,
        to_status,
        expected_version=expected_version,
        review_comments=(comments or "").strip() or None,
    )
    logger.info("quote_reviewed", quote_id=quote.quote_id, status=quote.status)
    return quote


async def create_order(
    session: AsyncSession,
    quote_request_id,
    created_by,
    expected_version: Optional[int] = None,
) -> PurchaseOrder:
    """approved → ordered, issuing a purchase order from the frozen response."""
    quote = await get_quote(session, quote_request_id)
    to_status = lifecycle.quote_transition(quote.status, "order")

    response = await get_response(session, quote.id)
    if response is None:
        raise ValidationError(f"Quote {quote.quote_id} has no supplier response")

    quote = await _swap(session, quote, to_status, expected_version=expected_version)

    now = datetime.utcnow()
    order = PurchaseOrder(
        po_number=await _next_number(
            session, PurchaseOrder.id, settings.PO_NUMBER_PREFIX
        ),
        quote_request_id=quote.id,
        supplier_id=quote.supplier_id,
        request_id=quote.request_id,
        status=OrderStatus.NOT_PLACED.value,
        total=response.grand_total,
        payment_terms=response.payment_terms,
        created_by=_uuid(created_by, "User"),
        issued_at=now,
    )
    session.add(order)
    await _flush_numbered(session, "Purchase order", order.po_number)

    descriptions = {
        item.line_number: item.description
        for item in await get_quote_items(session, quote.id)
    }
    for line in response.item_prices:
        if int(line["quantity"]) == 0:
            continue
        session.add(
            PoLineItem(
                po_id=order.id,
                line_number=line["line_number"],
                part_number=line["part_number"],
                description=descriptions.get(line["line_number"]),
                quantity=int(line["quantity"]),
                unit_price=money(line["unit_price"]),
                line_total=money(line["line_total"]),
            )
        )
    await session.flush()

    await _mirror_on_request(session, order, actor_id=created_by)
    logger.info(
        "purchase_order_created",
        po_number=order.po_number,
        quote_id=quote.quote_id,
        total=str(order.total),
    )
    return order


async def best_quote_for(session: AsyncSession, request_id) -> Optional[dict]:
    """Cheapest responded quote among those raised for one request."""
    result = await session.execute(
        select(QuoteRequest, SupplierResponse)
        .join(SupplierResponse, SupplierResponse.quote_request_id == QuoteRequest.id)
        .where(
            QuoteRequest.request_id == _uuid(request_id, "Request"),
            QuoteRequest.status.in_([s.value for s in QUOTED_STATUSES]),
        )
    )
    candidates = [
        {
            "quote": quote,
            "response": response,
            "quote_id": quote.quote_id,
            "grand_total": response.grand_total,
            "created_at": quote.created_at,
        }
        for quote, response in result.all()
    ]
    return select_best_quote(candidates)


# ---------- PURCHASE ORDERS ----------


async def get_order(session: AsyncSession, po_id) -> PurchaseOrder:
    order = await session.get(PurchaseOrder, _uuid(po_id, "Purchase order"))
    if order is None:
        raise NotFound(f"Purchase order '{po_id}' not found")
    return order


async def get_order_lines(session: AsyncSession, po_id) -> list[PoLineItem]:
    result = await session.execute(
        select(PoLineItem).where(PoLineItem.po_id == po_id).order_by(PoLineItem.line_number)
    )
    return list(result.scalars().all())


async def list_orders(
    session: AsyncSession,
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    request_id=None,
) -> tuple[list[PurchaseOrder], int]:
    q = select(PurchaseOrder)
    count_q = select(func.count(PurchaseOrder.id))
    if status:
        q = q.where(PurchaseOrder.status == status)
        count_q = count_q.where(PurchaseOrder.status == status)
    if request_id:
        rid = _uuid(request_id, "Request")
        q = q.where(PurchaseOrder.request_id == rid)
        count_q = count_q.where(PurchaseOrder.request_id == rid)
    total = (await session.execute(count_q)).scalar() or 0
    result = await session.execute(
        q.order_by(PurchaseOrder.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


TRACKING_FIELDS = (
    "tracking_number",
    "expected_delivery_date",
    "actual_delivery_date",
    "notes",
)


async def _mirror_on_request(
    session: AsyncSession,
    order: PurchaseOrder,
    actor_id=None,
    actor_email: Optional[str] = None,
) -> None:
    """Copy the order status onto the request it was raised for, if any."""
    if order.request_id is None:
        return
    request = await session.get(Request, order.request_id)
    if request is None:
        # request_id is a loose reference
        return
    request.order_status = order.status
    await session.flush()
    await activity_service.log_activity(
        session,
        request.id,
        activity_service.ORDER_STATUS_CHANGED,
        actor_id=actor_id,
        actor_email=actor_email,
        details={
            "po_number": order.po_number,
            "order_status": order.status,
            "tracking_number": order.tracking_number,
        },
    )


async def update_tracking(
    session: AsyncSession,
    po_id,
    changes: dict,
    actor: Optional[dict] = None,
    expected_version: Optional[int] = None,
) -> PurchaseOrder:
    """
    Record order progress: status, tracking number, delivery dates, notes.

    ``changes`` holds only the fields being set. A move to DELIVERED without
    an actual_delivery_date stamps today's date. Status changes are copied
    onto the originating request.
    """
    order = await get_order(session, po_id)
    previous = order.status
    to_status = lifecycle.order_transition(previous, changes.get("order_status"))

    if expected_version is not None and expected_version != order.version:
        raise ConcurrentModification(
            f"Purchase order {order.po_number} changed since version {expected_version}",
            current_version=order.version,
        )

    values = {name: changes[name] for name in TRACKING_FIELDS if name in changes}
    if to_status is OrderStatus.DELIVERED and not (
        values.get("actual_delivery_date") or order.actual_delivery_date
    ):
        values["actual_delivery_date"] = datetime.utcnow().date()

    if not values and to_status.value == previous:
        return order

    await session.flush()
    result = await session.execute(
        update(PurchaseOrder)
        .where(
            PurchaseOrder.id == order.id,
            PurchaseOrder.status == previous,
            PurchaseOrder.version == order.version,
        )
        .values(
            status=to_status.value,
            version=order.version + 1,
            updated_at=datetime.utcnow(),
            **values,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "order_swap_conflict",
            po_number=order.po_number,
            expected_status=previous,
            expected_version=order.version,
        )
        raise ConcurrentModification(
            f"Purchase order {order.po_number} was modified concurrently"
        )
    await session.refresh(order)

    if order.status != previous:
        actor = actor or {}
        await _mirror_on_request(
            session,
            order,
            actor_id=actor.get("user_id"),
            actor_email=actor.get("email"),
        )

    logger.info(
        "order_tracking_updated",
        po_number=order.po_number,
        status=order.status,
        previous_status=previous,
        fields=sorted(values),
    )
    return order
