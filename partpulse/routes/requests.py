from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from partpulse.database import get_db
from partpulse.errors import ValidationError
from partpulse.middleware.auth import get_current_user
from partpulse.middleware.authorization import REQUESTER_ROLES, require_roles
from partpulse.models.approval import Approval
from partpulse.models.request import Request, RequestActivity, RequestItem
from partpulse.schemas.common import PageParams, PaginatedResponse, paginate
from partpulse.schemas.request import (
    ActivityResponse,
    ApprovalResponse,
    DecisionRequest,
    ExecuteRequest,
    RequestCreate,
    RequestItemCreate,
    RequestItemResponse,
    RequestResponse,
    RequestUpdate,
    SubmitRequest,
)
from partpulse.services import activity_service, ledger_service, request_service

logger = structlog.get_logger()
router = APIRouter()


def _iso(value):
    return value.isoformat() if value else None


def _item_to_response(item: RequestItem) -> RequestItemResponse:
    return RequestItemResponse(
        id=str(item.id),
        line_number=item.line_number,
        item_name=item.item_name,
        quantity=item.quantity,
        unit=item.unit,
        estimated_unit_price=item.estimated_unit_price,
        specs=item.specs,
    )


def _to_response(request: Request, items: list[RequestItem]) -> RequestResponse:
    return RequestResponse(
        id=str(request.id),
        request_number=request.request_number,
        building_id=request.building_id,
        priority=request.priority,
        status=request.status,
        description=request.description,
        notes=request.notes,
        submitter_id=str(request.submitter_id),
        submitter_email=request.submitter_email,
        estimated_budget=request.estimated_budget,
        version=request.version,
        items=[_item_to_response(i) for i in items],
        created_at=_iso(request.created_at) or "",
        updated_at=_iso(request.updated_at) or "",
        submitted_at=_iso(request.submitted_at),
        completed_at=_iso(request.completed_at),
        order_status=request.order_status,
    )


def _approval_to_response(approval: Approval) -> ApprovalResponse:
    return ApprovalResponse(
        id=str(approval.id),
        approval_level=approval.approval_level,
        approver_role=approval.approver_role,
        approver_id=str(approval.approver_id) if approval.approver_id else None,
        approver_email=approval.approver_email,
        decision=approval.decision,
        comments=approval.comments,
        decided_at=_iso(approval.decided_at) or "",
    )


def _activity_to_response(entry: RequestActivity) -> ActivityResponse:
    return ActivityResponse(
        id=str(entry.id),
        action=entry.action,
        actor_id=str(entry.actor_id) if entry.actor_id else None,
        actor_email=entry.actor_email,
        details=entry.details,
        created_at=_iso(entry.created_at) or "",
    )


async def _respond(db: AsyncSession, request: Request) -> RequestResponse:
    return _to_response(request, await request_service.get_items(db, request.id))


# ---------- LIST / GET ----------


@router.get("", response_model=PaginatedResponse[RequestResponse])
async def list_requests(
    paging: PageParams = Depends(),
    request_status: str = Query(None, alias="status"),
    building_id: str = Query(None),
    mine: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # Technicians only ever see their own requests
    submitter_id = current_user["user_id"] if mine or current_user["role"] == "technician" else None
    rows, total = await request_service.list_requests(
        db,
        page=paging.page,
        limit=paging.limit,
        status=request_status,
        building_id=building_id,
        submitter_id=submitter_id,
    )
    return paginate([await _respond(db, r) for r in rows], paging, total)


@router.get("/pending-approvals", response_model=list[RequestResponse])
async def pending_approvals(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Requests waiting on the caller's approval level."""
    rows = await request_service.pending_for_role(
        db, current_user["role"], building_id=current_user.get("building_id")
    )
    return [await _respond(db, r) for r in rows]


@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.get_request(db, request_id)
    return await _respond(db, request)


@router.get("/{request_id}/approvals", response_model=list[ApprovalResponse])
async def list_approvals(
    request_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.get_request(db, request_id)
    return [_approval_to_response(a) for a in await ledger_service.list_for(db, request.id)]


@router.get("/{request_id}/activity", response_model=list[ActivityResponse])
async def list_activity(
    request_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.get_request(db, request_id)
    entries = await activity_service.list_activity(db, request.id)
    return [_activity_to_response(e) for e in entries]


# ---------- CREATE / EDIT ----------


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    body: RequestCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*REQUESTER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    building_id = body.building_id or current_user.get("building_id")
    if not building_id:
        raise ValidationError("building_id is required")

    request = await request_service.create_request(
        db,
        submitter=current_user,
        building_id=building_id,
        items=[item.model_dump() for item in body.items],
        priority=body.priority,
        description=body.description,
        notes=body.notes,
    )
    return await _respond(db, request)


@router.post(
    "/{request_id}/items",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_item(
    request_id: str,
    body: RequestItemCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    item = await request_service.add_item(db, request_id, body.model_dump(), current_user)
    request = await request_service.get_request(db, item.request_id)
    return await _respond(db, request)


@router.patch("/{request_id}", response_model=RequestResponse)
async def amend_request(
    request_id: str,
    body: RequestUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True, exclude={"items", "expected_version"})
    request = await request_service.amend(
        db,
        request_id,
        current_user,
        changes,
        item_changes=[c.model_dump(exclude_unset=True) for c in body.items or []],
        expected_version=body.expected_version,
    )
    return await _respond(db, request)


# ---------- LIFECYCLE ----------


@router.post("/{request_id}/submit", response_model=RequestResponse)
async def submit_request(
    request_id: str,
    body: SubmitRequest = SubmitRequest(),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.submit(
        db, request_id, current_user, expected_version=body.expected_version
    )
    return await _respond(db, request)


@router.post("/{request_id}/decide", response_model=RequestResponse)
async def decide_request(
    request_id: str,
    body: DecisionRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.decide(
        db,
        request_id,
        current_user,
        body.decision,
        comments=body.comments,
        expected_version=body.expected_version,
    )
    return await _respond(db, request)


@router.post("/{request_id}/execute", response_model=RequestResponse)
async def execute_request(
    request_id: str,
    body: ExecuteRequest = ExecuteRequest(),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("god_admin")),
    db: AsyncSession = Depends(get_db),
):
    request = await request_service.execute(
        db,
        request_id,
        current_user,
        supplier_id=body.supplier_id,
        quote_id=body.quote_id,
        assigned_to_email=body.assigned_to_email,
        comments=body.comments,
        expected_version=body.expected_version,
    )
    return await _respond(db, request)
