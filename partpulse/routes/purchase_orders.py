from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from partpulse.database import get_db
from partpulse.middleware.auth import get_current_user
from partpulse.middleware.authorization import PROCUREMENT_ROLES, require_roles
from partpulse.models.purchase_order import PurchaseOrder
from partpulse.schemas.common import PageParams, PaginatedResponse, paginate
from partpulse.schemas.quote import (
    OrderTrackingResponse,
    OrderTrackingUpdate,
    PoLineResponse,
    PurchaseOrderResponse,
)
from partpulse.services import quote_service

router = APIRouter()


async def order_to_response(db: AsyncSession, order: PurchaseOrder) -> PurchaseOrderResponse:
    lines = await quote_service.get_order_lines(db, order.id)
    return PurchaseOrderResponse(
        id=str(order.id),
        po_number=order.po_number,
        quote_request_id=str(order.quote_request_id),
        supplier_id=str(order.supplier_id),
        request_id=str(order.request_id) if order.request_id else None,
        status=order.status,
        total=order.total,
        payment_terms=order.payment_terms,
        created_by=str(order.created_by),
        issued_at=order.issued_at.isoformat() if order.issued_at else None,
        tracking_number=order.tracking_number,
        expected_delivery_date=order.expected_delivery_date,
        actual_delivery_date=order.actual_delivery_date,
        notes=order.notes,
        version=order.version,
        line_items=[
            PoLineResponse(
                line_number=li.line_number,
                part_number=li.part_number,
                description=li.description,
                quantity=li.quantity,
                unit_price=li.unit_price,
                line_total=li.line_total,
            )
            for li in lines
        ],
        created_at=order.created_at.isoformat() if order.created_at else "",
    )


def _tracking(order: PurchaseOrder) -> OrderTrackingResponse:
    return OrderTrackingResponse(
        po_number=order.po_number,
        order_status=order.status,
        tracking_number=order.tracking_number,
        expected_delivery_date=order.expected_delivery_date,
        actual_delivery_date=order.actual_delivery_date,
        notes=order.notes,
        version=order.version,
    )


@router.get("", response_model=PaginatedResponse[PurchaseOrderResponse])
async def list_purchase_orders(
    paging: PageParams = Depends(),
    po_status: str = Query(None, alias="status"),
    request_id: str = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await quote_service.list_orders(
        db,
        page=paging.page,
        limit=paging.limit,
        status=po_status,
        request_id=request_id,
    )
    return paginate([await order_to_response(db, o) for o in rows], paging, total)


@router.get("/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(
    po_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await order_to_response(db, await quote_service.get_order(db, po_id))


@router.get("/{po_id}/tracking", response_model=OrderTrackingResponse)
async def get_tracking(
    po_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _tracking(await quote_service.get_order(db, po_id))


@router.patch("/{po_id}/tracking", response_model=OrderTrackingResponse)
async def update_tracking(
    po_id: str,
    body: OrderTrackingUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*PROCUREMENT_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Move the order forward and/or record tracking details."""
    order = await quote_service.update_tracking(
        db,
        po_id,
        body.model_dump(exclude_unset=True, exclude={"expected_version"}),
        actor=current_user,
        expected_version=body.expected_version,
    )
    return _tracking(order)
