from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from partpulse.database import get_db
from partpulse.middleware.auth import get_current_user
from partpulse.middleware.authorization import PROCUREMENT_ROLES, require_roles
from partpulse.models.quote import QuoteRequest
from partpulse.routes.purchase_orders import order_to_response
from partpulse.schemas.common import PageParams, PaginatedResponse, paginate
from partpulse.schemas.quote import (
    BestQuoteResponse,
    OrderCreate,
    PurchaseOrderResponse,
    QuoteItemResponse,
    QuoteRequestCreate,
    QuoteResponse,
    QuoteReviewRequest,
    SupplierQuoteResponse,
    SupplierResponseCreate,
)
from partpulse.services import quote_service

logger = structlog.get_logger()
router = APIRouter()


def _iso(value):
    return value.isoformat() if value else None


async def _to_response(db: AsyncSession, quote: QuoteRequest) -> QuoteResponse:
    items = await quote_service.get_quote_items(db, quote.id)
    response = await quote_service.get_response(db, quote.id)
    return QuoteResponse(
        id=str(quote.id),
        quote_id=quote.quote_id,
        supplier_id=str(quote.supplier_id),
        request_id=str(quote.request_id) if quote.request_id else None,
        status=quote.status,
        estimated_total=quote.estimated_total,
        request_notes=quote.request_notes,
        review_comments=quote.review_comments,
        created_by=str(quote.created_by),
        version=quote.version,
        items=[
            QuoteItemResponse(
                id=str(i.id),
                line_number=i.line_number,
                part_number=i.part_number,
                description=i.description,
                quantity=i.quantity,
                unit_price=i.unit_price,
                supplier_sku=i.supplier_sku,
            )
            for i in items
        ],
        response=(
            SupplierQuoteResponse(
                item_prices=response.item_prices,
                transport=response.transport,
                minimum_order_charge=response.minimum_order_charge,
                other_charge_amount=response.other_charge_amount,
                other_charge_description=response.other_charge_description,
                subtotal=response.subtotal,
                total_charges=response.total_charges,
                grand_total=response.grand_total,
                quoted_price_per_unit=response.quoted_price_per_unit,
                delivery_date=response.delivery_date,
                payment_terms=response.payment_terms,
                lead_time_days=response.lead_time_days,
                notes=response.notes,
                attachments=response.attachments or [],
                responded_at=_iso(response.responded_at) or "",
            )
            if response
            else None
        ),
        created_at=_iso(quote.created_at) or "",
        updated_at=_iso(quote.updated_at) or "",
    )


# ---------- LIST / GET ----------


@router.get("", response_model=PaginatedResponse[QuoteResponse])
async def list_quote_requests(
    paging: PageParams = Depends(),
    quote_status: str = Query(None, alias="status"),
    request_id: str = Query(None),
    supplier_id: str = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await quote_service.list_quotes(
        db,
        page=paging.page,
        limit=paging.limit,
        status=quote_status,
        request_id=request_id,
        supplier_id=supplier_id,
    )
    return paginate([await _to_response(db, q) for q in rows], paging, total)


@router.get("/best", response_model=BestQuoteResponse)
async def best_quote(
    request_id: str = Query(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cheapest responded quote for a request; earliest wins a tie."""
    best = await quote_service.best_quote_for(db, request_id)
    return BestQuoteResponse(
        request_id=request_id,
        quote=await _to_response(db, best["quote"]) if best else None,
    )


@router.get("/{quote_request_id}", response_model=QuoteResponse)
async def get_quote_request(
    quote_request_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _to_response(db, await quote_service.get_quote(db, quote_request_id))


# ---------- LIFECYCLE ----------


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def create_quote_request(
    body: QuoteRequestCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*PROCUREMENT_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    quote = await quote_service.create_quote_request(
        db,
        supplier_id=body.supplier_id,
        items=[item.model_dump() for item in body.items],
        created_by=current_user["user_id"],
        request_id=body.request_id,
        request_notes=body.request_notes,
    )
    return await _to_response(db, quote)


@router.post("/{quote_request_id}/response", response_model=QuoteResponse)
async def record_response(
    quote_request_id: str,
    body: SupplierResponseCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*PROCUREMENT_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    payload = body.model_dump(exclude={"expected_version"})
    await quote_service.record_response(
        db, quote_request_id, payload, expected_version=body.expected_version
    )
    return await _to_response(db, await quote_service.get_quote(db, quote_request_id))


@router.post("/{quote_request_id}/review", response_model=QuoteResponse)
async def review_quote(
    quote_request_id: str,
    body: QuoteReviewRequest,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*PROCUREMENT_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    quote = await quote_service.review(
        db,
        quote_request_id,
        body.decision,
        comments=body.comments,
        expected_version=body.expected_version,
    )
    return await _to_response(db, quote)


@router.post(
    "/{quote_request_id}/order",
    response_model=PurchaseOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    quote_request_id: str,
    body: OrderCreate = OrderCreate(),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*PROCUREMENT_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    order = await quote_service.create_order(
        db,
        quote_request_id,
        created_by=current_user["user_id"],
        expected_version=body.expected_version,
    )
    return await order_to_response(db, order)
