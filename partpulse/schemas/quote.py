from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, EmailStr, Field


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    contact_name: Optional[str] = Field(None, max_length=255)


class SupplierResponseOut(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_name: Optional[str] = None


class QuoteItemCreate(BaseModel):
    part_number: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    supplier_sku: Optional[str] = Field(None, max_length=100)


class QuoteRequestCreate(BaseModel):
    supplier_id: str
    request_id: Optional[str] = None
    request_notes: Optional[str] = None
    items: List[QuoteItemCreate] = Field(..., min_length=1, max_length=100)


class Attachment(BaseModel):
    name: str
    url: str
    size: Optional[int] = None
    mime_type: Optional[str] = None


class QuotedPrice(BaseModel):
    line_number: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)


class SupplierResponseCreate(BaseModel):
    item_prices: List[QuotedPrice] = Field(default_factory=list)
    transport: Decimal = Field(Decimal("0"), ge=0)
    minimum_order_charge: Decimal = Field(Decimal("0"), ge=0)
    other_charge_amount: Decimal = Field(Decimal("0"), ge=0)
    other_charge_description: Optional[str] = Field(None, max_length=255)
    delivery_date: Optional[date] = None
    payment_terms: Optional[str] = Field(None, max_length=100)
    lead_time_days: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    expected_version: Optional[int] = None


class QuoteReviewRequest(BaseModel):
    decision: Literal["approve", "reject"]
    comments: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = None


class OrderCreate(BaseModel):
    expected_version: Optional[int] = None


class QuoteItemResponse(BaseModel):
    id: str
    line_number: int
    part_number: str
    description: Optional[str] = None
    quantity: int
    unit_price: Optional[Decimal] = None
    supplier_sku: Optional[str] = None


class PricedLineResponse(BaseModel):
    line_number: int
    part_number: Optional[str] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class SupplierQuoteResponse(BaseModel):
    item_prices: List[PricedLineResponse]
    transport: Decimal
    minimum_order_charge: Decimal
    other_charge_amount: Decimal
    other_charge_description: Optional[str] = None
    subtotal: Decimal
    total_charges: Decimal
    grand_total: Decimal
    quoted_price_per_unit: Decimal
    delivery_date: Optional[date] = None
    payment_terms: Optional[str] = None
    lead_time_days: Optional[int] = None
    notes: Optional[str] = None
    attachments: List[dict] = []
    responded_at: str


class QuoteResponse(BaseModel):
    id: str
    quote_id: str
    supplier_id: str
    request_id: Optional[str] = None
    status: str
    estimated_total: Decimal
    request_notes: Optional[str] = None
    review_comments: Optional[str] = None
    created_by: str
    version: int
    items: List[QuoteItemResponse] = []
    response: Optional[SupplierQuoteResponse] = None
    created_at: str
    updated_at: str


class BestQuoteResponse(BaseModel):
    request_id: str
    quote: Optional[QuoteResponse] = None


class PoLineResponse(BaseModel):
    line_number: int
    part_number: str
    description: Optional[str] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class PurchaseOrderResponse(BaseModel):
    id: str
    po_number: str
    quote_request_id: str
    supplier_id: str
    request_id: Optional[str] = None
    status: str
    total: Decimal
    payment_terms: Optional[str] = None
    created_by: str
    issued_at: Optional[str] = None
    tracking_number: Optional[str] = None
    expected_delivery_date: Optional[date] = None
    actual_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    version: int = 1
    line_items: List[PoLineResponse] = []
    created_at: str


class OrderTrackingUpdate(BaseModel):
    order_status: Optional[Literal["NOT_PLACED", "ORDER_PLACED", "DELIVERED"]] = None
    tracking_number: Optional[str] = Field(None, max_length=100)
    expected_delivery_date: Optional[date] = None
    actual_delivery_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = None


class OrderTrackingResponse(BaseModel):
    po_number: str
    order_status: str
    tracking_number: Optional[str] = None
    expected_delivery_date: Optional[date] = None
    actual_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    version: int
