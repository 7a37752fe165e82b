import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    Date,
    DateTime,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
    JSON,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from partpulse.database import Base


class Supplier(Base):
    __tablename__ = "suppliers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    contact_name: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )


class QuoteRequest(Base):
    __tablename__ = "quote_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    quote_id: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("suppliers.id"), nullable=False
    )
    # Loose association with the originating request, by convention only
    request_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    estimated_total: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), default=Decimal("0.00")
    )
    request_notes: Mapped[Optional[str]] = mapped_column(Text)
    review_comments: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','responded','approved','rejected','ordered')",
            name="chk_quote_status",
        ),
        Index("idx_quotes_status", "status"),
        Index("idx_quotes_request", "request_id"),
        Index("idx_quotes_supplier", "supplier_id"),
    )


class QuoteItem(Base):
    __tablename__ = "quote_items"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    quote_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quote_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    part_number: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    supplier_sku: Mapped[Optional[str]] = mapped_column(String(100))

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_quote_item_qty"),
        Index("idx_quote_items_quote", "quote_request_id"),
    )


class SupplierResponse(Base):
    __tablename__ = "supplier_responses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    quote_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quote_requests.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    # [{"line_number", "part_number", "quantity", "unit_price", "line_total"}]
    item_prices: Mapped[list] = mapped_column(JSON, nullable=False)
    transport: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    minimum_order_charge: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00")
    )
    other_charge_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00")
    )
    other_charge_description: Mapped[Optional[str]] = mapped_column(String(255))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_charges: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    grand_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    quoted_price_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False
    )
    delivery_date: Mapped[Optional[date]] = mapped_column(Date)
    payment_terms: Mapped[Optional[str]] = mapped_column(String(100))
    lead_time_days: Mapped[Optional[int]] = mapped_column(Integer)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    attachments: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    responded_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
