import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Numeric,
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


class Request(Base):
    __tablename__ = "item_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    request_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    building_id: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), default="NORMAL")
    description: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(50), default="DRAFT")
    submitter_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    submitter_email: Mapped[Optional[str]] = mapped_column(String(255))
    estimated_budget: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), default=Decimal("0.00")
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    # Mirrors the status of the purchase order raised for this request
    order_status: Mapped[Optional[str]] = mapped_column(String(20))

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT','SUBMITTED','BUILDING_APPROVED','MAINTENANCE_APPROVED',"
            "'DIRECTOR_APPROVED','EXECUTED','REJECTED')",
            name="chk_request_status",
        ),
        CheckConstraint(
            "priority IN ('LOW','NORMAL','HIGH','URGENT')",
            name="chk_request_priority",
        ),
        Index("idx_requests_status", "status"),
        Index("idx_requests_submitter", "submitter_id"),
        Index("idx_requests_building", "building_id"),
    )


class RequestItem(Base):
    __tablename__ = "request_items"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("item_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    item_name: Mapped[str] = mapped_column(String(300), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(30), nullable=False, default="pcs")
    estimated_unit_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False
    )
    specs: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_request_item_qty"),
        CheckConstraint(
            "estimated_unit_price >= 0", name="chk_request_item_price"
        ),
        Index("idx_request_items_request", "request_id"),
    )


class RequestActivity(Base):
    """Append-only timeline of everything that happened to a request."""

    __tablename__ = "request_activity"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("item_requests.id"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    actor_email: Mapped[Optional[str]] = mapped_column(String(255))
    details: Mapped[Optional[dict]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_request_activity_request", "request_id", "created_at"),
    )
