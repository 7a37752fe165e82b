import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Text,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from partpulse.database import Base


class Approval(Base):
    """Ledger entry: one decision per (request, level), never updated."""

    __tablename__ = "request_approvals"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("item_requests.id"), nullable=False
    )
    approval_level: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_role: Mapped[str] = mapped_column(String(50), nullable=False)
    approver_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    approver_email: Mapped[Optional[str]] = mapped_column(String(255))
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(Text)
    decided_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "request_id", "approval_level", name="uq_request_approval_level"
        ),
        CheckConstraint(
            "approval_level BETWEEN 1 AND 4", name="chk_approval_level_range"
        ),
        CheckConstraint(
            "decision IN ('APPROVED','REJECTED')", name="chk_approval_decision"
        ),
        Index("idx_approvals_request", "request_id"),
        Index("idx_approvals_role", "approver_role"),
    )
