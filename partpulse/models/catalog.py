"""Read-only spare-part catalogue used by the BOM roll-up."""

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
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from partpulse.database import Base


class SparePart(Base):
    __tablename__ = "spare_parts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    part_number: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    stock_level: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )


class Assembly(Base):
    __tablename__ = "assemblies"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    machine_code: Mapped[Optional[str]] = mapped_column(String(50))
    description: Mapped[Optional[str]] = mapped_column(Text)


class SubAssembly(Base):
    __tablename__ = "sub_assemblies"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    assembly_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_sub_assembly_qty"),
    )


class AssemblyComponent(Base):
    """A part used either directly by an assembly or by one of its sub-assemblies."""

    __tablename__ = "assembly_components"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    assembly_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assemblies.id", ondelete="CASCADE"), nullable=False
    )
    sub_assembly_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("sub_assemblies.id", ondelete="CASCADE")
    )
    part_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("spare_parts.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_component_qty"),
        Index("idx_components_assembly", "assembly_id"),
    )
