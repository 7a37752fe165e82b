"""Bill of materials roll-up: assembly → flat list of part requirements."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from partpulse.errors import NotFound
from partpulse.models.catalog import (
    Assembly,
    AssemblyComponent,
    SparePart,
    SubAssembly,
)
from partpulse.services.quote_pricing import ZERO, line_total, money

logger = structlog.get_logger()


@dataclass
class BomLine:
    part_number: str
    name: str
    required: int
    unit_cost: Decimal
    stock_level: int

    @property
    def cost(self) -> Decimal:
        return line_total(self.required, self.unit_cost)

    @property
    def shortage(self) -> int:
        return max(0, self.required - (self.stock_level or 0))


@dataclass
class Bom:
    lines: list[BomLine]
    total_cost: Decimal
    short_parts: int
    total_quantity: int


def flatten_bom(
    components: Iterable[tuple],
    sub_assembly_qty: Optional[dict] = None,
) -> Bom:
    """
    ``components`` are ``(part, quantity, sub_assembly_id)`` tuples where
    ``part`` has part_number/name/unit_cost/stock_level. Components inside a
    sub-assembly are multiplied by that sub-assembly's quantity. The same
    part appearing in several places is merged into one line.
    """
    sub_assembly_qty = sub_assembly_qty or {}
    merged: dict[str, BomLine] = {}
    for part, quantity, sub_assembly_id in components:
        multiplier = sub_assembly_qty.get(sub_assembly_id, 1) if sub_assembly_id else 1
        required = int(quantity) * int(multiplier)
        line = merged.get(part.part_number)
        if line is None:
            merged[part.part_number] = BomLine(
                part_number=part.part_number,
                name=part.name,
                required=required,
                unit_cost=money(part.unit_cost),
                stock_level=part.stock_level or 0,
            )
        else:
            line.required += required

    lines = sorted(merged.values(), key=lambda l: l.part_number)
    return Bom(
        lines=lines,
        total_cost=money(sum((l.cost for l in lines), ZERO)),
        short_parts=sum(1 for l in lines if l.shortage > 0),
        total_quantity=sum(l.required for l in lines),
    )


async def load_bom(session: AsyncSession, assembly_id) -> tuple[Assembly, Bom]:
    assembly = await session.get(Assembly, assembly_id)
    if assembly is None:
        raise NotFound(f"Assembly '{assembly_id}' not found")

    subs = await session.execute(
        select(SubAssembly.id, SubAssembly.quantity).where(
            SubAssembly.assembly_id == assembly.id
        )
    )
    sub_qty = dict(subs.all())

    result = await session.execute(
        select(SparePart, AssemblyComponent.quantity, AssemblyComponent.sub_assembly_id)
        .join(SparePart, SparePart.id == AssemblyComponent.part_id)
        .where(AssemblyComponent.assembly_id == assembly.id)
    )
    bom = flatten_bom(result.all(), sub_qty)

    logger.info(
        "bom_flattened",
        assembly_id=str(assembly.id),
        parts=len(bom.lines),
        short_parts=bom.short_parts,
    )
    return assembly, bom
