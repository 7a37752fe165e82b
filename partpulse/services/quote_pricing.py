"""
Supplier quote pricing: exact Decimal arithmetic, 2-place half-up rounding.

  line_total            = round(quantity * unit_price, 2)
  subtotal              = sum(line_total)
  total_charges         = transport + minimum_order_charge + other_charge_amount
  grand_total           = subtotal + total_charges
  quoted_price_per_unit = round(grand_total / total_item_count, 2)
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from partpulse.errors import NoItemsError, ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    """Coerce to Decimal and round half-up to cents. Floats go through str()."""
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"'{value}' is not a valid amount")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _decimal(value, what: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{what} must be a number")


def line_total(quantity, unit_price) -> Decimal:
    qty = _decimal(quantity, "Quantity")
    price = _decimal(unit_price, "Unit price")
    return (qty * price).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    line_number: int
    part_number: Optional[str]
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    def as_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "part_number": self.part_number,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
        }


@dataclass(frozen=True)
class QuoteTotals:
    lines: tuple[PricedLine, ...]
    subtotal: Decimal
    transport: Decimal
    minimum_order_charge: Decimal
    other_charge_amount: Decimal
    total_charges: Decimal
    grand_total: Decimal
    total_item_count: int
    quoted_price_per_unit: Decimal = field(default=ZERO)


def _get(obj: Any, name: str, default=None):
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _charge(value, name: str) -> Decimal:
    amount = money(value)
    if amount < 0:
        raise ValidationError(f"{name} cannot be negative")
    return amount


def compute_totals(
    items: Iterable,
    transport=None,
    minimum_order_charge=None,
    other_charge_amount=None,
) -> QuoteTotals:
    """
    Price a supplier response.

    ``items`` are dicts or objects with ``quantity`` and ``unit_price``
    (``line_number``/``part_number`` optional). Raises NoItemsError when the
    total item count is zero, ValidationError on negative prices or charges.
    """
    lines = []
    for idx, item in enumerate(items or [], start=1):
        quantity = _get(item, "quantity")
        unit_price = _get(item, "unit_price")
        if unit_price is None:
            raise ValidationError(f"Line {idx} has no quoted unit price")
        count = _decimal(quantity, f"Line {idx} quantity")
        if not count.is_finite() or count != count.to_integral_value():
            raise ValidationError(f"Line {idx} quantity must be a whole number")
        quantity = int(count)
        if quantity < 0:
            raise ValidationError(f"Line {idx} quantity cannot be negative")
        price = _decimal(unit_price, f"Line {idx} unit price")
        if price < 0:
            raise ValidationError(f"Line {idx} unit price cannot be negative")
        lines.append(
            PricedLine(
                line_number=_get(item, "line_number") or idx,
                part_number=_get(item, "part_number"),
                quantity=quantity,
                unit_price=price,
                line_total=line_total(quantity, price),
            )
        )

    total_item_count = sum(line.quantity for line in lines)
    if total_item_count == 0:
        raise NoItemsError()

    subtotal = sum((line.line_total for line in lines), ZERO)
    transport = _charge(transport, "Transport")
    minimum_order_charge = _charge(minimum_order_charge, "Minimum order charge")
    other_charge_amount = _charge(other_charge_amount, "Other charge")
    total_charges = transport + minimum_order_charge + other_charge_amount
    grand_total = subtotal + total_charges

    return QuoteTotals(
        lines=tuple(lines),
        subtotal=subtotal,
        transport=transport,
        minimum_order_charge=minimum_order_charge,
        other_charge_amount=other_charge_amount,
        total_charges=total_charges,
        grand_total=grand_total,
        total_item_count=total_item_count,
        quoted_price_per_unit=(grand_total / total_item_count).quantize(
            CENT, rounding=ROUND_HALF_UP
        ),
    )


def estimated_total(items: Iterable) -> Decimal:
    """Sum of quantity * unit_price over items that carry a price."""
    total = ZERO
    for item in items or []:
        unit_price = _get(item, "unit_price")
        if unit_price is None:
            continue
        total += line_total(_get(item, "quantity"), unit_price)
    return total


def select_best_quote(candidates: Iterable):
    """
    Lowest grand_total wins; ties go to the earliest created_at, then the
    lowest quote_id. Returns None for an empty input.
    """
    best = None
    best_key = None
    for candidate in candidates:
        grand_total = _get(candidate, "grand_total")
        if grand_total is None:
            continue
        created_at = _get(candidate, "created_at") or datetime.max
        key = (money(grand_total), created_at, str(_get(candidate, "quote_id") or ""))
        if best_key is None or key < best_key:
            best, best_key = candidate, key
    return best
