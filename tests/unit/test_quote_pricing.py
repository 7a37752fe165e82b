"""
Unit tests for partpulse/services/quote_pricing.py

Tests: line/subtotal/charges/grand total arithmetic, half-up rounding,
       NoItemsError, negative inputs, repeatability, best-quote selection.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from partpulse.errors import NoItemsError, ValidationError
from partpulse.services.quote_pricing import (
    compute_totals,
    estimated_total,
    line_total,
    money,
    select_best_quote,
)


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


def test_single_line_with_transport():
    totals = compute_totals([{"quantity": 10, "unit_price": "5.00"}], transport=20)

    assert totals.subtotal == Decimal("50.00")
    assert totals.total_charges == Decimal("20.00")
    assert totals.grand_total == Decimal("70.00")
    assert totals.total_item_count == 10
    assert totals.quoted_price_per_unit == Decimal("7.00")


def test_all_charges_are_added():
    totals = compute_totals(
        [
            {"quantity": 3, "unit_price": "12.50", "part_number": "BRG-6204"},
            {"quantity": 1, "unit_price": "7.25", "part_number": "SEAL-40"},
        ],
        transport="15.00",
        minimum_order_charge="10",
        other_charge_amount="2.50",
    )
    assert [l.line_total for l in totals.lines] == [Decimal("37.50"), Decimal("7.25")]
    assert totals.subtotal == Decimal("44.75")
    assert totals.total_charges == Decimal("27.50")
    assert totals.grand_total == Decimal("72.25")
    # 72.25 / 4 = 18.0625
    assert totals.quoted_price_per_unit == Decimal("18.06")


def test_line_total_rounds_half_up_on_the_product():
    # 3 * 0.335 = 1.005 → 1.01 (half-up), not 3 * 0.34 = 1.02
    assert line_total(3, "0.335") == Decimal("1.01")
    assert line_total(1, "2.675") == Decimal("2.68")


def test_per_unit_rounds_half_up():
    totals = compute_totals([{"quantity": 8, "unit_price": "0.01"}], transport="0.04")
    # (0.08 + 0.04) / 8 = 0.015 → 0.02
    assert totals.quoted_price_per_unit == Decimal("0.02")


def test_float_inputs_go_through_str():
    assert money(0.1 + 0.2) == Decimal("0.30")
    assert line_total(3, 0.1) == Decimal("0.30")


def test_repeated_computation_is_identical():
    items = [{"quantity": 7, "unit_price": "3.333"}, {"quantity": 2, "unit_price": "0.005"}]
    first = compute_totals(items, transport="1.115")
    second = compute_totals(items, transport="1.115")
    assert first == second


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_zero_items_raises_no_items():
    with pytest.raises(NoItemsError):
        compute_totals([])
    with pytest.raises(NoItemsError):
        compute_totals([{"quantity": 0, "unit_price": "4.00"}])


@pytest.mark.parametrize(
    "kwargs",
    [{"transport": -1}, {"minimum_order_charge": "-0.01"}, {"other_charge_amount": -5}],
)
def test_negative_charges_rejected(kwargs):
    with pytest.raises(ValidationError):
        compute_totals([{"quantity": 1, "unit_price": 1}], **kwargs)


def test_negative_price_rejected():
    with pytest.raises(ValidationError):
        compute_totals([{"quantity": 1, "unit_price": "-1"}])


def test_missing_price_rejected():
    with pytest.raises(ValidationError):
        compute_totals([{"quantity": 1, "unit_price": None}])


@pytest.mark.parametrize("quantity", ["2.5", 0.5, "Infinity", "abc"])
def test_fractional_quantity_rejected(quantity):
    with pytest.raises(ValidationError):
        compute_totals([{"quantity": quantity, "unit_price": "4.00"}])


def test_integral_decimal_quantity_accepted():
    totals = compute_totals([{"quantity": "3.0", "unit_price": "4.00"}])
    assert totals.subtotal == Decimal("12.00")


def test_estimated_total_skips_unpriced_items():
    items = [
        {"quantity": 2, "unit_price": "4.50"},
        {"quantity": 5, "unit_price": None},
        {"quantity": 1},
    ]
    assert estimated_total(items) == Decimal("9.00")


# ---------------------------------------------------------------------------
# Best quote
# ---------------------------------------------------------------------------


def test_best_quote_is_cheapest():
    quotes = [
        {"quote_id": "QR-000001", "grand_total": Decimal("120.00"), "created_at": datetime(2026, 3, 1, 8)},
        {"quote_id": "QR-000002", "grand_total": Decimal("99.99"), "created_at": datetime(2026, 3, 1, 9)},
    ]
    assert select_best_quote(quotes)["quote_id"] == "QR-000002"


def test_best_quote_tie_goes_to_earliest():
    later = {"quote_id": "QR-000001", "grand_total": Decimal("100.00"), "created_at": datetime(2026, 3, 1, 9)}
    earlier = {"quote_id": "QR-000002", "grand_total": Decimal("100.00"), "created_at": datetime(2026, 3, 1, 8)}
    assert select_best_quote([later, earlier]) is earlier
    assert select_best_quote([earlier, later]) is earlier


def test_best_quote_full_tie_goes_to_lowest_quote_id():
    at = datetime(2026, 3, 1, 8)
    a = {"quote_id": "QR-000007", "grand_total": "50", "created_at": at}
    b = {"quote_id": "QR-000003", "grand_total": "50.00", "created_at": at}
    assert select_best_quote([a, b]) is b


def test_best_quote_empty():
    assert select_best_quote([]) is None
    assert select_best_quote([{"quote_id": "QR-1", "grand_total": None}]) is None
