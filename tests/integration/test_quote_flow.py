"""
Quote/order subsystem against an in-memory SQLite store.

Covers pricing of a recorded response, the quote state machine,
purchase-order issue, best-quote selection and the dashboard projection.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import update

from partpulse.errors import (
    AlreadyTerminal,
    ConcurrentModification,
    InvalidTransition,
    MissingComments,
    ValidationError,
)
from partpulse.models.quote import QuoteRequest
from partpulse.services import (
    activity_service,
    projection_service,
    quote_service,
    request_service,
)


async def _supplier(session, name="Nordic Bearings AB"):
    return await quote_service.create_supplier(session, name=name, email="sales@nordic.se")


async def _quote(session, supplier, request_id=None, items=None):
    return await quote_service.create_quote_request(
        session,
        supplier_id=supplier.id,
        items=items or [{"part_number": "BRG-6204", "quantity": 10, "unit_price": "5.00"}],
        created_by=uuid.uuid4(),
        request_id=request_id,
    )


# ---------------------------------------------------------------------------
# Suppliers / quote requests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_supplier_names_are_unique(db_session):
    await _supplier(db_session)
    with pytest.raises(ValidationError):
        await _supplier(db_session)
    assert [s.name for s in await quote_service.list_suppliers(db_session)] == [
        "Nordic Bearings AB"
    ]


@pytest.mark.asyncio
async def test_quote_request_numbering_and_estimate(db_session):
    supplier = await _supplier(db_session)
    first = await _quote(
        db_session,
        supplier,
        items=[
            {"part_number": "BRG-6204", "quantity": 4, "unit_price": "4.80"},
            {"part_number": "SEAL-40", "quantity": 2},
        ],
    )
    second = await _quote(db_session, supplier)

    assert first.quote_id == "QR-000001"
    assert second.quote_id == "QR-000002"
    assert first.status == "pending"
    assert first.estimated_total == Decimal("19.20")


@pytest.mark.asyncio
async def test_quote_request_rejects_bad_quantity(db_session):
    supplier = await _supplier(db_session)
    with pytest.raises(ValidationError):
        await _quote(db_session, supplier, items=[{"part_number": "X", "quantity": 0}])


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_record_response_prices_quote(db_session):
    supplier = await _supplier(db_session)
    quote = await _quote(db_session, supplier)

    response = await quote_service.record_response(
        db_session,
        quote.id,
        {
            "item_prices": [{"line_number": 1, "unit_price": "5.00"}],
            "transport": "20",
            "attachments": [{"name": "quote.pdf", "url": "https://files.example.org/q.pdf"}],
        },
    )
    await db_session.commit()

    assert response.subtotal == Decimal("50.00")
    assert response.grand_total == Decimal("70.00")
    assert response.quoted_price_per_unit == Decimal("7.00")
    assert response.payment_terms == "Net 30"
    assert response.attachments[0]["name"] == "quote.pdf"

    refreshed = await quote_service.get_quote(db_session, quote.id)
    assert refreshed.status == "responded"
    assert refreshed.version == 2


@pytest.mark.asyncio
async def test_second_response_is_refused(db_session):
    supplier = await _supplier(db_session)
    quote = await _quote(db_session, supplier)
    await quote_service.record_response(db_session, quote.id, {"transport": 0})

    with pytest.raises(InvalidTransition):
        await quote_service.record_response(db_session, quote.id, {"transport": 5})


@pytest.mark.asyncio
async def test_response_without_price_is_refused(db_session):
    supplier = await _supplier(db_session)
    quote = await _quote(db_session, supplier, items=[{"part_number": "X", "quantity": 3}])

    with pytest.raises(ValidationError):
        await quote_service.record_response(db_session, quote.id, {})

    refreshed = await quote_service.get_quote(db_session, quote.id)
    assert refreshed.status == "pending"


@pytest.mark.asyncio
async def test_response_for_unknown_line_is_refused(db_session):
    supplier = await _supplier(db_session)
    quote = await _quote(db_session, supplier)
    with pytest.raises(ValidationError):
        await quote_service.record_response(
            db_session, quote.id, {"item_prices": [{"line_number": 9, "unit_price": 1}]}
        )


@pytest.mark.asyncio
async def test_response_pricing_a_line_twice_is_refused(db_session):
    supplier = await _supplier(db_session)
    quote = await _quote(db_session, supplier)
    with pytest.raises(ValidationError):
        await quote_service.record_response(
            db_session,
            quote.id,
            {
                "item_prices": [
                    {"line_number": 1, "unit_price": "5.00"},
                    {"line_number": 1, "unit_price": "0.01"},
                ]
            },
        )

    refreshed = await quote_service.get_quote(db_session, quote.id)
    assert refreshed.status == "pending"


# ---------------------------------------------------------------------------
# Review / order
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_review_and_order(db_session):
    supplier = await _supplier(db_session)
    quote = await _quote(
        db_session,
        supplier,
        items=[
            {"part_number": "BRG-6204", "quantity": 4, "unit_price": "4.80", "description": "Bearing"},
            {"part_number": "SEAL-40", "quantity": 2, "unit_price": "2.15"},
        ],
    )
    await quote_service.record_response(db_session, quote.id, {"transport": "9.90"})

    with pytest.raises(InvalidTransition):
        await quote_service.create_order(db_session, quote.id, created_by=uuid.uuid4())

    quote = await quote_service.review(db_session, quote.id, "approve")
    assert quote.status == "approved"

    order = await quote_service.create_order(db_session, quote.id, created_by=uuid.uuid4())
    await db_session.commit()

    assert order.po_number == "PO-000001"
    assert order.total == Decimal("33.40")
    lines = await quote_service.get_order_lines(db_session, order.id)
    assert [(l.part_number, l.quantity, l.line_total) for l in lines] == [
        ("BRG-6204", 4, Decimal("19.20")),
        ("SEAL-40", 2, Decimal("4.30")),
    ]
    assert lines[0].description == "Bearing"

    with pytest.raises(AlreadyTerminal):
        await quote_service.review(db_session, quote.id, "approve")
    with pytest.raises(AlreadyTerminal):
        await quote_service.create_order(db_session, quote.id, created_by=uuid.uuid4())


@pytest.mark.asyncio
async def test_quote_rejection_needs_comments(db_session):
    supplier = await _supplier(db_session)
    quote = await _quote(db_session, supplier)
    await quote_service.record_response(db_session, quote.id, {})

    with pytest.raises(MissingComments):
        await quote_service.review(db_session, quote.id, "reject")

    quote = await quote_service.review(db_session, quote.id, "reject", comments="too slow")
    assert quote.status == "rejected"
    assert quote.review_comments == "too slow"
    with pytest.raises(AlreadyTerminal):
        await quote_service.review(db_session, quote.id, "approve")


# ---------------------------------------------------------------------------
# Best quote
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_best_quote_tie_breaks_on_creation_time(db_session):
    need = uuid.uuid4()
    nordic = await _supplier(db_session)
    baltic = await _supplier(db_session, name="Baltic Drives OU")

    late = await _quote(db_session, nordic, request_id=need,
                        items=[{"part_number": "BRG-6204", "quantity": 10, "unit_price": "10.00"}])
    early = await _quote(db_session, baltic, request_id=need,
                         items=[{"part_number": "BRG-6204", "quantity": 10, "unit_price": "10.00"}])
    for quote, at in ((late, datetime(2026, 3, 2, 9)), (early, datetime(2026, 3, 2, 8))):
        await db_session.execute(
            update(QuoteRequest).where(QuoteRequest.id == quote.id).values(created_at=at)
        )
        await quote_service.record_response(db_session, quote.id, {})
    # Pending quotes for the same need carry no price and never win
    await _quote(db_session, nordic, request_id=need)
    await db_session.commit()

    best = await quote_service.best_quote_for(db_session, need)
    assert best["quote_id"] == early.quote_id
    assert best["grand_total"] == Decimal("100.00")


@pytest.mark.asyncio
async def test_best_quote_none_without_responses(db_session):
    supplier = await _supplier(db_session)
    need = uuid.uuid4()
    await _quote(db_session, supplier, request_id=need)
    assert await quote_service.best_quote_for(db_session, need) is None


# ---------------------------------------------------------------------------
# Order tracking
# ---------------------------------------------------------------------------


async def _ordered(session, request_id=None, supplier=None):
    supplier = supplier or await _supplier(session)
    quote = await _quote(session, supplier, request_id=request_id)
    await quote_service.record_response(session, quote.id, {})
    await quote_service.review(session, quote.id, "approve")
    order = await quote_service.create_order(session, quote.id, created_by=uuid.uuid4())
    await session.commit()
    return order


@pytest.mark.asyncio
async def test_order_moves_forward_to_delivered(db_session, actors):
    order = await _ordered(db_session)
    assert order.status == "NOT_PLACED"
    assert order.version == 1

    order = await quote_service.update_tracking(
        db_session,
        order.id,
        {
            "order_status": "ORDER_PLACED",
            "tracking_number": "DHL-4471",
            "expected_delivery_date": date(2026, 11, 2),
        },
        actor=actors["coordinator"],
    )
    assert order.status == "ORDER_PLACED"
    assert order.tracking_number == "DHL-4471"
    assert order.expected_delivery_date == date(2026, 11, 2)
    assert order.version == 2

    order = await quote_service.update_tracking(
        db_session, order.id, {"order_status": "DELIVERED"}, actor=actors["coordinator"]
    )
    await db_session.commit()
    assert order.status == "DELIVERED"
    assert order.actual_delivery_date is not None
    assert order.version == 3

    with pytest.raises(AlreadyTerminal):
        await quote_service.update_tracking(db_session, order.id, {"notes": "left at gate"})


@pytest.mark.asyncio
async def test_order_can_skip_to_delivered_with_given_date(db_session):
    order = await _ordered(db_session)
    order = await quote_service.update_tracking(
        db_session,
        order.id,
        {"order_status": "DELIVERED", "actual_delivery_date": date(2026, 10, 15)},
    )
    assert order.actual_delivery_date == date(2026, 10, 15)


@pytest.mark.asyncio
async def test_order_cannot_move_backwards(db_session):
    order = await _ordered(db_session)
    await quote_service.update_tracking(db_session, order.id, {"order_status": "ORDER_PLACED"})

    with pytest.raises(InvalidTransition):
        await quote_service.update_tracking(db_session, order.id, {"order_status": "NOT_PLACED"})
    with pytest.raises(ValidationError):
        await quote_service.update_tracking(db_session, order.id, {"order_status": "LOST"})


@pytest.mark.asyncio
async def test_tracking_details_keep_status(db_session):
    order = await _ordered(db_session)
    order = await quote_service.update_tracking(
        db_session, order.id, {"tracking_number": "UPS-1Z999"}
    )
    assert order.status == "NOT_PLACED"
    assert order.tracking_number == "UPS-1Z999"
    assert order.version == 2

    with pytest.raises(ConcurrentModification):
        await quote_service.update_tracking(
            db_session, order.id, {"notes": "call first"}, expected_version=1
        )


@pytest.mark.asyncio
async def test_order_status_reaches_the_request(db_session, actors):
    request = await request_service.create_request(
        db_session,
        submitter=actors["technician"],
        building_id="B1",
        items=[{"item_name": "Belt", "quantity": 2, "estimated_unit_price": "25"}],
    )
    await db_session.commit()
    request_id = request.id

    order = await _ordered(db_session, request_id=request_id)
    request = await request_service.get_request(db_session, request_id)
    assert request.order_status == "NOT_PLACED"

    await quote_service.update_tracking(
        db_session,
        order.id,
        {"order_status": "DELIVERED"},
        actor=actors["coordinator"],
    )
    await db_session.commit()

    request = await request_service.get_request(db_session, request_id)
    assert request.order_status == "DELIVERED"
    # The request itself is untouched
    assert request.status == "DRAFT"

    changes = [
        a for a in await activity_service.list_activity(db_session, request_id)
        if a.action == "ORDER_STATUS_CHANGED"
    ]
    assert sorted(a.details["order_status"] for a in changes) == ["DELIVERED", "NOT_PLACED"]
    assert {a.details["po_number"] for a in changes} == {order.po_number}
    delivered = next(a for a in changes if a.details["order_status"] == "DELIVERED")
    assert delivered.actor_email == actors["coordinator"]["email"]

    rows, total = await quote_service.list_orders(db_session, request_id=request_id)
    assert total == 1
    assert rows[0].po_number == order.po_number


@pytest.mark.asyncio
async def test_po_number_collision_is_retryable(db_session, monkeypatch):
    supplier = await _supplier(db_session)
    await _ordered(db_session, supplier=supplier)
    quote = await _quote(db_session, supplier)
    await quote_service.record_response(db_session, quote.id, {})
    await quote_service.review(db_session, quote.id, "approve")
    await db_session.commit()

    async def _stale_number(session, column, prefix):
        return f"{prefix}-000001"

    monkeypatch.setattr(quote_service, "_next_number", _stale_number)
    with pytest.raises(ConcurrentModification):
        await quote_service.create_order(db_session, quote.id, created_by=uuid.uuid4())
    await db_session.rollback()


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_dashboard_summary(db_session, actors):
    request = await request_service.create_request(
        db_session,
        submitter=actors["technician"],
        building_id="B2",
        items=[{"item_name": "Belt", "quantity": 2, "estimated_unit_price": "25"}],
    )
    await request_service.submit(db_session, request.id, actors["technician"])

    supplier = await _supplier(db_session)
    responded = await _quote(db_session, supplier)
    await quote_service.record_response(db_session, responded.id, {"transport": 20})
    ordered = await _quote(db_session, supplier)
    await quote_service.record_response(db_session, ordered.id, {})
    await quote_service.review(db_session, ordered.id, "approve")
    await quote_service.create_order(db_session, ordered.id, created_by=uuid.uuid4())
    await db_session.commit()

    summary = await projection_service.dashboard_summary(db_session)

    assert summary["requests_by_status"]["SUBMITTED"]["count"] == 1
    assert summary["requests_by_status"]["SUBMITTED"]["estimated_budget"] == Decimal("50.00")
    assert summary["requests_by_status"]["DRAFT"]["count"] == 0
    level_one = next(p for p in summary["pending_approvals"] if p["approval_level"] == 1)
    assert level_one["pending"] == 1
    assert level_one["role"] == "building_tech"
    assert summary["budget_by_building"] == [
        {"building_id": "B2", "requests": 1, "estimated_budget": Decimal("50.00")}
    ]
    assert summary["quotes"]["by_status"]["responded"] == 1
    assert summary["quotes"]["by_status"]["ordered"] == 1
    assert summary["quotes"]["awaiting_review_value"] == Decimal("70.00")
    assert summary["purchase_orders"] == {"count": 1, "total_value": Decimal("50.00")}
    assert summary["total_requests"] == 1

