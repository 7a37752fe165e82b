"""
Request lifecycle against a real (in-memory SQLite) store.

Covers the approve/reject scenarios, the single-decision-per-level rule,
execution, amend/add_item, activity and concurrent modification.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select, update

from partpulse.errors import (
    AlreadyTerminal,
    ConcurrentModification,
    DuplicateApproval,
    InvalidTransition,
    MissingComments,
    ValidationError,
)
from partpulse.models.request import Request
from partpulse.services import activity_service, ledger_service, request_service


async def _new_request(session, actors, items=None):
    request = await request_service.create_request(
        session,
        submitter=actors["technician"],
        building_id="B1",
        items=items if items is not None else [
            {"item_name": "Ball bearing 6204", "quantity": 2, "estimated_unit_price": 50}
        ],
        description="Conveyor 3 bearings worn",
    )
    await session.commit()
    return request


async def _submitted(session, actors):
    request = await _new_request(session, actors)
    request = await request_service.submit(session, request.id, actors["technician"])
    await session.commit()
    return request


# ---------------------------------------------------------------------------
# Create / submit
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_assigns_number_and_budget(db_session, actors):
    first = await _new_request(db_session, actors)
    second = await _new_request(
        db_session,
        actors,
        items=[
            {"item_name": "Seal", "quantity": 3, "estimated_unit_price": "2.15"},
            {"item_name": "Bolt M8", "quantity": 10, "estimated_unit_price": "0.12"},
        ],
    )

    assert first.request_number == "REQ-000001"
    assert second.request_number == "REQ-000002"
    assert first.status == "DRAFT"
    assert first.version == 1
    assert first.estimated_budget == Decimal("100.00")
    assert second.estimated_budget == Decimal("7.65")


@pytest.mark.asyncio
async def test_quantity_is_stored_at_three_places(db_session, actors):
    request = await _new_request(
        db_session,
        actors,
        items=[{"item_name": "Hydraulic oil", "quantity": "1.0005", "estimated_unit_price": 1000}],
    )
    request_id = request.id
    db_session.expire_all()

    stored = await request_service.get_request(db_session, request_id)
    items = await request_service.get_items(db_session, request_id)
    assert items[0].quantity == Decimal("1.001")
    # Budget agrees with what the item row holds
    assert stored.estimated_budget == Decimal("1001.00")


@pytest.mark.asyncio
async def test_quantity_rounding_to_zero_is_refused(db_session, actors):
    with pytest.raises(ValidationError):
        await request_service.create_request(
            db_session,
            submitter=actors["technician"],
            building_id="B1",
            items=[{"item_name": "Grease", "quantity": "0.0004", "estimated_unit_price": 100}],
        )


@pytest.mark.asyncio
async def test_request_number_collision_is_retryable(db_session, actors, monkeypatch):
    await _new_request(db_session, actors)

    async def _stale_number(session):
        return "REQ-000001"

    monkeypatch.setattr(request_service, "_generate_request_number", _stale_number)
    with pytest.raises(ConcurrentModification):
        await request_service.create_request(
            db_session,
            submitter=actors["technician"],
            building_id="B1",
            items=[{"item_name": "Seal", "quantity": 1}],
        )
    await db_session.rollback()


@pytest.mark.asyncio
async def test_submit_requires_items(db_session, actors):
    request = await _new_request(db_session, actors, items=[])
    with pytest.raises(ValidationError):
        await request_service.submit(db_session, request.id, actors["technician"])


@pytest.mark.asyncio
async def test_submit_moves_to_submitted(db_session, actors):
    request = await _submitted(db_session, actors)
    assert request.status == "SUBMITTED"
    assert request.submitted_at is not None
    assert request.version == 2


# ---------------------------------------------------------------------------
# Decide
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_building_tech_approves(db_session, actors):
    request = await _submitted(db_session, actors)

    request = await request_service.decide(
        db_session, request.id, actors["building_tech"], "approve"
    )
    await db_session.commit()

    assert request.status == "BUILDING_APPROVED"
    approvals = await ledger_service.list_for(db_session, request.id)
    assert len(approvals) == 1
    assert approvals[0].approval_level == 1
    assert approvals[0].approver_role == "building_tech"
    assert approvals[0].decision == "APPROVED"


@pytest.mark.asyncio
async def test_rejection_is_final(db_session, actors):
    request = await _submitted(db_session, actors)
    await request_service.decide(db_session, request.id, actors["building_tech"], "approve")
    request = await request_service.decide(
        db_session,
        request.id,
        actors["maintenance_org"],
        "reject",
        comments="budget too high",
    )
    await db_session.commit()
    assert request.status == "REJECTED"

    with pytest.raises(AlreadyTerminal):
        await request_service.decide(
            db_session, request.id, actors["tech_director"], "approve"
        )

    approvals = await ledger_service.list_for(db_session, request.id)
    assert [(a.approval_level, a.decision) for a in approvals] == [
        (1, "APPROVED"),
        (2, "REJECTED"),
    ]
    assert approvals[1].comments == "budget too high"


@pytest.mark.asyncio
async def test_reject_without_comments_changes_nothing(db_session, actors):
    request = await _submitted(db_session, actors)

    with pytest.raises(MissingComments):
        await request_service.decide(
            db_session, request.id, actors["building_tech"], "reject", comments="  "
        )

    refreshed = await request_service.get_request(db_session, request.id)
    assert refreshed.status == "SUBMITTED"
    assert await ledger_service.list_for(db_session, request.id) == []


@pytest.mark.asyncio
async def test_wrong_level_cannot_decide(db_session, actors):
    request = await _submitted(db_session, actors)
    with pytest.raises(InvalidTransition):
        await request_service.decide(
            db_session, request.id, actors["tech_director"], "approve"
        )


@pytest.mark.asyncio
async def test_level_cannot_decide_twice(db_session, actors):
    request = await _submitted(db_session, actors)
    await request_service.decide(db_session, request.id, actors["building_tech"], "approve")
    await db_session.commit()

    # The request has moved on, so the same role has no gate any more
    with pytest.raises(InvalidTransition):
        await request_service.decide(
            db_session, request.id, actors["building_tech"], "approve"
        )
    # And the ledger itself refuses a second entry for the level
    with pytest.raises(DuplicateApproval):
        await ledger_service.append(
            db_session,
            request_id=request.id,
            approval_level=1,
            approver_role="building_tech",
            decision="APPROVED",
        )


@pytest.mark.asyncio
async def test_full_chain_to_executed(db_session, actors):
    request = await _submitted(db_session, actors)
    for role in ("building_tech", "maintenance_org", "tech_director"):
        request = await request_service.decide(db_session, request.id, actors[role], "approve")
    assert request.status == "DIRECTOR_APPROVED"

    request = await request_service.execute(
        db_session,
        request.id,
        actors["god_admin"],
        quote_id="QR-000001",
        assigned_to_email="stores@partpulse.io",
    )
    await db_session.commit()

    assert request.status == "EXECUTED"
    assert request.completed_at is not None
    approvals = await ledger_service.list_for(db_session, request.id)
    assert [a.approval_level for a in approvals] == [1, 2, 3, 4]

    activity = await activity_service.list_activity(db_session, request.id)
    actions = {a.action for a in activity}
    assert {
        "REQUEST_CREATED",
        "REQUEST_SUBMITTED",
        "REQUEST_APPROVED",
        "REQUEST_EXECUTED",
    } <= actions
    executed = next(a for a in activity if a.action == "REQUEST_EXECUTED")
    assert executed.details["quote_id"] == "QR-000001"

    with pytest.raises(AlreadyTerminal):
        await request_service.execute(db_session, request.id, actors["god_admin"])


@pytest.mark.asyncio
async def test_execute_requires_director_approval(db_session, actors):
    request = await _submitted(db_session, actors)
    with pytest.raises(InvalidTransition):
        await request_service.execute(db_session, request.id, actors["god_admin"])


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stale_expected_version(db_session, actors):
    request = await _submitted(db_session, actors)
    with pytest.raises(ConcurrentModification):
        await request_service.decide(
            db_session,
            request.id,
            actors["building_tech"],
            "approve",
            expected_version=1,
        )


@pytest.mark.asyncio
async def test_compare_and_swap_loses_to_other_writer(db_session, actors):
    request = await _submitted(db_session, actors)
    # Read before the rollback expires the instance
    request_id = request.id
    loaded = await request_service.get_request(db_session, request_id)
    assert loaded.version == 2

    # Another writer bumps the row behind this session's back
    await db_session.execute(
        update(Request)
        .where(Request.id == request_id)
        .values(version=Request.version + 1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ConcurrentModification):
        await request_service.decide(
            db_session, request_id, actors["building_tech"], "approve"
        )
    await db_session.rollback()

    row = (await db_session.execute(select(Request).where(Request.id == request_id))).scalar_one()
    assert row.status == "SUBMITTED"


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_add_item_only_in_draft(db_session, actors):
    request = await _new_request(db_session, actors)
    await request_service.add_item(
        db_session,
        request.id,
        {"item_name": "Grease", "quantity": 1, "estimated_unit_price": "8.40"},
        actors["technician"],
    )
    refreshed = await request_service.get_request(db_session, request.id)
    assert refreshed.estimated_budget == Decimal("108.40")
    assert len(await request_service.get_items(db_session, request.id)) == 2

    await request_service.submit(db_session, request.id, actors["technician"])
    with pytest.raises(InvalidTransition):
        await request_service.add_item(
            db_session,
            request.id,
            {"item_name": "Rag", "quantity": 1, "estimated_unit_price": 1},
            actors["technician"],
        )


@pytest.mark.asyncio
async def test_approver_amends_quantity(db_session, actors):
    request = await _submitted(db_session, actors)
    item = (await request_service.get_items(db_session, request.id))[0]

    request = await request_service.amend(
        db_session,
        request.id,
        actors["building_tech"],
        {"priority": "HIGH"},
        item_changes=[{"item_id": str(item.id), "quantity": 1}],
    )
    await db_session.commit()

    assert request.status == "SUBMITTED"
    assert request.priority == "HIGH"
    assert request.estimated_budget == Decimal("50.00")
    assert request.version == 3


@pytest.mark.asyncio
async def test_technician_cannot_amend_after_submit(db_session, actors):
    request = await _submitted(db_session, actors)
    with pytest.raises(InvalidTransition):
        await request_service.amend(
            db_session, request.id, actors["technician"], {"notes": "urgent"}
        )


@pytest.mark.asyncio
async def test_pending_for_role(db_session, actors):
    waiting = await _submitted(db_session, actors)
    await _new_request(db_session, actors)

    pending = await request_service.pending_for_role(db_session, "building_tech")
    assert [r.id for r in pending] == [waiting.id]
    assert await request_service.pending_for_role(db_session, "maintenance_org") == []
    assert await request_service.pending_for_role(db_session, "technician") == []
