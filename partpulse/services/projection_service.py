"""
Read-side projections for the dashboards.

Every call recomputes from the store; nothing here is cached or written.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from partpulse.models.purchase_order import PurchaseOrder
from partpulse.models.quote import QuoteRequest, SupplierResponse
from partpulse.models.request import Request
from partpulse.services.lifecycle import (
    TRANSITIONS,
    QuoteStatus,
    RequestStatus,
)
from partpulse.services.quote_pricing import money

logger = structlog.get_logger()


async def request_counts(
    session: AsyncSession, building_id: Optional[str] = None
) -> dict[str, dict]:
    """Per status: number of requests and their summed estimated budget."""
    q = select(
        Request.status,
        func.count(Request.id),
        func.coalesce(func.sum(Request.estimated_budget), 0),
    ).group_by(Request.status)
    if building_id:
        q = q.where(Request.building_id == building_id)
    rows = (await session.execute(q)).all()

    summary = {s.value: {"count": 0, "estimated_budget": money(0)} for s in RequestStatus}
    for status, count, budget in rows:
        summary[status] = {"count": count, "estimated_budget": money(budget)}
    return summary


async def pending_approvals(session: AsyncSession) -> list[dict]:
    """One row per approval level with the requests waiting on it."""
    rows = (
        await session.execute(
            select(Request.status, func.count(Request.id)).group_by(Request.status)
        )
    ).all()
    counts = dict(rows)
    return [
        {
            "approval_level": gate.level,
            "role": gate.role.value,
            "status": status.value,
            "pending": counts.get(status.value, 0),
        }
        for status, gate in TRANSITIONS.items()
    ]


async def budget_by_building(session: AsyncSession) -> list[dict]:
    rows = (
        await session.execute(
            select(
                Request.building_id,
                func.count(Request.id),
                func.coalesce(func.sum(Request.estimated_budget), 0),
            )
            .group_by(Request.building_id)
            .order_by(Request.building_id)
        )
    ).all()
    return [
        {"building_id": building, "requests": count, "estimated_budget": money(total)}
        for building, count, total in rows
    ]


async def quote_summary(session: AsyncSession) -> dict:
    rows = (
        await session.execute(
            select(QuoteRequest.status, func.count(QuoteRequest.id)).group_by(
                QuoteRequest.status
            )
        )
    ).all()
    by_status = {s.value: 0 for s in QuoteStatus}
    by_status.update(dict(rows))

    awaiting = (
        await session.execute(
            select(func.coalesce(func.sum(SupplierResponse.grand_total), 0))
            .join(QuoteRequest, QuoteRequest.id == SupplierResponse.quote_request_id)
            .where(QuoteRequest.status == QuoteStatus.RESPONDED.value)
        )
    ).scalar()

    return {
        "by_status": by_status,
        "awaiting_review_value": money(awaiting),
    }


async def order_summary(session: AsyncSession) -> dict:
    count, total = (
        await session.execute(
            select(
                func.count(PurchaseOrder.id),
                func.coalesce(func.sum(PurchaseOrder.total), 0),
            )
        )
    ).one()
    return {"count": count, "total_value": money(total)}


async def dashboard_summary(session: AsyncSession) -> dict:
    requests = await request_counts(session)
    summary = {
        "requests_by_status": requests,
        "pending_approvals": await pending_approvals(session),
        "budget_by_building": await budget_by_building(session),
        "quotes": await quote_summary(session),
        "purchase_orders": await order_summary(session),
        "total_requests": sum(v["count"] for v in requests.values()),
        "total_estimated_budget": sum(
            (v["estimated_budget"] for v in requests.values()), Decimal("0.00")
        ),
    }
    logger.info(
        "dashboard_summary_computed",
        total_requests=summary["total_requests"],
        purchase_orders=summary["purchase_orders"]["count"],
    )
    return summary
