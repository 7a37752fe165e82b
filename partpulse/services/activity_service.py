"""Request activity log: records every event on a request's timeline."""

from typing import Optional
from datetime import date, datetime
from decimal import Decimal
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from partpulse.models.request import RequestActivity

logger = structlog.get_logger()

REQUEST_CREATED = "REQUEST_CREATED"
ITEM_ADDED = "ITEM_ADDED"
REQUEST_EDITED = "REQUEST_EDITED"
REQUEST_SUBMITTED = "REQUEST_SUBMITTED"
REQUEST_APPROVED = "REQUEST_APPROVED"
REQUEST_REJECTED = "REQUEST_REJECTED"
REQUEST_EXECUTED = "REQUEST_EXECUTED"
ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"


def _to_uuid(value) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        logger.warning("activity_invalid_uuid", value=str(value))
        return None


def _json_safe(details: Optional[dict]) -> Optional[dict]:
    """JSON columns cannot hold Decimal/datetime/UUID values."""
    if details is None:
        return None
    safe = {}
    for key, value in details.items():
        if isinstance(value, (Decimal, uuid.UUID)):
            value = str(value)
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif isinstance(value, dict):
            value = _json_safe(value)
        safe[key] = value
    return safe


async def log_activity(
    session: AsyncSession,
    request_id,
    action: str,
    actor_id=None,
    actor_email: Optional[str] = None,
    details: Optional[dict] = None,
) -> RequestActivity:
    """
    Append an activity entry.

    Uses session.flush(); the caller owns the transaction, so the entry commits
    or rolls back together with the change it describes.
    """
    entry = RequestActivity(
        request_id=request_id,
        action=action,
        actor_id=_to_uuid(actor_id),
        actor_email=actor_email,
        details=_json_safe(details),
        created_at=datetime.utcnow(),
    )
    session.add(entry)
    await session.flush()

    logger.info(
        "request_activity_logged",
        action=action,
        request_id=str(request_id),
        actor_id=str(actor_id) if actor_id else None,
    )
    return entry


async def list_activity(session: AsyncSession, request_id) -> list[RequestActivity]:
    """Newest first, as the request timeline shows it."""
    result = await session.execute(
        select(RequestActivity)
        .where(RequestActivity.request_id == request_id)
        .order_by(RequestActivity.created_at.desc())
    )
    return list(result.scalars().all())
