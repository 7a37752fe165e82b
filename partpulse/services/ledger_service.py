"""
Approval ledger: append-only record of who decided what, when and why.

One row per (request, approval level). Rows are never updated or deleted;
the unique constraint ``uq_request_approval_level`` backs the duplicate
check at the database level. All functions use the caller's session
(no commit); get_db() owns the transaction.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from partpulse.errors import DuplicateApproval
from partpulse.models.approval import Approval

logger = structlog.get_logger()


async def get_approval(
    session: AsyncSession, request_id, approval_level: int
) -> Optional[Approval]:
    result = await session.execute(
        select(Approval).where(
            Approval.request_id == request_id,
            Approval.approval_level == approval_level,
        )
    )
    return result.scalar_one_or_none()


async def append(
    session: AsyncSession,
    request_id: uuid.UUID,
    approval_level: int,
    approver_role: str,
    decision: str,
    approver_id: Optional[uuid.UUID] = None,
    approver_email: Optional[str] = None,
    comments: Optional[str] = None,
) -> Approval:
    """
    Append one decision to the ledger.

    Raises DuplicateApproval if this level already decided for the request.
    """
    existing = await get_approval(session, request_id, approval_level)
    if existing is not None:
        raise DuplicateApproval(
            f"Level {approval_level} already recorded a decision for this request",
            approval_level=approval_level,
        )

    approval = Approval(
        request_id=request_id,
        approval_level=approval_level,
        approver_role=approver_role,
        approver_id=approver_id,
        approver_email=approver_email,
        decision=decision,
        comments=comments,
        decided_at=datetime.utcnow(),
    )
    session.add(approval)
    try:
        await session.flush()
    except IntegrityError as exc:
        # Lost a race with another writer on the same level
        raise DuplicateApproval(
            f"Level {approval_level} already recorded a decision for this request",
            approval_level=approval_level,
        ) from exc

    logger.info(
        "approval_appended",
        request_id=str(request_id),
        approval_level=approval_level,
        decision=decision,
        approver_role=approver_role,
    )
    return approval


async def list_for(session: AsyncSession, request_id) -> list[Approval]:
    """Ledger entries for a request, oldest first."""
    result = await session.execute(
        select(Approval)
        .where(Approval.request_id == request_id)
        .order_by(Approval.decided_at, Approval.approval_level)
    )
    return list(result.scalars().all())
