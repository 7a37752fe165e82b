from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from partpulse.database import get_db
from partpulse.middleware.auth import get_current_user
from partpulse.schemas.dashboard import DashboardSummary
from partpulse.services import projection_service

router = APIRouter()


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await projection_service.dashboard_summary(db)
