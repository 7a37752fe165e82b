from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from partpulse.database import get_db
from partpulse.errors import NotFound
from partpulse.middleware.auth import get_current_user
from partpulse.schemas.bom import BomLineResponse, BomResponse
from partpulse.services import bom_service
import uuid

router = APIRouter()


@router.get("/{assembly_id}/bom", response_model=BomResponse)
async def get_bom(
    assembly_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        key = uuid.UUID(assembly_id)
    except ValueError:
        raise NotFound(f"Assembly '{assembly_id}' not found")

    assembly, bom = await bom_service.load_bom(db, key)
    return BomResponse(
        assembly_id=str(assembly.id),
        name=assembly.name,
        machine_code=assembly.machine_code,
        lines=[
            BomLineResponse(
                part_number=l.part_number,
                name=l.name,
                required=l.required,
                unit_cost=l.unit_cost,
                cost=l.cost,
                stock_level=l.stock_level,
                shortage=l.shortage,
            )
            for l in bom.lines
        ],
        total_cost=bom.total_cost,
        total_quantity=bom.total_quantity,
        short_parts=bom.short_parts,
    )
