from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from partpulse.database import get_db
from partpulse.middleware.auth import get_current_user
from partpulse.middleware.authorization import PROCUREMENT_ROLES, require_roles
from partpulse.models.quote import Supplier
from partpulse.schemas.quote import SupplierCreate, SupplierResponseOut
from partpulse.services import quote_service

router = APIRouter()


def _to_response(supplier: Supplier) -> SupplierResponseOut:
    return SupplierResponseOut(
        id=str(supplier.id),
        name=supplier.name,
        email=supplier.email,
        phone=supplier.phone,
        contact_name=supplier.contact_name,
    )


@router.get("", response_model=list[SupplierResponseOut])
async def list_suppliers(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return [_to_response(s) for s in await quote_service.list_suppliers(db)]


@router.post("", response_model=SupplierResponseOut, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    body: SupplierCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles(*PROCUREMENT_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    supplier = await quote_service.create_supplier(
        db,
        name=body.name,
        email=body.email,
        phone=body.phone,
        contact_name=body.contact_name,
    )
    return _to_response(supplier)
