from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel


class BomLineResponse(BaseModel):
    part_number: str
    name: str
    required: int
    unit_cost: Decimal
    cost: Decimal
    stock_level: int
    shortage: int


class BomResponse(BaseModel):
    assembly_id: str
    name: str
    machine_code: Optional[str] = None
    lines: List[BomLineResponse]
    total_cost: Decimal
    total_quantity: int
    short_parts: int
