from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class RequestItemCreate(BaseModel):
    item_name: str = Field(..., min_length=1, max_length=300)
    quantity: Decimal = Field(..., gt=0, decimal_places=3)
    unit: str = Field("pcs", max_length=30)
    estimated_unit_price: Decimal = Field(Decimal("0"), ge=0)
    specs: Optional[str] = Field(None, max_length=2000)


class RequestCreate(BaseModel):
    building_id: Optional[str] = Field(None, max_length=50)
    priority: Literal["LOW", "NORMAL", "HIGH", "URGENT"] = "NORMAL"
    description: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = None
    items: List[RequestItemCreate] = Field(default_factory=list, max_length=100)


class RequestItemChange(BaseModel):
    item_id: str
    quantity: Optional[Decimal] = Field(None, gt=0, decimal_places=3)
    estimated_unit_price: Optional[Decimal] = Field(None, ge=0)


class RequestUpdate(BaseModel):
    description: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = None
    priority: Optional[Literal["LOW", "NORMAL", "HIGH", "URGENT"]] = None
    items: Optional[List[RequestItemChange]] = None
    expected_version: Optional[int] = None


class SubmitRequest(BaseModel):
    expected_version: Optional[int] = None


class DecisionRequest(BaseModel):
    decision: Literal["approve", "reject"]
    comments: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = None


class ExecuteRequest(BaseModel):
    supplier_id: Optional[str] = None
    quote_id: Optional[str] = None
    assigned_to_email: Optional[str] = None
    comments: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = None


class RequestItemResponse(BaseModel):
    id: str
    line_number: int
    item_name: str
    quantity: Decimal
    unit: str
    estimated_unit_price: Decimal
    specs: Optional[str] = None

    model_config = {"from_attributes": True}


class RequestResponse(BaseModel):
    id: str
    request_number: str
    building_id: str
    priority: str
    status: str
    description: Optional[str] = None
    notes: Optional[str] = None
    submitter_id: str
    submitter_email: Optional[str] = None
    estimated_budget: Decimal
    version: int
    items: List[RequestItemResponse] = []
    created_at: str
    updated_at: str
    submitted_at: Optional[str] = None
    completed_at: Optional[str] = None
    order_status: Optional[str] = None


class ApprovalResponse(BaseModel):
    id: str
    approval_level: int
    approver_role: str
    approver_id: Optional[str] = None
    approver_email: Optional[str] = None
    decision: str
    comments: Optional[str] = None
    decided_at: str


class ActivityResponse(BaseModel):
    id: str
    action: str
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    details: Optional[dict] = None
    created_at: str
