from decimal import Decimal
from typing import Dict, List
from pydantic import BaseModel


class StatusBucket(BaseModel):
    count: int
    estimated_budget: Decimal


class PendingLevel(BaseModel):
    approval_level: int
    role: str
    status: str
    pending: int


class BuildingBudget(BaseModel):
    building_id: str
    requests: int
    estimated_budget: Decimal


class QuoteSummary(BaseModel):
    by_status: Dict[str, int]
    awaiting_review_value: Decimal


class OrderSummary(BaseModel):
    count: int
    total_value: Decimal


class DashboardSummary(BaseModel):
    requests_by_status: Dict[str, StatusBucket]
    pending_approvals: List[PendingLevel]
    budget_by_building: List[BuildingBudget]
    quotes: QuoteSummary
    purchase_orders: OrderSummary
    total_requests: int
    total_estimated_budget: Decimal
