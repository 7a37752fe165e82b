"""
Request lifecycle: the single authority for legal status transitions.

    DRAFT → SUBMITTED → BUILDING_APPROVED → MAINTENANCE_APPROVED
          → DIRECTOR_APPROVED → EXECUTED

REJECTED is reachable from every status that has an approval gate.
EXECUTED and REJECTED are terminal.

Everything here is pure: callers pass the current status and get back a
Transition (or an error). Persistence lives in request_service.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
import re
from typing import Iterable, Optional

from partpulse.errors import (
    AlreadyTerminal,
    InvalidTransition,
    MissingComments,
    ValidationError,
)


class RequestStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    BUILDING_APPROVED = "BUILDING_APPROVED"
    MAINTENANCE_APPROVED = "MAINTENANCE_APPROVED"
    DIRECTOR_APPROVED = "DIRECTOR_APPROVED"
    EXECUTED = "EXECUTED"
    REJECTED = "REJECTED"


class Role(str, Enum):
    TECHNICIAN = "technician"
    COORDINATOR = "coordinator"
    BUILDING_TECH = "building_tech"
    MAINTENANCE_ORG = "maintenance_org"
    TECH_DIRECTOR = "tech_director"
    GOD_ADMIN = "god_admin"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class Priority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


@dataclass(frozen=True)
class Gate:
    role: Role
    level: int
    on_approve: RequestStatus


@dataclass(frozen=True)
class Transition:
    from_status: RequestStatus
    to_status: RequestStatus
    role: Role
    level: int
    decision: Decision

    @property
    def ledger_decision(self) -> str:
        return "APPROVED" if self.decision is Decision.APPROVE else "REJECTED"


TRANSITIONS: dict[RequestStatus, Gate] = {
    RequestStatus.SUBMITTED: Gate(Role.BUILDING_TECH, 1, RequestStatus.BUILDING_APPROVED),
    RequestStatus.BUILDING_APPROVED: Gate(Role.MAINTENANCE_ORG, 2, RequestStatus.MAINTENANCE_APPROVED),
    RequestStatus.MAINTENANCE_APPROVED: Gate(Role.TECH_DIRECTOR, 3, RequestStatus.DIRECTOR_APPROVED),
    RequestStatus.DIRECTOR_APPROVED: Gate(Role.GOD_ADMIN, 4, RequestStatus.EXECUTED),
}

TERMINAL_STATUSES = frozenset({RequestStatus.EXECUTED, RequestStatus.REJECTED})

# Progress ordering; REJECTED sits outside it.
STATUS_RANK: dict[RequestStatus, int] = {
    RequestStatus.DRAFT: 0,
    RequestStatus.SUBMITTED: 1,
    RequestStatus.BUILDING_APPROVED: 2,
    RequestStatus.MAINTENANCE_APPROVED: 3,
    RequestStatus.DIRECTOR_APPROVED: 4,
    RequestStatus.EXECUTED: 5,
}

APPROVER_ROLES = tuple(gate.role for gate in TRANSITIONS.values())

# Display names used by the legacy UI / user directory
ROLE_ALIASES = {
    "building technician": Role.BUILDING_TECH,
    "maintenance organizer": Role.MAINTENANCE_ORG,
    "technical director": Role.TECH_DIRECTOR,
    "god admin": Role.GOD_ADMIN,
}
_BUILDING_N_TECH = re.compile(r"^building \d+ technician$")


def normalize_role(role) -> Optional[Role]:
    """Map a role value or legacy display name to a Role, or None if unknown."""
    if isinstance(role, Role):
        return role
    if not role:
        return None
    raw = str(role).strip()
    try:
        return Role(raw.lower())
    except ValueError:
        pass
    key = raw.lower()
    if _BUILDING_N_TECH.match(key):
        return Role.BUILDING_TECH
    return ROLE_ALIASES.get(key)


def _coerce_status(status) -> RequestStatus:
    try:
        return RequestStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown request status '{status}'")


def _coerce_decision(decision) -> Decision:
    if isinstance(decision, Decision):
        return decision
    try:
        return Decision(str(decision).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown decision '{decision}'; expected 'approve' or 'reject'"
        )


def is_terminal(status) -> bool:
    return _coerce_status(status) in TERMINAL_STATUSES


def gate_for(status) -> Optional[Gate]:
    return TRANSITIONS.get(_coerce_status(status))


def level_for_role(role) -> Optional[int]:
    """Approval level (1..4) a role decides at, None for non-approvers."""
    role = normalize_role(role)
    for gate in TRANSITIONS.values():
        if gate.role == role:
            return gate.level
    return None


def status_awaiting(role) -> Optional[RequestStatus]:
    """The status in which requests wait for this role's decision."""
    role = normalize_role(role)
    for status, gate in TRANSITIONS.items():
        if gate.role == role:
            return status
    return None


def is_forward(from_status, to_status) -> bool:
    """True if moving from_status → to_status respects monotonic progress."""
    src = _coerce_status(from_status)
    dst = _coerce_status(to_status)
    if src in TERMINAL_STATUSES:
        return False
    if dst is RequestStatus.REJECTED:
        return True
    return STATUS_RANK[dst] > STATUS_RANK[src]


def _to_decimal(value, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")


def _field(item, name):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def validate_items(items: Iterable) -> None:
    """Items must be non-empty with quantity > 0 and price >= 0."""
    items = list(items or [])
    if not items:
        raise ValidationError("A request must contain at least one item")
    for idx, item in enumerate(items, start=1):
        quantity = _to_decimal(_field(item, "quantity"), f"Item {idx} quantity")
        if quantity <= 0:
            raise ValidationError(
                f"Item {idx} quantity must be greater than zero",
                line_number=idx,
            )
        price = _field(item, "estimated_unit_price")
        if price is not None and _to_decimal(price, f"Item {idx} price") < 0:
            raise ValidationError(
                f"Item {idx} unit price cannot be negative",
                line_number=idx,
            )


def submit(current_status, items: Iterable) -> RequestStatus:
    status = _coerce_status(current_status)
    if status in TERMINAL_STATUSES:
        raise AlreadyTerminal(f"Request is already {status.value}")
    if status is not RequestStatus.DRAFT:
        raise InvalidTransition(
            f"Only DRAFT requests can be submitted (current: {status.value})"
        )
    validate_items(items)
    return RequestStatus.SUBMITTED


def decide(current_status, actor_role, decision, comments: Optional[str] = None) -> Transition:
    """
    Compute the transition for an approve/reject decision.

    Input is validated before state: a reject without comments is always
    MissingComments. Then terminal status → AlreadyTerminal, and a role with
    no gate at the current status → InvalidTransition.
    """
    decision = _coerce_decision(decision)
    # A rejection always needs a reason, so this precedes the terminal check
    if decision is Decision.REJECT and not (comments or "").strip():
        raise MissingComments()

    status = _coerce_status(current_status)
    if status in TERMINAL_STATUSES:
        raise AlreadyTerminal(f"Request is already {status.value}")

    role = normalize_role(actor_role)
    gate = TRANSITIONS.get(status)
    if gate is None or role is None or gate.role != role:
        expected = gate.role.value if gate else "none"
        raise InvalidTransition(
            f"Role '{actor_role}' cannot decide a request in {status.value} "
            f"(expected: {expected})"
        )

    to_status = gate.on_approve if decision is Decision.APPROVE else RequestStatus.REJECTED
    return Transition(
        from_status=status,
        to_status=to_status,
        role=gate.role,
        level=gate.level,
        decision=decision,
    )


def execute(current_status, actor_role) -> Transition:
    """Final execution: DIRECTOR_APPROVED by god_admin only."""
    status = _coerce_status(current_status)
    if status in TERMINAL_STATUSES:
        raise AlreadyTerminal(f"Request is already {status.value}")
    if status is not RequestStatus.DIRECTOR_APPROVED:
        raise InvalidTransition(
            f"Only DIRECTOR_APPROVED requests can be executed (current: {status.value})"
        )
    if normalize_role(actor_role) is not Role.GOD_ADMIN:
        raise InvalidTransition(f"Role '{actor_role}' cannot execute requests")
    return decide(status, Role.GOD_ADMIN, Decision.APPROVE)


# ---------- Quote requests ----------


class QuoteStatus(str, Enum):
    PENDING = "pending"
    RESPONDED = "responded"
    APPROVED = "approved"
    REJECTED = "rejected"
    ORDERED = "ordered"


QUOTE_TERMINAL_STATUSES = frozenset({QuoteStatus.REJECTED, QuoteStatus.ORDERED})

# action -> (required current status, resulting status)
QUOTE_TRANSITIONS: dict[str, tuple[QuoteStatus, QuoteStatus]] = {
    "respond": (QuoteStatus.PENDING, QuoteStatus.RESPONDED),
    "approve": (QuoteStatus.RESPONDED, QuoteStatus.APPROVED),
    "reject": (QuoteStatus.RESPONDED, QuoteStatus.REJECTED),
    "order": (QuoteStatus.APPROVED, QuoteStatus.ORDERED),
}

# Statuses that carry a recorded supplier response
QUOTED_STATUSES = frozenset(
    {QuoteStatus.RESPONDED, QuoteStatus.APPROVED, QuoteStatus.ORDERED}
)


def quote_transition(current_status, action: str) -> QuoteStatus:
    try:
        status = QuoteStatus(current_status)
    except ValueError:
        raise ValidationError(f"Unknown quote status '{current_status}'")
    if action not in QUOTE_TRANSITIONS:
        raise ValidationError(f"Unknown quote action '{action}'")
    if status in QUOTE_TERMINAL_STATUSES:
        raise AlreadyTerminal(f"Quote request is already {status.value}")
    required, to_status = QUOTE_TRANSITIONS[action]
    if status is not required:
        raise InvalidTransition(
            f"Cannot {action} a quote request in '{status.value}' "
            f"(requires '{required.value}')"
        )
    return to_status


# ---------- Purchase orders ----------


class OrderStatus(str, Enum):
    NOT_PLACED = "NOT_PLACED"
    ORDER_PLACED = "ORDER_PLACED"
    DELIVERED = "DELIVERED"


ORDER_FLOW = (OrderStatus.NOT_PLACED, OrderStatus.ORDER_PLACED, OrderStatus.DELIVERED)


def order_transition(current_status, target=None) -> OrderStatus:
    """
    Resolve a tracking update against the order's current status.

    Orders only move forward (a step may be skipped, e.g. a delivery
    reported before the placement was recorded). ``target=None`` keeps the
    current status so tracking details can change on their own. DELIVERED
    is terminal.
    """
    try:
        status = OrderStatus(current_status)
    except ValueError:
        raise ValidationError(f"Unknown order status '{current_status}'")
    if status is OrderStatus.DELIVERED:
        raise AlreadyTerminal("Purchase order is already DELIVERED")
    if target is None:
        return status
    try:
        target = OrderStatus(target)
    except ValueError:
        raise ValidationError(f"Unknown order status '{target}'")
    if ORDER_FLOW.index(target) < ORDER_FLOW.index(status):
        raise InvalidTransition(
            f"Purchase order cannot go back from {status.value} to {target.value}"
        )
    return target
