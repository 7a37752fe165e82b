"""
Workflow error taxonomy.

Every error carries a stable ``code`` and the HTTP status the API answers
with; ``partpulse.main`` renders them as ``{"error": {"code", "message"}}``.
"""

from typing import Optional


class PartPulseError(Exception):
    code = "PARTPULSE_ERROR"
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class ValidationError(PartPulseError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid input"


class MissingComments(ValidationError):
    code = "MISSING_COMMENTS"
    default_message = "A rejection must include comments explaining the reason"


class NoItemsError(ValidationError):
    code = "NO_ITEMS"
    default_message = "Cannot compute a per-unit price without items"


class InvalidTransition(PartPulseError):
    code = "INVALID_TRANSITION"
    status_code = 409
    default_message = "This action is not allowed in the current status"


class AlreadyTerminal(InvalidTransition):
    code = "ALREADY_TERMINAL"
    default_message = "The entity is in a terminal status and can no longer change"


class DuplicateApproval(PartPulseError):
    code = "DUPLICATE_APPROVAL"
    status_code = 409
    default_message = "This approval level has already decided"


class ConcurrentModification(PartPulseError):
    code = "CONCURRENT_MODIFICATION"
    status_code = 409
    default_message = "The entity was modified concurrently; re-fetch and retry"


class NotFound(PartPulseError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class StoreUnavailable(PartPulseError):
    code = "STORE_UNAVAILABLE"
    status_code = 503
    default_message = "The data store is unavailable; please retry"
