"""Error taxonomy: stable codes, HTTP statuses and the error envelope."""

import pytest

from partpulse.errors import (
    AlreadyTerminal,
    ConcurrentModification,
    DuplicateApproval,
    InvalidTransition,
    MissingComments,
    NoItemsError,
    NotFound,
    PartPulseError,
    StoreUnavailable,
    ValidationError,
)


@pytest.mark.parametrize(
    "error_cls, status_code, code",
    [
        (ValidationError, 422, "VALIDATION_ERROR"),
        (MissingComments, 422, "MISSING_COMMENTS"),
        (NoItemsError, 422, "NO_ITEMS"),
        (InvalidTransition, 409, "INVALID_TRANSITION"),
        (AlreadyTerminal, 409, "ALREADY_TERMINAL"),
        (DuplicateApproval, 409, "DUPLICATE_APPROVAL"),
        (ConcurrentModification, 409, "CONCURRENT_MODIFICATION"),
        (NotFound, 404, "NOT_FOUND"),
        (StoreUnavailable, 503, "STORE_UNAVAILABLE"),
    ],
)
def test_codes_and_statuses(error_cls, status_code, code):
    err = error_cls()
    assert isinstance(err, PartPulseError)
    assert err.status_code == status_code
    assert err.to_dict() == {"error": {"code": code, "message": err.default_message}}


def test_subclass_relationships():
    assert issubclass(AlreadyTerminal, InvalidTransition)
    assert issubclass(MissingComments, ValidationError)
    assert issubclass(NoItemsError, ValidationError)


def test_details_are_rendered():
    err = ValidationError("Item 2 quantity must be greater than zero", line_number=2)
    assert str(err) == "Item 2 quantity must be greater than zero"
    assert err.to_dict()["error"]["details"] == {"line_number": 2}
