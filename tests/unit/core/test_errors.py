"""Unit tests for the error taxonomy (``modules.core.errors``)."""

import pytest

from modules.core.errors import (
    DOMAIN_KINDS,
    AppError,
    BadRequest,
    Conflict,
    ErrorKind,
    Forbidden,
    InvalidOperation,
    InvalidState,
    NotFound,
    Timeout,
    TransactionFailure,
    Unauthorized,
    UnsupportedOperation,
    Validation,
)
from modules.orders.exceptions import InsufficientStock, UnavailableProducts

pytestmark = pytest.mark.unit


class TestDefaultMessages:
    def test_forbidden_with_resource_and_action(self):
        err = AppError(Forbidden(resource="Admin Panel", action="access"))
        assert err.message == "You do not have permission to access Admin Panel"

    def test_forbidden_without_details(self):
        assert (
            AppError(Forbidden()).message
            == "You do not have permission to access this resource"
        )

    def test_not_found_with_resource(self):
        err = AppError(NotFound("User", 123))
        assert err.message == "User with ID '123' was not found"

    def test_conflict_with_reason(self):
        err = AppError(Conflict("User", "Email address is already registered"))
        assert err.message == "Conflict with User: Email address is already registered"

    def test_unauthorized(self):
        assert (
            AppError(Unauthorized()).message
            == "Authentication is required to access this resource"
        )

    def test_explicit_message_wins(self):
        err = AppError(Validation({"email": ["required"]}), "Validation failed")
        assert err.message == "Validation failed"
        assert str(err) == "Validation failed"

    def test_insufficient_stock_names_product_and_quantities(self):
        err = AppError(
            InsufficientStock(product_id=1, product_name="Lamp", available=3, requested=5)
        )
        assert err.message == "Insufficient stock for product Lamp. Available: 3, Requested: 5"


class TestKinds:
    @pytest.mark.parametrize(
        ("details", "kind"),
        [
            (Validation(), ErrorKind.VALIDATION),
            (UnavailableProducts((1,)), ErrorKind.VALIDATION),
            (BadRequest(), ErrorKind.BAD_REQUEST),
            (Unauthorized(), ErrorKind.UNAUTHORIZED),
            (Forbidden(), ErrorKind.FORBIDDEN),
            (NotFound(), ErrorKind.NOT_FOUND),
            (Conflict(), ErrorKind.CONFLICT),
            (InsufficientStock(), ErrorKind.CONFLICT),
            (InvalidState(), ErrorKind.INVALID_STATE),
            (InvalidOperation(), ErrorKind.INVALID_OPERATION),
            (Timeout(), ErrorKind.TIMEOUT),
            (UnsupportedOperation(), ErrorKind.UNSUPPORTED_OPERATION),
            (TransactionFailure(), ErrorKind.TRANSACTION_FAILURE),
        ],
    )
    def test_details_decide_the_kind(self, details, kind):
        assert AppError(details).kind is kind

    def test_system_kinds_are_not_domain_kinds(self):
        assert ErrorKind.TIMEOUT not in DOMAIN_KINDS
        assert ErrorKind.UNSUPPORTED_OPERATION not in DOMAIN_KINDS
        assert ErrorKind.TRANSACTION_FAILURE not in DOMAIN_KINDS
        assert ErrorKind.NOT_FOUND in DOMAIN_KINDS


class TestPayloads:
    def test_only_validation_variants_have_field_errors(self):
        assert Validation({"a": ["x"]}).field_errors() == {"a": ["x"]}
        assert UnavailableProducts((4, 7)).field_errors() == {
            "items": ["Products unavailable or not approved: 4, 7"]
        }
        assert NotFound("Order", 1).field_errors() is None

    def test_log_fields_are_kind_specific(self):
        assert NotFound("Order", 9).log_fields() == {
            "resource_type": "Order",
            "resource_id": "9",
        }
        assert Forbidden("order 1", "cancel").log_fields() == {
            "attempted_action": "cancel",
            "resource": "order 1",
        }
        assert Conflict("User", "taken").log_fields() == {
            "resource_type": "User",
            "conflict_reason": "taken",
        }

    def test_details_are_immutable(self):
        details = NotFound("Order", 1)
        with pytest.raises(AttributeError):
            details.resource_id = 2
