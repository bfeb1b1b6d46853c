"""Tests for exception-to-response mapping."""

import pytest

from procurement_kernel.exceptions import (
    AlreadyTransitionedError,
    ConcurrentModificationError,
    ConfigurationMissingError,
    InvalidRRPNumberError,
    LedgerConservationError,
    RRPNotFoundError,
    ValidationError,
    ZeroItemTotalError,
)
from procurement_services.errors import status_for, to_error_response


class TestStatusMapping:

    @pytest.mark.parametrize("exc,status", [
        (ValidationError("bad input"), 400),
        (InvalidRRPNumberError("X1"), 400),
        (RRPNotFoundError("L404T1"), 404),
        (AlreadyTransitionedError("rrp", "L001T1", "APPROVED"), 409),
        (ConcurrentModificationError("constraint"), 409),
        (ZeroItemTotalError(2), 422),
        (LedgerConservationError("GT 00000", 5, 4), 422),
        (ConfigurationMissingError("current_fy"), 503),
        (RuntimeError("boom"), 500),
    ])
    def test_category_status(self, exc, status):
        assert status_for(exc) == status


class TestErrorResponse:

    def test_validation_error_names_field(self):
        status, body = to_error_response(InvalidRRPNumberError("X1"))
        assert status == 400
        assert body == {
            "error": "INVALID_RRP_NUMBER",
            "message": "Invalid RRP number format: 'X1'",
            "field": "rrp_number",
        }

    def test_conflict_body(self):
        status, body = to_error_response(AlreadyTransitionedError("receive", "abc", "REJECTED"))
        assert status == 409
        assert body["error"] == "ALREADY_TRANSITIONED"
        assert "field" not in body

    def test_unexpected_error_hides_message(self, captured_logs):
        status, body = to_error_response(KeyError("secret internals"))

        assert status == 500
        assert body == {"error": "INTERNAL_ERROR", "message": "Internal error"}
        (record,) = [r for r in captured_logs() if r["message"] == "unexpected_error"]
        assert record["exc_type"] == "KeyError"
