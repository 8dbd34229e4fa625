"""
Tests for the error code registry and error envelopes
"""
import json

from learnhub.core.error_handling import (
    ErrorCategory, NotFoundError, create_error_response, error_handler
)


class TestErrorEnvelope:

    def test_unexpected_exception_is_500_without_internals(self):
        error = error_handler.handle_generic_exception(RuntimeError("boom"), request_id="req-1")
        response = create_error_response(error)

        body = json.loads(response.body)
        assert response.status_code == 500
        assert body["error_code"] == "INT_1801"
        assert body["request_id"] == "req-1"
        assert body["details"] == {"exception_type": "RuntimeError", "exception_message": "boom"}
        assert set(body) == {
            "success", "error_id", "error_code", "error_category", "message",
            "details", "timestamp", "request_id", "severity",
        }

    def test_domain_error_keeps_message_and_details(self):
        error = error_handler.handle_domain_error(NotFoundError("Quiz q1 not found", {"quiz_id": "q1"}))

        assert error.error_category == ErrorCategory.NOT_FOUND
        assert error.message == "Quiz q1 not found"
        assert error.details == {"quiz_id": "q1"}
        assert create_error_response(error).headers["X-Error-Code"] == "RES_1301"
