"""Unit tests for the error code catalog"""
from uuid import uuid4

from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.exceptions import ScheduleValidationError


class TestErrorCodeDictionary:
    """Tests for error code lookup"""

    def test_get_error(self):
        error = ErrorCodeDictionary.get_error("SCHEDULE_001")

        assert error is ErrorCodeDictionary.SCHEDULE_001
        assert error.remediation_steps

    def test_unknown_code(self):
        assert ErrorCodeDictionary.get_error("NOPE_999") is None

    def test_codes_are_unique(self):
        codes = [error.code for error in ErrorCodeDictionary.get_all_errors()]
        assert len(codes) == len(set(codes))

    def test_errors_by_category(self):
        """Test category lookup matches on the prefix only"""
        webhook_errors = ErrorCodeDictionary.get_errors_by_category("webhook")

        assert {error.code for error in webhook_errors} == {"WEBHOOK_001", "WEBHOOK_002", "WEBHOOK_003"}
        assert all(error.code.startswith("STATE_") for error in ErrorCodeDictionary.get_errors_by_category("STATE"))


class TestSitewatchError:
    """Tests for exception serialization"""

    def test_to_dict(self):
        entity_id = uuid4()
        exc = ScheduleValidationError(
            ErrorCodeDictionary.SCHEDULE_002,
            entity_id=entity_id,
            context={"timezone": "Mars/Olympus"},
        )

        data = exc.to_dict()
        assert data["code"] == "SCHEDULE_002"
        assert data["entity_id"] == str(entity_id)
        assert data["context"] == {"timezone": "Mars/Olympus"}
        assert str(exc) == ErrorCodeDictionary.SCHEDULE_002.message
