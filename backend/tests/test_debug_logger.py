"""
Tests for debug event emission during validation.
"""

import json
import logging

import pytest

from conftest import RecordingResolver
from debug_logger import (
    DEBUG_LOG_TYPE,
    DebugLogger,
    NullDebugLogger,
    create_debug_logger,
    default_log_sink,
)
from errors import EmailValidationError, ErrorCode
from mx_cache import MXCache
from validator import EmailValidator


@pytest.fixture
def events():
    return []


@pytest.fixture
def validator(events):
    validator = EmailValidator(cache=MXCache(), resolve_mx=RecordingResolver(), log=events.append)
    yield validator
    validator.close()


class TestDebugEvents:
    """Test the events emitted by a debug-enabled validation."""

    def test_phases_in_order(self, validator, events) -> None:
        validator.validate("user@example.com", debug=True)

        phases = [event["phase"] for event in events]
        assert phases == [
            "validation_start",
            "format_validation",
            "format_validation_complete",
            "disposable_check",
            "disposable_check_complete",
            "mx_check",
            "mx_check_complete",
            "validation_complete",
        ]

    def test_event_shape(self, validator, events) -> None:
        validator.validate("user@example.com", debug=True)

        for event in events:
            assert event["type"] == DEBUG_LOG_TYPE
            assert event["email"] == "user@example.com"
            assert event["timestamp"].endswith("Z")
            assert "allocated_blocks" in event["memory"]

        complete = next(e for e in events if e["phase"] == "mx_check_complete")
        assert complete["data"]["valid"] is True
        assert complete["data"]["cached"] is False
        assert complete["data"]["record_count"] == 1
        assert complete["timing"]["duration_ms"] >= 0
        assert complete["timing"]["end"] >= complete["timing"]["start"]
        assert "memory_delta" in complete

        final = events[-1]
        assert final["data"] == {"valid": True, "error_code": None}

    def test_error_event_for_failed_check(self, validator, events) -> None:
        validator.validate("not-an-email", debug=True)

        errors = [e for e in events if e["phase"].endswith("_error")]
        assert len(errors) == 1
        assert errors[0]["phase"] == "format_validation_error"
        assert errors[0]["error"]["code"] == "INVALID_EMAIL_FORMAT"
        assert events[-1]["data"]["error_code"] == "INVALID_EMAIL_FORMAT"

    def test_error_event_for_invalid_timeout(self, validator, events) -> None:
        with pytest.raises(EmailValidationError):
            validator.validate("user@example.com", debug=True, timeout="never")

        assert events[-1]["phase"] == "validation_error"
        assert events[-1]["error"]["code"] == "INVALID_TIMEOUT_VALUE"
        assert events[-1]["error"]["type"] == "EmailValidationError"

    def test_debug_off_emits_nothing(self, validator, events) -> None:
        validator.validate("user@example.com")
        validator.validate("not-an-email", detailed=True)

        assert events == []

    def test_debug_does_not_change_results(self, events) -> None:
        quiet = EmailValidator(cache=MXCache(), resolve_mx=RecordingResolver(records=[]))
        loud = EmailValidator(
            cache=MXCache(), resolve_mx=RecordingResolver(records=[]), log=events.append
        )
        try:
            for email in ("user@example.com", "not-an-email", "x@mailinator.com", ""):
                expected = quiet.validate(email, detailed=True).to_dict()
                actual = loud.validate(email, detailed=True, debug=True).to_dict()
                expected.pop("cache_stats")
                actual.pop("cache_stats")
                assert actual == expected
        finally:
            quiet.close()
            loud.close()

        assert events


class TestDebugLoggerUnits:
    def test_factory(self) -> None:
        assert isinstance(create_debug_logger(False), NullDebugLogger)
        assert isinstance(create_debug_logger(True, "a@b.com"), DebugLogger)

    def test_null_logger_is_silent(self) -> None:
        logger = NullDebugLogger()
        logger.log("anything", data={})
        logger.start_phase("phase")(valid=True)
        logger.log_error("phase", RuntimeError("x"))

    def test_non_string_email_is_represented(self) -> None:
        captured = []
        DebugLogger(42, captured.append).log("validation_start")
        assert captured[0]["email"] == "42"

    def test_log_error_without_code(self) -> None:
        captured = []
        DebugLogger("a@b.com", captured.append).log_error("mx_check", OSError("unreachable"))
        assert captured[0]["error"] == {
            "code": None,
            "type": "OSError",
            "message": "unreachable",
        }

    def test_log_error_with_code(self) -> None:
        captured = []
        DebugLogger("a@b.com", captured.append).log_error(
            "mx_check", EmailValidationError(ErrorCode.DNS_LOOKUP_FAILED)
        )
        assert captured[0]["error"]["code"] == "DNS_LOOKUP_FAILED"

    def test_default_sink_writes_json(self, caplog) -> None:
        debug_events = logging.getLogger("email_verifier.debug")
        debug_events.addHandler(caplog.handler)
        try:
            with caplog.at_level(logging.INFO, logger="email_verifier.debug"):
                default_log_sink({"type": DEBUG_LOG_TYPE, "phase": "validation_start"})
        finally:
            debug_events.removeHandler(caplog.handler)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload == {"type": DEBUG_LOG_TYPE, "phase": "validation_start"}
