"""
Tests for error codes, messages and error classification.
"""

import dns.exception
import dns.resolver
import pytest

from errors import (
    ERROR_MESSAGES,
    EmailValidationError,
    ErrorCode,
    classify_resolver_error,
    create_validation_error,
    extract_error_code,
    is_email_validation_error,
)


class TestErrorCodes:
    def test_every_code_has_a_message(self) -> None:
        assert set(ERROR_MESSAGES) == set(ErrorCode)

    def test_codes_are_strings(self) -> None:
        assert ErrorCode.NO_MX_RECORDS == "NO_MX_RECORDS"
        assert ErrorCode("DNS_LOOKUP_TIMEOUT") is ErrorCode.DNS_LOOKUP_TIMEOUT


class TestEmailValidationError:
    """Test the validation exception type."""

    def test_default_message(self) -> None:
        error = EmailValidationError(ErrorCode.DISPOSABLE_EMAIL)
        assert error.code == ErrorCode.DISPOSABLE_EMAIL
        assert error.message == "Email from disposable provider"
        assert str(error) == "Email from disposable provider"
        assert error.original_error is None

    def test_create_with_details(self) -> None:
        cause = ValueError("bad")
        error = create_validation_error(ErrorCode.INVALID_TIMEOUT_VALUE, "'abc'", cause)

        assert error.message == "Invalid timeout value: 'abc'"
        assert error.original_error is cause

    def test_create_without_details(self) -> None:
        error = create_validation_error(ErrorCode.NO_MX_RECORDS)
        assert error.message == "No MX records found"

    def test_is_email_validation_error(self) -> None:
        assert is_email_validation_error(EmailValidationError(ErrorCode.UNKNOWN_ERROR))
        assert not is_email_validation_error(ValueError("x"))
        assert not is_email_validation_error("INVALID_EMAIL_FORMAT")


class TestExtractErrorCode:
    """Test best-effort message matching."""

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("Invalid timeout value: -1", ErrorCode.INVALID_TIMEOUT_VALUE),
            ("DNS lookup failed for host", ErrorCode.DNS_LOOKUP_FAILED),
            ("queryMx ENOTFOUND example.invalid", ErrorCode.DNS_LOOKUP_FAILED),
            ("queryMx ENODATA example.com", ErrorCode.DNS_LOOKUP_FAILED),
            ("SERVFAIL from upstream", ErrorCode.DNS_LOOKUP_FAILED),
            ("operation timed out", ErrorCode.DNS_LOOKUP_TIMEOUT),
            ("Timeout while waiting", ErrorCode.DNS_LOOKUP_TIMEOUT),
            ("disk full", ErrorCode.UNKNOWN_ERROR),
        ],
    )
    def test_message_patterns(self, message, expected) -> None:
        assert extract_error_code(RuntimeError(message)) == expected

    def test_validation_error_code_is_used(self) -> None:
        error = EmailValidationError(ErrorCode.DISPOSABLE_EMAIL, "timeout in the message")
        assert extract_error_code(error) == ErrorCode.DISPOSABLE_EMAIL

    def test_non_exception(self) -> None:
        assert extract_error_code("timeout") == ErrorCode.UNKNOWN_ERROR
        assert extract_error_code(None) == ErrorCode.UNKNOWN_ERROR


class TestClassifyResolverError:
    """Test deterministic mapping of resolver exceptions."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (dns.exception.Timeout(), ErrorCode.DNS_LOOKUP_TIMEOUT),
            (TimeoutError(), ErrorCode.DNS_LOOKUP_TIMEOUT),
            (dns.resolver.NXDOMAIN(), ErrorCode.NO_MX_RECORDS),
            (dns.resolver.NoAnswer(), ErrorCode.NO_MX_RECORDS),
            (dns.resolver.NoNameservers(), ErrorCode.DNS_LOOKUP_FAILED),
            (dns.exception.DNSException(), ErrorCode.DNS_LOOKUP_FAILED),
            (ConnectionRefusedError(), ErrorCode.DNS_LOOKUP_FAILED),
            (RuntimeError("weird"), ErrorCode.DNS_LOOKUP_FAILED),
            (RuntimeError("timed out"), ErrorCode.DNS_LOOKUP_TIMEOUT),
        ],
    )
    def test_known_types(self, error, expected) -> None:
        assert classify_resolver_error(error) == expected

    def test_validation_error_passthrough(self) -> None:
        error = create_validation_error(ErrorCode.DNS_LOOKUP_TIMEOUT, "no answer within 50ms")
        assert classify_resolver_error(error) == ErrorCode.DNS_LOOKUP_TIMEOUT
