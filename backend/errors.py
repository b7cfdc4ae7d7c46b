"""
Error taxonomy for email validation.
Shared vocabulary of error codes, messages and the validation exception type.
"""

from enum import Enum

import dns.exception
import dns.resolver


class ErrorCode(str, Enum):
    """Stable error codes surfaced in validation results and exceptions."""

    # Format validation errors
    EMAIL_MUST_BE_STRING = "EMAIL_MUST_BE_STRING"
    EMAIL_CANNOT_BE_EMPTY = "EMAIL_CANNOT_BE_EMPTY"
    INVALID_EMAIL_FORMAT = "INVALID_EMAIL_FORMAT"

    # Disposable provider errors
    DISPOSABLE_EMAIL = "DISPOSABLE_EMAIL"

    # MX record validation errors
    NO_MX_RECORDS = "NO_MX_RECORDS"
    DNS_LOOKUP_TIMEOUT = "DNS_LOOKUP_TIMEOUT"
    DNS_LOOKUP_FAILED = "DNS_LOOKUP_FAILED"

    # Configuration errors
    INVALID_TIMEOUT_VALUE = "INVALID_TIMEOUT_VALUE"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.EMAIL_MUST_BE_STRING: "Email must be a string",
    ErrorCode.EMAIL_CANNOT_BE_EMPTY: "Email cannot be empty",
    ErrorCode.INVALID_EMAIL_FORMAT: "Invalid email format",
    ErrorCode.DISPOSABLE_EMAIL: "Email from disposable provider",
    ErrorCode.NO_MX_RECORDS: "No MX records found",
    ErrorCode.DNS_LOOKUP_TIMEOUT: "DNS lookup timed out",
    ErrorCode.DNS_LOOKUP_FAILED: "DNS lookup failed",
    ErrorCode.INVALID_TIMEOUT_VALUE: "Invalid timeout value",
    ErrorCode.UNKNOWN_ERROR: "Unknown error",
}


class EmailValidationError(Exception):
    """Validation error carrying a stable error code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        original_error: BaseException | None = None,
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        self.original_error = original_error
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"EmailValidationError(code={self.code.value!r}, message={self.message!r})"


def create_validation_error(
    code: ErrorCode,
    details: str | None = None,
    original_error: BaseException | None = None,
) -> EmailValidationError:
    """
    Create a validation error with a consistently formatted message.

    Args:
        code: The error code
        details: Optional details appended to the base message
        original_error: Optional underlying exception

    Returns:
        EmailValidationError instance
    """
    base_message = ERROR_MESSAGES[code]
    message = f"{base_message}: {details}" if details else base_message
    return EmailValidationError(code, message, original_error)


def is_email_validation_error(error: object) -> bool:
    """Return True if error is an EmailValidationError."""
    return isinstance(error, EmailValidationError)


def extract_error_code(error: object) -> ErrorCode:
    """
    Best-effort error code extraction from arbitrary exceptions.

    Matches substrings of the exception message, so it can misclassify
    messages it has never seen. Prefer classify_resolver_error() or explicit
    create_validation_error() calls; this is only the last fallback.
    """
    if isinstance(error, EmailValidationError):
        return error.code

    if isinstance(error, BaseException):
        message = str(error).lower()

        # Most specific patterns first
        if "invalid timeout value" in message:
            return ErrorCode.INVALID_TIMEOUT_VALUE
        if (
            "dns lookup failed" in message
            or "enotfound" in message
            or "enodata" in message
            or "servfail" in message
        ):
            return ErrorCode.DNS_LOOKUP_FAILED
        if "timed out" in message or "timeout" in message:
            return ErrorCode.DNS_LOOKUP_TIMEOUT

    return ErrorCode.UNKNOWN_ERROR


def classify_resolver_error(error: BaseException) -> ErrorCode:
    """
    Map a resolver exception to an error code.

    Known exception types are mapped deterministically. Anything else goes
    through extract_error_code() and an unrecognised result is reported as
    a generic DNS failure.
    """
    if isinstance(error, EmailValidationError):
        return error.code

    # dnspython's Timeout is raised for both per-server and lifetime expiry
    if isinstance(error, (dns.exception.Timeout, TimeoutError)):
        return ErrorCode.DNS_LOOKUP_TIMEOUT
    if isinstance(error, (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer)):
        return ErrorCode.NO_MX_RECORDS
    if isinstance(error, (dns.resolver.NoNameservers, dns.exception.DNSException, OSError)):
        return ErrorCode.DNS_LOOKUP_FAILED

    code = extract_error_code(error)
    if code == ErrorCode.UNKNOWN_ERROR:
        return ErrorCode.DNS_LOOKUP_FAILED
    return code
