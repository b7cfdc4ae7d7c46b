"""
Email validation orchestrator.

Runs the format, disposable and MX checks in that order, races the MX lookup
against a timeout, and assembles either a boolean or a detailed result.
The MX cache, resolver, disposable/format checks and debug sink are all
injected so validators can be configured and tested independently.
"""

import logging
import math
import re
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Any

from debug_logger import DebugLogger, LogSink, NullDebugLogger, create_debug_logger
from disposable import is_disposable_domain
from email_format import is_valid_email_format, split_email
from errors import (
    ERROR_MESSAGES,
    EmailValidationError,
    ErrorCode,
    classify_resolver_error,
    create_validation_error,
)
from mx_cache import CacheStatistics, MXCache, MXRecord
from resolver import DNSResolver

logger = logging.getLogger(__name__)

ResolveMX = Callable[[str, float], list[MXRecord]]

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_CACHE_TTL_MS = 300_000
DEFAULT_CACHE_MAX_SIZE = 1000

# Duration strings such as "250ms", "5s", "1.5 m" or "2 minutes"
DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?|\.\d+)\s*([a-z]*)\s*$", re.IGNORECASE)
UNIT_MILLISECONDS = {
    "": 1,
    "ms": 1,
    "msec": 1,
    "msecs": 1,
    "millisecond": 1,
    "milliseconds": 1,
    "s": 1000,
    "sec": 1000,
    "secs": 1000,
    "second": 1000,
    "seconds": 1000,
    "m": 60_000,
    "min": 60_000,
    "mins": 60_000,
    "minute": 60_000,
    "minutes": 60_000,
    "h": 3_600_000,
    "hr": 3_600_000,
    "hrs": 3_600_000,
    "hour": 3_600_000,
    "hours": 3_600_000,
}

SKIPPED_DISABLED = "Check disabled"
SKIPPED_INVALID_FORMAT = "Skipped due to invalid email format"
SKIPPED_EARLIER_FAILURE = "Skipped after an earlier check failed"


def parse_duration_ms(value: Any) -> float:
    """
    Parse a duration into milliseconds.

    Accepts non-negative finite numbers (milliseconds), timedelta, and
    strings such as "100ms", "5s", "1m", "1h" or "1500".

    Raises:
        ValueError: If the value is not a well-formed non-negative duration.
    """
    if isinstance(value, bool):
        raise ValueError(f"booleans are not durations: {value!r}")

    if isinstance(value, timedelta):
        milliseconds = value.total_seconds() * 1000
    elif isinstance(value, (int, float)):
        milliseconds = float(value)
    elif isinstance(value, str):
        match = DURATION_RE.match(value)
        if not match or match.group(2).lower() not in UNIT_MILLISECONDS:
            raise ValueError(f"unparsable duration: {value!r}")
        milliseconds = float(match.group(1)) * UNIT_MILLISECONDS[match.group(2).lower()]
    else:
        raise ValueError(f"unsupported duration type: {type(value).__name__}")

    if math.isnan(milliseconds) or math.isinf(milliseconds) or milliseconds < 0:
        raise ValueError(f"duration must be a non-negative finite value: {value!r}")
    return milliseconds


def parse_timeout(timeout: Any) -> float:
    """
    Parse and validate a timeout option.

    Returns:
        Timeout in milliseconds.

    Raises:
        EmailValidationError: INVALID_TIMEOUT_VALUE for malformed or negative values.
    """
    try:
        return parse_duration_ms(timeout)
    except ValueError as e:
        raise create_validation_error(ErrorCode.INVALID_TIMEOUT_VALUE, repr(timeout), e) from e


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _normalize_keys(values: Mapping[str, Any], allowed: set[str], kind: str) -> dict[str, Any]:
    normalized = {_snake_case(key): value for key, value in values.items()}
    unknown = sorted(set(normalized) - allowed)
    if unknown:
        raise TypeError(f"Unknown {kind} option(s): {', '.join(unknown)}")
    return normalized


@dataclass(frozen=True)
class CacheOptions:
    """Per-call cache behaviour. Durations use the same forms as the timeout option."""

    enabled: bool = True
    # None keeps the cache's own default TTL
    default_ttl: Any = None
    # Only used when building a cache; a shared cache keeps its own bound
    max_size: int | None = None

    @classmethod
    def from_value(cls, value: "CacheOptions | Mapping[str, Any] | bool | None") -> "CacheOptions":
        if value is None:
            return cls()
        if isinstance(value, CacheOptions):
            return value
        if isinstance(value, bool):
            return cls(enabled=value)
        if isinstance(value, Mapping):
            allowed = {f.name for f in fields(cls)}
            return cls(**_normalize_keys(value, allowed, "cache"))
        raise TypeError(f"cache options must be a mapping, got {type(value).__name__}")

    def ttl_seconds(self) -> float | None:
        """TTL for cache writes in seconds, or None to use the cache default."""
        if self.default_ttl is None:
            return None
        ttl_ms = parse_duration_ms(self.default_ttl)
        if ttl_ms <= 0:
            raise ValueError(f"cache default_ttl must be positive, got {self.default_ttl!r}")
        return ttl_ms / 1000

    def build_cache(self) -> MXCache:
        """Construct an MXCache configured by these options."""
        ttl = self.ttl_seconds()
        return MXCache(
            enabled=self.enabled,
            default_ttl=DEFAULT_CACHE_TTL_MS / 1000 if ttl is None else ttl,
            max_size=self.max_size or DEFAULT_CACHE_MAX_SIZE,
        )


@dataclass(frozen=True)
class ValidationOptions:
    """Options for a single validation call."""

    check_mx: bool = True
    check_disposable: bool = True
    timeout: Any = DEFAULT_TIMEOUT_MS
    detailed: bool = False
    debug: bool = False
    cache: CacheOptions = field(default_factory=CacheOptions)

    @classmethod
    def from_value(cls, value: Any = None, **overrides: Any) -> "ValidationOptions":
        """
        Build options from None, a bool (check_mx, kept for backward
        compatibility), a mapping with snake_case or camelCase keys, or an
        existing ValidationOptions. Keyword overrides win.
        """
        allowed = {f.name for f in fields(cls)}
        if value is None:
            values: dict[str, Any] = {}
        elif isinstance(value, ValidationOptions):
            values = {f.name: getattr(value, f.name) for f in fields(cls)}
        elif isinstance(value, bool):
            values = {"check_mx": value}
        elif isinstance(value, Mapping):
            values = _normalize_keys(value, allowed, "validation")
        else:
            raise TypeError(f"options must be a mapping or bool, got {type(value).__name__}")

        values.update(_normalize_keys(overrides, allowed, "validation"))
        if "cache" in values:
            values["cache"] = CacheOptions.from_value(values["cache"])
        return cls(**values)


@dataclass
class CheckResult:
    """Outcome of one validation phase. valid is None when the phase was skipped."""

    valid: bool | None
    error_code: ErrorCode | None = None
    reason: str | None = None
    skipped: bool = False

    @classmethod
    def failure(cls, code: ErrorCode, details: str | None = None, **extra: Any) -> "CheckResult":
        reason = f"{ERROR_MESSAGES[code]}: {details}" if details else ERROR_MESSAGES[code]
        return cls(valid=False, error_code=code, reason=reason, **extra)

    @classmethod
    def skip(cls, reason: str) -> "CheckResult":
        return cls(valid=None, reason=reason, skipped=True)

    @property
    def failed(self) -> bool:
        return self.valid is False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"valid": self.valid, "skipped": self.skipped}
        if self.error_code is not None:
            data["error_code"] = self.error_code.value
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass
class DisposableCheckResult(CheckResult):
    provider: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if not self.skipped:
            data["provider"] = self.provider
        return data


@dataclass
class MXCheckResult(CheckResult):
    records: list[MXRecord] = field(default_factory=list)
    cached: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if not self.skipped:
            data["records"] = [r.to_dict() for r in self.records]
            data["cached"] = self.cached
        return data


@dataclass
class Checks:
    format: CheckResult
    disposable: DisposableCheckResult
    mx: MXCheckResult

    def in_order(self) -> list[CheckResult]:
        return [self.format, self.disposable, self.mx]

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format.to_dict(),
            "disposable": self.disposable.to_dict(),
            "mx": self.mx.to_dict(),
        }


@dataclass
class ValidationResult:
    """Detailed validation result, built fresh for every call."""

    valid: bool
    email: str
    checks: Checks
    reason: str | None = None
    error_code: ErrorCode | None = None
    cache_stats: CacheStatistics | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "email": self.email,
            "reason": self.reason,
            "error_code": self.error_code.value if self.error_code else None,
            "checks": self.checks.to_dict(),
            "cache_stats": self.cache_stats.to_dict() if self.cache_stats else None,
        }


class _PendingLookup:
    """
    One-shot completion guard for a resolver call raced against a timeout.

    Whichever of the caller (giving up) and the resolver (settling) gets here
    first decides the outcome. A lookup still queued in the executor is
    cancelled so it never occupies a worker. A running one is discarded: it
    never reaches the caller's result, and if it later succeeds it still
    warms the cache.
    """

    def __init__(self, cache: MXCache | None, domain: str, ttl: float | None):
        self._cache = cache
        self._domain = domain
        self._ttl = ttl
        self._lock = threading.Lock()
        self._settled = False
        self._abandoned = False

    def abandon(self, future: Future) -> bool:
        """Give up on the lookup. Returns False if it already settled."""
        # Runs on_done synchronously, so it must happen outside the lock
        if future.cancel():
            return True

        with self._lock:
            if self._settled or future.done():
                return False
            self._abandoned = True
            return True

    def on_done(self, future: Future) -> None:
        with self._lock:
            self._settled = True
            if not self._abandoned or future.cancelled():
                return

        error = future.exception()
        if error is not None:
            logger.debug(f"Abandoned MX lookup for {self._domain} failed: {error!r}")
            return
        if self._cache is not None:
            self._cache.set(self._domain, future.result(), self._ttl)
            logger.debug(f"Abandoned MX lookup for {self._domain} completed late, cached")


class EmailValidator:
    """
    Validates email addresses through format, disposable and MX checks.

    Validators are safe to share between threads; the MX cache is the only
    shared mutable state.
    """

    def __init__(
        self,
        cache: MXCache | None = None,
        resolve_mx: ResolveMX | None = None,
        is_disposable: Callable[[str], bool] = is_disposable_domain,
        is_valid_format: Callable[[str], bool] = is_valid_email_format,
        log: LogSink | None = None,
        executor: ThreadPoolExecutor | None = None,
        max_workers: int = 8,
    ):
        """
        Args:
            cache: MX cache to use; a default-configured cache is created if omitted.
            resolve_mx: Callable (domain, timeout_seconds) -> list[MXRecord].
            is_disposable: Disposable domain membership test.
            is_valid_format: Email format check.
            log: Sink for debug events (defaults to the email_verifier.debug logger).
            executor: Executor running resolver calls; created if omitted.
            max_workers: Worker count for the created executor.
        """
        self.cache = cache if cache is not None else MXCache()
        self.resolve_mx = resolve_mx or DNSResolver()
        self.is_disposable = is_disposable
        self.is_valid_format = is_valid_format
        self.log = log
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="mx-resolver"
        )

    def close(self) -> None:
        """Shut down the resolver executor if this validator created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def __enter__(self) -> "EmailValidator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def validate(
        self, email: Any, options: Any = None, **overrides: Any
    ) -> bool | ValidationResult:
        """
        Validate an email address.

        Args:
            email: The address to validate.
            options: ValidationOptions, a mapping, or a bool meaning check_mx.
            **overrides: Individual options, e.g. check_mx=False, timeout="2s".

        Returns:
            bool by default; ValidationResult when detailed is set.

        Raises:
            EmailValidationError: INVALID_TIMEOUT_VALUE for a malformed timeout,
                EMAIL_MUST_BE_STRING for non-string input.
            TypeError: For unknown option names.
        """
        opts = ValidationOptions.from_value(options, **overrides)
        debug = create_debug_logger(opts.debug, email, self.log)
        debug.log(
            "validation_start",
            data={
                "check_mx": opts.check_mx,
                "check_disposable": opts.check_disposable,
                "detailed": opts.detailed,
                "timeout": opts.timeout,
            },
        )

        try:
            timeout_ms = parse_timeout(opts.timeout)
            cache_ttl = opts.cache.ttl_seconds()
            if not isinstance(email, str):
                raise create_validation_error(
                    ErrorCode.EMAIL_MUST_BE_STRING, f"got {type(email).__name__}"
                )
        except (EmailValidationError, ValueError) as e:
            debug.log_error("validation", e)
            raise

        result = self._run(email, opts, timeout_ms, cache_ttl, debug)
        debug.log(
            "validation_complete",
            data={
                "valid": result.valid,
                "error_code": result.error_code.value if result.error_code else None,
            },
        )
        return result if opts.detailed else result.valid

    def validate_or_raise(
        self, email: Any, options: Any = None, **overrides: Any
    ) -> ValidationResult:
        """
        Validate an email address, raising on any failed check.

        Returns:
            The detailed result when every enabled check passed.

        Raises:
            EmailValidationError: Carrying the code of the first failed check.
        """
        overrides["detailed"] = True
        result = self.validate(email, options, **overrides)
        if not result.valid:
            raise EmailValidationError(result.error_code or ErrorCode.UNKNOWN_ERROR, result.reason)
        return result

    def _run(
        self,
        email: str,
        opts: ValidationOptions,
        timeout_ms: float,
        cache_ttl: float | None,
        debug: DebugLogger | NullDebugLogger,
    ) -> ValidationResult:
        short_circuit = not opts.detailed

        end = debug.start_phase("format_validation")
        format_check = self._check_format(email)
        end(valid=format_check.valid)
        if format_check.failed:
            debug.log_error("format_validation", EmailValidationError(format_check.error_code))

        _, domain = split_email(email)

        if not opts.check_disposable:
            disposable_check = DisposableCheckResult.skip(SKIPPED_DISABLED)
        elif format_check.failed:
            disposable_check = DisposableCheckResult.skip(SKIPPED_INVALID_FORMAT)
        else:
            end = debug.start_phase("disposable_check", {"domain": domain})
            disposable_check = self._check_disposable(domain)
            end(valid=disposable_check.valid)

        use_cache = opts.cache.enabled and self.cache.is_enabled()
        cache_consulted = False
        if not opts.check_mx:
            mx_check = MXCheckResult.skip(SKIPPED_DISABLED)
        elif format_check.failed:
            mx_check = MXCheckResult.skip(SKIPPED_INVALID_FORMAT)
        elif short_circuit and disposable_check.failed:
            # No network I/O once the boolean answer is known
            mx_check = MXCheckResult.skip(SKIPPED_EARLIER_FAILURE)
        else:
            end = debug.start_phase("mx_check", {"domain": domain, "cache_enabled": use_cache})
            mx_check = self._check_mx(domain, timeout_ms, use_cache, cache_ttl, debug)
            cache_consulted = use_cache
            end(valid=mx_check.valid, cached=mx_check.cached, record_count=len(mx_check.records))

        checks = Checks(format=format_check, disposable=disposable_check, mx=mx_check)
        first_failure = next((check for check in checks.in_order() if check.failed), None)
        return ValidationResult(
            valid=first_failure is None,
            email=email,
            checks=checks,
            reason=first_failure.reason if first_failure else None,
            error_code=first_failure.error_code if first_failure else None,
            cache_stats=self.cache.get_statistics() if cache_consulted else None,
        )

    def _check_format(self, email: str) -> CheckResult:
        if not email:
            return CheckResult.failure(ErrorCode.EMAIL_CANNOT_BE_EMPTY)
        if not self.is_valid_format(email):
            return CheckResult.failure(ErrorCode.INVALID_EMAIL_FORMAT)
        return CheckResult(valid=True)

    def _check_disposable(self, domain: str) -> DisposableCheckResult:
        if self.is_disposable(domain):
            return DisposableCheckResult.failure(ErrorCode.DISPOSABLE_EMAIL, provider=domain)
        return DisposableCheckResult(valid=True)

    def _check_mx(
        self,
        domain: str,
        timeout_ms: float,
        use_cache: bool,
        ttl: float | None,
        debug: DebugLogger | NullDebugLogger,
    ) -> MXCheckResult:
        if use_cache:
            records = self.cache.get(domain)
            if records is not None:
                return self._mx_result(records, cached=True)

        try:
            records = self._resolve_with_timeout(domain, timeout_ms, self.cache if use_cache else None, ttl)
        except Exception as e:
            code = classify_resolver_error(e)
            debug.log_error("mx_check", e)
            logger.debug(f"MX lookup for {domain} failed ({code.value}): {e!r}")
            details = None if isinstance(e, EmailValidationError) else str(e) or type(e).__name__
            return MXCheckResult.failure(code, details)

        if use_cache:
            self.cache.set(domain, records, ttl)
        return self._mx_result(records, cached=False)

    def _resolve_with_timeout(
        self,
        domain: str,
        timeout_ms: float,
        cache: MXCache | None,
        ttl: float | None,
    ) -> list[MXRecord]:
        """
        Race the resolver against the timeout.

        The resolver call is never cancelled, only discarded: a lookup that
        loses the race cannot touch this call's result.
        """
        timeout_seconds = timeout_ms / 1000
        lookup = _PendingLookup(cache, domain, ttl)
        future = self._executor.submit(self.resolve_mx, domain, timeout_seconds)
        future.add_done_callback(lookup.on_done)

        try:
            return future.result(timeout=timeout_seconds)
        except FuturesTimeoutError:
            if lookup.abandon(future):
                raise create_validation_error(
                    ErrorCode.DNS_LOOKUP_TIMEOUT, f"no answer within {timeout_ms:g}ms"
                ) from None
            # Settled right at the deadline, or the resolver raised a TimeoutError itself
            return future.result()

    @staticmethod
    def _mx_result(records: list[MXRecord], cached: bool) -> MXCheckResult:
        if not records:
            details = "cached negative answer" if cached else None
            return MXCheckResult.failure(ErrorCode.NO_MX_RECORDS, details, cached=cached)
        return MXCheckResult(valid=True, records=list(records), cached=cached)


# Process-wide convenience instance; core logic never depends on it
global_mx_cache = CacheOptions().build_cache()
_default_validator: EmailValidator | None = None
_default_validator_lock = threading.Lock()


def get_default_validator() -> EmailValidator:
    """Return the process-wide validator backed by global_mx_cache."""
    global _default_validator
    with _default_validator_lock:
        if _default_validator is None:
            _default_validator = EmailValidator(cache=global_mx_cache)
        return _default_validator


def validate_email(email: Any, options: Any = None, **overrides: Any) -> bool | ValidationResult:
    """Validate an email address with the process-wide validator and cache."""
    return get_default_validator().validate(email, options, **overrides)
