# Email MX Verifier - Validation API
# Flask API that validates emails via syntax + disposable + MX checks, with an MX cache management surface

import atexit
import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from functools import wraps
from typing import Any

from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS

from cache_sweeper import CacheSweeper
from config import Config
from errors import EmailValidationError, ErrorCode
from mx_cache import MXCache, MXRecord
from resolver import DNSResolver, MockResolver
from validator import EmailValidator

# Request ID context for structured logging
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


# Structured logging formatter
class StructuredFormatter(logging.Formatter):
    """Key=value structured logging formatter for readability on all consoles."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
        }

        # Add request ID if available
        req_id = request_id_ctx.get("")
        if req_id:
            log_data["request_id"] = req_id

        # Add extra fields from record
        extra_fields = [
            "domain",
            "error_code",
            "elapsed_ms",
            "mode",
            "cache_size",
        ]
        for field in extra_fields:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Format as key=value for readability
        parts = [f"{k}={json.dumps(v) if isinstance(v, str) else v}" for k, v in log_data.items()]
        return " ".join(parts)


def configure_logging() -> None:
    """Attach the structured handler to the service and library loggers."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    for name in (__name__, "validator", "cache_sweeper", "resolver"):
        lib_logger = logging.getLogger(name)
        lib_logger.setLevel(getattr(logging, Config.LOG_LEVEL))
        lib_logger.addHandler(handler)

    # Debug events are already JSON; pass them through untouched
    debug_handler = logging.StreamHandler(sys.stdout)
    debug_handler.setFormatter(logging.Formatter("%(message)s"))
    debug_events = logging.getLogger("email_verifier.debug")
    debug_events.setLevel(logging.INFO)
    debug_events.addHandler(debug_handler)
    debug_events.propagate = False


# Setup logger
logger = logging.getLogger(__name__)
configure_logging()

# Create Flask app with configuration
app = Flask(__name__)

# Configure CORS - restrictive by default
cors_origins = Config.get_cors_origins()
if cors_origins:
    CORS(app, origins=cors_origins)
    logger.info(f"CORS enabled for origins: {cors_origins}")
else:
    CORS(app, origins=["http://localhost:3000", "http://localhost:5050", "http://127.0.0.1:5050"])
    logger.info("CORS enabled for localhost development only")

# MX cache (process-lifetime, bounded, TTL + LRU)
mx_cache = MXCache(
    enabled=Config.MX_CACHE_ENABLED,
    default_ttl=Config.MX_CACHE_TTL_SECONDS,
    max_size=Config.MX_CACHE_MAX_SIZE,
)

if Config.VALIDATOR_MODE == "mock":
    resolver: DNSResolver | MockResolver = MockResolver()
else:
    resolver = DNSResolver(Config.get_nameservers())

email_validator = EmailValidator(
    cache=mx_cache,
    resolve_mx=resolver,
    max_workers=Config.RESOLVER_MAX_WORKERS,
)

# Background expiry sweep (disabled in TESTING mode)
cache_sweeper = CacheSweeper(mx_cache, Config.MX_CACHE_SWEEP_INTERVAL_SECONDS)
if not Config.TESTING:
    cache_sweeper.start()


def cleanup_on_exit() -> None:
    """Clean shutdown of background services."""
    logger.debug("Shutting down background services...")
    cache_sweeper.stop()
    email_validator.close()


atexit.register(cleanup_on_exit)

# Startup message
logger.info(
    "Verifier started",
    extra={"mode": Config.VALIDATOR_MODE, "cache_size": Config.MX_CACHE_MAX_SIZE},
)

# Options accepted by /validate; "detailed" is always on for the API
VALIDATE_BOOL_OPTIONS = ("check_mx", "check_disposable", "debug")
CONFIGURATION_ERROR_CODES = {ErrorCode.INVALID_TIMEOUT_VALUE, ErrorCode.EMAIL_MUST_BE_STRING}


# Request ID middleware
@app.before_request
def set_request_id() -> None:
    """Set request ID from header or generate new one."""
    req_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request_id_ctx.set(req_id)
    g.request_id = req_id


@app.after_request
def add_request_id_header(response: Response) -> Response:
    """Add request ID to response headers."""
    if hasattr(g, "request_id"):
        response.headers["X-Request-ID"] = g.request_id
    return response


# Exception handler
@app.errorhandler(Exception)
def handle_exception(e: Exception) -> tuple[Response, int]:
    """Log exceptions and return safe error response."""
    logger.exception("Unhandled exception", exc_info=e)
    return error_response("INTERNAL_ERROR", "Internal server error", status_code=500)


@app.errorhandler(404)
def handle_not_found(e: Exception) -> tuple[Response, int]:
    return error_response("NOT_FOUND", "Resource not found", status_code=404)


@app.errorhandler(405)
def handle_method_not_allowed(e: Exception) -> tuple[Response, int]:
    return error_response("METHOD_NOT_ALLOWED", "Method not allowed", status_code=405)


def error_response(
    code: str,
    message: str,
    details: dict | None = None,
    status_code: int = 400,
) -> tuple[Response, int]:
    """
    Create a structured error response.

    Args:
        code: Error code (e.g., "INVALID_TIMEOUT_VALUE", "NOT_CACHED")
        message: Human-readable message
        details: Optional additional details
        status_code: HTTP status code
    """
    payload: dict = {
        "error": {
            "code": code,
            "message": message,
        },
        "request_id": g.get("request_id", "unknown"),
    }
    if details:
        payload["error"]["details"] = details

    return jsonify(payload), status_code


# ============================================================================
# API Key Authentication Decorator
# ============================================================================


def require_api_key(f):
    """
    Decorator to require API key for cache management endpoints.
    If APP_API_KEY is not set, allows all requests (backward compat for dev).
    """

    @wraps(f)
    def decorated(*args, **kwargs):
        # If no API key configured, allow all requests (dev mode)
        if not Config.APP_API_KEY:
            return f(*args, **kwargs)

        provided_key = request.headers.get("X-API-Key", "")
        if provided_key != Config.APP_API_KEY:
            logger.warning(
                "Unauthorized API access attempt",
                extra={"mode": "rejected"},
            )
            return error_response(
                "UNAUTHORIZED",
                "Invalid or missing API key",
                {"hint": "Provide valid X-API-Key header"},
                401,
            )
        return f(*args, **kwargs)

    return decorated


# ============================================================================
# Validation
# ============================================================================


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("1", "true", "yes", "on"):
        return True
    if isinstance(value, str) and value.lower() in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


def parse_validate_request() -> tuple[Any, dict[str, Any]]:
    """
    Extract the email and validation options from a /validate request.
    JSON bodies are used as-is; query string values are parsed from text.

    Returns:
        (email, options)
    """
    if request.method == "POST":
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValueError("Request body must be a JSON object")
        params = dict(body)
    else:
        params = request.args.to_dict()

    email = params.pop("email", None)
    options: dict[str, Any] = {
        "timeout": Config.DNS_TIMEOUT_MS,
        "check_disposable": Config.CHECK_DISPOSABLE_DEFAULT,
    }
    for key, value in params.items():
        if key in VALIDATE_BOOL_OPTIONS or key in ("checkMx", "checkDisposable"):
            options[key] = _parse_bool(value)
        elif key == "timeout":
            options["timeout"] = value
        elif key == "cache" and isinstance(value, dict):
            options["cache"] = value
        elif key == "cache":
            options["cache"] = _parse_bool(value)
        else:
            raise ValueError(f"Unknown option: {key}")
    options["detailed"] = True
    return email, options


@app.route("/validate", methods=["GET", "POST"])
def validate() -> tuple[Response, int] | Response:
    """
    Validate a single email address.

    Query string (GET) or JSON body (POST):
    - email: the address to validate
    - check_mx, check_disposable, debug: booleans
    - timeout: milliseconds or a duration string ("2s", "500ms")
    - cache: boolean or {"enabled", "default_ttl"} (POST only for the object form)
    """
    try:
        email, options = parse_validate_request()
    except ValueError as e:
        return error_response("INVALID_OPTIONS", str(e))

    started = datetime.now(UTC)
    try:
        result = email_validator.validate(email, options)
    except EmailValidationError as e:
        if e.code in CONFIGURATION_ERROR_CODES:
            return error_response(e.code.value, e.message)
        raise
    except (TypeError, ValueError) as e:
        return error_response("INVALID_OPTIONS", str(e))

    elapsed_ms = int((datetime.now(UTC) - started).total_seconds() * 1000)
    if not result.valid:
        logger.info(
            "Email rejected",
            extra={"error_code": result.error_code.value, "elapsed_ms": elapsed_ms},
        )
    return jsonify(result.to_dict())


# ============================================================================
# MX Cache Management Endpoints
# ============================================================================


def _cache_info() -> dict[str, Any]:
    return {
        "enabled": mx_cache.is_enabled(),
        "max_size": mx_cache.max_size,
        "default_ttl_seconds": mx_cache.default_ttl,
    }


@app.route("/cache/stats")
def cache_stats() -> Response:
    """Return MX cache statistics."""
    return jsonify({"statistics": mx_cache.get_statistics().to_dict(), "cache": _cache_info()})


@app.route("/cache/stats/reset", methods=["POST"])
@require_api_key
def reset_cache_stats() -> Response:
    """Zero hit/miss/eviction counters without touching cached entries."""
    mx_cache.reset_statistics()
    logger.info("MX cache statistics reset")
    return jsonify({"statistics": mx_cache.get_statistics().to_dict()})


@app.route("/cache/flush", methods=["POST"])
@require_api_key
def flush_cache() -> Response:
    """Remove every cached entry. Statistics are kept."""
    removed = mx_cache.size()
    mx_cache.flush()
    logger.info("MX cache flushed", extra={"cache_size": removed})
    return jsonify({"flushed": removed})


@app.route("/cache/<domain>")
def get_cached_domain(domain: str) -> tuple[Response, int] | Response:
    """Return the cached MX records for a domain."""
    records = mx_cache.get(domain)
    if records is None:
        return error_response("NOT_CACHED", f"No cached MX records for {domain}", status_code=404)
    return jsonify({"domain": domain.lower(), "records": [r.to_dict() for r in records]})


@app.route("/cache/<domain>", methods=["PUT"])
@require_api_key
def put_cached_domain(domain: str) -> tuple[Response, int]:
    """
    Warm the cache for a domain.

    JSON body:
    - records: list of {"exchange": str, "priority": int}
    - ttl_seconds: optional TTL override
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or not isinstance(body.get("records"), list):
        return error_response("INVALID_RECORDS", "Body must be a JSON object with a records list")

    try:
        records = [
            MXRecord(exchange=str(item["exchange"]), priority=int(item["priority"]))
            for item in body["records"]
        ]
        ttl = body.get("ttl_seconds")
        mx_cache.set(domain, records, float(ttl) if ttl is not None else None)
    except (KeyError, TypeError, ValueError) as e:
        return error_response("INVALID_RECORDS", f"Invalid MX records: {e}")

    logger.info("MX cache entry set", extra={"domain": domain.lower()})
    return jsonify({"domain": domain.lower(), "records": [r.to_dict() for r in records]}), 201


@app.route("/cache/<domain>", methods=["DELETE"])
@require_api_key
def delete_cached_domain(domain: str) -> tuple[Response, int] | tuple[str, int]:
    """Remove a domain from the cache."""
    if not mx_cache.delete(domain):
        return error_response("NOT_CACHED", f"No cached MX records for {domain}", status_code=404)
    logger.info("MX cache entry deleted", extra={"domain": domain.lower()})
    return "", 204


# ============================================================================
# Health & Metrics
# ============================================================================


@app.route("/health")
def health() -> Response:
    """Health check endpoint."""
    return jsonify({"status": "ok"})


@app.route("/metrics")
def metrics() -> Response:
    """
    Simple metrics endpoint for monitoring.
    Returns JSON with cache statistics and configuration.
    """
    return jsonify(
        {
            "status": "ok",
            "server_version": Config.VERSION,
            "timestamp": datetime.now(UTC).isoformat(),
            "validator_mode": Config.VALIDATOR_MODE,
            "mx_cache": {
                **mx_cache.get_statistics().to_dict(),
                **_cache_info(),
                "sweeper_running": cache_sweeper.is_running(),
            },
            "config": {
                "dns_timeout_ms": Config.DNS_TIMEOUT_MS,
                "resolver_max_workers": Config.RESOLVER_MAX_WORKERS,
                "sweep_interval_seconds": Config.MX_CACHE_SWEEP_INTERVAL_SECONDS,
                "check_disposable_default": Config.CHECK_DISPOSABLE_DEFAULT,
            },
        }
    )


if __name__ == "__main__":
    app.run(debug=Config.DEBUG, port=Config.PORT, host=Config.HOST)
