"""
Structured debug events for validation phases.

The orchestrator calls into a DebugLogger at phase boundaries only; where the
events end up is decided by the injected log callable.
"""

import json
import logging
import sys
import time
import tracemalloc
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

DEBUG_LOG_TYPE = "email-validator-debug"

debug_event_logger = logging.getLogger("email_verifier.debug")

LogSink = Callable[[dict[str, Any]], None]


def default_log_sink(event: dict[str, Any]) -> None:
    """Write a debug event as one JSON line through the email_verifier.debug logger."""
    debug_event_logger.info(json.dumps(event, default=str))


def memory_snapshot() -> dict[str, int]:
    """Cheap memory usage snapshot; traced bytes are included when tracemalloc is running."""
    snapshot = {"allocated_blocks": sys.getallocatedblocks()}
    if tracemalloc.is_tracing():
        current, peak = tracemalloc.get_traced_memory()
        snapshot["traced_current"] = current
        snapshot["traced_peak"] = peak
    return snapshot


def _memory_delta(start: dict[str, int], end: dict[str, int]) -> dict[str, int]:
    return {key: end[key] - start[key] for key in end if key in start}


class DebugLogger:
    """Emits start/complete/error events for validation phases."""

    enabled = True

    def __init__(self, email: object = None, log: LogSink | None = None):
        self.email = email if isinstance(email, str) else repr(email)
        self._log = log or default_log_sink

    def log(self, phase: str, **fields: Any) -> None:
        event: dict[str, Any] = {
            "type": DEBUG_LOG_TYPE,
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "phase": phase,
            "email": self.email,
        }
        event.update(fields)
        event.setdefault("memory", memory_snapshot())
        self._log(event)

    def start_phase(self, phase: str, data: dict[str, Any] | None = None) -> Callable[..., None]:
        """
        Emit a phase start event.

        Returns:
            A callable that emits the matching "<phase>_complete" event. Extra
            keyword arguments are merged into the completion event's data.
        """
        started = time.perf_counter()
        start_memory = memory_snapshot()
        self.log(phase, data=data or {}, timing={"start": started}, memory=start_memory)

        def end_phase(**result: Any) -> None:
            ended = time.perf_counter()
            end_memory = memory_snapshot()
            self.log(
                f"{phase}_complete",
                data={**(data or {}), **result},
                timing={
                    "start": started,
                    "end": ended,
                    "duration_ms": round((ended - started) * 1000, 3),
                },
                memory=end_memory,
                memory_delta=_memory_delta(start_memory, end_memory),
            )

        return end_phase

    def log_error(self, phase: str, error: BaseException) -> None:
        code = getattr(error, "code", None)
        self.log(
            f"{phase}_error",
            error={
                "code": getattr(code, "value", code),
                "type": type(error).__name__,
                "message": str(error),
            },
        )


class NullDebugLogger:
    """No-op logger used when debug mode is off."""

    enabled = False

    def log(self, phase: str, **fields: Any) -> None:
        pass

    def start_phase(self, phase: str, data: dict[str, Any] | None = None) -> Callable[..., None]:
        return _noop

    def log_error(self, phase: str, error: BaseException) -> None:
        pass


def _noop(**result: Any) -> None:
    pass


def create_debug_logger(
    enabled: bool, email: object = None, log: LogSink | None = None
) -> DebugLogger | NullDebugLogger:
    """Return a DebugLogger when enabled, otherwise a no-op logger."""
    if not enabled:
        return NullDebugLogger()
    return DebugLogger(email, log)
