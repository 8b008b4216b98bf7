"""
Structured JSON logging for the vesting kernel.

Every record is one JSON line. Operation context (who called, which
operation, whose schedule) comes from ``LogContext`` and is merged into
each line; ``extra`` fields and the structured attributes of kernel
exceptions are lifted to top-level keys.

Custody values are rendered natively:
    - amounts stay JSON integers at any size (no float, no string)
    - ``Release`` and other kernel dataclasses become objects
    - enums such as ``TransferDirection`` render as their value
    - a line that names both a beneficiary and a ``schedule_index`` also
      carries ``schedule_ref`` (``"alice#0"``), the id used by the audit chain
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "operation",
    "beneficiary",
    "asset",
    "trace_id",
)

_context: ContextVar[Mapping[str, str]] = ContextVar("vesting_log_context", default={})


def _merged(fields: dict[str, str | None]) -> dict[str, str]:
    unknown = set(fields) - set(_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
    merged = dict(_context.get())
    merged.update((k, v) for k, v in fields.items() if v is not None)
    return merged


class LogContext:
    """
    Operation-scoped log fields, safe across threads and asyncio tasks.

    The whole context is one mapping in a ContextVar, replaced and never
    mutated, so a ``bind`` block restores the previous fields as a unit.
    Unknown field names raise TypeError.
    """

    FIELDS = _FIELDS

    @staticmethod
    def set(**fields: str | None) -> None:
        """Set context fields. None values leave the current value in place."""
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}

_EXC_SKIP = frozenset({"args", "code"})


def _encode(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if "beneficiary" in payload and isinstance(payload.get("schedule_index"), int):
            payload["schedule_ref"] = f"{payload['beneficiary']}#{payload['schedule_index']}"

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            # Kernel errors carry beneficiary, index, amounts, completed releases
            for k, v in vars(exc).items():
                if not k.startswith("_") and k not in _EXC_SKIP:
                    payload[f"exc_{k}"] = v
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_encode)


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "vesting_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the vesting_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """Attach the JSON formatter to the vesting_kernel logger (first call wins)."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
