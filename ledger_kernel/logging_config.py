"""
Structured JSON logging for the ledger kernel.

Every ledger module logs through ``get_logger("<component>")`` under the
``ledger_kernel`` namespace, using an event name as the message and the
event payload in ``extra``::

    logger.info("journal_entry_posted", extra={"entry_number": "JE-2024-00001"})

Request-scoped identifiers (tenant, actor, entry) are carried by
``LogContext`` and merged into every record emitted while they are bound.
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_NAMESPACE = "ledger_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "tenant_id",
    "actor_id",
    "entry_id",
    "correlation_id",
    "trace_id",
)

_context: ContextVar[dict[str, str]] = ContextVar("ledger_log_context", default={})


def _merged(current: dict[str, str], updates: dict[str, Any]) -> dict[str, str]:
    merged = dict(current)
    for key, value in updates.items():
        if key in CONTEXT_FIELDS and value is not None:
            merged[key] = str(value)
    return merged


class LogContext:
    """Request-scoped log fields, safe across threads and asyncio tasks.

    Only names in ``CONTEXT_FIELDS`` are kept; others are ignored.
    """

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the current context.  None is skipped."""
        _context.set(_merged(_context.get(), fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block."""
        token = _context.set(_merged(_context.get(), fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return repr(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Key order: ``ts``, ``level``, ``logger``, ``message``, bound context,
    ``extra`` payload, then ``exc_*`` fields when an exception is attached.
    ``LedgerError`` attributes (``code``, ``entry_id``, ``debits`` ...)
    are flattened with an ``exc_`` prefix so they can be queried.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))

        return json.dumps(payload, default=_json_default)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        fields.update(
            (f"exc_{name}", value)
            for name, value in vars(exc).items()
            if not name.startswith("_")
        )
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger ``ledger_kernel.<name>``."""
    return logging.getLogger(f"{_NAMESPACE}.{name}")


_configure_lock = threading.Lock()
_configured = False


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``ledger_kernel`` logger.

    Only the first call has an effect; later calls are no-ops until
    ``reset_logging()``.  Records do not propagate to the root logger.
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger(_NAMESPACE)
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(handler)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Tests only."""
    global _configured
    with _configure_lock:
        _configured = False
    logger = logging.getLogger(_NAMESPACE)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.setLevel(logging.WARNING)
