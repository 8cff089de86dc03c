"""
ledger_engines.tracer -- invocation tracing for the pure engines.

Responsibility:
    ``@traced_engine`` wraps an engine call and emits one
    ``LEDGER_ENGINE_TRACE`` record with the engine name and version, a
    fingerprint of the selected inputs and the call duration.

Architecture position:
    Engines -- support for the pure calculation layer.  Emits a log record
    and nothing else; inputs and results pass through untouched.

Invariants enforced:
    - The fingerprint is a pure function of the selected arguments:
      canonical JSON with sorted keys and normalised Decimals, so equal
      inputs always hash equal.
    - Positional and keyword arguments are fingerprinted alike (the call
      is bound against the wrapped function's signature).

Failure modes:
    - An argument named in ``fingerprint_fields`` but not passed is
      recorded as null.
    - Objects JSON cannot describe fall back to ``repr()``.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import json
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

TRACE_TYPE = "LEDGER_ENGINE_TRACE"

_logger = logging.getLogger("ledger_kernel.engines.tracer")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value.normalize()) if value else "0"
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(json.dumps(v, sort_keys=True, default=_jsonable) for v in value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return repr(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over the named arguments."""
    selected = [[name, arguments.get(name)] for name in fingerprint_fields]
    canonical = json.dumps(selected, sort_keys=True, separators=(",", ":"), default=_jsonable)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorator emitting LEDGER_ENGINE_TRACE for each call.

    Args:
        engine_name: Engine identifier, e.g. "aging".
        engine_version: Engine version, e.g. "1.0".
        fingerprint_fields: Parameter names hashed into the fingerprint.
    """

    def wrap(engine: Callable) -> Callable:
        signature = inspect.signature(engine)

        @functools.wraps(engine)
        def traced(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                call = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, call.arguments)

            started = time.perf_counter()
            result = engine(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            _logger.info(
                TRACE_TYPE,
                extra={
                    "trace_type": TRACE_TYPE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round(elapsed_ms, 2),
                    "function": engine.__qualname__,
                },
            )
            return result

        return traced

    return wrap
