"""
approval_engines.tracer -- trace logging for pure engine calls.

Responsibility:
    ``@traced_engine`` wraps a pure engine function and logs one
    ``APPROVAL_ENGINE_TRACE`` debug record per call: engine name and
    version, a fingerprint of the chosen keyword inputs, an optional
    summary of the result, and the duration.  Two calls with the same
    fingerprint and version are expected to return the same result.

Architecture position:
    Engines.  Emits a log record only; adds no I/O to the wrapped function.

Usage:
    @traced_engine(
        "chain", "1.0",
        fingerprint_fields=("amount", "department"),
        summarize=lambda chain: {"chain_depth": len(chain)},
    )
    def resolve_chain(*, amount, department, settings):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import time
from collections.abc import Callable
from typing import Any

from approval_kernel.logging_config import get_logger
from approval_kernel.utils.hashing import hash_payload

logger = get_logger("engines.tracer")

Summarizer = Callable[[Any], dict[str, Any]]


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """16-hex-char prefix of the canonical hash of the named kwargs.

    A missing field is hashed as null, so it differs from any value.
    """
    payload = {name: _plain(kwargs.get(name)) for name in fingerprint_fields}
    return hash_payload(payload)[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    summarize: Summarizer | None = None,
) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            t0 = time.monotonic()
            result = func(*args, **kwargs)
            if not logger.isEnabledFor(logging.DEBUG):
                return result

            extra: dict[str, Any] = {
                "trace_type": "APPROVAL_ENGINE_TRACE",
                "engine_name": engine_name,
                "engine_version": engine_version,
                "function": func.__qualname__,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            }
            if fingerprint_fields:
                extra["input_fingerprint"] = compute_input_fingerprint(
                    fingerprint_fields, kwargs,
                )
            if summarize is not None:
                extra.update(summarize(result))
            logger.debug("APPROVAL_ENGINE_TRACE", extra=extra)
            return result

        return wrapper

    return decorator
