"""
Timing spans for workflow operations.

The audit trail only records accepted decisions. Rejected attempts and slow
employee lookups show up here instead, one line per span:

    [TRACE] submit_decision duration_ms=1.84 request=l3 role=hod outcome=ok
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger("leave_workflow.trace")


@contextmanager
def trace_span(name: str, **metadata) -> Iterator[dict]:
    """
    Time the enclosed block and log it on exit, including on error.

    Callers may add keys (usually ``outcome``) to the yielded dict; they are
    logged after ``metadata``. Exceptions propagate unchanged.
    """
    span: dict = {}
    started = time.perf_counter()
    try:
        yield span
    except Exception:
        span.setdefault("outcome", "exception")
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        fields = " ".join(f"{k}={v}" for k, v in {**metadata, **span}.items())
        logger.info("[TRACE] %s duration_ms=%.2f %s", name, elapsed_ms, fields)
