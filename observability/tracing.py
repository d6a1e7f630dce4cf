"""Simple span helper for timing model calls."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from .logger import log_event


@contextmanager
def span(name: str, session_id: Optional[str] = None, **fields: Any) -> Iterator[Dict[str, Any]]:
    """Time the block and log a ``span`` event; callers may add fields to the yielded dict."""

    extra: Dict[str, Any] = dict(fields)
    start = time.perf_counter()
    try:
        yield extra
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        log_event("span", session_id, span=name, ms=elapsed_ms, **extra)


__all__ = ["span"]
