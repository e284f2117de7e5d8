"""Timing helper for slow external calls (LLM, email)."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from .logger import log_event


@contextmanager
def span(kind: str, session_id: str, **fields: Any) -> Iterator[None]:
    """Log ``kind`` with elapsed ``ms`` and ``outcome`` ok/error when the block exits."""

    started = time.perf_counter()
    outcome = "error"
    try:
        yield
        outcome = "ok"
    finally:
        log_event(kind, session_id, ms=round((time.perf_counter() - started) * 1000), outcome=outcome, **fields)


__all__ = ["span"]
