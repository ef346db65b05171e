# purchase_emissions/utils/spans.py
from __future__ import annotations

import os
import time
from contextlib import contextmanager
from typing import Iterator

from loguru import logger

__all__ = ["log_span", "spans_enabled"]


def spans_enabled() -> bool:
    return os.getenv("LOG_SPANS") == "1"


@contextmanager
def log_span(description: str) -> Iterator[None]:
    """
    Time a block of code, typically one that performs IO.

    Only the end of the span is logged, and only when LOG_SPANS=1: logging
    both start and end of every estimate call is mostly noise.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        if spans_enabled():
            duration_ms = (time.perf_counter() - start) * 1000.0
            logger.info("Span end: {} ({:.1f} ms)", description, duration_ms)
