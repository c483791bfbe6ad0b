"""Per-cycle log context."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import structlog


@contextmanager
def cycle_context(cycle: int, **fields: object) -> Iterator[None]:
    """Tag every log line emitted inside the block with the cycle number.

    Fields are task-local and removed on exit, so a failing cycle never
    leaks its context into the next one.
    """
    structlog.contextvars.bind_contextvars(cycle=cycle, **fields)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars("cycle", *fields)
