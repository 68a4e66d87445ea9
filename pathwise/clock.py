"""
Injectable time and identity sources.

Engines never read the wall clock or generate random ids directly; they are
given a clock and an id generator so replays and tests are reproducible.
"""

from __future__ import annotations

import itertools
import time
import uuid
from collections.abc import Callable

Clock = Callable[[], int]
IdGenerator = Callable[[], str]


def system_clock() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def fixed_clock(start: int = 0, step_ms: int = 0) -> Clock:
    """A clock returning `start`, then advancing by `step_ms` on every call."""
    counter = itertools.count()

    def clock() -> int:
        return start + next(counter) * step_ms

    return clock


def uuid_id_generator() -> str:
    return str(uuid.uuid4())


def deterministic_id_generator(prefix: str = "evt", width: int = 4) -> IdGenerator:
    """Sequential ids: ``evt-0001``, ``evt-0002``, ..."""
    counter = itertools.count(1)

    def generate() -> str:
        return f"{prefix}-{next(counter):0{width}d}"

    return generate
