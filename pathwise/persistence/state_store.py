"""
State store boundary.

The engine never touches physical storage. Callers hand it something that
satisfies `StateStore` (a database table, a cache, a file tree) and the
engine reads and writes opaque state strings keyed by learner id.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class StateStore(Protocol):
    """Key-value persistence for exported learner state."""

    def load(self, learner_id: str) -> str | None:
        """Stored state for a learner, or None if nothing is stored."""
        ...

    def save(self, learner_id: str, state: str) -> bool:
        """Persist state for a learner; True on success."""
        ...


class InMemoryStateStore:
    """
    Dictionary-backed store for tests and single-process use.

    Nothing survives the process.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, learner_id: str) -> str | None:
        return self._data.get(learner_id)

    def save(self, learner_id: str, state: str) -> bool:
        self._data[learner_id] = state
        logger.debug(f"Stored {len(state)} bytes of state for {learner_id}")
        return True

    def has(self, learner_id: str) -> bool:
        return learner_id in self._data

    def keys(self) -> list[str]:
        return sorted(self._data)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)
