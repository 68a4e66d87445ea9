"""
Versioned engine snapshot schema.

The exported state is a single JSON object:

    {"version": "1.0.0", "timestamp": ..., "learner_models": [...],
     "memory_states": [[learner_id, [state, ...]], ...],
     "transfer_results": [...], "event_log": [...]}

The version is checked before anything else is parsed; unknown versions are
rejected rather than coerced.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from pathwise.errors import StateImportError, UnsupportedStateVersionError
from pathwise.events import LearningEvent
from pathwise.learner.models import LearnerModelRecord
from pathwise.memory.fsrs import MemoryState
from pathwise.transfer.gate import TransferTestResult

SCHEMA_VERSION = "1.0.0"
SUPPORTED_VERSIONS: tuple[str, ...] = (SCHEMA_VERSION,)


class EngineSnapshot(BaseModel):
    """Complete engine state at one point in time."""

    model_config = ConfigDict(extra="forbid")

    version: str = SCHEMA_VERSION
    timestamp: int
    learner_models: list[LearnerModelRecord]
    memory_states: list[tuple[str, list[MemoryState]]]
    transfer_results: list[TransferTestResult]
    event_log: list[LearningEvent]

    def to_json(self) -> str:
        """Compact JSON; field order is fixed by the schema."""
        return self.model_dump_json()


def parse_snapshot(data: str | bytes) -> EngineSnapshot:
    """
    Parse exported state.

    Raises:
        UnsupportedStateVersionError: If the version is missing or unknown.
        StateImportError: If the data is not valid JSON or does not match
            the schema.
    """
    try:
        raw: Any = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StateImportError(f"Exported state is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise StateImportError("Exported state must be a JSON object")

    version = raw.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedStateVersionError(version, SUPPORTED_VERSIONS)

    try:
        return EngineSnapshot.model_validate(raw)
    except ValidationError as e:
        raise StateImportError(f"Exported state does not match schema {version}: {e}") from e
