"""Persistence boundary: state store protocol and snapshot schema."""

from pathwise.persistence.snapshot import (
    SCHEMA_VERSION,
    SUPPORTED_VERSIONS,
    EngineSnapshot,
    parse_snapshot,
)
from pathwise.persistence.state_store import InMemoryStateStore, StateStore

__all__ = [
    "SCHEMA_VERSION",
    "SUPPORTED_VERSIONS",
    "EngineSnapshot",
    "parse_snapshot",
    "InMemoryStateStore",
    "StateStore",
]
