"""
Exception hierarchy for pathwise.

Missing data (unknown learners, skills without responses or memory state)
is handled with defaults and never raises. The errors below cover the cases
that must fail loudly: invalid skill graphs, invalid parameters and corrupt
persisted state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathwise.graph.skill_graph import SkillGraphError


class PathwiseError(Exception):
    """Base class for all pathwise errors."""


class SkillGraphValidationError(PathwiseError):
    """Raised when a skill graph fails validation at load time."""

    def __init__(self, errors: list[SkillGraphError]):
        self.errors = list(errors)
        summary = "; ".join(error.message for error in self.errors)
        super().__init__(f"Invalid skill graph ({len(self.errors)} error(s)): {summary}")

    @property
    def kinds(self) -> list[str]:
        return [error.kind.value for error in self.errors]


class ConfigurationError(PathwiseError, ValueError):
    """Raised when model parameters are invalid."""


class StateImportError(PathwiseError):
    """Raised when exported state cannot be parsed or does not match the schema."""


class UnsupportedStateVersionError(StateImportError):
    """Raised when exported state carries an unknown schema version."""

    def __init__(self, version: object, supported: tuple[str, ...]):
        self.version = version
        self.supported = supported
        super().__init__(
            f"Unsupported state version {version!r}; supported: {', '.join(supported)}"
        )


class UnknownLearnerError(PathwiseError, KeyError):
    """Raised by strict lookups when no state exists for a learner."""

    def __init__(self, learner_id: str):
        self.learner_id = learner_id
        super().__init__(learner_id)

    def __str__(self) -> str:
        return f"No state for learner {self.learner_id!r}"
