"""Session planner configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pathwise.errors import ConfigurationError


class SessionConfig(BaseModel):
    """Per-session knobs a caller may override."""

    model_config = ConfigDict(frozen=True)

    max_duration_minutes: int = 30
    target_items: int = 20
    mastery_threshold: float = 0.85
    enforce_spaced_retrieval: bool = True
    require_transfer_tests: bool = True


class SessionPlannerConfig(SessionConfig):
    """Planner defaults: session knobs plus priority weights."""

    overdue_weight: float = 2.0
    error_weight: float = 1.5
    transfer_test_threshold: float = 0.8
    max_error_focus_items: int = 5
    consolidation_floor: float = 0.3

    def merged(self, session: SessionConfig | None) -> SessionPlannerConfig:
        """
        Overlay the fields a caller explicitly set on a session config.

        Raises:
            ConfigurationError: If the overlay leaves a value out of range.
        """
        if session is None:
            return self
        merged = self.model_copy(update=session.model_dump(exclude_unset=True))
        validate_planner_config(merged)
        return merged


def validate_planner_config(config: SessionPlannerConfig) -> None:
    """
    Reject planner settings that cannot produce a plan.

    Raises:
        ConfigurationError: If a count, weight or threshold is out of range.
    """
    problems = []
    if config.max_duration_minutes < 1:
        problems.append(f"max_duration_minutes must be >= 1, got {config.max_duration_minutes}")
    if config.target_items < 1:
        problems.append(f"target_items must be >= 1, got {config.target_items}")
    for name in ("mastery_threshold", "transfer_test_threshold"):
        value = getattr(config, name)
        if not 0.0 < value <= 1.0:
            problems.append(f"{name} must be in (0, 1], got {value}")
    for name in ("overdue_weight", "error_weight"):
        value = getattr(config, name)
        if value < 0:
            problems.append(f"{name} must be >= 0, got {value}")
    if config.max_error_focus_items < 0:
        problems.append(f"max_error_focus_items must be >= 0, got {config.max_error_focus_items}")
    if not 0.0 <= config.consolidation_floor <= 1.0:
        problems.append(f"consolidation_floor must be in [0, 1], got {config.consolidation_floor}")
    if problems:
        raise ConfigurationError("Invalid planner configuration: " + "; ".join(problems))
