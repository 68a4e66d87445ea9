"""Session planning: priority-ordered next actions."""

from pathwise.planning.config import SessionConfig, SessionPlannerConfig, validate_planner_config
from pathwise.planning.session_planner import (
    ActionType,
    SessionAction,
    SessionPlanner,
    SessionStats,
    rest_action,
)

__all__ = [
    "SessionConfig",
    "SessionPlannerConfig",
    "validate_planner_config",
    "ActionType",
    "SessionAction",
    "SessionPlanner",
    "SessionStats",
    "rest_action",
]
