"""Core engine: event intake, state ownership, planning queries and replay."""

from pathwise.engine.config import EngineConfig
from pathwise.engine.core_engine import (
    LearnerProgress,
    LearningEngine,
    create_deterministic_engine,
    create_learning_engine,
    replay_into_new_engine,
)
from pathwise.engine.metrics import (
    LearnerMetrics,
    ScheduledReview,
    events_to_mastery,
    get_learner_metrics,
)

__all__ = [
    "EngineConfig",
    "LearnerProgress",
    "LearningEngine",
    "create_deterministic_engine",
    "create_learning_engine",
    "replay_into_new_engine",
    "LearnerMetrics",
    "ScheduledReview",
    "events_to_mastery",
    "get_learner_metrics",
]
