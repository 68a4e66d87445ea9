"""Learner model: per-skill mastery tracked with Bayesian Knowledge Tracing."""

from pathwise.learner.bkt import (
    EPSILON,
    BKTEngine,
    BKTParams,
    bkt_posterior,
    bkt_update,
    validate_bkt_params,
)
from pathwise.learner.models import (
    LEARNING_THRESHOLD,
    MASTERED_THRESHOLD,
    LearnerModel,
    LearnerModelRecord,
    MasteryLevel,
    SkillProbability,
)

__all__ = [
    "EPSILON",
    "BKTEngine",
    "BKTParams",
    "bkt_posterior",
    "bkt_update",
    "validate_bkt_params",
    "LEARNING_THRESHOLD",
    "MASTERED_THRESHOLD",
    "LearnerModel",
    "LearnerModelRecord",
    "MasteryLevel",
    "SkillProbability",
]
