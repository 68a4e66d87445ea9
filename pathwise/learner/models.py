"""
Learner model value types.

A `LearnerModel` is never mutated in place: every update produces a new
instance. `LearnerModelRecord` is the serialized shape, with the skill
mapping flattened to a list of ``[skill_id, probability]`` pairs sorted by
skill id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel

MASTERED_THRESHOLD = 0.85
LEARNING_THRESHOLD = 0.3


class MasteryLevel(str, Enum):
    """Progress band of a single skill."""

    NOT_STARTED = "not_started"  # below 30%
    LEARNING = "learning"  # 30-84%
    MASTERED = "mastered"  # 85-100%

    @classmethod
    def from_score(cls, score: float) -> MasteryLevel:
        """
        Convert a 0-1 mastery probability to a level.

        Args:
            score: pMastery between 0 and 1

        Returns:
            Corresponding MasteryLevel
        """
        if score >= MASTERED_THRESHOLD:
            return cls.MASTERED
        elif score >= LEARNING_THRESHOLD:
            return cls.LEARNING
        else:
            return cls.NOT_STARTED

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOT_STARTED: "dim",
            MasteryLevel.LEARNING: "yellow",
            MasteryLevel.MASTERED: "green",
        }[self]


@dataclass(frozen=True)
class SkillProbability:
    """BKT state of one skill for one learner."""

    skill_id: str
    p_mastery: float
    p_slip: float
    p_guess: float
    p_learn: float
    last_updated: int


@dataclass(frozen=True)
class LearnerModel:
    """Mastery estimates of one learner across the skill graph."""

    learner_id: str
    skill_probabilities: dict[str, SkillProbability] = field(default_factory=dict)
    total_events: int = 0
    created_at: int = 0
    last_updated: int = 0

    def get_p_mastery(self, skill_id: str, default: float = 0.0) -> float:
        probability = self.skill_probabilities.get(skill_id)
        return probability.p_mastery if probability is not None else default

    def mastery_map(self) -> dict[str, float]:
        """pMastery per skill, sorted by skill id."""
        return {
            skill_id: self.skill_probabilities[skill_id].p_mastery
            for skill_id in sorted(self.skill_probabilities)
        }


class LearnerModelRecord(BaseModel):
    """Serialized form of a `LearnerModel`."""

    learner_id: str
    skill_probabilities: list[tuple[str, SkillProbability]]
    total_events: int
    created_at: int
    last_updated: int

    @classmethod
    def from_model(cls, model: LearnerModel) -> LearnerModelRecord:
        return cls(
            learner_id=model.learner_id,
            skill_probabilities=[
                (skill_id, model.skill_probabilities[skill_id])
                for skill_id in sorted(model.skill_probabilities)
            ],
            total_events=model.total_events,
            created_at=model.created_at,
            last_updated=model.last_updated,
        )

    def to_model(self) -> LearnerModel:
        return LearnerModel(
            learner_id=self.learner_id,
            skill_probabilities=dict(self.skill_probabilities),
            total_events=self.total_events,
            created_at=self.created_at,
            last_updated=self.last_updated,
        )
