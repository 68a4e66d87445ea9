"""
Bayesian Knowledge Tracing.

Each skill carries a probability that the learner has mastered it. A
practice observation updates that probability with Bayes' rule, then the
learning transition is applied:

    correct:    P(L|obs) = (1 - pSlip) * pL / [(1 - pSlip) * pL + pGuess * (1 - pL)]
    incorrect:  P(L|obs) = pSlip * pL / [pSlip * pL + (1 - pGuess) * (1 - pL)]
    next:       pL' = P(L|obs) + (1 - P(L|obs)) * pLearn

The engine holds only parameters and a clock. Models are passed in and a new
model is returned from every operation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import TYPE_CHECKING

from loguru import logger
from pydantic import BaseModel

from pathwise.clock import Clock, system_clock
from pathwise.errors import ConfigurationError
from pathwise.learner.models import LearnerModel, LearnerModelRecord, SkillProbability

if TYPE_CHECKING:
    from pathwise.events import PracticeEvent
    from pathwise.graph.skill_graph import SkillGraph

# Floor for Bayes' rule denominators
EPSILON = 1e-10


class BKTParams(BaseModel):
    """Prior BKT parameters applied to every skill of a new model."""

    p_init: float = 0.3
    p_learn: float = 0.1
    p_slip: float = 0.1
    p_guess: float = 0.2


def validate_bkt_params(params: BKTParams) -> None:
    """
    Reject parameter sets that make the model meaningless.

    Raises:
        ConfigurationError: If a probability is out of range or
            pSlip + pGuess >= 1 (the model would no longer be identifiable).
    """
    problems = []
    if not 0.0 <= params.p_init <= 1.0:
        problems.append(f"p_init must be in [0, 1], got {params.p_init}")
    if not 0.0 <= params.p_learn <= 1.0:
        problems.append(f"p_learn must be in [0, 1], got {params.p_learn}")
    if not 0.0 < params.p_slip < 1.0:
        problems.append(f"p_slip must be in (0, 1), got {params.p_slip}")
    if not 0.0 < params.p_guess < 1.0:
        problems.append(f"p_guess must be in (0, 1), got {params.p_guess}")
    if params.p_slip + params.p_guess >= 1.0:
        problems.append(
            f"p_slip + p_guess must be < 1, got {params.p_slip + params.p_guess}"
        )
    if problems:
        raise ConfigurationError("Invalid BKT parameters: " + "; ".join(problems))


def bkt_posterior(p_mastery: float, correct: bool, p_slip: float, p_guess: float) -> float:
    """P(mastered | observation) before the learning transition."""
    if correct:
        p_obs = (1 - p_slip) * p_mastery + p_guess * (1 - p_mastery)
        return (1 - p_slip) * p_mastery / max(p_obs, EPSILON)
    p_obs = p_slip * p_mastery + (1 - p_guess) * (1 - p_mastery)
    return p_slip * p_mastery / max(p_obs, EPSILON)


def bkt_update(
    p_mastery: float, correct: bool, p_slip: float, p_guess: float, p_learn: float
) -> float:
    """One full BKT step, clamped to [0, 1]."""
    posterior = bkt_posterior(p_mastery, correct, p_slip, p_guess)
    updated = posterior + (1 - posterior) * p_learn
    return min(1.0, max(0.0, updated))


class BKTEngine:
    """
    Learner model engine using Bayesian Knowledge Tracing.

    Args:
        params: Prior parameters; validated on construction.
        clock: Epoch-millisecond clock used when no explicit time is given.
    """

    def __init__(self, params: BKTParams | None = None, clock: Clock | None = None):
        self.params = params or BKTParams()
        validate_bkt_params(self.params)
        self.clock = clock or system_clock

    def _now(self, now: int | None) -> int:
        return self.clock() if now is None else now

    def _prior(self, skill_id: str, timestamp: int) -> SkillProbability:
        return SkillProbability(
            skill_id=skill_id,
            p_mastery=self.params.p_init,
            p_slip=self.params.p_slip,
            p_guess=self.params.p_guess,
            p_learn=self.params.p_learn,
            last_updated=timestamp,
        )

    def create_model(
        self, learner_id: str, graph: SkillGraph, now: int | None = None
    ) -> LearnerModel:
        """New model with every skill of the graph at the prior."""
        timestamp = self._now(now)
        return LearnerModel(
            learner_id=learner_id,
            skill_probabilities={
                skill_id: self._prior(skill_id, timestamp) for skill_id in graph.skill_ids
            },
            total_events=0,
            created_at=timestamp,
            last_updated=timestamp,
        )

    def update_model(self, model: LearnerModel, event: PracticeEvent) -> LearnerModel:
        """Apply one practice observation; skills missing from the model start at the prior."""
        current = model.skill_probabilities.get(event.skill_id)
        if current is None:
            logger.debug(f"Adding skill {event.skill_id} to model of {model.learner_id}")
            current = self._prior(event.skill_id, event.timestamp)

        p_mastery = bkt_update(
            current.p_mastery,
            event.correct,
            current.p_slip,
            current.p_guess,
            current.p_learn,
        )
        updated = replace(current, p_mastery=p_mastery, last_updated=event.timestamp)

        return replace(
            model,
            skill_probabilities={**model.skill_probabilities, event.skill_id: updated},
            total_events=model.total_events + 1,
            last_updated=event.timestamp,
        )

    def get_p_mastery(self, model: LearnerModel, skill_id: str) -> float:
        """pMastery of a skill; the prior when the model has not seen it."""
        return model.get_p_mastery(skill_id, default=self.params.p_init)

    def get_unmastered_skills(self, model: LearnerModel, threshold: float = 0.85) -> list[str]:
        """Skill ids below `threshold`, sorted."""
        return sorted(
            skill_id
            for skill_id, probability in model.skill_probabilities.items()
            if probability.p_mastery < threshold
        )

    def initialize_from_diagnostic(
        self,
        model: LearnerModel,
        estimates: Mapping[str, float],
        timestamp: int,
    ) -> LearnerModel:
        """Overwrite pMastery from diagnostic scores, keeping slip/guess/learn."""
        skill_probabilities = dict(model.skill_probabilities)
        for skill_id in sorted(estimates):
            existing = skill_probabilities.get(skill_id) or self._prior(skill_id, timestamp)
            skill_probabilities[skill_id] = replace(
                existing, p_mastery=estimates[skill_id], last_updated=timestamp
            )

        return replace(model, skill_probabilities=skill_probabilities, last_updated=timestamp)

    def serialize(self, model: LearnerModel) -> str:
        return LearnerModelRecord.from_model(model).model_dump_json()

    def deserialize(self, data: str | bytes) -> LearnerModel:
        return LearnerModelRecord.model_validate_json(data).to_model()
