"""
Learner metrics for dashboards and reports.

Read-only views computed from engine state; nothing here changes a learner.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pathwise.learner.models import MASTERED_THRESHOLD
from pathwise.memory.fsrs import MS_PER_DAY, MemoryStatistics, calculate_retention, days_between

if TYPE_CHECKING:
    from pathwise.engine.core_engine import LearningEngine


@dataclass(frozen=True)
class ScheduledReview:
    skill_id: str
    due_at: int
    overdue_days: float  # negative when not yet due


@dataclass(frozen=True)
class LearnerMetrics:
    """Snapshot of one learner's mastery, retention and activity."""

    learner_id: str
    timestamp: int
    mastery_by_skill: dict[str, float] = field(default_factory=dict)
    retention_by_skill: dict[str, float] = field(default_factory=dict)
    next_reviews: tuple[ScheduledReview, ...] = ()
    average_mastery: float = 0.0
    average_retention: float = 0.0
    skills_mastered: int = 0
    skills_due: int = 0
    total_practice_events: int = 0
    practice_accuracy: float = 0.0
    transfer_pass_rate: float = 0.0
    estimated_events_to_full_mastery: int = 0
    memory: MemoryStatistics | None = None


def events_to_mastery(p_learn: float, threshold: float = MASTERED_THRESHOLD) -> int:
    """
    Rough number of practice events for one skill to reach `threshold`.

    Uses only the learning transition, ignoring the evidence from answers:
    ceil(log(1 - threshold) / log(1 - pLearn)).
    """
    if p_learn <= 0:
        return 0
    if p_learn >= 1:
        return 1
    return math.ceil(math.log(1 - threshold) / math.log(1 - p_learn))


def get_learner_metrics(
    engine: LearningEngine, learner_id: str, at_time: int | None = None
) -> LearnerMetrics:
    """
    Collect metrics for one learner.

    Args:
        engine: Engine holding the learner's state
        learner_id: Learner to report on
        at_time: Reference time for retention and due status; the engine
            clock when omitted

    Returns:
        LearnerMetrics; empty values for a learner with no state
    """
    timestamp = engine.get_current_time() if at_time is None else at_time
    model = engine.get_learner_model(learner_id)
    states = engine.get_memory_states(learner_id)

    mastery_by_skill = model.mastery_map() if model is not None else {}
    skills_mastered = sum(1 for p in mastery_by_skill.values() if p >= MASTERED_THRESHOLD)

    retention_by_skill: dict[str, float] = {}
    reviews: list[ScheduledReview] = []
    for state in sorted(states, key=lambda s: s.skill_id):
        retention_by_skill[state.skill_id] = calculate_retention(
            state.stability, days_between(state.last_review, timestamp)
        )
        reviews.append(
            ScheduledReview(
                skill_id=state.skill_id,
                due_at=state.next_review,
                overdue_days=(timestamp - state.next_review) / MS_PER_DAY,
            )
        )
    reviews.sort(key=lambda review: (-review.overdue_days, review.skill_id))

    practice = [
        event
        for event in engine.get_event_log()
        if event.type == "practice" and event.learner_id == learner_id
    ]
    transfer_results = engine.get_transfer_results(learner_id)

    unmastered = max(0, len(mastery_by_skill) - skills_mastered)
    return LearnerMetrics(
        learner_id=learner_id,
        timestamp=timestamp,
        mastery_by_skill=mastery_by_skill,
        retention_by_skill=retention_by_skill,
        next_reviews=tuple(reviews),
        average_mastery=(
            sum(mastery_by_skill.values()) / len(mastery_by_skill) if mastery_by_skill else 0.0
        ),
        average_retention=(
            sum(retention_by_skill.values()) / len(retention_by_skill)
            if retention_by_skill
            else 0.0
        ),
        skills_mastered=skills_mastered,
        skills_due=sum(1 for state in states if state.next_review <= timestamp),
        total_practice_events=len(practice),
        practice_accuracy=(
            sum(1 for event in practice if event.correct) / len(practice) if practice else 0.0
        ),
        transfer_pass_rate=(
            sum(1 for result in transfer_results if result.passed) / len(transfer_results)
            if transfer_results
            else 0.0
        ),
        estimated_events_to_full_mastery=unmastered
        * events_to_mastery(engine.config.bkt.p_learn),
        memory=engine.scheduler.get_statistics(states, timestamp),
    )
