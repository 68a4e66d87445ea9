"""
FSRS-style memory scheduler.

Tracks, per learner and skill, how stable the memory is and when it should
next be retrieved. Retention follows the FSRS power forgetting curve

    R(t) = (1 + t / (9 * S)) ** -1

where t is the number of days since the last review and S is the stability
(days until retention drops to 90%). The next interval is the time at which
R falls to the requested retention:

    interval = S * 9 * (1 / R_target - 1)

States move new -> learning/review -> relearning -> review. All functions are
pure; the scheduler returns a new `MemoryState` from every review.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from pydantic import BaseModel

from pathwise.clock import Clock, system_clock
from pathwise.errors import ConfigurationError

MS_PER_DAY = 24 * 60 * 60 * 1000

MIN_DIFFICULTY = 0.1
MAX_DIFFICULTY = 0.9
MIN_STABILITY = 0.1


class Rating(IntEnum):
    """Review grade on the FSRS 1-4 scale."""

    AGAIN = 1  # Complete failure
    HARD = 2  # Correct but difficult
    GOOD = 3  # Correct with normal effort
    EASY = 4  # Correct with little effort


class MemoryStateKind(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


# Stability multiplier per successful rating
RATING_MODIFIERS = {
    Rating.HARD: 0.8,
    Rating.GOOD: 1.0,
    Rating.EASY: 1.3,
}


@dataclass(frozen=True)
class MemoryState:
    """Retention state of one skill for one learner."""

    skill_id: str
    stability: float  # Days until 90% retention
    difficulty: float  # 0.1 (easy) to 0.9 (hard)
    last_review: int
    next_review: int
    success_count: int = 0
    failure_count: int = 0
    state: MemoryStateKind = MemoryStateKind.NEW

    def is_due(self, at_time: int) -> bool:
        return self.next_review <= at_time


@dataclass(frozen=True)
class MemoryStatistics:
    """Aggregate view over a learner's memory states."""

    total: int
    due: int
    by_state: dict[str, int] = field(default_factory=dict)
    average_stability: float = 0.0
    average_difficulty: float = 0.0
    average_retention: float = 0.0


class FSRSParams(BaseModel):
    """Scheduler parameters, checked by `validate_fsrs_params`."""

    # Initial stability (days) after a first review rated Again/Hard/Good/Easy
    initial_stability: tuple[float, float, float, float] = (0.4, 0.9, 2.3, 5.7)
    difficulty_decay: float = 0.7
    stability_decay: float = 0.2
    requested_retention: float = 0.9
    max_interval_days: float = 365
    initial_difficulty: float = 0.5

    # Derive the rating from response time instead of plain correct/incorrect
    grade_by_response_time: bool = False
    expected_response_time_ms: int = 15000


def validate_fsrs_params(params: FSRSParams) -> None:
    """
    Reject parameter sets the scheduler cannot work with.

    Raises:
        ConfigurationError: If a value is out of range or the initial
            stability for Again exceeds the one for Good.
    """
    problems = []
    if any(s <= 0 for s in params.initial_stability):
        problems.append("initial stability values must be positive")
    elif params.initial_stability[0] > params.initial_stability[2]:
        problems.append("initial stability for Again must not exceed the value for Good")
    if not 0.0 < params.requested_retention <= 1.0:
        problems.append(f"requested_retention must be in (0, 1], got {params.requested_retention}")
    if params.max_interval_days <= 0:
        problems.append(f"max_interval_days must be positive, got {params.max_interval_days}")
    if not MIN_DIFFICULTY <= params.initial_difficulty <= MAX_DIFFICULTY:
        problems.append(
            f"initial_difficulty must be in [{MIN_DIFFICULTY}, {MAX_DIFFICULTY}], "
            f"got {params.initial_difficulty}"
        )
    if params.expected_response_time_ms <= 0:
        problems.append(
            f"expected_response_time_ms must be positive, got {params.expected_response_time_ms}"
        )
    if problems:
        raise ConfigurationError("Invalid FSRS parameters: " + "; ".join(problems))


def days_between(start_ms: int, end_ms: int) -> float:
    """Elapsed days from `start_ms` to `end_ms`, never negative."""
    return max(0.0, (end_ms - start_ms) / MS_PER_DAY)


def calculate_retention(stability: float, elapsed_days: float) -> float:
    """
    Probability of recall after `elapsed_days`.

    Returns 1.0 at or before the review and 0.0 for non-positive stability.
    """
    if elapsed_days <= 0:
        return 1.0
    if stability <= 0:
        return 0.0
    return (1 + elapsed_days / (9 * stability)) ** -1


def calculate_next_interval(
    stability: float,
    requested_retention: float = 0.9,
    max_interval_days: float | None = None,
) -> float:
    """
    Days until retention falls to `requested_retention`.

    A requested retention of 1.0 means review immediately; a non-positive
    one falls back to the stability itself.
    """
    if requested_retention >= 1:
        interval = 0.0
    elif requested_retention <= 0:
        interval = stability
    else:
        interval = stability * 9 * (1 / requested_retention - 1)
    if max_interval_days is not None:
        interval = min(interval, max_interval_days)
    return interval


class FSRSScheduler:
    """
    Spaced retrieval scheduler.

    Calculates review intervals from memory stability and the requested
    retention rate.
    """

    def __init__(self, params: FSRSParams | None = None, clock: Clock | None = None):
        self.params = params or FSRSParams()
        validate_fsrs_params(self.params)
        self.clock = clock or system_clock

    def _now(self, now: int | None) -> int:
        return self.clock() if now is None else now

    def create_state(self, skill_id: str, now: int | None = None) -> MemoryState:
        """A fresh state, due immediately."""
        timestamp = self._now(now)
        return MemoryState(
            skill_id=skill_id,
            stability=self.params.initial_stability[Rating.GOOD - 1],
            difficulty=self.params.initial_difficulty,
            last_review=timestamp,
            next_review=timestamp,
            success_count=0,
            failure_count=0,
            state=MemoryStateKind.NEW,
        )

    def grade_response(self, correct: bool, response_time_ms: int) -> Rating:
        """
        Convert a practice response to a rating.

        Incorrect answers are Again; correct answers are graded by response
        time relative to the expected time (<0.5x Easy, <1.5x Good, else Hard).
        """
        if not correct:
            return Rating.AGAIN

        time_ratio = response_time_ms / self.params.expected_response_time_ms
        if time_ratio < 0.5:
            return Rating.EASY
        elif time_ratio < 1.5:
            return Rating.GOOD
        else:
            return Rating.HARD

    def schedule_review(
        self,
        state: MemoryState,
        recalled: bool,
        rating: Rating | int,
        now: int | None = None,
    ) -> MemoryState:
        """
        Apply one review and compute the next due time.

        Args:
            state: Current memory state
            recalled: Whether the learner recalled the skill
            rating: 1-4 review grade
            now: Review time; the scheduler clock when omitted

        Returns:
            New MemoryState
        """
        rating = Rating(rating)
        timestamp = self._now(now)
        failed = not recalled or rating == Rating.AGAIN
        if failed:
            rating = Rating.AGAIN

        difficulty = self._update_difficulty(state.difficulty, rating)

        if failed:
            stability = self.params.initial_stability[Rating.AGAIN - 1]
            kind = (
                MemoryStateKind.LEARNING
                if state.state == MemoryStateKind.NEW
                else MemoryStateKind.RELEARNING
            )
        elif state.state in (MemoryStateKind.NEW, MemoryStateKind.LEARNING):
            stability = self.params.initial_stability[rating - 1]
            kind = MemoryStateKind.REVIEW if rating >= Rating.GOOD else MemoryStateKind.LEARNING
        else:
            elapsed = days_between(state.last_review, timestamp)
            stability = max(
                state.stability,
                self._update_stability(state.stability, state.difficulty, elapsed, rating),
            )
            kind = MemoryStateKind.REVIEW

        interval_days = calculate_next_interval(
            stability, self.params.requested_retention, self.params.max_interval_days
        )

        return MemoryState(
            skill_id=state.skill_id,
            stability=stability,
            difficulty=difficulty,
            last_review=timestamp,
            next_review=timestamp + round(interval_days * MS_PER_DAY),
            success_count=state.success_count + (0 if failed else 1),
            failure_count=state.failure_count + (1 if failed else 0),
            state=kind,
        )

    def _update_difficulty(self, difficulty: float, rating: Rating) -> float:
        # Again/Hard push difficulty up, Easy pulls it down, Good keeps it
        adjustment = -(rating - Rating.GOOD) * 0.1 * self.params.difficulty_decay
        return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, difficulty + adjustment))

    def _update_stability(
        self, stability: float, difficulty: float, elapsed_days: float, rating: Rating
    ) -> float:
        """
        Stability after a successful review.

        S' = S * (1 + e^w * (11 - D) * S^-w * (e^(w * (1 - R)) - 1)) * modifier
        with D the difficulty on a 0-10 scale and R the retrievability at
        review time.
        """
        retrievability = calculate_retention(stability, elapsed_days)
        w = self.params.stability_decay
        d = difficulty * 10

        growth = math.exp(w) * (11 - d) * stability ** (-w) * (math.exp(w * (1 - retrievability)) - 1)
        new_stability = stability * (1 + growth) * RATING_MODIFIERS[rating]
        return max(MIN_STABILITY, new_stability)

    def get_due_skills(self, states: Iterable[MemoryState], at_time: int) -> list[MemoryState]:
        """States due at `at_time`, most overdue first, then by skill id."""
        due = [state for state in states if state.next_review <= at_time]
        return sorted(due, key=lambda state: (state.next_review, state.skill_id))

    def get_retention(self, state: MemoryState, at_time: int) -> float:
        return calculate_retention(state.stability, days_between(state.last_review, at_time))

    def get_statistics(self, states: Iterable[MemoryState], at_time: int) -> MemoryStatistics:
        states = list(states)
        if not states:
            return MemoryStatistics(total=0, due=0, by_state={kind.value: 0 for kind in MemoryStateKind})

        by_state = {kind.value: 0 for kind in MemoryStateKind}
        for state in states:
            by_state[MemoryStateKind(state.state).value] += 1

        count = len(states)
        return MemoryStatistics(
            total=count,
            due=sum(1 for state in states if state.next_review <= at_time),
            by_state=by_state,
            average_stability=sum(state.stability for state in states) / count,
            average_difficulty=sum(state.difficulty for state in states) / count,
            average_retention=sum(self.get_retention(state, at_time) for state in states) / count,
        )
