"""
Unit tests for the FSRS memory scheduler.
"""

import pytest

from pathwise.errors import ConfigurationError
from pathwise.memory import (
    MS_PER_DAY,
    FSRSParams,
    FSRSScheduler,
    MemoryState,
    MemoryStateKind,
    Rating,
    calculate_next_interval,
    calculate_retention,
    validate_fsrs_params,
)

BASE_TIME = 1_700_000_000_000


@pytest.fixture
def scheduler():
    return FSRSScheduler(clock=lambda: BASE_TIME)


def _state(skill_id="A", next_review=BASE_TIME, kind=MemoryStateKind.REVIEW, stability=2.3):
    return MemoryState(
        skill_id=skill_id,
        stability=stability,
        difficulty=0.5,
        last_review=BASE_TIME,
        next_review=next_review,
        state=kind,
    )


class TestRetentionCurve:
    def test_full_retention_at_review(self):
        assert calculate_retention(10.0, 0) == 1.0

    def test_ninety_percent_after_stability_days(self):
        assert calculate_retention(10.0, 10.0) == pytest.approx(0.9)

    def test_decays_with_time(self):
        assert calculate_retention(2.0, 9.0) == pytest.approx(2 / 3)
        assert calculate_retention(2.0, 30.0) < calculate_retention(2.0, 9.0)

    def test_zero_stability_means_forgotten(self):
        assert calculate_retention(0.0, 1.0) == 0.0

    @pytest.mark.parametrize(
        "elapsed_days,expected",
        [(0, 1.0), (1, 0.954), (10, 0.674)],
    )
    def test_known_values_at_good_stability(self, elapsed_days, expected):
        assert calculate_retention(2.3, elapsed_days) == pytest.approx(expected, abs=1e-3)


class TestIntervals:
    def test_interval_equals_stability_at_ninety_percent(self):
        assert calculate_next_interval(2.3, 0.9) == pytest.approx(2.3)

    def test_higher_retention_means_shorter_interval(self):
        assert calculate_next_interval(10.0, 0.95) < calculate_next_interval(10.0, 0.9)

    def test_capped_at_max_interval(self):
        assert calculate_next_interval(1000.0, 0.9, max_interval_days=365) == 365

    def test_perfect_retention_reviews_immediately(self):
        assert calculate_next_interval(5.0, 1.0) == 0.0


class TestTransitions:
    """State machine: new -> learning/review -> relearning -> review."""

    def test_create_state_is_due_now(self, scheduler):
        state = scheduler.create_state("A")

        assert state.state == MemoryStateKind.NEW
        assert state.next_review == BASE_TIME
        assert state.is_due(BASE_TIME)

    def test_good_from_new_enters_review(self, scheduler):
        state = scheduler.schedule_review(scheduler.create_state("A"), True, Rating.GOOD)

        assert state.state == MemoryStateKind.REVIEW
        assert state.stability == 2.3
        assert state.success_count == 1
        assert (state.next_review - BASE_TIME) / MS_PER_DAY == pytest.approx(2.3, abs=1e-6)

    def test_hard_from_new_stays_learning(self, scheduler):
        state = scheduler.schedule_review(scheduler.create_state("A"), True, Rating.HARD)

        assert state.state == MemoryStateKind.LEARNING
        assert state.stability == 0.9

    def test_again_from_new_is_failure(self, scheduler):
        state = scheduler.schedule_review(scheduler.create_state("A"), False, Rating.AGAIN)

        assert state.state == MemoryStateKind.LEARNING
        assert state.stability == 0.4
        assert state.failure_count == 1
        assert state.success_count == 0

    def test_not_recalled_overrides_rating(self, scheduler):
        state = scheduler.schedule_review(scheduler.create_state("A"), False, Rating.EASY)
        assert state.failure_count == 1
        assert state.stability == 0.4

    def test_lapse_from_review_enters_relearning(self, scheduler):
        state = scheduler.schedule_review(_state(), False, Rating.AGAIN)

        assert state.state == MemoryStateKind.RELEARNING
        assert state.stability == 0.4

    def test_second_failure_while_learning_enters_relearning(self, scheduler):
        state = scheduler.schedule_review(scheduler.create_state("A"), False, Rating.AGAIN)
        assert state.state == MemoryStateKind.LEARNING

        state = scheduler.schedule_review(state, False, Rating.AGAIN, now=BASE_TIME + MS_PER_DAY)

        assert state.state == MemoryStateKind.RELEARNING
        assert state.failure_count == 2

    def test_successful_review_grows_stability(self, scheduler):
        later = BASE_TIME + 3 * MS_PER_DAY
        state = scheduler.schedule_review(_state(), True, Rating.GOOD, now=later)

        assert state.state == MemoryStateKind.REVIEW
        assert state.stability > 2.3
        assert state.last_review == later
        assert state.next_review > later

    def test_easy_grows_more_than_hard(self, scheduler):
        later = BASE_TIME + 3 * MS_PER_DAY
        easy = scheduler.schedule_review(_state(), True, Rating.EASY, now=later)
        hard = scheduler.schedule_review(_state(), True, Rating.HARD, now=later)

        assert easy.stability > hard.stability
        assert hard.stability >= 2.3

    def test_input_state_untouched(self, scheduler):
        original = _state()
        scheduler.schedule_review(original, True, Rating.GOOD)
        assert original.success_count == 0


class TestDifficulty:
    def test_easy_lowers_and_again_raises(self, scheduler):
        easy = scheduler.schedule_review(_state(), True, Rating.EASY)
        again = scheduler.schedule_review(_state(), False, Rating.AGAIN)

        assert easy.difficulty == pytest.approx(0.43)
        assert again.difficulty == pytest.approx(0.64)

    def test_good_keeps_difficulty(self, scheduler):
        assert scheduler.schedule_review(_state(), True, Rating.GOOD).difficulty == 0.5

    def test_clamped_to_range(self, scheduler):
        state = _state()
        for _ in range(10):
            state = scheduler.schedule_review(state, False, Rating.AGAIN)
        assert state.difficulty == 0.9

        for _ in range(20):
            state = scheduler.schedule_review(state, True, Rating.EASY)
        assert state.difficulty == pytest.approx(0.1)


class TestQueries:
    def test_due_skills_most_overdue_first(self, scheduler):
        states = [
            _state("C", next_review=BASE_TIME - 1000),
            _state("B", next_review=BASE_TIME - 5000),
            _state("A", next_review=BASE_TIME - 1000),
            _state("future", next_review=BASE_TIME + 1),
        ]

        due = scheduler.get_due_skills(states, BASE_TIME)

        assert [s.skill_id for s in due] == ["B", "A", "C"]

    def test_retention_query(self, scheduler):
        state = _state(stability=4.0)
        assert scheduler.get_retention(state, BASE_TIME + 4 * MS_PER_DAY) == pytest.approx(0.9)

    def test_statistics(self, scheduler):
        states = [
            _state("A", kind=MemoryStateKind.REVIEW),
            _state("B", kind=MemoryStateKind.LEARNING, next_review=BASE_TIME + MS_PER_DAY),
        ]
        stats = scheduler.get_statistics(states, BASE_TIME)

        assert stats.total == 2
        assert stats.due == 1
        assert stats.by_state["review"] == 1
        assert stats.by_state["learning"] == 1
        assert stats.average_retention == 1.0

    def test_statistics_empty(self, scheduler):
        stats = scheduler.get_statistics([], BASE_TIME)
        assert stats.total == 0
        assert stats.average_stability == 0.0


class TestGrading:
    @pytest.mark.parametrize(
        "correct,response_time_ms,rating",
        [
            (False, 1000, Rating.AGAIN),
            (True, 5000, Rating.EASY),
            (True, 15000, Rating.GOOD),
            (True, 30000, Rating.HARD),
        ],
    )
    def test_grade_response(self, scheduler, correct, response_time_ms, rating):
        assert scheduler.grade_response(correct, response_time_ms) == rating


class TestParams:
    def test_again_stability_above_good_rejected(self):
        with pytest.raises(ConfigurationError):
            FSRSScheduler(FSRSParams(initial_stability=(5.0, 1.0, 2.0, 3.0)))

    def test_non_positive_stability_rejected(self):
        with pytest.raises(ConfigurationError):
            FSRSScheduler(FSRSParams(initial_stability=(0.0, 0.9, 2.3, 5.7)))

    @pytest.mark.parametrize(
        "field,value",
        [
            ("requested_retention", 0.0),
            ("requested_retention", 1.5),
            ("max_interval_days", 0),
            ("initial_difficulty", 0.95),
            ("expected_response_time_ms", 0),
        ],
    )
    def test_out_of_range_rejected(self, field, value):
        with pytest.raises(ConfigurationError, match=field):
            FSRSScheduler(FSRSParams(**{field: value}))

    def test_defaults_accepted(self):
        validate_fsrs_params(FSRSParams())
