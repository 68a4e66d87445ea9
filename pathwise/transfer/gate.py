"""
Transfer Gate - near/far transfer requirements per skill.

A skill only counts as fully mastered once the learner has shown the skill
carries over to a slightly different context (near transfer) and, when
configured, to a substantially different one (far transfer).

All operations are pure lookups over the test catalog and the result list.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel


class TransferType(str, Enum):
    """How far a transfer test moves from the practiced context."""

    NEAR = "near"
    FAR = "far"


@dataclass(frozen=True)
class TransferTest:
    """A catalog entry: one transfer test for one skill."""

    id: str
    skill_id: str
    transfer_type: TransferType
    passing_score: float = 0.7
    description: str | None = None


@dataclass(frozen=True)
class TransferTestResult:
    """Outcome of one transfer test attempt by one learner."""

    test_id: str
    learner_id: str
    skill_id: str
    transfer_type: TransferType
    passed: bool
    score: float
    timestamp: int


@dataclass(frozen=True)
class TransferStatus:
    """Gate state of a single skill."""

    skill_id: str
    unlocked: bool
    required: tuple[str, ...] = field(default_factory=tuple)
    passed: tuple[str, ...] = field(default_factory=tuple)
    pending: tuple[str, ...] = field(default_factory=tuple)


class TransferGateConfig(BaseModel):
    """Which transfer types are required before a skill is unlocked."""

    require_near_transfer: bool = True
    require_far_transfer: bool = False  # Far transfer is optional by default


def _passed_test_ids(results: Iterable[TransferTestResult]) -> set[str]:
    return {result.test_id for result in results if result.passed}


class TransferGate:
    """Decides which transfer tests a skill needs and whether they are passed."""

    def __init__(self, config: TransferGateConfig | None = None):
        self.config = config or TransferGateConfig()

    def get_required_tests(
        self, skill_id: str, tests: Sequence[TransferTest]
    ) -> list[TransferTest]:
        """
        Required tests for a skill.

        For each enabled transfer type, the test with the lexicographically
        first id is required; extra tests of the same type are optional.
        """
        skill_tests = [test for test in tests if test.skill_id == skill_id]
        required: list[TransferTest] = []

        enabled = (
            (TransferType.NEAR, self.config.require_near_transfer),
            (TransferType.FAR, self.config.require_far_transfer),
        )
        for transfer_type, is_required in enabled:
            if not is_required:
                continue
            candidates = sorted(
                (test for test in skill_tests if test.transfer_type == transfer_type),
                key=lambda test: test.id,
            )
            if candidates:
                required.append(candidates[0])

        return required

    def is_skill_unlocked(
        self,
        skill_id: str,
        results: Iterable[TransferTestResult],
        tests: Sequence[TransferTest],
    ) -> bool:
        """True when every required test has a passing result. No tests ⇒ unlocked."""
        required = self.get_required_tests(skill_id, tests)
        if not required:
            return True
        passed = _passed_test_ids(results)
        return all(test.id in passed for test in required)

    def get_pending_tests(
        self,
        skill_id: str,
        results: Iterable[TransferTestResult],
        tests: Sequence[TransferTest],
    ) -> list[TransferTest]:
        """Required tests without a passing result."""
        passed = _passed_test_ids(results)
        return [test for test in self.get_required_tests(skill_id, tests) if test.id not in passed]

    def get_next_test(
        self,
        skill_id: str,
        results: Iterable[TransferTestResult],
        tests: Sequence[TransferTest],
    ) -> TransferTest | None:
        """Next test to take, near transfer before far transfer."""
        pending = self.get_pending_tests(skill_id, results, tests)
        for test in pending:
            if test.transfer_type == TransferType.NEAR:
                return test
        return pending[0] if pending else None

    def evaluate_attempt(
        self,
        test: TransferTest,
        score: float,
        learner_id: str,
        timestamp: int,
    ) -> TransferTestResult:
        """Score an attempt against the test's passing score."""
        return TransferTestResult(
            test_id=test.id,
            learner_id=learner_id,
            skill_id=test.skill_id,
            transfer_type=test.transfer_type,
            passed=score >= test.passing_score,
            score=score,
            timestamp=timestamp,
        )

    def get_transfer_status(
        self,
        skill_ids: Iterable[str],
        results: Sequence[TransferTestResult],
        tests: Sequence[TransferTest],
    ) -> dict[str, TransferStatus]:
        """Gate state for each skill, keyed by skill id in sorted order."""
        passed_ids = _passed_test_ids(results)
        status: dict[str, TransferStatus] = {}
        for skill_id in sorted(skill_ids):
            required = self.get_required_tests(skill_id, tests)
            passed = tuple(test.id for test in required if test.id in passed_ids)
            pending = tuple(test.id for test in required if test.id not in passed_ids)
            status[skill_id] = TransferStatus(
                skill_id=skill_id,
                unlocked=not pending,
                required=tuple(test.id for test in required),
                passed=passed,
                pending=pending,
            )
        return status


def create_transfer_test(
    test_id: str,
    skill_id: str,
    transfer_type: TransferType | str,
    passing_score: float = 0.7,
    description: str | None = None,
) -> TransferTest:
    """Convenience constructor accepting the transfer type as a string."""
    if not 0.0 <= passing_score <= 1.0:
        raise ValueError(f"passing_score must be in [0, 1], got {passing_score}")
    return TransferTest(
        id=test_id,
        skill_id=skill_id,
        transfer_type=TransferType(transfer_type),
        passing_score=passing_score,
        description=description,
    )
