"""
Session Planner - decides what the learner should do next.

Tiers are evaluated in strict order and the first one that yields an action
wins:

1. Due review: the most overdue memory state (spaced retrieval).
2. Transfer test: a skill at transfer-test mastery with a pending test.
3. Error focus: a skill in relearning, most failures first.
4. New skill: an unmastered skill whose prerequisites are all mastered,
   highest leverage (direct dependents) first.
5. Consolidation: a partially learned skill still waiting on a prerequisite.

Nothing eligible means rest. Every ordering is tie-broken by skill id so the
same inputs always produce the same plan.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pathwise.graph.skill_graph import SkillGraph
from pathwise.learner.models import LearnerModel
from pathwise.memory.fsrs import MS_PER_DAY, MemoryState, MemoryStateKind
from pathwise.planning.config import SessionConfig, SessionPlannerConfig, validate_planner_config
from pathwise.transfer.gate import TransferGate, TransferTest, TransferTestResult

MAX_PRIORITY = 100.0

REVIEW_PRIORITY_BASE = 50.0
TRANSFER_TEST_PRIORITY = 75.0
ERROR_FOCUS_PRIORITY_BASE = 60.0
NEW_SKILL_PRIORITY_BASE = 40.0
CONSOLIDATION_PRIORITY_BASE = 30.0

REASON_REVIEW = "Spaced retrieval due"
REASON_ERROR_FOCUS = "Error-focused practice (recent failures)"
REASON_REST = "No immediate learning actions needed"


class ActionType(str, Enum):
    PRACTICE = "practice"
    REVIEW = "review"
    DIAGNOSTIC = "diagnostic"
    TRANSFER_TEST = "transfer_test"
    REST = "rest"


@dataclass(frozen=True)
class SessionAction:
    """One recommended step. Produced on demand, never stored."""

    type: ActionType
    reason: str
    priority: float
    skill_id: str | None = None
    item_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "skill_id": self.skill_id,
            "item_id": self.item_id,
            "reason": self.reason,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class SessionStats:
    """Aggregate view of a planned session."""

    total_actions: int
    by_type: dict[str, int] = field(default_factory=dict)
    unique_skills: int = 0
    average_priority: float = 0.0


def _cap(priority: float) -> float:
    return min(MAX_PRIORITY, priority)


def rest_action() -> SessionAction:
    return SessionAction(type=ActionType.REST, reason=REASON_REST, priority=0.0)


class SessionPlanner:
    """
    Priority planner over learner, memory and transfer state.

    Args:
        config: Planner defaults; per-call session configs override them.
        transfer_gate: Gate deciding which transfer tests are pending.

    Raises:
        ConfigurationError: If the planner configuration is out of range.
    """

    def __init__(
        self,
        config: SessionPlannerConfig | None = None,
        transfer_gate: TransferGate | None = None,
    ):
        self.config = config or SessionPlannerConfig()
        validate_planner_config(self.config)
        self.transfer_gate = transfer_gate or TransferGate()

    # =========================================================================
    # Public API
    # =========================================================================

    def get_next_action(
        self,
        model: LearnerModel,
        graph: SkillGraph,
        memory_states: Sequence[MemoryState],
        config: SessionConfig | None = None,
        *,
        transfer_tests: Sequence[TransferTest] = (),
        transfer_results: Sequence[TransferTestResult] = (),
        now: int | None = None,
    ) -> SessionAction:
        """
        The single highest-tier action for a learner.

        Args:
            model: Learner model
            graph: Skill graph the model was built from
            memory_states: The learner's memory states
            config: Session overrides
            transfer_tests: Transfer test catalog
            transfer_results: The learner's transfer results
            now: Evaluation time; defaults to the model's last update so the
                answer depends only on state

        Returns:
            SessionAction, `rest` when nothing is eligible
        """
        cfg = self.config.merged(config)
        return self._select(
            model,
            graph,
            memory_states,
            cfg,
            transfer_tests,
            transfer_results,
            model.last_updated if now is None else now,
            exclude=frozenset(),
            allow_error_focus=cfg.max_error_focus_items > 0,
        )

    def plan_session(
        self,
        model: LearnerModel,
        graph: SkillGraph,
        memory_states: Sequence[MemoryState],
        config: SessionConfig | None = None,
        *,
        transfer_tests: Sequence[TransferTest] = (),
        transfer_results: Sequence[TransferTestResult] = (),
        now: int | None = None,
    ) -> list[SessionAction]:
        """
        Plan up to `target_items` actions, one per skill.

        Due reviews are queued first, then the tiers are re-evaluated with
        already planned skills excluded until the target is reached or only
        rest remains. Error-focus actions are capped at
        `max_error_focus_items`. The plan is sorted by priority, highest
        first.
        """
        cfg = self.config.merged(config)
        now = model.last_updated if now is None else now

        actions: list[SessionAction] = []
        planned: set[str] = set()
        error_focus_count = 0

        while len(actions) < cfg.target_items:
            if cfg.enforce_spaced_retrieval:
                for state in _due_states(memory_states, now):
                    if len(actions) >= cfg.target_items:
                        break
                    if state.skill_id in planned:
                        continue
                    actions.append(self._review_action(state, now, cfg))
                    planned.add(state.skill_id)

            if len(actions) >= cfg.target_items:
                break

            action = self._select(
                model,
                graph,
                memory_states,
                cfg,
                transfer_tests,
                transfer_results,
                now,
                exclude=frozenset(planned),
                allow_error_focus=error_focus_count < cfg.max_error_focus_items,
            )
            if action.type == ActionType.REST:
                break

            actions.append(action)
            if action.skill_id is not None:
                planned.add(action.skill_id)
            if action.reason == REASON_ERROR_FOCUS:
                error_focus_count += 1

        if not actions:
            return [rest_action()]

        return sorted(actions, key=lambda action: -action.priority)

    def get_session_stats(self, actions: Sequence[SessionAction]) -> SessionStats:
        if not actions:
            return SessionStats(total_actions=0)

        by_type = Counter(action.type.value for action in actions)
        return SessionStats(
            total_actions=len(actions),
            by_type=dict(sorted(by_type.items())),
            unique_skills=len({action.skill_id for action in actions if action.skill_id}),
            average_priority=sum(action.priority for action in actions) / len(actions),
        )

    # =========================================================================
    # Tiers
    # =========================================================================

    def _select(
        self,
        model: LearnerModel,
        graph: SkillGraph,
        memory_states: Sequence[MemoryState],
        cfg: SessionPlannerConfig,
        transfer_tests: Sequence[TransferTest],
        transfer_results: Sequence[TransferTestResult],
        now: int,
        exclude: Collection[str],
        allow_error_focus: bool,
    ) -> SessionAction:
        states = [state for state in memory_states if state.skill_id not in exclude]

        if cfg.enforce_spaced_retrieval:
            due = _due_states(states, now)
            if due:
                return self._review_action(due[0], now, cfg)

        if cfg.require_transfer_tests:
            action = self._transfer_test_action(
                model, graph, cfg, transfer_tests, transfer_results, exclude
            )
            if action is not None:
                return action

        if allow_error_focus:
            action = self._error_focus_action(states, cfg)
            if action is not None:
                return action

        action = self._new_skill_action(model, graph, cfg, exclude)
        if action is not None:
            return action

        action = self._consolidation_action(model, graph, cfg, exclude)
        if action is not None:
            return action

        return rest_action()

    def _review_action(
        self, state: MemoryState, now: int, cfg: SessionPlannerConfig
    ) -> SessionAction:
        overdue_days = (now - state.next_review) / MS_PER_DAY
        return SessionAction(
            type=ActionType.REVIEW,
            skill_id=state.skill_id,
            reason=REASON_REVIEW,
            priority=_cap(REVIEW_PRIORITY_BASE + overdue_days * cfg.overdue_weight),
        )

    def _transfer_test_action(
        self,
        model: LearnerModel,
        graph: SkillGraph,
        cfg: SessionPlannerConfig,
        transfer_tests: Sequence[TransferTest],
        transfer_results: Sequence[TransferTestResult],
        exclude: Collection[str],
    ) -> SessionAction | None:
        if not transfer_tests:
            return None

        for skill_id in graph.get_topological_order():
            if skill_id in exclude:
                continue
            if model.get_p_mastery(skill_id) < cfg.transfer_test_threshold:
                continue
            test = self.transfer_gate.get_next_test(skill_id, transfer_results, transfer_tests)
            if test is not None:
                return SessionAction(
                    type=ActionType.TRANSFER_TEST,
                    skill_id=skill_id,
                    item_id=test.id,
                    reason=f"{test.transfer_type.value} transfer test for mastered skill",
                    priority=TRANSFER_TEST_PRIORITY,
                )
        return None

    def _error_focus_action(
        self, states: Sequence[MemoryState], cfg: SessionPlannerConfig
    ) -> SessionAction | None:
        relearning = sorted(
            (state for state in states if state.state == MemoryStateKind.RELEARNING),
            key=lambda state: (-state.failure_count, state.skill_id),
        )
        if not relearning:
            return None

        target = relearning[0]
        return SessionAction(
            type=ActionType.PRACTICE,
            skill_id=target.skill_id,
            reason=REASON_ERROR_FOCUS,
            priority=_cap(ERROR_FOCUS_PRIORITY_BASE + target.failure_count * cfg.error_weight),
        )

    def _new_skill_action(
        self,
        model: LearnerModel,
        graph: SkillGraph,
        cfg: SessionPlannerConfig,
        exclude: Collection[str],
    ) -> SessionAction | None:
        candidates: list[tuple[int, str]] = []
        for skill_id in graph.get_topological_order():
            if skill_id in exclude:
                continue
            if model.get_p_mastery(skill_id) >= cfg.mastery_threshold:
                continue
            prerequisites = graph.get_all_prerequisites(skill_id)
            if any(model.get_p_mastery(p) < cfg.mastery_threshold for p in prerequisites):
                continue
            candidates.append((len(graph.get_direct_dependents(skill_id)), skill_id))

        if not candidates:
            return None

        leverage, skill_id = min(candidates, key=lambda c: (-c[0], c[1]))
        return SessionAction(
            type=ActionType.PRACTICE,
            skill_id=skill_id,
            reason=f"New skill introduction (leverage: {leverage} dependents)",
            priority=_cap(NEW_SKILL_PRIORITY_BASE + leverage),
        )

    def _consolidation_action(
        self,
        model: LearnerModel,
        graph: SkillGraph,
        cfg: SessionPlannerConfig,
        exclude: Collection[str],
    ) -> SessionAction | None:
        candidates: list[tuple[float, str]] = []
        for skill_id in graph.get_topological_order():
            if skill_id in exclude:
                continue
            p_mastery = model.get_p_mastery(skill_id)
            if not cfg.consolidation_floor <= p_mastery < cfg.mastery_threshold:
                continue
            prerequisites = graph.get_all_prerequisites(skill_id)
            if all(model.get_p_mastery(p) >= cfg.mastery_threshold for p in prerequisites):
                continue
            candidates.append((p_mastery, skill_id))

        if not candidates:
            return None

        p_mastery, skill_id = min(candidates, key=lambda c: (-c[0], c[1]))
        return SessionAction(
            type=ActionType.PRACTICE,
            skill_id=skill_id,
            reason=f"Consolidation practice ({int(p_mastery * 100 + 0.5)}% mastery)",
            priority=_cap(CONSOLIDATION_PRIORITY_BASE + p_mastery * 10),
        )


def _due_states(states: Sequence[MemoryState], now: int) -> list[MemoryState]:
    """Due states, most overdue first, then by skill id."""
    return sorted(
        (state for state in states if state.next_review <= now),
        key=lambda state: (state.next_review, state.skill_id),
    )
