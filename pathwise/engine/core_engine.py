"""
Learning Engine - event-sourced orchestration layer.

Routes events to the learner model (BKT) and memory scheduler (FSRS), owns
all per-learner state and the append-only event log, and answers planning
queries through the session planner.

Determinism contract: two engines built with the same graph, configuration,
clock and id generator that replay the same ordered event list export
byte-identical state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from pathwise.clock import (
    Clock,
    IdGenerator,
    deterministic_id_generator,
    fixed_clock,
    system_clock,
    uuid_id_generator,
)
from pathwise.diagnostic.engine import DiagnosticEngine, DiagnosticResponse, ItemSkillMapping
from pathwise.engine.config import EngineConfig
from pathwise.errors import SkillGraphValidationError, UnknownLearnerError
from pathwise.events import (
    DiagnosticEvent,
    EventFactory,
    LearningEvent,
    PracticeEvent,
    SessionEndEvent,
    SessionStartEvent,
    TransferTestEvent,
    parse_event,
)
from pathwise.graph.skill_graph import SkillGraph
from pathwise.learner.bkt import BKTEngine
from pathwise.learner.models import LearnerModel, LearnerModelRecord, MasteryLevel
from pathwise.memory.fsrs import FSRSScheduler, MemoryState, Rating
from pathwise.persistence.snapshot import SCHEMA_VERSION, EngineSnapshot, parse_snapshot
from pathwise.persistence.state_store import StateStore
from pathwise.planning.config import SessionConfig
from pathwise.planning.session_planner import SessionAction, SessionPlanner
from pathwise.transfer.gate import TransferGate, TransferTest, TransferTestResult


@dataclass(frozen=True)
class LearnerProgress:
    """Mastery counts for one learner across the whole graph."""

    learner_id: str
    total_skills: int
    mastered: int
    learning: int
    not_started: int
    average_mastery: float
    total_events: int


class LearningEngine:
    """
    Orchestrates learner, memory, diagnostic, transfer and planning components.

    Args:
        graph: Skill graph; rejected if invalid
        config: Component parameters
        clock: Epoch-millisecond clock
        id_generator: Event id source

    Raises:
        SkillGraphValidationError: If the graph is invalid.
        ConfigurationError: If component parameters are invalid.
    """

    def __init__(
        self,
        graph: SkillGraph,
        config: EngineConfig | None = None,
        *,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ):
        validation = graph.validate()
        if not validation.valid:
            logger.error(f"Refusing to build engine on invalid skill graph: {validation.errors}")
            raise SkillGraphValidationError(list(validation.errors))

        self.graph = graph
        self.config = config or EngineConfig()
        self.clock = clock or system_clock
        self.id_generator = id_generator or uuid_id_generator

        self.learner_engine = BKTEngine(self.config.bkt, self.clock)
        self.scheduler = FSRSScheduler(self.config.fsrs, self.clock)
        self.diagnostic_engine = DiagnosticEngine(self.config.diagnostic)
        self.transfer_gate = TransferGate(self.config.transfer)
        self.planner = SessionPlanner(self.config.planner, self.transfer_gate)

        # Per-learner state, rebuilt from the event log on replay
        self._learner_models: dict[str, LearnerModel] = {}
        self._memory_states: dict[str, list[MemoryState]] = {}
        self._transfer_results: list[TransferTestResult] = []
        self._event_log: list[LearningEvent] = []

        # Static catalogs supplied by the caller
        self._transfer_tests: list[TransferTest] = []
        self._item_mappings: list[ItemSkillMapping] = []

        logger.debug(f"LearningEngine ready with {len(graph)} skills")

    # =========================================================================
    # Event Intake
    # =========================================================================

    def process_event(self, event: LearningEvent | Mapping[str, Any]) -> None:
        """
        Append an event to the log and apply it.

        Mappings are parsed into event models first; an invalid payload
        raises pydantic's ValidationError before anything is recorded.
        """
        if isinstance(event, Mapping):
            event = parse_event(event)

        self._event_log.append(event)
        logger.debug(f"Processing {event.type} event {event.id} for {event.learner_id}")

        if isinstance(event, PracticeEvent):
            self._process_practice(event)
        elif isinstance(event, DiagnosticEvent):
            self._process_diagnostic(event)
        elif isinstance(event, TransferTestEvent):
            self._process_transfer_test(event)
        elif isinstance(event, (SessionStartEvent, SessionEndEvent)):
            # Session boundaries are recorded in the log only
            pass

    def process_events(self, events: Iterable[LearningEvent | Mapping[str, Any]]) -> int:
        count = 0
        for event in events:
            self.process_event(event)
            count += 1
        return count

    def _stored_or_new_model(self, learner_id: str, timestamp: int) -> LearnerModel:
        model = self._learner_models.get(learner_id)
        if model is None:
            logger.debug(f"Creating learner model for {learner_id}")
            model = self.learner_engine.create_model(learner_id, self.graph, now=timestamp)
        return model

    def _process_practice(self, event: PracticeEvent) -> None:
        if event.skill_id not in self.graph:
            logger.warning(f"Practice event {event.id} references unknown skill {event.skill_id}")

        model = self._stored_or_new_model(event.learner_id, event.timestamp)
        self._learner_models[event.learner_id] = self.learner_engine.update_model(model, event)

        states = self._memory_states.setdefault(event.learner_id, [])
        index = next(
            (i for i, state in enumerate(states) if state.skill_id == event.skill_id), None
        )
        if index is None:
            logger.debug(f"Creating memory state for {event.learner_id}/{event.skill_id}")
            current = self.scheduler.create_state(event.skill_id, now=event.timestamp)
        else:
            current = states[index]

        updated = self.scheduler.schedule_review(
            current, event.correct, self._rating_for(event), now=event.timestamp
        )
        if index is None:
            states.append(updated)
        else:
            states[index] = updated

    def _rating_for(self, event: PracticeEvent) -> Rating:
        if self.config.fsrs.grade_by_response_time:
            return self.scheduler.grade_response(event.correct, event.response_time_ms)
        return Rating.GOOD if event.correct else Rating.AGAIN

    def _process_diagnostic(self, event: DiagnosticEvent) -> None:
        estimates = {result.skill_id: result.score for result in event.results}
        model = self._stored_or_new_model(event.learner_id, event.timestamp)
        self._learner_models[event.learner_id] = self.learner_engine.initialize_from_diagnostic(
            model, estimates, event.timestamp
        )

    def _process_transfer_test(self, event: TransferTestEvent) -> None:
        self._transfer_results.append(
            TransferTestResult(
                test_id=event.test_id,
                learner_id=event.learner_id,
                skill_id=event.skill_id,
                transfer_type=event.transfer_type,
                passed=event.passed,
                score=event.score,
                timestamp=event.timestamp,
            )
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_learner_model(self, learner_id: str) -> LearnerModel | None:
        return self._learner_models.get(learner_id)

    def require_learner_model(self, learner_id: str) -> LearnerModel:
        """Like `get_learner_model` but raises for learners without state."""
        model = self._learner_models.get(learner_id)
        if model is None:
            raise UnknownLearnerError(learner_id)
        return model

    def _model_for_query(self, learner_id: str) -> LearnerModel:
        """Stored model, or an unsaved prior model timestamped 0 for unknown learners."""
        model = self._learner_models.get(learner_id)
        if model is None:
            model = self.learner_engine.create_model(learner_id, self.graph, now=0)
        return model

    def get_learner_ids(self) -> list[str]:
        return sorted(set(self._learner_models) | set(self._memory_states))

    def get_memory_states(self, learner_id: str) -> list[MemoryState]:
        return list(self._memory_states.get(learner_id, ()))

    def get_transfer_results(self, learner_id: str | None = None) -> list[TransferTestResult]:
        if learner_id is None:
            return list(self._transfer_results)
        return [result for result in self._transfer_results if result.learner_id == learner_id]

    def get_event_log(self) -> list[LearningEvent]:
        return list(self._event_log)

    def get_next_action(
        self,
        learner_id: str,
        session_config: SessionConfig | None = None,
        now: int | None = None,
    ) -> SessionAction:
        """Single best next action; `now` defaults to the learner's last update."""
        return self.planner.get_next_action(
            self._model_for_query(learner_id),
            self.graph,
            self.get_memory_states(learner_id),
            session_config,
            transfer_tests=self._transfer_tests,
            transfer_results=self.get_transfer_results(learner_id),
            now=now,
        )

    def plan_session(
        self,
        learner_id: str,
        session_config: SessionConfig | None = None,
        now: int | None = None,
    ) -> list[SessionAction]:
        return self.planner.plan_session(
            self._model_for_query(learner_id),
            self.graph,
            self.get_memory_states(learner_id),
            session_config,
            transfer_tests=self._transfer_tests,
            transfer_results=self.get_transfer_results(learner_id),
            now=now,
        )

    def get_learner_progress(self, learner_id: str) -> LearnerProgress:
        model = self._model_for_query(learner_id)
        levels = {level: 0 for level in MasteryLevel}
        total_mastery = 0.0
        skill_ids = self.graph.skill_ids

        for skill_id in skill_ids:
            p_mastery = model.get_p_mastery(skill_id)
            levels[MasteryLevel.from_score(p_mastery)] += 1
            total_mastery += p_mastery

        return LearnerProgress(
            learner_id=learner_id,
            total_skills=len(skill_ids),
            mastered=levels[MasteryLevel.MASTERED],
            learning=levels[MasteryLevel.LEARNING],
            not_started=levels[MasteryLevel.NOT_STARTED],
            average_mastery=total_mastery / len(skill_ids) if skill_ids else 0.0,
            total_events=model.total_events,
        )

    # =========================================================================
    # Diagnostics and Transfer
    # =========================================================================

    def register_item_mappings(self, mappings: Iterable[ItemSkillMapping]) -> None:
        self._item_mappings.extend(mappings)

    def register_transfer_tests(self, tests: Iterable[TransferTest]) -> None:
        self._transfer_tests.extend(tests)

    def generate_diagnostic(self, max_items: int = 20) -> list[str]:
        """Diagnostic item ids drawn from the registered item mappings."""
        return self.diagnostic_engine.generate_diagnostic(
            self.graph, self._item_mappings, max_items
        )

    def analyze_diagnostic(self, responses: Iterable[DiagnosticResponse]) -> dict[str, float]:
        """Mastery estimates for the registered items; feed them back as a diagnostic event."""
        return self.diagnostic_engine.analyze_results(self.graph, self._item_mappings, responses)

    def is_skill_unlocked(self, skill_id: str, learner_id: str | None = None) -> bool:
        """Transfer gate state; results of all learners count when `learner_id` is omitted."""
        return self.transfer_gate.is_skill_unlocked(
            skill_id, self.get_transfer_results(learner_id), self._transfer_tests
        )

    def get_pending_transfer_tests(self, learner_id: str, skill_id: str) -> list[TransferTest]:
        return self.transfer_gate.get_pending_tests(
            skill_id, self.get_transfer_results(learner_id), self._transfer_tests
        )

    # =========================================================================
    # Export / Import / Replay
    # =========================================================================

    def _snapshot(self, learner_ids: set[str] | None = None) -> EngineSnapshot:
        def included(learner_id: str) -> bool:
            return learner_ids is None or learner_id in learner_ids

        return EngineSnapshot(
            version=SCHEMA_VERSION,
            timestamp=self.clock(),
            learner_models=[
                LearnerModelRecord.from_model(self._learner_models[learner_id])
                for learner_id in sorted(self._learner_models)
                if included(learner_id)
            ],
            memory_states=[
                (learner_id, list(self._memory_states[learner_id]))
                for learner_id in sorted(self._memory_states)
                if included(learner_id)
            ],
            transfer_results=[
                result for result in self._transfer_results if included(result.learner_id)
            ],
            event_log=[event for event in self._event_log if included(event.learner_id)],
        )

    def export_state(self) -> str:
        """Serialize all learner state and the event log as versioned JSON."""
        data = self._snapshot().to_json()
        logger.info(
            f"Exported state: {len(self._learner_models)} learners, "
            f"{len(self._event_log)} events"
        )
        return data

    def import_state(self, data: str | bytes) -> None:
        """
        Replace all learner state with an export.

        Raises:
            StateImportError: If the data is corrupt or from an unsupported
                version. Existing state is left untouched in that case.
        """
        snapshot = parse_snapshot(data)

        self._learner_models = {
            record.learner_id: record.to_model() for record in snapshot.learner_models
        }
        self._memory_states = {
            learner_id: list(states) for learner_id, states in snapshot.memory_states
        }
        self._transfer_results = list(snapshot.transfer_results)
        self._event_log = list(snapshot.event_log)
        logger.info(
            f"Imported state v{snapshot.version}: {len(self._learner_models)} learners, "
            f"{len(self._event_log)} events"
        )

    def reset(self) -> None:
        """Drop all learner state and the event log; catalogs are kept."""
        self._learner_models = {}
        self._memory_states = {}
        self._transfer_results = []
        self._event_log = []

    def replay_events(self, events: Iterable[LearningEvent | Mapping[str, Any]]) -> None:
        """Rebuild state from scratch by re-applying `events` in order."""
        self.reset()
        count = self.process_events(events)
        logger.info(f"Replayed {count} events for {len(self._learner_models)} learners")

    def save_learner(self, store: StateStore, learner_id: str) -> bool:
        """Persist one learner's state through a caller-supplied store."""
        return store.save(learner_id, self._snapshot({learner_id}).to_json())

    def load_learner(self, store: StateStore, learner_id: str) -> bool:
        """
        Restore one learner's state from a store.

        Returns:
            False when nothing is stored. Corrupt or foreign-version data
            raises StateImportError.
        """
        data = store.load(learner_id)
        if data is None:
            return False

        snapshot = parse_snapshot(data)

        self._learner_models.pop(learner_id, None)
        self._memory_states.pop(learner_id, None)
        for record in snapshot.learner_models:
            if record.learner_id == learner_id:
                self._learner_models[learner_id] = record.to_model()
        for stored_id, states in snapshot.memory_states:
            if stored_id == learner_id:
                self._memory_states[learner_id] = list(states)

        self._transfer_results = [
            result for result in self._transfer_results if result.learner_id != learner_id
        ] + [result for result in snapshot.transfer_results if result.learner_id == learner_id]
        self._event_log = [
            event for event in self._event_log if event.learner_id != learner_id
        ] + [event for event in snapshot.event_log if event.learner_id == learner_id]

        logger.info(f"Loaded state for {learner_id}")
        return True

    # =========================================================================
    # Time and Identity
    # =========================================================================

    def get_current_time(self) -> int:
        return self.clock()

    def generate_event_id(self) -> str:
        return self.id_generator()

    def event_factory(self) -> EventFactory:
        """Factory sharing this engine's clock and id generator."""
        return EventFactory(clock=self.clock, id_generator=self.id_generator)


def create_learning_engine(
    graph: SkillGraph,
    config: EngineConfig | None = None,
    clock: Clock | None = None,
    id_generator: IdGenerator | None = None,
) -> LearningEngine:
    return LearningEngine(graph, config, clock=clock, id_generator=id_generator)


def create_deterministic_engine(
    graph: SkillGraph,
    config: EngineConfig | None = None,
    start_time: int = 0,
    step_ms: int = 0,
) -> LearningEngine:
    """Engine with a fixed clock and sequential ids (``evt-000001``...) for tests and replay."""
    return LearningEngine(
        graph,
        config,
        clock=fixed_clock(start_time, step_ms),
        id_generator=deterministic_id_generator("evt", 6),
    )


def replay_into_new_engine(
    graph: SkillGraph,
    events: Sequence[LearningEvent],
    config: EngineConfig | None = None,
) -> LearningEngine:
    """Fresh deterministic engine with `events` replayed."""
    engine = create_deterministic_engine(graph, config)
    engine.replay_events(events)
    return engine
