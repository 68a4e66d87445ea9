"""
Learning events - immutable facts fed to the engine.

Every event carries an id, learner, session and timestamp and is tagged by
its ``type`` field, so a stored event log can be parsed back into the right
model. Events are the only input to replay; anything not captured here is
not part of the learner's state.

Construction goes through `EventFactory`, which is given a clock and an id
generator so tests and replays produce identical events.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from pathwise.clock import Clock, IdGenerator, system_clock, uuid_id_generator
from pathwise.planning.config import SessionConfig
from pathwise.transfer.gate import TransferType


# =============================================================================
# Event Models
# =============================================================================


class BaseEvent(BaseModel):
    """Fields shared by every event."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    learner_id: str = Field(min_length=1)
    session_id: str
    timestamp: int = Field(ge=0)  # epoch milliseconds


class PracticeEvent(BaseEvent):
    """A learner answered one practice item."""

    type: Literal["practice"] = "practice"
    skill_id: str = Field(min_length=1)
    item_id: str
    correct: bool
    response_time_ms: int = Field(ge=0)
    confidence: int | None = Field(default=None, ge=1, le=5)  # Self-reported 1-5
    error_category: str | None = None


class DiagnosticResult(BaseModel):
    """Per-skill outcome of a diagnostic."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    skill_id: str = Field(min_length=1)
    score: float = Field(ge=0.0, le=1.0)
    items_attempted: int = Field(default=0, ge=0)
    items_correct: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_counts(self) -> DiagnosticResult:
        if self.items_correct > self.items_attempted:
            raise ValueError("items_correct cannot exceed items_attempted")
        return self


class DiagnosticEvent(BaseEvent):
    """Initial mastery estimates from a completed diagnostic."""

    type: Literal["diagnostic"] = "diagnostic"
    skills_assessed: tuple[str, ...] = ()
    results: tuple[DiagnosticResult, ...] = ()


class TransferTestEvent(BaseEvent):
    """A learner took a transfer test."""

    type: Literal["transfer_test"] = "transfer_test"
    test_id: str = Field(min_length=1)
    skill_id: str = Field(min_length=1)
    transfer_type: TransferType
    score: float = Field(ge=0.0, le=1.0)
    passed: bool


class SessionStartEvent(BaseEvent):
    type: Literal["session_start"] = "session_start"
    config: SessionConfig | None = None


class SessionSummary(BaseModel):
    """What happened during a session, reported by the caller."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    duration_ms: int = Field(default=0, ge=0)
    items_completed: int = Field(default=0, ge=0)
    accuracy: float = Field(default=0.0, ge=0.0, le=1.0)
    skills_practiced: tuple[str, ...] = ()


class SessionEndEvent(BaseEvent):
    type: Literal["session_end"] = "session_end"
    summary: SessionSummary = Field(default_factory=SessionSummary)


LearningEvent = Annotated[
    Union[PracticeEvent, DiagnosticEvent, TransferTestEvent, SessionStartEvent, SessionEndEvent],
    Field(discriminator="type"),
]

EVENT_ADAPTER: TypeAdapter[LearningEvent] = TypeAdapter(LearningEvent)
EVENT_LIST_ADAPTER: TypeAdapter[list[LearningEvent]] = TypeAdapter(list[LearningEvent])

EVENT_TYPES = ("practice", "diagnostic", "transfer_test", "session_start", "session_end")


def parse_event(data: Mapping[str, Any] | str | bytes) -> LearningEvent:
    """
    Parse one event from a mapping or JSON text.

    Raises:
        pydantic.ValidationError: On unknown type or invalid fields.
    """
    if isinstance(data, (str, bytes)):
        return EVENT_ADAPTER.validate_json(data)
    return EVENT_ADAPTER.validate_python(data)


def parse_events(data: Sequence[Mapping[str, Any]] | str | bytes) -> list[LearningEvent]:
    """Parse an event log from a list of mappings or a JSON array."""
    if isinstance(data, (str, bytes)):
        return EVENT_LIST_ADAPTER.validate_json(data)
    return EVENT_LIST_ADAPTER.validate_python(list(data))


def dump_events(events: Iterable[LearningEvent]) -> list[dict[str, Any]]:
    """JSON-compatible form of an event log."""
    return EVENT_LIST_ADAPTER.dump_python(list(events), mode="json")


def validate_event(data: Mapping[str, Any]) -> list[str]:
    """
    Check an event payload without raising.

    Returns:
        Human-readable error messages; empty when the payload is valid.
    """
    try:
        EVENT_ADAPTER.validate_python(data)
    except ValidationError as e:
        messages = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            messages.append(f"{location}: {error['msg']}" if location else error["msg"])
        return messages
    return []


# =============================================================================
# Event Factory
# =============================================================================


class EventFactory:
    """
    Builds events with injected time and identity.

    Example:
        factory = EventFactory(clock=fixed_clock(0, 1000),
                               id_generator=deterministic_id_generator())
        event = factory.practice("learner-1", "session-1", "skill-a", "item-1",
                                 correct=True, response_time_ms=4200)
    """

    def __init__(
        self,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
    ):
        self.clock = clock or system_clock
        self.id_generator = id_generator or uuid_id_generator

    def _base(self, learner_id: str, session_id: str, timestamp: int | None) -> dict[str, Any]:
        return {
            "id": self.id_generator(),
            "learner_id": learner_id,
            "session_id": session_id,
            "timestamp": self.clock() if timestamp is None else timestamp,
        }

    def practice(
        self,
        learner_id: str,
        session_id: str,
        skill_id: str,
        item_id: str,
        correct: bool,
        response_time_ms: int = 0,
        confidence: int | None = None,
        error_category: str | None = None,
        timestamp: int | None = None,
    ) -> PracticeEvent:
        return PracticeEvent(
            **self._base(learner_id, session_id, timestamp),
            skill_id=skill_id,
            item_id=item_id,
            correct=correct,
            response_time_ms=response_time_ms,
            confidence=confidence,
            error_category=error_category,
        )

    def diagnostic(
        self,
        learner_id: str,
        session_id: str,
        results: Iterable[DiagnosticResult],
        timestamp: int | None = None,
    ) -> DiagnosticEvent:
        results = tuple(results)
        return DiagnosticEvent(
            **self._base(learner_id, session_id, timestamp),
            skills_assessed=tuple(result.skill_id for result in results),
            results=results,
        )

    def transfer_test(
        self,
        learner_id: str,
        session_id: str,
        test_id: str,
        skill_id: str,
        transfer_type: TransferType | str,
        score: float,
        passed: bool,
        timestamp: int | None = None,
    ) -> TransferTestEvent:
        return TransferTestEvent(
            **self._base(learner_id, session_id, timestamp),
            test_id=test_id,
            skill_id=skill_id,
            transfer_type=TransferType(transfer_type),
            score=score,
            passed=passed,
        )

    def session_start(
        self,
        learner_id: str,
        session_id: str,
        config: SessionConfig | None = None,
        timestamp: int | None = None,
    ) -> SessionStartEvent:
        return SessionStartEvent(**self._base(learner_id, session_id, timestamp), config=config)

    def session_end(
        self,
        learner_id: str,
        session_id: str,
        summary: SessionSummary | None = None,
        timestamp: int | None = None,
    ) -> SessionEndEvent:
        return SessionEndEvent(
            **self._base(learner_id, session_id, timestamp),
            summary=summary or SessionSummary(),
        )
