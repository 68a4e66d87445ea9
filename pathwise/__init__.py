"""
pathwise - deterministic adaptive-learning decision engine.

Feed learning events in, ask for the next best action:

    graph = build_skill_graph([Skill("a", "A"), Skill("b", "B", ("a",))])
    engine = create_deterministic_engine(graph)
    engine.process_event(factory.practice("learner-1", "s1", "a", "item-1", True))
    engine.get_next_action("learner-1")
"""

from pathwise.clock import deterministic_id_generator, fixed_clock, system_clock
from pathwise.engine import (
    EngineConfig,
    LearnerProgress,
    LearningEngine,
    create_deterministic_engine,
    create_learning_engine,
    get_learner_metrics,
)
from pathwise.errors import (
    ConfigurationError,
    PathwiseError,
    SkillGraphValidationError,
    StateImportError,
    UnknownLearnerError,
    UnsupportedStateVersionError,
)
from pathwise.events import EventFactory, LearningEvent, parse_event, parse_events
from pathwise.graph import Skill, SkillGraph, build_skill_graph, load_skill_graph
from pathwise.planning import ActionType, SessionAction, SessionConfig
from pathwise.persistence import InMemoryStateStore, StateStore

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "deterministic_id_generator",
    "fixed_clock",
    "system_clock",
    "EngineConfig",
    "LearnerProgress",
    "LearningEngine",
    "create_deterministic_engine",
    "create_learning_engine",
    "get_learner_metrics",
    "ConfigurationError",
    "PathwiseError",
    "SkillGraphValidationError",
    "StateImportError",
    "UnknownLearnerError",
    "UnsupportedStateVersionError",
    "EventFactory",
    "LearningEvent",
    "parse_event",
    "parse_events",
    "Skill",
    "SkillGraph",
    "build_skill_graph",
    "load_skill_graph",
    "ActionType",
    "SessionAction",
    "SessionConfig",
    "InMemoryStateStore",
    "StateStore",
]
