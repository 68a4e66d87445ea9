"""Skill graph: prerequisite DAG, validation and traversal."""

from pathwise.graph.loader import (
    SkillDefinition,
    SkillGraphDocument,
    export_skill_graph,
    load_skill_graph,
    load_skill_graph_file,
)
from pathwise.graph.skill_graph import (
    Skill,
    SkillGraph,
    SkillGraphError,
    SkillGraphErrorKind,
    ValidationResult,
    build_skill_graph,
)

__all__ = [
    "Skill",
    "SkillGraph",
    "SkillGraphError",
    "SkillGraphErrorKind",
    "ValidationResult",
    "build_skill_graph",
    "SkillDefinition",
    "SkillGraphDocument",
    "load_skill_graph",
    "load_skill_graph_file",
    "export_skill_graph",
]
