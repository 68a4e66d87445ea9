"""
Skill graph loading and export.

Skill graphs are usually authored as JSON documents of the form
``{"skills": [{"id": ..., "name": ..., "prerequisites": [...]}, ...]}``.
The document is checked with pydantic before the graph itself is validated.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from pathwise.graph.skill_graph import Skill, SkillGraph, build_skill_graph


class SkillDefinition(BaseModel):
    """One skill entry in a graph document."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str | None = None
    prerequisites: list[str] = Field(default_factory=list)
    description: str | None = None
    category: str | None = None
    difficulty: float | None = Field(default=None, ge=0.0, le=1.0)

    def to_skill(self) -> Skill:
        return Skill(
            id=self.id,
            name=self.name or self.id,
            prerequisites=tuple(self.prerequisites),
            description=self.description,
            category=self.category,
            difficulty=self.difficulty,
        )


class SkillGraphDocument(BaseModel):
    """Top-level skill graph document."""

    model_config = ConfigDict(extra="ignore")

    skills: list[SkillDefinition]


def load_skill_graph(data: dict[str, Any]) -> SkillGraph:
    """
    Build a validated skill graph from a parsed document.

    Raises:
        pydantic.ValidationError: If the document shape is wrong.
        SkillGraphValidationError: If the graph itself is invalid.
    """
    document = SkillGraphDocument.model_validate(data)
    return build_skill_graph(definition.to_skill() for definition in document.skills)


def load_skill_graph_file(path: str | Path) -> SkillGraph:
    """Read a JSON skill graph document from disk."""
    path = Path(path)
    logger.debug(f"Loading skill graph from {path}")
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    return load_skill_graph(data)


def export_skill_graph(graph: SkillGraph) -> dict[str, Any]:
    """Inverse of `load_skill_graph`; skills are emitted in sorted id order."""
    return {"skills": [graph.skills[skill_id].to_dict() for skill_id in graph.skill_ids]}
