"""
Diagnostic Engine - cold-start assessment.

Selects a bounded set of items that covers the skill graph from the
foundations up, then turns the learner's responses into initial mastery
estimates. Mastering a skill implies its prerequisites were learned, so
high estimates are propagated down the graph.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from loguru import logger
from pydantic import BaseModel, Field, model_validator

from pathwise.graph.skill_graph import SkillGraph

# Secondary skills of an item count at this fraction of a primary response
SECONDARY_WEIGHT = 0.5


@dataclass(frozen=True)
class ItemSkillMapping:
    """Content catalog entry: which skills an item exercises and how hard it is."""

    item_id: str
    primary_skill_id: str
    secondary_skill_ids: tuple[str, ...] = ()
    difficulty: float = 0.5  # 0 (easy) to 1 (hard)

    def __post_init__(self) -> None:
        if not isinstance(self.secondary_skill_ids, tuple):
            object.__setattr__(self, "secondary_skill_ids", tuple(self.secondary_skill_ids))


@dataclass(frozen=True)
class DiagnosticResponse:
    item_id: str
    correct: bool


@dataclass(frozen=True)
class DiagnosticSummary:
    """Skills bucketed by estimated mastery."""

    total_skills: int
    mastered_skills: tuple[str, ...] = field(default_factory=tuple)
    learning_skills: tuple[str, ...] = field(default_factory=tuple)
    not_started_skills: tuple[str, ...] = field(default_factory=tuple)
    average_estimate: float = 0.0

    @property
    def mastered_count(self) -> int:
        return len(self.mastered_skills)

    @property
    def learning_count(self) -> int:
        return len(self.learning_skills)

    @property
    def not_started_count(self) -> int:
        return len(self.not_started_skills)


class DiagnosticConfig(BaseModel):
    """Diagnostic selection and scoring parameters."""

    min_items_per_skill: int = Field(default=2, ge=1)
    max_items_per_skill: int = Field(default=5, ge=1)
    mastery_threshold: float = Field(default=0.7, gt=0.0, le=1.0)
    difficulty_weight: float = Field(default=0.3, ge=0.0)
    prerequisite_boost_factor: float = Field(default=0.9, ge=0.0, le=1.0)
    default_prior: float = Field(default=0.3, ge=0.0, le=1.0)
    min_estimate: float = Field(default=0.05, ge=0.0, le=1.0)
    max_estimate: float = Field(default=0.95, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_ranges(self) -> DiagnosticConfig:
        if self.min_items_per_skill > self.max_items_per_skill:
            raise ValueError("min_items_per_skill cannot exceed max_items_per_skill")
        if self.min_estimate > self.max_estimate:
            raise ValueError("min_estimate cannot exceed max_estimate")
        return self


@dataclass
class _SkillTally:
    attempted: float = 0.0
    correct: float = 0.0
    difficulty: float = 0.0

    def add(self, correct: bool, difficulty: float, weight: float) -> None:
        self.attempted += weight
        self.correct += weight if correct else 0.0
        self.difficulty += weight * difficulty


def select_spaced_indices(total: int, count: int) -> list[int]:
    """`count` indices spread evenly over ``range(total)``, ends included."""
    if count >= total:
        return list(range(total))
    if count <= 0:
        return []
    step = (total - 1) / (count - 1 or 1)
    # Round half up so the spread does not depend on banker's rounding
    return [math.floor(i * step + 0.5) for i in range(count)]


class DiagnosticEngine:
    """Selects diagnostic items and scores the responses."""

    def __init__(self, config: DiagnosticConfig | None = None):
        self.config = config or DiagnosticConfig()

    def generate_diagnostic(
        self,
        graph: SkillGraph,
        mappings: Sequence[ItemSkillMapping],
        max_items: int,
    ) -> list[str]:
        """
        Choose up to `max_items` item ids.

        Skills are visited in topological order so foundations are tested
        before their dependents. Each skill contributes items spread across
        its difficulty range.
        """
        skill_order = graph.get_topological_order()

        items_by_skill: dict[str, list[ItemSkillMapping]] = {}
        for mapping in mappings:
            items_by_skill.setdefault(mapping.primary_skill_id, []).append(mapping)

        per_skill = max(
            self.config.min_items_per_skill,
            min(self.config.max_items_per_skill, max_items // max(1, len(skill_order))),
        )

        selected: list[str] = []
        seen: set[str] = set()
        for skill_id in skill_order:
            if len(selected) >= max_items:
                break
            skill_items = sorted(
                items_by_skill.get(skill_id, ()),
                key=lambda mapping: (mapping.difficulty, mapping.item_id),
            )
            if not skill_items:
                continue

            count = min(per_skill, max_items - len(selected), len(skill_items))
            for index in select_spaced_indices(len(skill_items), count):
                item_id = skill_items[index].item_id
                if item_id not in seen:
                    seen.add(item_id)
                    selected.append(item_id)

        logger.debug(f"Selected {len(selected)} diagnostic items over {len(skill_order)} skills")
        return selected

    def analyze_results(
        self,
        graph: SkillGraph,
        mappings: Sequence[ItemSkillMapping],
        responses: Iterable[DiagnosticResponse],
    ) -> dict[str, float]:
        """
        Estimate pMastery for every skill in the graph.

        Returns:
            Estimates keyed by skill id, in sorted order. Skills without any
            response get the default prior unless a mastered dependent
            boosts them.
        """
        lookup = {mapping.item_id: mapping for mapping in mappings}
        tallies: dict[str, _SkillTally] = {}

        for response in responses:
            mapping = lookup.get(response.item_id)
            if mapping is None:
                logger.debug(f"Ignoring response to unknown item {response.item_id}")
                continue
            tallies.setdefault(mapping.primary_skill_id, _SkillTally()).add(
                response.correct, mapping.difficulty, 1.0
            )
            for secondary_id in mapping.secondary_skill_ids:
                tallies.setdefault(secondary_id, _SkillTally()).add(
                    response.correct, mapping.difficulty, SECONDARY_WEIGHT
                )

        estimates: dict[str, float] = {}
        for skill_id, tally in tallies.items():
            if skill_id not in graph:
                continue
            if tally.attempted <= 0:
                estimates[skill_id] = self.config.default_prior
                continue
            accuracy = tally.correct / tally.attempted
            avg_difficulty = tally.difficulty / tally.attempted
            estimates[skill_id] = self._clamp(
                accuracy + (avg_difficulty - 0.5) * self.config.difficulty_weight
            )

        return self._propagate(graph, estimates)

    def _clamp(self, value: float) -> float:
        return max(self.config.min_estimate, min(self.config.max_estimate, value))

    def _propagate(self, graph: SkillGraph, estimates: dict[str, float]) -> dict[str, float]:
        """Boost prerequisites of mastered skills, dependents first."""
        result = dict(estimates)

        for skill_id in reversed(graph.get_topological_order()):
            estimate = result.get(skill_id)
            if estimate is None or estimate < self.config.mastery_threshold:
                continue
            boosted = estimate * self.config.prerequisite_boost_factor
            for prereq_id in graph.get_all_prerequisites(skill_id):
                current = result.get(prereq_id, self.config.default_prior)
                result[prereq_id] = self._clamp(max(current, boosted))

        for skill_id in graph.skill_ids:
            result.setdefault(skill_id, self.config.default_prior)

        return {skill_id: result[skill_id] for skill_id in sorted(result)}

    def get_summary(self, graph: SkillGraph, estimates: dict[str, float]) -> DiagnosticSummary:
        mastered: list[str] = []
        learning: list[str] = []
        not_started: list[str] = []

        skill_order = graph.get_topological_order()
        for skill_id in skill_order:
            estimate = estimates.get(skill_id, self.config.default_prior)
            if estimate >= self.config.mastery_threshold:
                mastered.append(skill_id)
            elif estimate >= self.config.default_prior:
                learning.append(skill_id)
            else:
                not_started.append(skill_id)

        average = (
            sum(estimates.get(skill_id, self.config.default_prior) for skill_id in skill_order)
            / len(skill_order)
            if skill_order
            else 0.0
        )
        return DiagnosticSummary(
            total_skills=len(skill_order),
            mastered_skills=tuple(mastered),
            learning_skills=tuple(learning),
            not_started_skills=tuple(not_started),
            average_estimate=average,
        )
