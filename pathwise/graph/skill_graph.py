"""
Skill Graph - prerequisite DAG over the skills of one learning domain.

The graph is built once from a skill list and is read-only afterwards.
Validation reports every problem it finds instead of stopping at the first
one; `build_skill_graph` turns a failed validation into an exception so an
invalid graph never reaches an engine.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from pathwise.errors import SkillGraphValidationError


class SkillGraphErrorKind(str, Enum):
    """Kinds of skill graph validation failure."""

    CYCLE_DETECTED = "CYCLE_DETECTED"
    MISSING_PREREQUISITE = "MISSING_PREREQUISITE"
    DUPLICATE_SKILL = "DUPLICATE_SKILL"


@dataclass(frozen=True)
class Skill:
    """A single learnable skill and the skills it depends on."""

    id: str
    name: str
    prerequisites: tuple[str, ...] = ()
    description: str | None = None
    category: str | None = None
    difficulty: float | None = None

    def __post_init__(self) -> None:
        # Accept any iterable for convenience; store as a tuple
        if not isinstance(self.prerequisites, tuple):
            object.__setattr__(self, "prerequisites", tuple(self.prerequisites))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "prerequisites": list(self.prerequisites),
        }
        if self.description is not None:
            data["description"] = self.description
        if self.category is not None:
            data["category"] = self.category
        if self.difficulty is not None:
            data["difficulty"] = self.difficulty
        return data


@dataclass(frozen=True)
class SkillGraphError:
    """One validation failure and the skills involved."""

    kind: SkillGraphErrorKind
    skill_ids: tuple[str, ...]
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of `SkillGraph.validate`."""

    valid: bool
    errors: tuple[SkillGraphError, ...] = field(default_factory=tuple)


class SkillGraph:
    """
    Directed acyclic graph of skills linked by prerequisite edges.

    Duplicate ids keep their first definition; the duplicates are remembered
    so `validate` can report them.
    """

    def __init__(self, skills: Iterable[Skill]):
        self._skills: dict[str, Skill] = {}
        self._duplicates: list[str] = []

        for skill in skills:
            if skill.id in self._skills:
                self._duplicates.append(skill.id)
                continue
            self._skills[skill.id] = skill

        self._direct_dependents: dict[str, list[str]] = {skill_id: [] for skill_id in self._skills}
        for skill in self._skills.values():
            for prereq_id in skill.prerequisites:
                if prereq_id in self._direct_dependents:
                    self._direct_dependents[prereq_id].append(skill.id)
        for dependents in self._direct_dependents.values():
            dependents.sort()

        self._topological_order: tuple[str, ...] | None = None

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def skills(self) -> Mapping[str, Skill]:
        return self._skills

    @property
    def skill_ids(self) -> list[str]:
        """Skill ids, sorted."""
        return sorted(self._skills)

    def get_skill(self, skill_id: str) -> Skill | None:
        return self._skills.get(skill_id)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def __len__(self) -> int:
        return len(self._skills)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self) -> ValidationResult:
        """
        Check the graph for duplicate ids, dangling prerequisites and cycles.

        Returns:
            ValidationResult listing every error found, in the order
            duplicates, missing prerequisites, cycles.
        """
        errors: list[SkillGraphError] = []

        for skill_id in sorted(set(self._duplicates)):
            errors.append(
                SkillGraphError(
                    kind=SkillGraphErrorKind.DUPLICATE_SKILL,
                    skill_ids=(skill_id,),
                    message=f"Skill '{skill_id}' is defined more than once",
                )
            )

        for skill_id in sorted(self._skills):
            for prereq_id in self._skills[skill_id].prerequisites:
                if prereq_id not in self._skills:
                    errors.append(
                        SkillGraphError(
                            kind=SkillGraphErrorKind.MISSING_PREREQUISITE,
                            skill_ids=(skill_id, prereq_id),
                            message=(
                                f"Skill '{skill_id}' requires unknown prerequisite '{prereq_id}'"
                            ),
                        )
                    )

        for cycle in self._find_cycles():
            errors.append(
                SkillGraphError(
                    kind=SkillGraphErrorKind.CYCLE_DETECTED,
                    skill_ids=tuple(cycle),
                    message=f"Cycle detected: {' -> '.join(cycle + [cycle[0]])}",
                )
            )

        return ValidationResult(valid=not errors, errors=tuple(errors))

    def _find_cycles(self) -> list[list[str]]:
        """Depth-first search tracking the in-progress path; one entry per back edge."""
        done: set[str] = set()
        in_progress: set[str] = set()
        path: list[str] = []
        cycles: list[list[str]] = []

        for root_id in sorted(self._skills):
            if root_id in done:
                continue
            in_progress.add(root_id)
            path.append(root_id)
            stack = [(root_id, iter(self._skills[root_id].prerequisites))]
            while stack:
                skill_id, prereqs = stack[-1]
                for prereq_id in prereqs:
                    if prereq_id not in self._skills or prereq_id in done:
                        continue
                    if prereq_id in in_progress:
                        cycles.append(path[path.index(prereq_id):])
                        continue
                    in_progress.add(prereq_id)
                    path.append(prereq_id)
                    stack.append((prereq_id, iter(self._skills[prereq_id].prerequisites)))
                    break
                else:
                    stack.pop()
                    path.pop()
                    in_progress.discard(skill_id)
                    done.add(skill_id)

        return cycles

    def _post_order(self, roots: Iterable[str], visited: set[str]) -> list[str]:
        """
        Iterative DFS post-order from `roots`, prerequisites in declared order.

        Ids already in `visited` are skipped; unknown ids are leaves.
        """
        order: list[str] = []
        for root_id in roots:
            if root_id in visited:
                continue
            visited.add(root_id)
            stack = [(root_id, iter(self._prerequisites_of(root_id)))]
            while stack:
                current_id, prereqs = stack[-1]
                for prereq_id in prereqs:
                    if prereq_id not in visited:
                        visited.add(prereq_id)
                        stack.append((prereq_id, iter(self._prerequisites_of(prereq_id))))
                        break
                else:
                    stack.pop()
                    order.append(current_id)
        return order

    def _prerequisites_of(self, skill_id: str) -> tuple[str, ...]:
        skill = self._skills.get(skill_id)
        return skill.prerequisites if skill is not None else ()

    # =========================================================================
    # Traversal
    # =========================================================================

    def get_topological_order(self) -> list[str]:
        """
        Skill ids with every prerequisite before its dependents.

        DFS post-order over skill ids in sorted order, prerequisites in
        declared order. Terminates on cyclic input, but the order is only
        meaningful for a valid graph.
        """
        if self._topological_order is None:
            order = self._post_order(sorted(self._skills), set())
            self._topological_order = tuple(s for s in order if s in self._skills)

        return list(self._topological_order)

    def get_all_prerequisites(self, skill_id: str) -> list[str]:
        """Transitive prerequisites of a skill, deepest first."""
        skill = self._skills.get(skill_id)
        if skill is None:
            return []
        return self._post_order(skill.prerequisites, {skill_id})

    def get_direct_dependents(self, skill_id: str) -> list[str]:
        """Skills that list `skill_id` as a prerequisite, sorted."""
        return list(self._direct_dependents.get(skill_id, ()))

    def get_dependents(self, skill_id: str) -> list[str]:
        """Transitive dependents of a skill, sorted."""
        seen: set[str] = set()
        frontier = list(self._direct_dependents.get(skill_id, ()))
        while frontier:
            current = frontier.pop()
            if current in seen or current == skill_id:
                continue
            seen.add(current)
            frontier.extend(self._direct_dependents.get(current, ()))
        return sorted(seen)

    def is_prerequisite_of(self, prerequisite_id: str, skill_id: str) -> bool:
        """True if `prerequisite_id` is a direct or transitive prerequisite of `skill_id`."""
        return prerequisite_id in self.get_all_prerequisites(skill_id)

    def __repr__(self) -> str:
        return f"SkillGraph(skills={len(self._skills)})"


def build_skill_graph(skills: Iterable[Skill]) -> SkillGraph:
    """
    Build and validate a skill graph.

    Raises:
        SkillGraphValidationError: If the graph has duplicates, missing
            prerequisites or cycles.
    """
    graph = SkillGraph(skills)
    result = graph.validate()
    if not result.valid:
        logger.error(f"Rejected skill graph with {len(result.errors)} error(s)")
        raise SkillGraphValidationError(list(result.errors))
    logger.debug(f"Built skill graph with {len(graph)} skills")
    return graph
