"""
Unit tests for the skill graph: validation, ordering and closures.
"""

import pytest

from pathwise.errors import SkillGraphValidationError
from pathwise.graph import (
    Skill,
    SkillGraph,
    SkillGraphErrorKind,
    build_skill_graph,
    export_skill_graph,
    load_skill_graph,
)


def _graph(entries):
    return SkillGraph(Skill(skill_id, skill_id, tuple(prereqs)) for skill_id, prereqs in entries)


class TestValidation:
    """Cycle, dangling prerequisite and duplicate detection."""

    def test_valid_graph(self, chain_graph):
        result = chain_graph.validate()
        assert result.valid is True
        assert result.errors == ()

    def test_missing_prerequisite(self):
        graph = _graph([("A", []), ("B", ["A", "Z"])])
        result = graph.validate()

        assert result.valid is False
        assert [e.kind for e in result.errors] == [SkillGraphErrorKind.MISSING_PREREQUISITE]
        assert result.errors[0].skill_ids == ("B", "Z")

    def test_self_cycle(self):
        result = _graph([("A", ["A"])]).validate()
        assert [e.kind for e in result.errors] == [SkillGraphErrorKind.CYCLE_DETECTED]
        assert result.errors[0].skill_ids == ("A",)

    def test_three_node_cycle_names_all_members(self):
        result = _graph([("A", ["C"]), ("B", ["A"]), ("C", ["B"])]).validate()

        cycles = [e for e in result.errors if e.kind == SkillGraphErrorKind.CYCLE_DETECTED]
        assert len(cycles) == 1
        assert set(cycles[0].skill_ids) == {"A", "B", "C"}

    def test_duplicate_skill(self):
        graph = SkillGraph([Skill("A", "first"), Skill("A", "second")])
        result = graph.validate()

        assert [e.kind for e in result.errors] == [SkillGraphErrorKind.DUPLICATE_SKILL]
        # First definition wins
        assert graph.get_skill("A").name == "first"

    def test_multiple_error_kinds_reported_together(self):
        graph = SkillGraph(
            [
                Skill("A", "A", ("B",)),
                Skill("B", "B", ("A",)),
                Skill("C", "C", ("missing",)),
                Skill("C", "C again"),
            ]
        )
        kinds = {e.kind for e in graph.validate().errors}
        assert kinds == {
            SkillGraphErrorKind.CYCLE_DETECTED,
            SkillGraphErrorKind.MISSING_PREREQUISITE,
            SkillGraphErrorKind.DUPLICATE_SKILL,
        }

    def test_build_rejects_invalid_graph(self):
        with pytest.raises(SkillGraphValidationError) as exc_info:
            build_skill_graph([Skill("A", "A", ("B",)), Skill("B", "B", ("A",))])

        assert exc_info.value.kinds == ["CYCLE_DETECTED"]


class TestTopologicalOrder:
    """Ordering guarantees."""

    def test_prerequisites_come_first(self, chain_graph):
        order = chain_graph.get_topological_order()
        position = {skill_id: i for i, skill_id in enumerate(order)}

        for skill in chain_graph.skills.values():
            for prereq_id in skill.prerequisites:
                assert position[prereq_id] < position[skill.id]

    def test_order_is_independent_of_declaration_order(self):
        forward = _graph([("A", []), ("B", ["A"]), ("C", ["A"]), ("D", ["B", "C"])])
        backward = _graph([("D", ["B", "C"]), ("C", ["A"]), ("B", ["A"]), ("A", [])])

        assert forward.get_topological_order() == backward.get_topological_order()
        assert forward.get_topological_order() == ["A", "B", "C", "D"]

    def test_diamond_order(self):
        graph = _graph([("top", ["left", "right"]), ("left", ["base"]), ("right", ["base"]), ("base", [])])
        order = graph.get_topological_order()
        assert order[0] == "base"
        assert order[-1] == "top"

    def test_terminates_on_cycle(self):
        graph = _graph([("A", ["B"]), ("B", ["A"])])
        assert sorted(graph.get_topological_order()) == ["A", "B"]


class TestClosures:
    """Transitive prerequisite and dependent queries."""

    def test_all_prerequisites_deepest_first(self, chain_graph):
        assert chain_graph.get_all_prerequisites("C") == ["A", "B"]
        assert chain_graph.get_all_prerequisites("A") == []

    def test_unknown_skill_has_no_prerequisites(self, chain_graph):
        assert chain_graph.get_all_prerequisites("nope") == []

    def test_dependents_transitive_and_sorted(self, chain_graph):
        assert chain_graph.get_dependents("A") == ["B", "C", "D"]
        assert chain_graph.get_dependents("C") == []

    def test_direct_dependents(self, chain_graph):
        assert chain_graph.get_direct_dependents("A") == ["B", "D"]
        assert chain_graph.get_direct_dependents("B") == ["C"]

    def test_is_prerequisite_of(self, chain_graph):
        assert chain_graph.is_prerequisite_of("A", "C") is True
        assert chain_graph.is_prerequisite_of("C", "A") is False
        assert chain_graph.is_prerequisite_of("D", "C") is False


class TestDeepGraphs:
    """Chains deeper than the interpreter's recursion limit."""

    DEPTH = 5000

    @pytest.fixture
    def ids(self):
        return [f"s{i:05d}" for i in range(self.DEPTH)]

    def test_long_chain_is_valid_and_ordered(self, ids):
        graph = _graph([(ids[0], [])] + [(ids[i], [ids[i - 1]]) for i in range(1, self.DEPTH)])

        assert graph.validate().valid is True
        assert graph.get_topological_order() == ids
        assert graph.get_all_prerequisites(ids[-1]) == ids[:-1]
        assert graph.is_prerequisite_of(ids[0], ids[-1])

    def test_long_cycle_detected(self, ids):
        graph = _graph([(ids[0], [ids[-1]])] + [(ids[i], [ids[i - 1]]) for i in range(1, self.DEPTH)])
        result = graph.validate()

        assert [e.kind for e in result.errors] == [SkillGraphErrorKind.CYCLE_DETECTED]
        assert len(result.errors[0].skill_ids) == self.DEPTH


class TestLoader:
    """JSON document loading."""

    def test_load_and_export(self):
        data = {
            "skills": [
                {"id": "fractions", "name": "Fractions", "prerequisites": ["division"]},
                {"id": "division", "name": "Division", "category": "arithmetic"},
            ]
        }
        graph = load_skill_graph(data)

        assert graph.get_topological_order() == ["division", "fractions"]
        exported = export_skill_graph(graph)
        assert exported["skills"][0] == {
            "id": "division",
            "name": "Division",
            "prerequisites": [],
            "category": "arithmetic",
        }

    def test_name_defaults_to_id(self):
        graph = load_skill_graph({"skills": [{"id": "solo"}]})
        assert graph.get_skill("solo").name == "solo"

    def test_invalid_graph_document_is_rejected(self):
        with pytest.raises(SkillGraphValidationError):
            load_skill_graph({"skills": [{"id": "A", "prerequisites": ["ghost"]}]})
