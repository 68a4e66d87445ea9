"""
Unit tests for Bayesian Knowledge Tracing.

Known values are computed by hand from the update equations.
"""

import pytest

from pathwise.errors import ConfigurationError
from pathwise.learner import (
    BKTEngine,
    BKTParams,
    LearnerModel,
    MasteryLevel,
    bkt_update,
)


@pytest.fixture
def bkt():
    return BKTEngine(clock=lambda: 1000)


class TestParameterValidation:
    """Parameters are checked when the engine is built."""

    @pytest.mark.parametrize(
        "params",
        [
            BKTParams(p_slip=0.0),
            BKTParams(p_guess=1.0),
            BKTParams(p_slip=0.5, p_guess=0.5),
            BKTParams(p_init=1.2),
            BKTParams(p_learn=-0.1),
        ],
    )
    def test_invalid_params_rejected(self, params):
        with pytest.raises(ConfigurationError):
            BKTEngine(params)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError, match="p_slip \\+ p_guess"):
            BKTEngine(BKTParams(p_slip=0.6, p_guess=0.5))

    def test_defaults(self):
        params = BKTEngine().params
        assert (params.p_init, params.p_learn, params.p_slip, params.p_guess) == (0.3, 0.1, 0.1, 0.2)


class TestUpdate:
    """Bayes' rule plus the learning transition."""

    def test_one_correct_from_prior(self, bkt, two_skill_graph, event_factory):
        model = bkt.create_model("learner-1", two_skill_graph)
        event = event_factory.practice("learner-1", "s1", "A", "item-1", correct=True)

        updated = bkt.update_model(model, event)

        assert updated.get_p_mastery("A") == pytest.approx(0.6927, abs=0.001)
        assert updated.total_events == 1
        assert updated.last_updated == event.timestamp

    def test_one_incorrect_stays_below_prior_plus_learn(self):
        p = bkt_update(0.7, False, p_slip=0.1, p_guess=0.2, p_learn=0.1)
        assert p < 0.8
        assert p == pytest.approx(0.3032, abs=0.001)

    def test_update_does_not_mutate_input(self, bkt, two_skill_graph, event_factory):
        model = bkt.create_model("learner-1", two_skill_graph)
        bkt.update_model(model, event_factory.practice("learner-1", "s1", "A", "i", True))

        assert model.get_p_mastery("A") == 0.3
        assert model.total_events == 0

    def test_repeated_correct_converges_toward_one(self, bkt, two_skill_graph, event_factory):
        model = bkt.create_model("learner-1", two_skill_graph)
        previous = model.get_p_mastery("A")
        for _ in range(10):
            model = bkt.update_model(model, event_factory.practice("learner-1", "s1", "A", "i", True))
            assert model.get_p_mastery("A") > previous
            previous = model.get_p_mastery("A")

        assert 0.99 < previous <= 1.0

    def test_degenerate_mastery_does_not_divide_by_zero(self):
        assert 0.0 <= bkt_update(0.0, True, p_slip=0.1, p_guess=1e-12, p_learn=0.0) <= 1.0
        assert 0.0 <= bkt_update(1.0, False, p_slip=1e-12, p_guess=0.2, p_learn=0.0) <= 1.0

    def test_unknown_skill_added_at_prior(self, bkt, two_skill_graph, event_factory):
        model = bkt.create_model("learner-1", two_skill_graph)
        updated = bkt.update_model(
            model, event_factory.practice("learner-1", "s1", "Z", "i", correct=True)
        )
        assert updated.get_p_mastery("Z") == pytest.approx(0.6927, abs=0.001)


class TestQueries:
    def test_create_model_covers_graph(self, bkt, chain_graph):
        model = bkt.create_model("learner-1", chain_graph)

        assert sorted(model.skill_probabilities) == ["A", "B", "C", "D"]
        assert model.created_at == 1000
        assert all(p.p_mastery == 0.3 for p in model.skill_probabilities.values())

    def test_unmastered_skills_sorted(self, bkt):
        model = bkt.initialize_from_diagnostic(
            LearnerModel(learner_id="x"), {"zeta": 0.1, "alpha": 0.5, "mid": 0.9}, 0
        )
        assert bkt.get_unmastered_skills(model) == ["alpha", "zeta"]
        assert bkt.get_unmastered_skills(model, threshold=0.95) == ["alpha", "mid", "zeta"]

    def test_get_p_mastery_defaults_to_prior(self, bkt):
        assert bkt.get_p_mastery(LearnerModel(learner_id="x"), "A") == 0.3


class TestDiagnosticInitialization:
    def test_overwrites_mastery_only(self, bkt, two_skill_graph):
        model = bkt.create_model("learner-1", two_skill_graph)
        updated = bkt.initialize_from_diagnostic(model, {"A": 0.9}, timestamp=5000)

        a = updated.skill_probabilities["A"]
        assert a.p_mastery == 0.9
        assert (a.p_slip, a.p_guess, a.p_learn) == (0.1, 0.2, 0.1)
        assert a.last_updated == 5000
        assert updated.get_p_mastery("B") == 0.3
        assert updated.last_updated == 5000


class TestSerialization:
    def test_round_trip_is_exact(self, bkt, chain_graph, event_factory):
        model = bkt.create_model("learner-1", chain_graph)
        for correct in (True, False, True, True):
            model = bkt.update_model(
                model, event_factory.practice("learner-1", "s1", "B", "i", correct)
            )

        restored = bkt.deserialize(bkt.serialize(model))

        assert restored == model
        assert bkt.serialize(restored) == bkt.serialize(model)

    def test_serialized_pairs_are_sorted(self, bkt, chain_graph):
        text = bkt.serialize(bkt.create_model("learner-1", chain_graph))
        assert text.index('"A"') < text.index('"B"') < text.index('"C"') < text.index('"D"')


class TestMasteryLevel:
    @pytest.mark.parametrize(
        "score,level",
        [
            (0.0, MasteryLevel.NOT_STARTED),
            (0.29, MasteryLevel.NOT_STARTED),
            (0.3, MasteryLevel.LEARNING),
            (0.84, MasteryLevel.LEARNING),
            (0.85, MasteryLevel.MASTERED),
        ],
    )
    def test_from_score(self, score, level):
        assert MasteryLevel.from_score(score) is level
