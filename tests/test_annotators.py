"""
Tests for simulated and dummy annotators.
"""

import pytest

from crowd_rank.annotators import DummyAnnotator, SimulatedAnnotator
from crowd_rank.exceptions import ConfigurationError
from crowd_rank.models import PairKey


class TestSimulatedAnnotator:
    """Test SimulatedAnnotator behavior."""

    def test_noiseless_judgments_follow_ground_truth(self) -> None:
        """Without noise the higher ground-truth score always wins."""
        annotator = SimulatedAnnotator({"a": 1.0, "b": 5.0, "c": 3.0}, noise=0.0)

        assert annotator.judge(PairKey("a", "b")).winner == "b"
        assert annotator.judge(PairKey("a", "c")).winner == "c"
        assert annotator.judge(PairKey("b", "c")).winner == "b"

    def test_outcome_carries_annotator_id(self) -> None:
        annotator = SimulatedAnnotator({"a": 1.0, "b": 2.0}, annotator_id="sim-7")

        outcome = annotator.judge(PairKey("a", "b"))

        assert outcome.annotator_id == "sim-7"
        assert outcome.pair == PairKey("a", "b")

    def test_seeded_runs_are_reproducible(self) -> None:
        """Same seed, same sequence of judgments."""
        ground_truth = {"a": 1.0, "b": 1.2}
        pair = PairKey("a", "b")

        annotator1 = SimulatedAnnotator(ground_truth, noise=1.0, seed=11)
        annotator2 = SimulatedAnnotator(ground_truth, noise=1.0, seed=11)

        run1 = [annotator1.judge(pair).winner for _ in range(10)]
        run2 = [annotator2.judge(pair).winner for _ in range(10)]

        assert run1 == run2

    def test_noise_produces_upsets(self) -> None:
        """Heavy noise lets the weaker candidate win sometimes."""
        annotator = SimulatedAnnotator({"a": 0.0, "b": 0.1}, noise=5.0, seed=3)

        winners = {annotator.judge(PairKey("a", "b")).winner for _ in range(200)}

        assert winners == {"a", "b"}

    def test_skip_rate_one_always_skips(self) -> None:
        annotator = SimulatedAnnotator({"a": 0.0, "b": 1.0}, skip_rate=1.0)

        assert annotator.judge(PairKey("a", "b")).is_skip

    @pytest.mark.parametrize("kwargs", [{"noise": -0.1}, {"skip_rate": 1.5}, {"skip_rate": -0.1}])
    def test_invalid_parameters_rejected(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ConfigurationError):
            SimulatedAnnotator({"a": 0.0}, **kwargs)


class TestDummyAnnotator:
    """Test DummyAnnotator behavior."""

    def test_deterministic_prefers_lower_id(self) -> None:
        annotator = DummyAnnotator()

        assert annotator.judge(PairKey("a", "b")).winner == "a"
        assert annotator.annotator_id == "dummy_deterministic"

    def test_random_mode_picks_a_member(self) -> None:
        annotator = DummyAnnotator(mode="random", seed=5)

        for _ in range(10):
            assert annotator.judge(PairKey("x", "y")).winner in ("x", "y")

    def test_unknown_mode_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            DummyAnnotator(mode="psychic")
