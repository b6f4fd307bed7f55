"""
Tests for the Crowd-BT updater.

Focus on the direction and size of belief updates, order dependence of the
fold, and the numeric-instability fallback.
"""

import pytest

from crowd_rank.algorithms import crowd_bt
from crowd_rank.models import AnnotatorCompetence, CandidateBelief, ComparisonOutcome


def outcome(winner: str, loser: str, created_at: float) -> ComparisonOutcome:
    return ComparisonOutcome(candidate_a=winner, candidate_b=loser, winner=winner, created_at=created_at)


class TestUpdate:
    """Test the single-comparison update."""

    def test_first_update_from_priors(self) -> None:
        """Equal priors with Beta(10, 1) competence should move means by 10/11 - 1/2."""
        # Arrange
        competence = AnnotatorCompetence.prior()
        prior = CandidateBelief.prior()

        # Act
        result = crowd_bt.update(competence, prior, prior)

        # Assert
        assert result.winner.mu == pytest.approx(10 / 11 - 0.5), "Winner mean should rise by s' - s"
        assert result.loser.mu == pytest.approx(-(10 / 11 - 0.5)), "Loser mean should fall symmetrically"
        expected_sigma_sq = 1.0 - (0.25 - (10 / 11) * (1 / 11))
        assert result.winner.sigma_sq == pytest.approx(expected_sigma_sq)
        assert result.loser.sigma_sq == pytest.approx(expected_sigma_sq)
        assert result.observation_probability == pytest.approx(0.5)
        assert not result.competence_clamped

    def test_first_update_keeps_competence_at_prior(self) -> None:
        """With no skill gap the competence posterior moments match the prior."""
        result = crowd_bt.update(AnnotatorCompetence.prior(), CandidateBelief.prior(), CandidateBelief.prior())

        assert result.competence.alpha == pytest.approx(10.0, rel=1e-6)
        assert result.competence.beta == pytest.approx(1.0, rel=1e-6)

    @pytest.mark.parametrize("winner_mu, loser_mu", [(0.0, 0.0), (2.0, -2.0), (-2.0, 2.0), (5.0, 4.9)])
    def test_winner_never_falls_loser_never_rises(self, winner_mu: float, loser_mu: float) -> None:
        """Means move monotonically in the direction of the observed preference."""
        # Arrange
        winner = CandidateBelief(mu=winner_mu, sigma_sq=1.0)
        loser = CandidateBelief(mu=loser_mu, sigma_sq=1.0)

        # Act
        result = crowd_bt.update(AnnotatorCompetence.prior(), winner, loser)

        # Assert
        assert result.winner.mu >= winner.mu, "Winner mean should not decrease"
        assert result.loser.mu <= loser.mu, "Loser mean should not increase"

    @pytest.mark.parametrize("winner_mu, loser_mu", [(0.0, 0.0), (3.0, -3.0), (-3.0, 3.0)])
    def test_variance_never_increases(self, winner_mu: float, loser_mu: float) -> None:
        """Variances shrink or stay put, including after an upset."""
        winner = CandidateBelief(mu=winner_mu, sigma_sq=0.8)
        loser = CandidateBelief(mu=loser_mu, sigma_sq=1.2)

        result = crowd_bt.update(AnnotatorCompetence.prior(), winner, loser)

        assert 0 < result.winner.sigma_sq <= winner.sigma_sq, "Winner variance should not grow"
        assert 0 < result.loser.sigma_sq <= loser.sigma_sq, "Loser variance should not grow"

    def test_variance_floor_kappa(self) -> None:
        """A very uncertain belief shrinks by at most a factor of KAPPA."""
        wide = CandidateBelief(mu=0.0, sigma_sq=10.0)

        result = crowd_bt.update(AnnotatorCompetence.prior(), wide, wide)

        assert result.winner.sigma_sq == pytest.approx(10.0 * crowd_bt.KAPPA), "Variance should hit the floor"

    def test_variance_floor_is_overridable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Constants are read at call time so tests can override them."""
        monkeypatch.setattr(crowd_bt, "KAPPA", 0.5)
        wide = CandidateBelief(mu=0.0, sigma_sq=10.0)

        result = crowd_bt.update(AnnotatorCompetence.prior(), wide, wide)

        assert result.winner.sigma_sq == pytest.approx(5.0)
        assert result.loser.sigma_sq == pytest.approx(5.0)

    def test_degenerate_competence_keeps_prior(self) -> None:
        """A negative observation probability should clamp to the prior competence."""
        # Arrange - huge variance with a favoured winner drives c1 below zero
        competence = AnnotatorCompetence.prior()
        winner = CandidateBelief(mu=1.32, sigma_sq=20.0)
        loser = CandidateBelief(mu=0.0, sigma_sq=20.0)

        # Act
        result = crowd_bt.update(competence, winner, loser)

        # Assert
        assert result.competence_clamped, "Degenerate step should be flagged"
        assert result.competence == competence, "Competence should stay at its previous value"
        assert result.winner.mu > winner.mu, "Candidate beliefs should still update"
        assert result.winner.sigma_sq > 0

    def test_instability_in_moment_matching_is_caught(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """NumericInstability from moment matching never escapes update()."""

        def unstable(*args: float) -> AnnotatorCompetence:
            raise crowd_bt.NumericInstability("forced")

        monkeypatch.setattr(crowd_bt, "_moment_match_competence", unstable)
        competence = AnnotatorCompetence(alpha=4.0, beta=2.0)

        result = crowd_bt.update(competence, CandidateBelief.prior(), CandidateBelief.prior())

        assert result.competence_clamped
        assert result.competence == competence

    def test_double_update_keeps_separating(self) -> None:
        """A second identical win moves the means further and shrinks variance again."""
        # Arrange
        competence = AnnotatorCompetence.prior()
        first = crowd_bt.update(competence, CandidateBelief.prior(), CandidateBelief.prior())

        # Act
        second = crowd_bt.update(first.competence, first.winner, first.loser)

        # Assert
        assert second.winner.mu == pytest.approx(0.6288, abs=1e-3)
        assert second.loser.mu == pytest.approx(-0.6288, abs=1e-3)
        assert second.winner.sigma_sq == pytest.approx(0.7134, abs=1e-3)
        assert second.winner.sigma_sq < first.winner.sigma_sq


class TestExpectedInformationGain:
    """Test the expected information gain used for active selection."""

    def test_non_negative(self) -> None:
        """Gain is a weighted sum of divergences."""
        competence = AnnotatorCompetence.prior()
        cases = [
            (CandidateBelief.prior(), CandidateBelief.prior()),
            (CandidateBelief(mu=2.0, sigma_sq=0.5), CandidateBelief(mu=-1.0, sigma_sq=0.2)),
            (CandidateBelief(mu=0.1, sigma_sq=0.01), CandidateBelief(mu=0.0, sigma_sq=0.01)),
        ]
        for belief_a, belief_b in cases:
            assert crowd_bt.expected_information_gain(competence, belief_a, belief_b) >= 0.0

    def test_uncertain_pair_is_more_informative(self) -> None:
        """Comparing two unknown candidates teaches more than two well-known ones."""
        competence = AnnotatorCompetence.prior()
        certain = CandidateBelief(mu=0.0, sigma_sq=0.01)

        uncertain_gain = crowd_bt.expected_information_gain(competence, CandidateBelief.prior(), CandidateBelief.prior())
        certain_gain = crowd_bt.expected_information_gain(competence, certain, certain)

        assert uncertain_gain > certain_gain, "Prior beliefs should offer more information"

    def test_pure(self) -> None:
        """Repeated calls give identical results."""
        competence = AnnotatorCompetence(alpha=6.0, beta=2.0)
        belief_a = CandidateBelief(mu=0.4, sigma_sq=0.7)
        belief_b = CandidateBelief(mu=-0.2, sigma_sq=0.9)

        first = crowd_bt.expected_information_gain(competence, belief_a, belief_b)
        second = crowd_bt.expected_information_gain(competence, belief_a, belief_b)

        assert first == second


class TestFoldOutcomes:
    """Test replaying an outcome log."""

    def test_empty_log_returns_priors(self) -> None:
        """No outcomes leaves the initial state."""
        state = crowd_bt.fold_outcomes([])

        assert state.beliefs == {}
        assert state.competence == AnnotatorCompetence.prior()
        assert state.clamped_updates == 0

    def test_skips_are_no_ops(self) -> None:
        """A skip updates no belief."""
        skip = ComparisonOutcome(candidate_a="a", candidate_b="b", winner=None, created_at=1.0)

        state = crowd_bt.fold_outcomes([skip])

        assert state.beliefs == {}, "Skip should not create beliefs"
        assert state.competence == AnnotatorCompetence.prior()

    def test_order_dependence(self) -> None:
        """Applying the same outcomes in a different order yields different beliefs."""
        # Arrange
        a_beats_b_first = [outcome("a", "b", 1.0), outcome("b", "c", 2.0)]
        b_beats_c_first = [outcome("b", "c", 1.0), outcome("a", "b", 2.0)]

        # Act
        state1 = crowd_bt.fold_outcomes(a_beats_b_first)
        state2 = crowd_bt.fold_outcomes(b_beats_c_first)

        # Assert
        assert state1.beliefs["b"].mu == pytest.approx(-0.0177, abs=1e-3)
        assert state2.beliefs["b"].mu == pytest.approx(0.0177, abs=1e-3)

    def test_sorted_by_creation_time(self) -> None:
        """Input order does not matter, only created_at."""
        log = [outcome("a", "b", 1.0), outcome("b", "c", 2.0), outcome("c", "a", 3.0)]

        in_order = crowd_bt.fold_outcomes(log)
        shuffled = crowd_bt.fold_outcomes([log[2], log[0], log[1]])

        assert in_order == shuffled

    def test_inputs_not_mutated(self) -> None:
        """Folding over supplied beliefs leaves the caller's dict untouched."""
        beliefs = {"a": CandidateBelief(mu=1.0, sigma_sq=0.5)}

        state = crowd_bt.fold_outcomes([outcome("b", "a", 1.0)], beliefs=beliefs)

        assert beliefs == {"a": CandidateBelief(mu=1.0, sigma_sq=0.5)}, "Input beliefs should be unchanged"
        assert state.beliefs["a"].mu < 1.0

    def test_fold_matches_sequential_updates(self) -> None:
        """The fold is exactly a left fold of update()."""
        first = crowd_bt.update(AnnotatorCompetence.prior(), CandidateBelief.prior(), CandidateBelief.prior())
        second = crowd_bt.update(first.competence, first.winner, first.loser)

        state = crowd_bt.fold_outcomes([outcome("a", "b", 1.0), outcome("a", "b", 2.0)])

        assert state.beliefs["a"] == second.winner
        assert state.beliefs["b"] == second.loser
        assert state.competence == second.competence

    def test_apply_outcome_returns_new_state(self) -> None:
        """One fold step updates winner and loser without touching the input state."""
        initial = crowd_bt.FoldState(beliefs={}, competence=AnnotatorCompetence.prior())

        state = crowd_bt.apply_outcome(initial, outcome("b", "a", 1.0))

        assert initial.beliefs == {}, "Input state should be unchanged"
        assert state.beliefs["b"].mu == pytest.approx(10 / 11 - 0.5)
        assert state.beliefs["a"].mu == pytest.approx(-(10 / 11 - 0.5))
