"""
Tests for CrowdBTRanker implementation.

Focus on belief updates, statistics and snapshot round-trips.
"""

import threading

import pytest

from crowd_rank.algorithms import crowd_bt
from crowd_rank.models import AnnotatorCompetence, CandidateBelief, ComparisonOutcome
from crowd_rank.rankers.crowd_bt_ranker import CrowdBTRanker


def beats(winner: str, loser: str, created_at: float = 0.0) -> ComparisonOutcome:
    return ComparisonOutcome(candidate_a=winner, candidate_b=loser, winner=winner, created_at=created_at)


class TestCrowdBTRanker:
    """Test CrowdBTRanker behavior through public interface."""

    def test_pairwise_update_increases_winner_decreases_loser(self) -> None:
        """Basic comparison should increase winner score and decrease loser score."""
        # Arrange
        ranker = CrowdBTRanker()
        initial_winner = ranker.get_score("winner")
        initial_loser = ranker.get_score("loser")

        # Act
        result = ranker.update_with_outcome(beats("winner", "loser"))

        # Assert
        assert result is not None, "Non-skip outcome should return an update result"
        assert ranker.get_score("winner") > initial_winner, "Winner score should increase"
        assert ranker.get_score("loser") < initial_loser, "Loser score should decrease"
        assert ranker.get_uncertainty("winner") < 1.0, "Winner variance should shrink"

    def test_unseen_candidate_gets_prior(self) -> None:
        """New candidates should read as the prior belief."""
        ranker = CrowdBTRanker()

        assert ranker.get_belief("new") == CandidateBelief(mu=crowd_bt.MU_PRIOR, sigma_sq=crowd_bt.SIGMA_SQ_PRIOR)
        assert ranker.get_total_eval_count("new") == 0
        assert ranker.get_win_percentage("new") == 0.0

    def test_skip_counts_but_does_not_update(self) -> None:
        """Skips leave every belief and the competence untouched."""
        ranker = CrowdBTRanker()
        skip = ComparisonOutcome(candidate_a="a", candidate_b="b", winner=None)

        result = ranker.update_with_outcome(skip)

        assert result is None
        assert ranker.skip_count == 1
        assert ranker.get_all_beliefs() == {}, "Skip should not create beliefs"
        assert ranker.competence == AnnotatorCompetence.prior()

    def test_statistics(self) -> None:
        """Evaluation and win counts track non-skip outcomes."""
        ranker = CrowdBTRanker()

        ranker.update_with_outcome(beats("a", "b"))
        ranker.update_with_outcome(beats("a", "c"))
        ranker.update_with_outcome(beats("c", "a"))

        assert ranker.get_total_eval_count("a") == 3
        assert ranker.get_win_percentage("a") == pytest.approx(200 / 3)
        assert ranker.get_win_percentage("b") == 0.0

    def test_clamped_updates_counted(self) -> None:
        """Degenerate competence steps are counted and keep the old competence."""
        ranker = CrowdBTRanker()
        ranker.beliefs["a"] = CandidateBelief(mu=1.32, sigma_sq=20.0)
        ranker.beliefs["b"] = CandidateBelief(mu=0.0, sigma_sq=20.0)

        result = ranker.update_with_outcome(beats("a", "b"))

        assert result is not None and result.competence_clamped
        assert ranker.clamped_updates == 1
        assert ranker.competence == AnnotatorCompetence.prior()

    def test_replay_matches_incremental_updates(self) -> None:
        """Replaying a log rebuilds the same state as applying it live."""
        # Arrange
        log = [beats("a", "b", 1.0), beats("b", "c", 2.0), beats("a", "c", 3.0)]
        live = CrowdBTRanker()
        for outcome in log:
            live.update_with_outcome(outcome)

        # Act
        replayed = CrowdBTRanker()
        replayed.replay(reversed(log))

        # Assert
        assert replayed.get_all_beliefs() == live.get_all_beliefs()
        assert replayed.competence == live.competence
        assert replayed.eval_counts == live.eval_counts

    def test_expected_information_gain_reads_state(self) -> None:
        """Gain between two settled candidates is smaller than between two new ones."""
        ranker = CrowdBTRanker()
        ranker.beliefs["x"] = CandidateBelief(mu=0.0, sigma_sq=0.01)
        ranker.beliefs["y"] = CandidateBelief(mu=0.0, sigma_sq=0.01)

        assert ranker.expected_information_gain("p", "q") > ranker.expected_information_gain("x", "y")
        assert "p" not in ranker.beliefs, "Computing gain should not create beliefs"

    def test_snapshot_and_restore(self) -> None:
        """Round-trip serialization should preserve state."""
        # Arrange
        ranker1 = CrowdBTRanker()
        ranker1.update_with_outcome(beats("a", "b"))
        ranker1.update_with_outcome(beats("b", "c"))
        ranker1.update_with_outcome(ComparisonOutcome(candidate_a="a", candidate_b="c", winner=None))

        # Act
        state = ranker1.snapshot()
        ranker2 = CrowdBTRanker()
        ranker2.load_snapshot(state)

        # Assert
        for candidate_id in ("a", "b", "c"):
            assert ranker2.get_belief(candidate_id) == ranker1.get_belief(candidate_id)
            assert ranker2.get_total_eval_count(candidate_id) == ranker1.get_total_eval_count(candidate_id)
        assert ranker2.competence == ranker1.competence
        assert ranker2.skip_count == 1
        assert ranker2.snapshot() == state

    def test_concurrent_updates_are_serialized(self) -> None:
        """Concurrent callers never lose an update."""
        ranker = CrowdBTRanker()
        outcomes = [beats(f"c{i}", f"c{i + 1}") for i in range(40)]

        threads = [threading.Thread(target=ranker.update_with_outcome, args=(outcome,)) for outcome in outcomes]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(ranker.eval_counts.values()) == 80, "Every update should be counted"
