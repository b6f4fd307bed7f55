"""
Schulze aggregator implementation.

Turns raw win/loss counts into a Condorcet-consistent total preorder using
strongest (widest) paths, with deterministic tie-breaking.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
from typing_extensions import override

from ..exceptions import ConfigurationError, DomainError
from ..interfaces import Aggregator
from ..logging_config import get_logger
from ..models import ComparisonOutcome, PairKey, RankedResult, RankingReport

# Module-level logger
logger = get_logger("schulze")


@dataclass(frozen=True)
class PathMatrix:
    """Direct win counts and strongest path strengths, indexed by sorted candidate id."""

    candidate_ids: tuple[str, ...]
    wins: np.ndarray
    paths: np.ndarray

    def index(self, candidate_id: str) -> int:
        try:
            return self.candidate_ids.index(candidate_id)
        except ValueError:
            raise DomainError(f"Unknown candidate: {candidate_id}") from None

    def strength(self, source: str, target: str) -> int:
        """Strength of the strongest path from source to target."""
        return int(self.paths[self.index(source), self.index(target)])

    def direct_votes(self, pair: PairKey) -> int:
        """Total non-skip votes cast on a pair, in either direction."""
        i, j = self.index(pair.first), self.index(pair.second)
        return int(self.wins[i, j] + self.wins[j, i])

    def direct_wins(self, candidate_id: str) -> int:
        return int(self.wins[self.index(candidate_id)].sum())

    def is_ambiguous(self, pair: PairKey) -> bool:
        """True when neither direction's strongest path dominates."""
        i, j = self.index(pair.first), self.index(pair.second)
        return bool(self.paths[i, j] == self.paths[j, i])

    def scores(self) -> np.ndarray:
        """Number of candidates each candidate beats via strongest paths."""
        return (self.paths > self.paths.T).sum(axis=1)


def build_win_matrix(outcomes: Iterable[ComparisonOutcome], candidate_ids: Sequence[str]) -> np.ndarray:
    """
    Count direct wins: ``d[i][j]`` is how often candidate i beat candidate j.

    Skips are excluded. Outcomes naming unknown candidates are ignored with a
    warning. Accumulation is order independent.
    """
    index = {candidate_id: i for i, candidate_id in enumerate(candidate_ids)}
    wins = np.zeros((len(candidate_ids), len(candidate_ids)), dtype=np.int64)
    for outcome in outcomes:
        if outcome.is_skip:
            continue
        i = index.get(outcome.winner)  # type: ignore[arg-type]
        j = index.get(outcome.loser)  # type: ignore[arg-type]
        if i is None or j is None:
            logger.warning(f"Ignoring outcome with unknown candidate: {outcome.candidate_a} vs {outcome.candidate_b}")
            continue
        wins[i, j] += 1
    return wins


def compute_strongest_paths(wins: np.ndarray) -> np.ndarray:
    """
    Widest-path all-pairs relaxation, O(n^3).

    ``p[i][j] = max(p[i][j], min(p[i][k], p[k][j]))`` for every intermediate
    k, starting from the win matrix with a zero diagonal.
    """
    paths = wins.astype(np.int64, copy=True)
    np.fill_diagonal(paths, 0)
    for k in range(paths.shape[0]):
        through_k = np.minimum(paths[:, k : k + 1], paths[k : k + 1, :])
        np.maximum(paths, through_k, out=paths)
        np.fill_diagonal(paths, 0)
    return paths


class SchulzeAggregator(Aggregator):
    """
    Schulze (beatpath) aggregator over the raw outcome log.

    Independent of the Crowd-BT beliefs. Read-only over its inputs, so many
    readers may aggregate the same committed log concurrently.
    """

    def __init__(self, required_comparisons_per_pair: int = 1):
        """
        Initialize Schulze aggregator.

        Args:
            required_comparisons_per_pair: Votes each pair needs before the
                ranking is reported as complete
        """
        if required_comparisons_per_pair < 1:
            raise ConfigurationError(
                f"required_comparisons_per_pair must be >= 1, got {required_comparisons_per_pair}"
            )
        self.required_comparisons_per_pair: int = required_comparisons_per_pair

    def path_matrix(self, outcomes: Iterable[ComparisonOutcome], candidate_ids: Iterable[str]) -> PathMatrix:
        """Build the win matrix and strongest paths for a candidate set."""
        ordered_ids = tuple(sorted(set(candidate_ids)))
        if len(ordered_ids) < 2:
            raise DomainError(f"At least 2 candidates are required, got {len(ordered_ids)}")
        wins = build_win_matrix(outcomes, ordered_ids)
        return PathMatrix(candidate_ids=ordered_ids, wins=wins, paths=compute_strongest_paths(wins))

    @override
    def rank(self, outcomes: Iterable[ComparisonOutcome], candidate_ids: Iterable[str]) -> RankingReport:
        """
        Rank candidates by Schulze score.

        Sorted by score descending, then direct wins descending, then
        candidate id. Equal scores share a rank and ranks are not compressed,
        so scores [5, 5, 3] yield ranks [1, 1, 3].
        """
        matrix = self.path_matrix(outcomes, candidate_ids)
        scores = matrix.scores()
        direct_wins = matrix.wins.sum(axis=1)

        rows = sorted(
            (
                (candidate_id, int(scores[i]), int(direct_wins[i]))
                for i, candidate_id in enumerate(matrix.candidate_ids)
            ),
            key=lambda row: (-row[1], -row[2], row[0]),
        )

        results = list[RankedResult]()
        current_rank = 1
        last_score: int | None = None
        for position, (candidate_id, score, wins) in enumerate(rows, 1):
            if last_score is None or score < last_score:
                current_rank = position
            last_score = score
            results.append(RankedResult(candidate_id=candidate_id, score=score, rank=current_rank, direct_wins=wins))

        n = len(matrix.candidate_ids)
        expected = n * (n - 1) // 2 * self.required_comparisons_per_pair
        recorded = int(matrix.wins.sum())
        comparisons_needed = max(expected - recorded, 0)

        logger.debug(f"Schulze ranking over {n} candidates from {recorded} votes: {[r.candidate_id for r in results]}")
        return RankingReport(
            results=results,
            ranking_incomplete=recorded < expected,
            comparisons_needed=comparisons_needed,
        )
