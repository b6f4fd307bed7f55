"""
Abstract base classes defining the interfaces for the crowd ranking engine.

All interfaces are synchronous; the engine itself never blocks or performs I/O.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypedDict

from .models import (
    AnnotatorCompetence,
    CandidateBelief,
    ComparisonOutcome,
    PairKey,
    RankingReport,
    UpdateResult,
    all_pairs,
)

if TYPE_CHECKING:
    from .aggregators.schulze import PathMatrix


class RankerStatistics(TypedDict):
    """TypedDict for ranker statistics."""
    eval_counts: dict[str, int]
    win_counts: dict[str, int]
    skip_count: int
    clamped_updates: int


class RankerState(TypedDict):
    """TypedDict for ranker snapshot state."""
    beliefs: dict[str, dict[str, float]]  # candidate_id -> {"mu": float, "sigma_sq": float}
    competence: dict[str, float]  # {"alpha": float, "beta": float}
    statistics: RankerStatistics


class SystemState(TypedDict):
    """TypedDict for system snapshot state."""
    ranker_state: RankerState
    runtime_state: dict[str, int]  # recorded_outcomes, etc.


@dataclass(frozen=True)
class SelectionContext:
    """
    Everything a pair selector may read when choosing the next comparison.

    pair_counts holds served outcomes per pair (skips included), counted over
    all annotators or only the requesting one in per-annotator mode. exclude
    holds pairs that must not be offered: those already judged by the
    requesting annotator, and those currently in flight.
    """

    candidate_ids: tuple[str, ...]
    pair_counts: Mapping[PairKey, int] = field(default_factory=dict)
    required_comparisons_per_pair: int = 1
    exclude: frozenset[PairKey] = frozenset()
    beliefs: Mapping[str, CandidateBelief] = field(default_factory=dict)
    competence: AnnotatorCompetence = field(default_factory=AnnotatorCompetence.prior)
    path_matrix: "PathMatrix | None" = None

    def belief(self, candidate_id: str) -> CandidateBelief:
        return self.beliefs.get(candidate_id) or CandidateBelief.prior()

    def eligible_pairs(self) -> list[PairKey]:
        """Pairs below their required count and not excluded, in candidate-id order."""
        return [
            pair
            for pair in all_pairs(self.candidate_ids)
            if self.pair_counts.get(pair, 0) < self.required_comparisons_per_pair and pair not in self.exclude
        ]


class Annotator(ABC):
    """Interface for a source of pairwise judgments."""

    annotator_id: str

    @abstractmethod
    def judge(self, pair: PairKey) -> ComparisonOutcome:
        """
        Synchronous judgment of one pair.

        May block. Caller runs in threadpool for concurrency.

        Args:
            pair: The pair to compare

        Returns:
            ComparisonOutcome naming the preferred candidate, or a skip
        """
        pass


class Storage(ABC):
    """Interface for persisting the outcome log and state snapshots."""

    @abstractmethod
    def persist_outcome(self, outcome: ComparisonOutcome) -> None:
        """Append a comparison outcome to the log."""
        pass

    @abstractmethod
    def load_outcomes(self) -> Iterable[ComparisonOutcome]:
        """Load all persisted outcomes in log order."""
        pass

    @abstractmethod
    def save_snapshot(self, state: SystemState) -> None:
        """Save system state snapshot."""
        pass

    @abstractmethod
    def load_snapshot(self) -> SystemState | None:
        """Load system state snapshot."""
        pass


class Ranker(ABC):
    """Interface for holding per-session candidate beliefs."""

    @abstractmethod
    def update_with_outcome(self, outcome: ComparisonOutcome) -> UpdateResult | None:
        """
        Update beliefs with one outcome.

        Skips update no belief and return None.
        """
        pass

    @abstractmethod
    def get_belief(self, candidate_id: str) -> CandidateBelief:
        """Get the current belief for a candidate."""
        pass

    @abstractmethod
    def get_score(self, candidate_id: str) -> float:
        """Get current score (mu) for a candidate."""
        pass

    @abstractmethod
    def get_uncertainty(self, candidate_id: str) -> float:
        """Get current uncertainty (sigma_sq) for a candidate."""
        pass

    @abstractmethod
    def snapshot(self) -> RankerState:
        """Export current ranking state."""
        pass

    @abstractmethod
    def load_snapshot(self, state: RankerState) -> None:
        """Load ranking state from snapshot."""
        pass

    @abstractmethod
    def get_total_eval_count(self, candidate_id: str) -> int:
        """Get total evaluation count for a candidate."""
        pass

    @abstractmethod
    def get_win_percentage(self, candidate_id: str) -> float:
        """Get win percentage for a candidate."""
        pass


class Aggregator(ABC):
    """Interface for turning an outcome log into a ranking."""

    @abstractmethod
    def rank(self, outcomes: Iterable[ComparisonOutcome], candidate_ids: Iterable[str]) -> RankingReport:
        """Rank candidates from the full outcome log."""
        pass


class PairSelector(ABC):
    """Interface for selecting the next pair to compare."""

    # Set by selectors that read the Schulze path matrix
    requires_path_matrix: bool = False

    @abstractmethod
    def select_pair(self, context: SelectionContext) -> PairKey | None:
        """
        Select the next pair to present.

        Args:
            context: Current beliefs, path matrix and served pairs

        Returns:
            PairKey to compare, or None if every pair has reached its
            required count (the session is complete)
        """
        pass
