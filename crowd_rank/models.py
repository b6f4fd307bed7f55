"""
Core dataclasses for the crowd ranking engine.

Defines belief records, comparison outcomes, pair keys and ranking results
with validation.
"""

import math
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from itertools import combinations

from .exceptions import DomainError, ValidationError


@dataclass(frozen=True)
class Candidate:
    """A rankable item (a "choice" in a decision)."""

    candidate_id: str
    text: str = ""

    def __post_init__(self) -> None:
        """Validate candidate data."""
        if not self.candidate_id:
            raise ValidationError("candidate_id cannot be empty")


@dataclass(frozen=True)
class CandidateBelief:
    """Gaussian belief N(mu, sigma_sq) over a candidate's latent skill."""

    mu: float
    sigma_sq: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.mu):
            raise DomainError(f"mu must be finite, got {self.mu}")
        if not math.isfinite(self.sigma_sq) or self.sigma_sq <= 0:
            raise DomainError(f"sigma_sq must be positive and finite, got {self.sigma_sq}")

    @classmethod
    def prior(cls) -> "CandidateBelief":
        from .algorithms import crowd_bt
        return cls(mu=crowd_bt.MU_PRIOR, sigma_sq=crowd_bt.SIGMA_SQ_PRIOR)


@dataclass(frozen=True)
class AnnotatorCompetence:
    """Beta(alpha, beta) belief over the pooled probability that a judgment is correct."""

    alpha: float
    beta: float

    def __post_init__(self) -> None:
        for name, value in (("alpha", self.alpha), ("beta", self.beta)):
            if not math.isfinite(value) or value <= 0:
                raise DomainError(f"{name} must be positive and finite, got {value}")

    @classmethod
    def prior(cls) -> "AnnotatorCompetence":
        from .algorithms import crowd_bt
        return cls(alpha=crowd_bt.ALPHA_PRIOR, beta=crowd_bt.BETA_PRIOR)

    @property
    def mean(self) -> float:
        """Expected probability that an annotator reports correctly."""
        return self.alpha / (self.alpha + self.beta)


@dataclass(frozen=True, order=True)
class PairKey:
    """Unordered candidate pair, stored as (min, max)."""

    first: str
    second: str

    def __post_init__(self) -> None:
        if self.first == self.second:
            raise ValidationError(f"A pair needs two distinct candidates, got {self.first!r} twice")
        if self.first > self.second:
            raise ValidationError("PairKey must be normalized; use PairKey.of()")

    @classmethod
    def of(cls, candidate_a: str, candidate_b: str) -> "PairKey":
        """Build the normalized key for two candidates in any order."""
        if candidate_a == candidate_b:
            raise ValidationError(f"A pair needs two distinct candidates, got {candidate_a!r} twice")
        return cls(min(candidate_a, candidate_b), max(candidate_a, candidate_b))

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id == self.first or candidate_id == self.second

    def other(self, candidate_id: str) -> str:
        """Return the member of the pair that is not candidate_id."""
        if candidate_id == self.first:
            return self.second
        if candidate_id == self.second:
            return self.first
        raise ValidationError(f"{candidate_id!r} is not part of {self}")


def all_pairs(candidate_ids: Iterable[str]) -> list[PairKey]:
    """Enumerate all n*(n-1)/2 pairs in candidate-id order."""
    ordered = sorted(set(candidate_ids))
    return [PairKey(a, b) for a, b in combinations(ordered, 2)]


@dataclass(frozen=True)
class ComparisonOutcome:
    """
    One recorded judgment between two candidates.

    A winner of None is an explicit skip: it updates no belief but still
    counts as a served comparison.
    """

    candidate_a: str
    candidate_b: str
    winner: str | None
    annotator_id: str = "anonymous"
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Validate outcome data."""
        if not self.candidate_a or not self.candidate_b:
            raise ValidationError("candidate ids cannot be empty")
        if self.candidate_a == self.candidate_b:
            raise ValidationError(f"Cannot compare {self.candidate_a!r} with itself")
        if self.winner is not None and self.winner not in (self.candidate_a, self.candidate_b):
            raise ValidationError(
                f"winner {self.winner!r} is not one of {self.candidate_a!r}, {self.candidate_b!r}"
            )

    @property
    def pair(self) -> PairKey:
        return PairKey.of(self.candidate_a, self.candidate_b)

    @property
    def is_skip(self) -> bool:
        return self.winner is None

    @property
    def loser(self) -> str | None:
        if self.winner is None:
            return None
        return self.candidate_b if self.winner == self.candidate_a else self.candidate_a


@dataclass(frozen=True)
class UpdateResult:
    """
    Beliefs after a single Crowd-BT update.

    observation_probability is the predictive probability that the observed
    label is correct; competence_clamped marks a degenerate competence step
    where the prior competence was kept.
    """

    competence: AnnotatorCompetence
    winner: CandidateBelief
    loser: CandidateBelief
    observation_probability: float
    competence_clamped: bool = False


@dataclass(frozen=True)
class RankedResult:
    """One row of a Schulze ranking. Derived; never a source of truth."""

    candidate_id: str
    score: int
    rank: int
    direct_wins: int = 0


@dataclass(frozen=True)
class RankingReport:
    """Aggregator output: ranked rows plus advisory completeness metadata."""

    results: list[RankedResult]
    ranking_incomplete: bool
    comparisons_needed: int

    def ordered_ids(self) -> list[str]:
        return [result.candidate_id for result in self.results]
