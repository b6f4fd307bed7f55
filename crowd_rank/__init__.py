"""
Crowd Rank - Pairwise Crowd Ranking

A ranking engine for a group choosing among candidates by pairwise votes.
Crowd-BT Bayesian updates track each candidate's latent skill and the
crowd's reliability, pair selectors choose the next comparison, and the
Schulze method turns the full vote log into the final ranking.
"""

from .aggregators import PathMatrix, SchulzeAggregator
from .exceptions import (
    ConfigurationError,
    DomainError,
    DuplicateVoteError,
    NumericInstability,
    ValidationError,
)
from .interfaces import Aggregator, Annotator, PairSelector, Ranker, SelectionContext, Storage
from .models import (
    AnnotatorCompetence,
    Candidate,
    CandidateBelief,
    ComparisonOutcome,
    PairKey,
    RankedResult,
    RankingReport,
    UpdateResult,
)
from .orchestrator import Orchestrator, RunConfig
from .rankers import CrowdBTRanker
from .session import RankingSession, SelectionMode, SessionConfig

__version__ = "0.1.0"
__all__ = [
    "Aggregator",
    "Annotator",
    "AnnotatorCompetence",
    "Candidate",
    "CandidateBelief",
    "ComparisonOutcome",
    "ConfigurationError",
    "CrowdBTRanker",
    "DomainError",
    "DuplicateVoteError",
    "NumericInstability",
    "Orchestrator",
    "PairKey",
    "PairSelector",
    "PathMatrix",
    "RankedResult",
    "Ranker",
    "RankingReport",
    "RankingSession",
    "RunConfig",
    "SchulzeAggregator",
    "SelectionContext",
    "SelectionMode",
    "SessionConfig",
    "Storage",
    "UpdateResult",
]
