"""
Dummy annotator implementation for testing.

Provides deterministic and random judgments.
"""

import random

from typing_extensions import override

from ..exceptions import ConfigurationError
from ..interfaces import Annotator
from ..models import ComparisonOutcome, PairKey


class DummyAnnotator(Annotator):
    """
    Dummy annotator for testing purposes.

    In deterministic mode the lower candidate id always wins; in random mode
    the winner is a coin flip.
    """

    def __init__(self, mode: str = "deterministic", seed: int = 42, annotator_id: str | None = None):
        """
        Initialize dummy annotator.

        Args:
            mode: "deterministic" or "random"
            seed: Random seed for reproducible results
            annotator_id: Identifier recorded on each outcome
        """
        if mode not in ("deterministic", "random"):
            raise ConfigurationError(f"Unknown mode: {mode}")
        self.mode = mode
        self.annotator_id = annotator_id or f"dummy_{mode}"
        self._rng = random.Random(seed)

    @override
    def judge(self, pair: PairKey) -> ComparisonOutcome:
        if self.mode == "deterministic":
            winner = pair.first
        else:
            winner = self._rng.choice((pair.first, pair.second))

        return ComparisonOutcome(
            candidate_a=pair.first, candidate_b=pair.second, winner=winner, annotator_id=self.annotator_id
        )
