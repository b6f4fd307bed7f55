"""
Random selector implementation.

Simple selector for testing/baseline.
"""

import random

from typing_extensions import override

from ..interfaces import PairSelector, SelectionContext
from ..logging_config import get_logger
from ..models import PairKey


class RandomSelector(PairSelector):
    """Random pair selector - for testing/baseline."""

    def __init__(self, seed: int | None = None):
        """Initialize random selector.

        Args:
            seed: Seed for reproducible selections (None = nondeterministic)
        """
        self._random = random.Random(seed)
        self.logger = get_logger("random_selector")

    @override
    def select_pair(self, context: SelectionContext) -> PairKey | None:
        """Return a uniformly random eligible pair."""
        eligible = context.eligible_pairs()
        if not eligible:
            return None

        pair = self._random.choice(eligible)
        self.logger.debug(f"Selected random pair {pair.first} vs {pair.second} from {len(eligible)} eligible")
        return pair
