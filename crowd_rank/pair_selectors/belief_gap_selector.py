"""
Belief-gap selector implementation.

Picks the uncompared pair whose outcome is least predictable under the
current Crowd-BT beliefs.
"""

from typing_extensions import override

from ..interfaces import PairSelector, SelectionContext
from ..logging_config import get_logger
from ..models import PairKey

# Module-level logger
logger = get_logger("belief_gap_selector")


class BeliefGapSelector(PairSelector):
    """
    Selector minimizing |mu_i - mu_j| over eligible pairs.

    Ties are broken by lowest combined variance, then by candidate id.
    """

    @override
    def select_pair(self, context: SelectionContext) -> PairKey | None:
        """Return the eligible pair with the smallest belief gap."""
        eligible = context.eligible_pairs()
        if not eligible:
            return None

        def gap(pair: PairKey) -> tuple[float, float, PairKey]:
            first, second = context.belief(pair.first), context.belief(pair.second)
            return abs(first.mu - second.mu), first.sigma_sq + second.sigma_sq, pair

        pair = min(eligible, key=gap)
        mu_gap, combined_variance, _ = gap(pair)
        logger.debug(f"Selected belief-gap pair {pair.first} vs {pair.second} (|Δμ|={mu_gap:.4f}, Σσ²={combined_variance:.4f})")
        return pair
