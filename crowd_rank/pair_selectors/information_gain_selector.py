"""
Information-gain selector implementation.

Active learning over the Crowd-BT model: picks the eligible pair with the
largest expected information gain.
"""

from typing_extensions import override

from ..algorithms.crowd_bt import expected_information_gain
from ..interfaces import PairSelector, SelectionContext
from ..logging_config import get_logger
from ..models import PairKey

# Module-level logger
logger = get_logger("information_gain_selector")


class InformationGainSelector(PairSelector):
    """Selector maximizing expected information gain."""

    def __init__(self, min_gain: float | None = None):
        """
        Initialize information-gain selector.

        Args:
            min_gain: Pairs with a smaller expected gain are never offered
                (callers typically pass crowd_bt.EPSILON). None disables the
                threshold.
        """
        self.min_gain: float | None = min_gain

    @override
    def select_pair(self, context: SelectionContext) -> PairKey | None:
        """Return the most informative eligible pair."""
        eligible = context.eligible_pairs()
        if not eligible:
            return None

        gains = {
            pair: expected_information_gain(context.competence, context.belief(pair.first), context.belief(pair.second))
            for pair in eligible
        }
        if self.min_gain is not None:
            gains = {pair: gain for pair, gain in gains.items() if gain >= self.min_gain}
            if not gains:
                logger.info(f"No eligible pair reaches the minimum information gain {self.min_gain}")
                return None

        pair = min(gains, key=lambda pair: (-gains[pair], pair))
        logger.debug(f"Selected pair {pair.first} vs {pair.second} (expected gain {gains[pair]:.4f})")
        return pair
