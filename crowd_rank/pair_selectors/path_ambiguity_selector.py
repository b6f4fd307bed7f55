"""
Path-ambiguity selector implementation.

Picks the pair whose Schulze strongest paths are tied, so that neither
direction currently dominates the ranking.
"""

from typing_extensions import override

from ..exceptions import ConfigurationError
from ..interfaces import PairSelector, SelectionContext
from ..logging_config import get_logger
from ..models import PairKey

# Module-level logger
logger = get_logger("path_ambiguity_selector")


class PathAmbiguitySelector(PairSelector):
    """
    Selector driven by the Schulze path matrix.

    Among eligible pairs with p[i][j] == p[j][i], prefers the one with the
    fewest direct votes, then candidate-id order. Falls back to the first
    eligible pair in candidate-id order when no pair is ambiguous.
    """

    requires_path_matrix = True

    @override
    def select_pair(self, context: SelectionContext) -> PairKey | None:
        """Return the least-voted ambiguous pair, or the first eligible pair."""
        matrix = context.path_matrix
        if matrix is None:
            raise ConfigurationError("PathAmbiguitySelector requires a path matrix in the selection context")

        eligible = context.eligible_pairs()
        if not eligible:
            return None

        ambiguous = [pair for pair in eligible if matrix.is_ambiguous(pair)]
        if not ambiguous:
            logger.debug(f"No ambiguous pair; falling back to {eligible[0].first} vs {eligible[0].second}")
            return eligible[0]

        pair = min(ambiguous, key=lambda pair: (matrix.direct_votes(pair), pair))
        logger.debug(
            f"Selected ambiguous pair {pair.first} vs {pair.second} "
            f"({len(ambiguous)} ambiguous, {matrix.direct_votes(pair)} direct votes)"
        )
        return pair
