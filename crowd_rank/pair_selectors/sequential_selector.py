"""
Sequential selector implementation.

Offers pairs in candidate-id order until each reaches its required count.
"""

from typing_extensions import override

from ..interfaces import PairSelector, SelectionContext
from ..models import PairKey


class SequentialSelector(PairSelector):
    """Deterministic selector - first eligible pair in candidate-id order."""

    @override
    def select_pair(self, context: SelectionContext) -> PairKey | None:
        eligible = context.eligible_pairs()
        return eligible[0] if eligible else None
