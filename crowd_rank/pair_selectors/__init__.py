"""
Pair selector implementations.

Provides implementations of the PairSelector interface for choosing which
pair of candidates to compare next.

Available implementations:
- BeliefGapSelector: Closest Crowd-BT means (least predictable outcome)
- PathAmbiguitySelector: Tied Schulze strongest paths, fewest votes first
- InformationGainSelector: Largest expected Crowd-BT information gain
- SequentialSelector: First uncompared pair in candidate-id order
- RandomSelector: Uniformly random eligible pair
"""

from enum import Enum

from ..exceptions import ConfigurationError
from ..interfaces import PairSelector
from .belief_gap_selector import BeliefGapSelector
from .information_gain_selector import InformationGainSelector
from .path_ambiguity_selector import PathAmbiguitySelector
from .random_selector import RandomSelector
from .sequential_selector import SequentialSelector


class SelectionStrategy(str, Enum):
    """Named pair selection strategies."""

    BELIEF_GAP = "belief-gap"
    PATH_AMBIGUITY = "path-ambiguity"
    INFORMATION_GAIN = "information-gain"
    SEQUENTIAL = "sequential"
    RANDOM = "random"


def create_selector(
    strategy: SelectionStrategy | str,
    min_information_gain: float | None = None,
    seed: int | None = None,
) -> PairSelector:
    """
    Build the selector for a strategy.

    Args:
        strategy: Strategy enum member or its string value
        min_information_gain: Threshold for the information-gain strategy
        seed: Seed for the random strategy

    Raises:
        ConfigurationError: If the strategy is unknown
    """
    try:
        strategy = SelectionStrategy(strategy)
    except ValueError:
        raise ConfigurationError(f"Unknown selection strategy: {strategy}") from None

    if strategy is SelectionStrategy.BELIEF_GAP:
        return BeliefGapSelector()
    if strategy is SelectionStrategy.PATH_AMBIGUITY:
        return PathAmbiguitySelector()
    if strategy is SelectionStrategy.INFORMATION_GAIN:
        return InformationGainSelector(min_gain=min_information_gain)
    if strategy is SelectionStrategy.SEQUENTIAL:
        return SequentialSelector()
    return RandomSelector(seed=seed)


__all__ = [
    "BeliefGapSelector",
    "InformationGainSelector",
    "PathAmbiguitySelector",
    "RandomSelector",
    "SelectionStrategy",
    "SequentialSelector",
    "create_selector",
]
