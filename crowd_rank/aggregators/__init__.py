"""
Aggregator implementations.

Available implementations:
- SchulzeAggregator: Condorcet-consistent ranking from strongest paths over
  the pairwise win matrix
"""

from .schulze import PathMatrix, SchulzeAggregator

__all__ = ["PathMatrix", "SchulzeAggregator"]
