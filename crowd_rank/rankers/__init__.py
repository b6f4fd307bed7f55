"""
Ranker implementations.

Provides implementations of the Ranker interface for maintaining candidate
beliefs over a ranking session.

Available implementations:
- CrowdBTRanker: Crowd-BT online Bayesian updates with a shared annotator
  competence belief and uncertainty tracking
"""

from .crowd_bt_ranker import CrowdBTRanker

__all__ = ["CrowdBTRanker"]
