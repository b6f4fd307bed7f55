"""
Ranking algorithms.

Pure functions with no hidden state:
- divergence: KL divergences between Gaussian and Beta beliefs
- crowd_bt: Crowd-BT moment-matching updater, expected information gain and
  the ordered fold over an outcome log
"""

from .crowd_bt import expected_information_gain, fold_outcomes, update
from .divergence import beta_divergence, digamma, gaussian_divergence, log_gamma

__all__ = [
    "beta_divergence",
    "digamma",
    "expected_information_gain",
    "fold_outcomes",
    "gaussian_divergence",
    "log_gamma",
    "update",
]
