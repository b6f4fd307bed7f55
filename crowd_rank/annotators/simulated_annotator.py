"""
Simulated annotator implementation.

Judges pairs from latent ground-truth scores with Gaussian noise, for
testing and offline simulation.
"""

import random

from typing_extensions import override

from ..exceptions import ConfigurationError
from ..interfaces import Annotator
from ..models import ComparisonOutcome, PairKey


class SimulatedAnnotator(Annotator):
    """
    Simulated annotator for testing purposes.

    Each judgment perturbs both ground-truth scores with Gaussian noise and
    prefers the higher noisy score. With probability skip_rate the pair is
    skipped instead.
    """

    def __init__(
        self,
        ground_truth: dict[str, float],
        noise: float = 0.1,
        skip_rate: float = 0.0,
        annotator_id: str = "simulated",
        seed: int | None = None,
    ):
        """
        Initialize simulated annotator.

        Args:
            ground_truth: Dict mapping candidate_id to true score
            noise: Standard deviation of the Gaussian noise added to each score
            skip_rate: Probability of skipping a pair (0-1)
            annotator_id: Identifier recorded on each outcome
            seed: Random seed for reproducible judgments
        """
        if noise < 0:
            raise ConfigurationError(f"noise must be >= 0, got {noise}")
        if not 0.0 <= skip_rate <= 1.0:
            raise ConfigurationError(f"skip_rate must be in [0, 1], got {skip_rate}")

        self.ground_truth = ground_truth
        self.noise = noise
        self.skip_rate = skip_rate
        self.annotator_id = annotator_id
        self._rng = random.Random(seed)

    def _noisy_score(self, candidate_id: str) -> float:
        score = self.ground_truth.get(candidate_id, 0.0)
        if self.noise == 0:
            return score
        return score + self._rng.gauss(0, self.noise)

    @override
    def judge(self, pair: PairKey) -> ComparisonOutcome:
        """Judge a pair using ground truth + noise."""
        if self.skip_rate and self._rng.random() < self.skip_rate:
            return ComparisonOutcome(
                candidate_a=pair.first, candidate_b=pair.second, winner=None, annotator_id=self.annotator_id
            )

        first_score = self._noisy_score(pair.first)
        second_score = self._noisy_score(pair.second)
        # Ties go to the lower candidate id
        winner = pair.first if first_score >= second_score else pair.second
        return ComparisonOutcome(
            candidate_a=pair.first, candidate_b=pair.second, winner=winner, annotator_id=self.annotator_id
        )

    def get_ground_truth(self) -> dict[str, float]:
        """Get ground truth scores for debugging."""
        return self.ground_truth.copy()
