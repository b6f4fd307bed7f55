"""
Tests for the divergence helpers.

Reference values for digamma and log-Gamma, plus the basic KL properties.
"""

import math

import pytest

from crowd_rank.algorithms.divergence import (
    beta_divergence,
    betaln,
    digamma,
    gaussian_divergence,
    log_gamma,
)
from crowd_rank.exceptions import DomainError


class TestSpecialFunctions:
    """Test log-Gamma and digamma against known values."""

    @pytest.mark.parametrize(
        "x, expected",
        [
            (1.0, -0.5772156649015329),
            (0.5, -1.9635100260214235),
            (2.0, 0.42278433509846713),
            (10.0, 2.251752589066721),
        ],
    )
    def test_digamma_reference_values(self, x: float, expected: float) -> None:
        """Digamma should match tabulated values."""
        assert digamma(x) == pytest.approx(expected, abs=1e-8), f"digamma({x}) should be {expected}"

    @pytest.mark.parametrize("z", [0.01, 0.5, 1.0, 2.5, 7.0, 10.0, 100.0, 1e5])
    def test_log_gamma_matches_math_lgamma(self, z: float) -> None:
        """Lanczos log-Gamma should agree with the standard library."""
        assert log_gamma(z) == pytest.approx(math.lgamma(z), rel=1e-9, abs=1e-8), (
            f"log_gamma({z}) should match math.lgamma"
        )

    def test_betaln_of_ones_is_zero(self) -> None:
        """B(1, 1) = 1, so its log is 0."""
        assert betaln(1.0, 1.0) == pytest.approx(0.0, abs=1e-9)

    @pytest.mark.parametrize("bad", [0.0, -1.0, float("nan"), float("inf")])
    def test_non_positive_arguments_rejected(self, bad: float) -> None:
        """Arguments outside the domain should raise DomainError."""
        with pytest.raises(DomainError):
            digamma(bad)
        with pytest.raises(DomainError):
            log_gamma(bad)


class TestGaussianDivergence:
    """Test KL divergence between Gaussian beliefs."""

    def test_self_divergence_is_zero(self) -> None:
        """KL(N || N) should be exactly zero."""
        assert gaussian_divergence(0.3, 0.7, 0.3, 0.7) == 0.0

    def test_mean_shift_only(self) -> None:
        """Unit mean shift at unit variance gives 1/2."""
        assert gaussian_divergence(1.0, 1.0, 0.0, 1.0) == pytest.approx(0.5)

    def test_variance_change_only(self) -> None:
        """Doubling the variance gives (2 - 1 - ln 2) / 2."""
        expected = (2.0 - 1.0 - math.log(2.0)) / 2.0
        assert gaussian_divergence(0.0, 2.0, 0.0, 1.0) == pytest.approx(expected)

    def test_is_directed(self) -> None:
        """KL is not symmetric in its arguments."""
        forward = gaussian_divergence(0.0, 2.0, 0.0, 1.0)
        backward = gaussian_divergence(0.0, 1.0, 0.0, 2.0)
        assert forward != pytest.approx(backward), "Divergence should depend on direction"

    def test_zero_variance_rejected(self) -> None:
        """Non-positive variance should raise DomainError."""
        with pytest.raises(DomainError):
            gaussian_divergence(0.0, 0.0, 0.0, 1.0)
        with pytest.raises(DomainError):
            gaussian_divergence(0.0, 1.0, 0.0, -1.0)


class TestBetaDivergence:
    """Test KL divergence between Beta beliefs."""

    def test_self_divergence_is_zero(self) -> None:
        """KL(Beta || Beta) should be exactly zero."""
        assert beta_divergence(10.0, 1.0, 10.0, 1.0) == 0.0

    def test_known_value(self) -> None:
        """KL(Beta(2,2) || Beta(1,1)) = ln 6 + 2ψ(2) - 2ψ(4)."""
        assert beta_divergence(2.0, 2.0, 1.0, 1.0) == pytest.approx(0.1250928, abs=1e-6)

    @pytest.mark.parametrize(
        "params",
        [(2.0, 5.0, 5.0, 2.0), (10.0, 1.0, 11.0, 1.5), (0.5, 0.5, 3.0, 3.0)],
    )
    def test_non_negative(self, params: tuple[float, float, float, float]) -> None:
        """KL divergence should never be negative."""
        assert beta_divergence(*params) >= 0.0, f"KL{params} should be non-negative"

    def test_non_positive_parameters_rejected(self) -> None:
        """Any non-positive parameter should raise DomainError."""
        with pytest.raises(DomainError):
            beta_divergence(0.0, 1.0, 1.0, 1.0)
        with pytest.raises(DomainError):
            beta_divergence(1.0, 1.0, 1.0, -2.0)
