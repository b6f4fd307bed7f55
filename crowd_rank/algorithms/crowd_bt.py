"""
Crowd-BT online Bayesian updater.

Each comparison with a definite winner updates a Gaussian belief per candidate
and a Beta belief over pooled annotator competence by moment matching against
the posterior of a Bradley-Terry choice model mixed over competence.

All functions are pure. The constants below are read at call time, so tests
may override them with ``monkeypatch.setattr(crowd_bt, "KAPPA", ...)``.
"""

import math
from collections.abc import Iterable, Mapping
from functools import reduce
from typing import NamedTuple, cast

from ..exceptions import NumericInstability
from ..logging_config import get_logger
from ..models import AnnotatorCompetence, CandidateBelief, ComparisonOutcome, UpdateResult
from .divergence import beta_divergence, gaussian_divergence

GAMMA = 0.1  # weight of the competence term in expected information gain
KAPPA = 0.0001  # smallest variance multiplier allowed in one update
MU_PRIOR = 0.0
SIGMA_SQ_PRIOR = 1.0
ALPHA_PRIOR = 10.0
BETA_PRIOR = 1.0
EPSILON = 0.25  # minimum information gain threshold for callers; unused here

logger = get_logger("crowd_bt")


class FoldState(NamedTuple):
    """Session belief state produced by folding outcomes in order."""

    beliefs: dict[str, CandidateBelief]
    competence: AnnotatorCompetence
    clamped_updates: int = 0


def _sigmoid(x: float) -> float:
    if x >= 0:
        z = math.exp(-x)
        return 1.0 / (1.0 + z)
    z = math.exp(x)
    return z / (1.0 + z)


def _moment_match_competence(alpha: float, beta: float, c1: float, c: float) -> AnnotatorCompetence:
    """Solve for the Beta whose mean and variance match the competence posterior."""
    c2 = 1.0 - c1
    total = alpha + beta
    if not math.isfinite(c) or c <= 0:
        raise NumericInstability(f"observation probability {c} is not positive")

    expt = (c1 * (alpha + 1) * alpha + c2 * alpha * beta) / (c * (total + 1) * total)
    expt_sq = (c1 * (alpha + 2) * (alpha + 1) * alpha + c2 * (alpha + 1) * alpha * beta) / (
        c * (total + 2) * (total + 1) * total
    )
    variance = expt_sq - expt * expt
    if not math.isfinite(variance) or variance <= 0:
        raise NumericInstability(f"competence posterior variance {variance} is not positive")

    scale = (expt - expt_sq) / variance
    new_alpha = scale * expt
    new_beta = scale * (1.0 - expt)
    if not (math.isfinite(new_alpha) and math.isfinite(new_beta)) or new_alpha <= 0 or new_beta <= 0:
        raise NumericInstability(f"moment matching produced alpha={new_alpha}, beta={new_beta}")
    return AnnotatorCompetence(alpha=new_alpha, beta=new_beta)


def update(
    competence: AnnotatorCompetence,
    winner: CandidateBelief,
    loser: CandidateBelief,
) -> UpdateResult:
    """
    Apply one comparison in which ``winner`` was preferred over ``loser``.

    The competence update falls back to the prior competence (zero evidence)
    when moment matching degenerates; the result is flagged with
    ``competence_clamped`` so callers can log and count it.

    Args:
        competence: Current pooled annotator competence
        winner: Current belief for the preferred candidate
        loser: Current belief for the other candidate

    Returns:
        UpdateResult with the new competence and candidate beliefs
    """
    alpha, beta = competence.alpha, competence.beta
    diff = winner.mu - loser.mu

    # P(winner beats loser) under the skill model alone, and once the
    # observed label is weighed by competence
    p_model = _sigmoid(diff)
    p_informed = _sigmoid(diff + math.log(alpha / beta))

    # Second-order correction for skill uncertainty
    c1 = p_model + 0.5 * (winner.sigma_sq + loser.sigma_sq) * (
        p_model * (1.0 - p_model) * (1.0 - 2.0 * p_model)
    )
    c = (c1 * alpha + (1.0 - c1) * beta) / (alpha + beta)

    competence_clamped = False
    try:
        new_competence = _moment_match_competence(alpha, beta, c1, c)
    except NumericInstability as e:
        logger.debug(f"Keeping prior competence alpha={alpha:.4f}, beta={beta:.4f}: {e}")
        new_competence = competence
        competence_clamped = True

    mean_shift = max(p_informed - p_model, 0.0)
    variance_shift = p_informed * (1.0 - p_informed) - p_model * (1.0 - p_model)

    def shrink(sigma_sq: float) -> float:
        return sigma_sq * min(1.0, max(1.0 + sigma_sq * variance_shift, KAPPA))

    return UpdateResult(
        competence=new_competence,
        winner=CandidateBelief(mu=winner.mu + winner.sigma_sq * mean_shift, sigma_sq=shrink(winner.sigma_sq)),
        loser=CandidateBelief(mu=loser.mu - loser.sigma_sq * mean_shift, sigma_sq=shrink(loser.sigma_sq)),
        observation_probability=c,
        competence_clamped=competence_clamped,
    )


def expected_information_gain(
    competence: AnnotatorCompetence,
    belief_a: CandidateBelief,
    belief_b: CandidateBelief,
) -> float:
    """
    Expected reduction in uncertainty from comparing A against B.

    Sums the Gaussian divergences of both candidates' updated beliefs plus
    GAMMA times the competence divergence, averaged over both outcomes
    weighted by their predicted probabilities. Reads beliefs only.
    """
    a_wins = update(competence, belief_a, belief_b)
    b_wins = update(competence, belief_b, belief_a)
    p_a_wins = min(max(a_wins.observation_probability, 0.0), 1.0)

    gain_if_a_wins = (
        gaussian_divergence(a_wins.winner.mu, a_wins.winner.sigma_sq, belief_a.mu, belief_a.sigma_sq)
        + gaussian_divergence(a_wins.loser.mu, a_wins.loser.sigma_sq, belief_b.mu, belief_b.sigma_sq)
        + GAMMA * beta_divergence(a_wins.competence.alpha, a_wins.competence.beta, competence.alpha, competence.beta)
    )
    gain_if_b_wins = (
        gaussian_divergence(b_wins.loser.mu, b_wins.loser.sigma_sq, belief_a.mu, belief_a.sigma_sq)
        + gaussian_divergence(b_wins.winner.mu, b_wins.winner.sigma_sq, belief_b.mu, belief_b.sigma_sq)
        + GAMMA * beta_divergence(b_wins.competence.alpha, b_wins.competence.beta, competence.alpha, competence.beta)
    )
    return p_a_wins * gain_if_a_wins + (1.0 - p_a_wins) * gain_if_b_wins


def apply_outcome(state: FoldState, outcome: ComparisonOutcome) -> FoldState:
    """Fold step: apply one outcome to a session state, returning a new state."""
    if outcome.is_skip:
        return state

    winner_id = cast(str, outcome.winner)
    loser_id = cast(str, outcome.loser)

    result = update(
        state.competence,
        state.beliefs.get(winner_id) or CandidateBelief.prior(),
        state.beliefs.get(loser_id) or CandidateBelief.prior(),
    )
    beliefs = dict(state.beliefs)
    beliefs[winner_id] = result.winner
    beliefs[loser_id] = result.loser
    return FoldState(
        beliefs=beliefs,
        competence=result.competence,
        clamped_updates=state.clamped_updates + int(result.competence_clamped),
    )


def fold_outcomes(
    outcomes: Iterable[ComparisonOutcome],
    beliefs: Mapping[str, CandidateBelief] | None = None,
    competence: AnnotatorCompetence | None = None,
) -> FoldState:
    """
    Replay outcomes in creation-time order over an initial state.

    The update is not commutative, so the order is part of the result:
    outcomes are sorted by ``created_at`` and ties keep their input order.
    Inputs are never mutated.
    """
    initial = FoldState(
        beliefs=dict(beliefs or {}),
        competence=competence or AnnotatorCompetence.prior(),
    )
    ordered = sorted(outcomes, key=lambda outcome: outcome.created_at)
    return reduce(apply_outcome, ordered, initial)
