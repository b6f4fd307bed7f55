"""
Crowd-BT ranker implementation.

Holds one session's candidate beliefs and shared annotator competence, and
applies outcomes one at a time through the pure Crowd-BT updater.
"""

import threading
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, cast

from typing_extensions import override

if TYPE_CHECKING:
    from loguru import Logger

from ..algorithms import crowd_bt
from ..interfaces import Ranker, RankerState
from ..logging_config import get_logger
from ..models import AnnotatorCompetence, CandidateBelief, ComparisonOutcome, UpdateResult


class CrowdBTRanker(Ranker):
    """
    Crowd-BT ranker owning the session's belief state.

    The competence belief is shared by every comparison in the session and
    the update is order dependent, so every read-modify-write of competence
    and the two candidate beliefs happens under one lock.
    """

    def __init__(self, competence: AnnotatorCompetence | None = None):
        """
        Initialize Crowd-BT ranker.

        Args:
            competence: Initial annotator competence (defaults to the prior)
        """
        self._competence: AnnotatorCompetence = competence or AnnotatorCompetence.prior()
        self.beliefs = dict[str, CandidateBelief]()

        # Statistics tracking
        self.eval_counts = dict[str, int]()  # Non-skip comparisons per candidate
        self.win_counts = dict[str, int]()
        self.skip_count: int = 0
        self.clamped_updates: int = 0  # Competence steps that kept the prior

        self._lock: threading.Lock = threading.Lock()

        self.logger: Logger = get_logger("crowd_bt_ranker")
        self.logger.info(
            f"Crowd-BT ranker initialized: alpha={self._competence.alpha}, beta={self._competence.beta}"
        )

    @property
    def competence(self) -> AnnotatorCompetence:
        return self._competence

    def _get_or_create_belief(self, candidate_id: str) -> CandidateBelief:
        """Get existing belief or the prior for an unseen candidate."""
        if candidate_id not in self.beliefs:
            self.beliefs[candidate_id] = CandidateBelief.prior()
        return self.beliefs[candidate_id]

    @override
    def update_with_outcome(self, outcome: ComparisonOutcome) -> UpdateResult | None:
        """
        Apply one outcome to the session beliefs.

        Skips are counted but update no belief. Thread-safe.
        """
        if outcome.is_skip:
            with self._lock:
                self.skip_count += 1
            self.logger.debug(f"Skip recorded for {outcome.candidate_a} vs {outcome.candidate_b}; beliefs unchanged")
            return None

        winner_id = cast(str, outcome.winner)
        loser_id = cast(str, outcome.loser)

        with self._lock:
            winner = self._get_or_create_belief(winner_id)
            loser = self._get_or_create_belief(loser_id)

            result = crowd_bt.update(self._competence, winner, loser)

            if result.competence_clamped:
                self.clamped_updates += 1
                self.logger.warning(
                    f"Numeric instability updating competence for {winner_id} over {loser_id}; "
                    f"kept alpha={self._competence.alpha:.4f}, beta={self._competence.beta:.4f} "
                    f"({self.clamped_updates} clamped so far)"
                )

            self.beliefs[winner_id] = result.winner
            self.beliefs[loser_id] = result.loser
            self._competence = result.competence

            for candidate_id in (winner_id, loser_id):
                self.eval_counts[candidate_id] = self.eval_counts.get(candidate_id, 0) + 1
            self.win_counts[winner_id] = self.win_counts.get(winner_id, 0) + 1

        self.logger.info(f"Belief update: {winner_id} beat {loser_id}")
        self.logger.info(f"  {winner_id}: μ {winner.mu:.3f}->{result.winner.mu:.3f} (σ²: {winner.sigma_sq:.3f}->{result.winner.sigma_sq:.3f})")
        self.logger.info(f"  {loser_id}: μ {loser.mu:.3f}->{result.loser.mu:.3f} (σ²: {loser.sigma_sq:.3f}->{result.loser.sigma_sq:.3f})")
        return result

    def insert_outcome(self, outcomes: Sequence[ComparisonOutcome], index: int) -> UpdateResult | None:
        """
        Rebuild beliefs after ``outcomes[index]`` landed before outcomes already applied.

        ``outcomes`` must be in creation-time order. The returned result is the
        inserted outcome's own update, computed on the state folded from the
        outcomes that precede it.
        """
        outcome = outcomes[index]
        result = None
        if not outcome.is_skip:
            prefix = crowd_bt.fold_outcomes(outcomes[:index])
            result = crowd_bt.update(
                prefix.competence,
                prefix.beliefs.get(cast(str, outcome.winner)) or CandidateBelief.prior(),
                prefix.beliefs.get(cast(str, outcome.loser)) or CandidateBelief.prior(),
            )
        self.replay(outcomes)
        return result

    def replay(self, outcomes: Iterable[ComparisonOutcome]) -> None:
        """
        Rebuild beliefs from scratch by folding an outcome log.

        Outcomes are applied in creation-time order from the prior state.
        """
        outcomes = list(outcomes)
        state = crowd_bt.fold_outcomes(outcomes)
        with self._lock:
            self.beliefs = dict(state.beliefs)
            self._competence = state.competence
            self.clamped_updates = state.clamped_updates
            self.eval_counts.clear()
            self.win_counts.clear()
            self.skip_count = 0
            for outcome in outcomes:
                if outcome.is_skip:
                    self.skip_count += 1
                    continue
                winner_id = cast(str, outcome.winner)
                for candidate_id in (winner_id, cast(str, outcome.loser)):
                    self.eval_counts[candidate_id] = self.eval_counts.get(candidate_id, 0) + 1
                self.win_counts[winner_id] = self.win_counts.get(winner_id, 0) + 1
        self.logger.info(f"Replayed {len(outcomes)} outcomes ({self.skip_count} skips)")

    def expected_information_gain(self, candidate_a: str, candidate_b: str) -> float:
        """Expected information gain from comparing two candidates now."""
        with self._lock:
            competence = self._competence
            belief_a = self.beliefs.get(candidate_a) or CandidateBelief.prior()
            belief_b = self.beliefs.get(candidate_b) or CandidateBelief.prior()
        return crowd_bt.expected_information_gain(competence, belief_a, belief_b)

    @override
    def get_belief(self, candidate_id: str) -> CandidateBelief:
        return self.beliefs.get(candidate_id) or CandidateBelief.prior()

    @override
    def get_score(self, candidate_id: str) -> float:
        """Get current score (mu) for a candidate."""
        return self.get_belief(candidate_id).mu

    @override
    def get_uncertainty(self, candidate_id: str) -> float:
        """Get current uncertainty (sigma_sq) for a candidate."""
        return self.get_belief(candidate_id).sigma_sq

    def get_all_beliefs(self) -> dict[str, CandidateBelief]:
        """Copy of all candidate beliefs."""
        with self._lock:
            return dict(self.beliefs)

    @override
    def snapshot(self) -> RankerState:
        """Export current ranking state as serializable dict."""
        with self._lock:
            return {
                "beliefs": {
                    candidate_id: {"mu": belief.mu, "sigma_sq": belief.sigma_sq}
                    for candidate_id, belief in self.beliefs.items()
                },
                "competence": {"alpha": self._competence.alpha, "beta": self._competence.beta},
                "statistics": {
                    "eval_counts": dict(self.eval_counts),
                    "win_counts": dict(self.win_counts),
                    "skip_count": self.skip_count,
                    "clamped_updates": self.clamped_updates,
                },
            }

    @override
    def load_snapshot(self, state: RankerState) -> None:
        """Load ranking state from snapshot."""
        statistics = state.get("statistics", {})
        competence = state["competence"]
        with self._lock:
            self.beliefs = {
                candidate_id: CandidateBelief(mu=belief["mu"], sigma_sq=belief["sigma_sq"])
                for candidate_id, belief in state["beliefs"].items()
            }
            self._competence = AnnotatorCompetence(alpha=competence["alpha"], beta=competence["beta"])
            self.eval_counts = dict(statistics.get("eval_counts", {}))
            self.win_counts = dict(statistics.get("win_counts", {}))
            self.skip_count = int(statistics.get("skip_count", 0))
            self.clamped_updates = int(statistics.get("clamped_updates", 0))

    @override
    def get_total_eval_count(self, candidate_id: str) -> int:
        """Get total non-skip comparison count for a candidate."""
        return self.eval_counts.get(candidate_id, 0)

    @override
    def get_win_percentage(self, candidate_id: str) -> float:
        """Get win percentage for a candidate."""
        eval_count = self.get_total_eval_count(candidate_id)
        if eval_count == 0:
            return 0.0
        return self.win_counts.get(candidate_id, 0) / eval_count * 100.0
