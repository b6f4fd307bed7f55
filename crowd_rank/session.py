"""
Ranking session.

A session ("decision") owns its candidates, the append-only outcome log and
the Crowd-BT belief state. The log is kept in creation-time order and the
beliefs always equal that log folded from the prior: an outcome that arrives
after newer ones is inserted at its place and the beliefs are refolded.
"""

import threading
from bisect import bisect_right
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from .aggregators.schulze import PathMatrix, SchulzeAggregator
from .exceptions import ConfigurationError, DuplicateVoteError, ValidationError
from .interfaces import PairSelector, SelectionContext
from .logging_config import get_logger
from .models import Candidate, ComparisonOutcome, PairKey, RankingReport, UpdateResult
from .pair_selectors import SelectionStrategy, create_selector
from .rankers.crowd_bt_ranker import CrowdBTRanker

CHOICE_FIRST = "choice 1"
CHOICE_SECOND = "choice 2"
CHOICE_SKIP = "skip"


class SelectionMode(str, Enum):
    """Whose history decides which pairs are still uncompared."""

    GLOBAL = "global"
    PER_ANNOTATOR = "per-annotator"


@dataclass
class SessionConfig:
    """Configuration for a ranking session."""

    required_comparisons_per_pair: int = 1
    strategy: SelectionStrategy = SelectionStrategy.BELIEF_GAP
    selection_mode: SelectionMode = SelectionMode.GLOBAL
    min_information_gain: float | None = None
    one_vote_per_annotator: bool = True  # per pair
    seed: int | None = None

    def __post_init__(self):
        """Validate configuration."""
        if self.required_comparisons_per_pair < 1:
            raise ConfigurationError(
                f"required_comparisons_per_pair must be >= 1, got {self.required_comparisons_per_pair}"
            )
        try:
            self.strategy = SelectionStrategy(self.strategy)
            self.selection_mode = SelectionMode(self.selection_mode)
        except ValueError as e:
            raise ConfigurationError(str(e)) from None


class RankingSession:
    """Owns one decision's candidates, outcome log and belief state."""

    def __init__(
        self,
        candidates: Sequence[Candidate | str],
        config: SessionConfig | None = None,
        ranker: CrowdBTRanker | None = None,
        selector: PairSelector | None = None,
    ):
        """
        Initialize ranking session.

        Args:
            candidates: Candidates (or bare candidate ids) to rank
            config: Session configuration (defaults to SessionConfig())
            ranker: Belief holder (defaults to a fresh CrowdBTRanker)
            selector: Pair selector (defaults to the configured strategy)
        """
        self.candidates: dict[str, Candidate] = {}
        for candidate in candidates:
            if isinstance(candidate, str):
                candidate = Candidate(candidate_id=candidate)
            if candidate.candidate_id in self.candidates:
                raise ValidationError(f"Duplicate candidate: {candidate.candidate_id}")
            self.candidates[candidate.candidate_id] = candidate

        self.config: SessionConfig = config or SessionConfig()
        self.ranker: CrowdBTRanker = ranker or CrowdBTRanker()
        self.selector: PairSelector = selector or create_selector(
            self.config.strategy,
            min_information_gain=self.config.min_information_gain,
            seed=self.config.seed,
        )
        self.aggregator = SchulzeAggregator(self.config.required_comparisons_per_pair)

        self._log = list[ComparisonOutcome]()  # sorted by created_at, ties in arrival order
        self._pair_counts = dict[PairKey, int]()
        self._annotator_counts = dict[str, dict[PairKey, int]]()  # annotator_id -> pair -> count
        self._lock = threading.Lock()

        self.logger = get_logger("session")
        self.logger.info(
            f"Ranking session created with {len(self.candidates)} candidates, strategy={self.config.strategy.value}, "
            f"mode={self.config.selection_mode.value}, required_per_pair={self.config.required_comparisons_per_pair}"
        )

    @property
    def candidate_ids(self) -> tuple[str, ...]:
        return tuple(sorted(self.candidates))

    def _check_outcome(self, outcome: ComparisonOutcome) -> None:
        """Reject an outcome ``record`` would refuse (caller holds the lock)."""
        for candidate_id in (outcome.candidate_a, outcome.candidate_b):
            if candidate_id not in self.candidates:
                raise ValidationError(f"Candidate {candidate_id!r} does not belong to this session")

        pair = outcome.pair
        if self.config.one_vote_per_annotator and pair in self._annotator_counts.get(outcome.annotator_id, {}):
            raise DuplicateVoteError(f"Annotator {outcome.annotator_id} already judged {pair.first} vs {pair.second}")

    def validate(self, outcome: ComparisonOutcome) -> None:
        """
        Check that ``record`` would accept an outcome, without recording it.

        Raises:
            ValidationError: If a candidate is not part of this session
            DuplicateVoteError: If the annotator already judged this pair
        """
        with self._lock:
            self._check_outcome(outcome)

    def record(self, outcome: ComparisonOutcome) -> UpdateResult | None:
        """
        Insert an outcome into the log and fold it into the beliefs.

        Outcomes normally arrive in creation-time order and are applied
        incrementally. One created before outcomes already recorded is placed
        at its creation time and the beliefs are refolded, so the live state
        matches a replay of the log.

        Raises:
            ValidationError: If a candidate is not part of this session
            DuplicateVoteError: If the annotator already judged this pair
        """
        pair = outcome.pair
        with self._lock:
            self._check_outcome(outcome)

            index = bisect_right(self._log, outcome.created_at, key=lambda logged: logged.created_at)
            self._log.insert(index, outcome)
            self._pair_counts[pair] = self._pair_counts.get(pair, 0) + 1
            own_counts = self._annotator_counts.setdefault(outcome.annotator_id, {})
            own_counts[pair] = own_counts.get(pair, 0) + 1

            if index == len(self._log) - 1:
                result = self.ranker.update_with_outcome(outcome)
            else:
                self.logger.warning(
                    f"Outcome {pair.first} vs {pair.second} created at {outcome.created_at} is older than "
                    f"{len(self._log) - 1 - index} recorded outcome(s); refolding beliefs"
                )
                result = self.ranker.insert_outcome(self._log, index)

        label = "skip" if outcome.is_skip else f"winner {outcome.winner}"
        self.logger.info(
            f"Recorded comparison {pair.first} vs {pair.second} ({label}) from {outcome.annotator_id}"
        )
        return result

    def record_choice(
        self,
        candidate_a: str,
        candidate_b: str,
        chosen_option: str,
        annotator_id: str = "anonymous",
    ) -> UpdateResult | None:
        """
        Record a vote given as "choice 1", "choice 2" or "skip".

        Choices refer to the normalized pair as it is served: "choice 1" is
        the lower candidate id.
        """
        pair = PairKey.of(candidate_a, candidate_b)
        if chosen_option == CHOICE_FIRST:
            winner: str | None = pair.first
        elif chosen_option == CHOICE_SECOND:
            winner = pair.second
        elif chosen_option == CHOICE_SKIP:
            winner = None
        else:
            raise ValidationError(
                f"chosen_option must be one of '{CHOICE_FIRST}', '{CHOICE_SECOND}', or '{CHOICE_SKIP}', got {chosen_option!r}"
            )
        return self.record(
            ComparisonOutcome(candidate_a=pair.first, candidate_b=pair.second, winner=winner, annotator_id=annotator_id)
        )

    def outcomes(self) -> list[ComparisonOutcome]:
        """Snapshot copy of the outcome log, in creation-time order."""
        with self._lock:
            return list(self._log)

    def pair_counts(self, annotator_id: str | None = None) -> dict[PairKey, int]:
        """Served outcomes per pair, across all annotators or for one annotator."""
        with self._lock:
            if annotator_id is None:
                return dict(self._pair_counts)
            return dict(self._annotator_counts.get(annotator_id, {}))

    def path_matrix(self) -> PathMatrix:
        return self.aggregator.path_matrix(self.outcomes(), self.candidate_ids)

    def selection_context(
        self,
        annotator_id: str | None = None,
        in_flight: Iterable[PairKey] = (),
    ) -> SelectionContext:
        """
        Build the selector input for one request.

        In per-annotator mode a pair is uncompared until the requesting
        annotator has judged it; in global mode until anyone has.
        """
        exclude = set(in_flight)
        if annotator_id is not None and self.config.one_vote_per_annotator:
            exclude.update(self.pair_counts(annotator_id))

        per_annotator = self.config.selection_mode is SelectionMode.PER_ANNOTATOR and annotator_id is not None
        return SelectionContext(
            candidate_ids=self.candidate_ids,
            pair_counts=self.pair_counts(annotator_id if per_annotator else None),
            required_comparisons_per_pair=self.config.required_comparisons_per_pair,
            exclude=frozenset(exclude),
            beliefs=self.ranker.get_all_beliefs(),
            competence=self.ranker.competence,
            path_matrix=self.path_matrix() if self.selector.requires_path_matrix else None,
        )

    def next_pair(self, annotator_id: str | None = None, in_flight: Iterable[PairKey] = ()) -> PairKey | None:
        """
        Choose the next pair to serve.

        Returns:
            PairKey, or None when no pair is available (the session is
            complete for this annotator)
        """
        if len(self.candidates) < 2:
            self.logger.warning("Insufficient candidates for a comparison")
            return None

        pair = self.selector.select_pair(self.selection_context(annotator_id, in_flight))
        if pair is None:
            self.logger.info(f"No pair available for annotator {annotator_id or '<any>'}")
        return pair

    def results(self) -> RankingReport:
        """Schulze ranking over the current outcome log."""
        return self.aggregator.rank(self.outcomes(), self.candidate_ids)

    def progress(self, annotator_id: str | None = None) -> tuple[int, int]:
        """Return (comparisons_remaining, total_comparisons) for served pairs."""
        n = len(self.candidates)
        required = self.config.required_comparisons_per_pair
        total = n * (n - 1) // 2 * required
        counts = self.pair_counts(annotator_id)
        served = sum(min(count, required) for count in counts.values())
        return total - served, total

    def voter_count(self) -> int:
        """Number of distinct annotators who submitted an outcome."""
        with self._lock:
            return len({outcome.annotator_id for outcome in self._log})

    def replay(self, outcomes: Iterable[ComparisonOutcome]) -> None:
        """
        Rebuild the log and beliefs from persisted outcomes.

        Outcomes for unknown candidates are dropped with a warning.
        """
        accepted = list[ComparisonOutcome]()
        for outcome in sorted(outcomes, key=lambda outcome: outcome.created_at):
            if outcome.candidate_a not in self.candidates or outcome.candidate_b not in self.candidates:
                self.logger.warning(f"Dropping outcome for unknown candidate: {outcome.candidate_a} vs {outcome.candidate_b}")
                continue
            accepted.append(outcome)

        with self._lock:
            self._log = accepted
            self._pair_counts.clear()
            self._annotator_counts.clear()
            for outcome in accepted:
                pair = outcome.pair
                own_counts = self._annotator_counts.setdefault(outcome.annotator_id, {})
                self._pair_counts[pair] = self._pair_counts.get(pair, 0) + 1
                own_counts[pair] = own_counts.get(pair, 0) + 1
            self.ranker.replay(accepted)
        self.logger.info(f"Session replayed {len(accepted)} outcomes")
