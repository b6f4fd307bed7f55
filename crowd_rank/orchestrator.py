"""
Orchestrator for ranking sessions driven by annotators.

Coordinates annotators, storage and the ranking session.
Uses just-in-time work queue pattern for maximum adaptiveness.
"""

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .exceptions import ConfigurationError, ValidationError
from .interfaces import Annotator, Storage, SystemState
from .logging_config import get_logger
from .models import ComparisonOutcome, PairKey, RankingReport
from .session import RankingSession

# Constants for failure threshold logic
EARLY_ABORT_THRESHOLD = 4      # Abort if 100% of first 4 judgments fail
LATE_ABORT_THRESHOLD = 50     # Only check failure rate after 50+ judgments
FAILURE_RATE_LIMIT = 0.2      # Abort if >20% failure rate after threshold


@dataclass
class RunConfig:
    """Configuration for a ranking run."""

    budget: int = 1000  # total outcomes recorded, including resumed ones
    max_workers: int = 4  # thread pool size
    snapshot_every: int = 10  # print progress every N outcomes (snapshots saved on every update)

    def __post_init__(self):
        """Validate configuration."""
        if self.budget <= 0:
            raise ConfigurationError(f"budget must be positive, got {self.budget}")
        if self.max_workers <= 0:
            raise ConfigurationError(f"max_workers must be positive, got {self.max_workers}")
        if self.snapshot_every <= 0:
            raise ConfigurationError(f"snapshot_every must be positive, got {self.snapshot_every}")


class Orchestrator:
    """Drives a ranking session with a pool of annotators."""

    def __init__(
        self,
        session: RankingSession,
        annotators: Sequence[Annotator],
        storage: Storage,
        config: RunConfig,
    ):
        """Initialize orchestrator with all components."""
        if not annotators:
            raise ConfigurationError("At least one annotator is required")

        self.session: RankingSession = session
        self.annotators: list[Annotator] = list(annotators)
        self.storage: Storage = storage
        self.config: RunConfig = config

        # Runtime state
        self.recorded_outcomes: int = 0
        self._next_annotator: int = 0

        # In-flight pair tracking to prevent concurrent judgment of one pair
        self.in_flight_pairs: set[PairKey] = set()

        # Exception tolerance tracking
        self.total_judgments: int = 0  # Total attempted (including failures)
        self.failed_judgments: int = 0
        self.failure_log = list[tuple[PairKey, str, str, str]]()  # (pair, annotator_id, exception_type, exception_msg)

        self.logger: Logger = get_logger("orchestrator")

    def run(self) -> RankingReport:
        """Run the session using just-in-time work queue pattern."""
        self.logger.info(f"Starting ranking run with config: {self.config}")
        print(f"Starting ranking run with config: {self.config}")

        self._resume()

        def judge_pair_worker(pair: PairKey, annotator: Annotator) -> ComparisonOutcome:
            """Pure worker function - receives data, returns result."""
            return annotator.judge(pair)

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = dict[Future[ComparisonOutcome], tuple[PairKey, Annotator]]()

            # Keep workers fed while budget allows
            while self.recorded_outcomes < self.config.budget:
                # Process completed futures (main thread updates state)
                self._process_completed_futures(futures)

                remaining_budget = self.config.budget - self.recorded_outcomes - len(futures)

                # Keep workers busy - submit new work up to max_workers
                while len(futures) < self.config.max_workers and remaining_budget > 0:
                    assignment = self._next_assignment()
                    if assignment is None:
                        self.logger.info(f"No pair available ({len(self.in_flight_pairs)} in-flight)")
                        break

                    pair, annotator = assignment
                    future = executor.submit(judge_pair_worker, pair, annotator)
                    futures[future] = (pair, annotator)

                    self.in_flight_pairs.add(pair)
                    self.logger.debug(f"Marked in-flight: {pair.first} vs {pair.second} -> {annotator.annotator_id}")

                    remaining_budget = self.config.budget - self.recorded_outcomes - len(futures)

                # Wait for at least one to complete before checking for more work
                if futures:
                    _ = wait(futures.keys(), return_when=FIRST_COMPLETED)
                else:
                    self.logger.info("No work in flight and no pair available")
                    break

            # Drain remaining futures
            self.logger.info(f"Draining {len(futures)} remaining futures")
            self._process_completed_futures(futures, wait_all=True)

        self._save_snapshot()

        report = self.session.results()
        self.logger.info(f"Ranking run complete: {self.recorded_outcomes} outcomes recorded")
        print(f"Ranking run complete: {self.recorded_outcomes} outcomes recorded")
        if report.ranking_incomplete:
            print(f"Ranking incomplete: {report.comparisons_needed} more comparisons needed")
        return report

    def _resume(self) -> None:
        """Rebuild the session from the persisted outcome log (main thread only)."""
        outcomes = list(self.storage.load_outcomes())
        if outcomes:
            self.session.replay(outcomes)
            self.recorded_outcomes = len(self.session.outcomes())
            self.logger.info(f"Resumed from outcome log: {self.recorded_outcomes} outcomes recorded")
            print(f"Resumed from outcome log: {self.recorded_outcomes} outcomes recorded")

        snapshot = self.storage.load_snapshot()
        if snapshot:
            runtime_state = snapshot.get("runtime_state", {})
            self.total_judgments = runtime_state.get("total_judgments", 0)
            self.failed_judgments = runtime_state.get("failed_judgments", 0)

    def _next_assignment(self) -> tuple[PairKey, Annotator] | None:
        """Round-robin over annotators until one has a pair to judge."""
        for offset in range(len(self.annotators)):
            index = (self._next_annotator + offset) % len(self.annotators)
            annotator = self.annotators[index]
            pair = self.session.next_pair(annotator.annotator_id, in_flight=self.in_flight_pairs)
            if pair is not None:
                self._next_annotator = (index + 1) % len(self.annotators)
                return pair, annotator
        return None

    def _process_completed_futures(
        self,
        futures: dict[Future[ComparisonOutcome], tuple[PairKey, Annotator]],
        wait_all: bool = False,
    ) -> None:
        """
        Process completed futures and update state (main thread only).

        Workers only return outcomes. Each one is validated, persisted and then
        folded into the session here, so a failed write leaves the session
        untouched.

        Args:
            futures: Dictionary mapping futures to their pair and annotator
            wait_all: If True, process all futures; if False, only process completed ones
        """
        if wait_all:
            done_futures = list(futures.keys())
        else:
            done_futures = [f for f in futures.keys() if f.done()]

        for future in done_futures:
            pair, annotator = futures.pop(future)

            try:
                outcome = future.result()
                if outcome.pair != pair:
                    raise ValidationError(
                        f"Annotator returned {outcome.pair.first} vs {outcome.pair.second} for {pair.first} vs {pair.second}"
                    )

                # Persist before updating beliefs so the log never lags the session
                self.session.validate(outcome)
                self.storage.persist_outcome(outcome)
                self.session.record(outcome)

                self.recorded_outcomes += 1
                self.total_judgments += 1

                self.in_flight_pairs.discard(pair)
                self.logger.info(
                    f"Recorded outcome {self.recorded_outcomes}/{self.config.budget}: {pair.first} vs {pair.second} -> {outcome.winner or 'skip'}"
                )

                # Snapshot on every update for complete historical record
                self._save_snapshot()

                if self.recorded_outcomes % self.config.snapshot_every == 0:
                    self._print_progress()

            except Exception as e:
                self.logger.error(f"Judgment failed for {pair.first} vs {pair.second} ({annotator.annotator_id}): {e}")
                self.failed_judgments += 1
                self.total_judgments += 1
                self.failure_log.append((pair, annotator.annotator_id, type(e).__name__, str(e)))

                # Release pair from in-flight tracking even on failure
                self.in_flight_pairs.discard(pair)

                # Abort if failure rate too high
                if self.total_judgments >= EARLY_ABORT_THRESHOLD and self.failed_judgments == self.total_judgments:
                    raise RuntimeError(f"100% failure rate in first {EARLY_ABORT_THRESHOLD} judgments - aborting")

                if self.total_judgments >= LATE_ABORT_THRESHOLD:
                    failure_rate = self.failed_judgments / self.total_judgments
                    if failure_rate > FAILURE_RATE_LIMIT:
                        raise RuntimeError(f"Failure rate {failure_rate:.1%} exceeds {FAILURE_RATE_LIMIT:.0%} threshold - aborting")

    def _save_snapshot(self) -> None:
        """Save snapshot (main thread only)."""
        snapshot: SystemState = {
            "ranker_state": self.session.ranker.snapshot(),
            "runtime_state": {
                "recorded_outcomes": self.recorded_outcomes,
                "total_judgments": self.total_judgments,
                "failed_judgments": self.failed_judgments,
            },
        }
        self.storage.save_snapshot(snapshot)
        self.logger.debug(f"Saved snapshot at {self.recorded_outcomes} outcomes")

    def _print_progress(self) -> None:
        """Print progress (main thread only)."""
        remaining, total = self.session.progress()
        print(
            f"Progress: {self.recorded_outcomes}/{self.config.budget} outcomes, "
            f"{total - remaining}/{total} pair comparisons served, {len(self.in_flight_pairs)} pairs in-flight"
        )
        for candidate_id, mu, sigma_sq in self._get_top_scores(n=5):
            print(f"  {candidate_id}: μ={mu:.3f}, σ²={sigma_sq:.3f}")

    def _get_top_scores(self, n: int = 5) -> list[tuple[str, float, float]]:
        """Get top N candidate beliefs for logging."""
        ranker = self.session.ranker
        scores = [
            (candidate_id, ranker.get_score(candidate_id), ranker.get_uncertainty(candidate_id))
            for candidate_id in self.session.candidate_ids
        ]
        scores.sort(key=lambda x: x[1], reverse=True)
        return scores[:n]
