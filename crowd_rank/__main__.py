"""
CLI entry point for crowd ranking.

Parses arguments, validates config, wires components and runs a simulated
ranking session.
"""

import argparse
import json
import sys
from argparse import Namespace
from pathlib import Path
from typing import TypedDict

from prettytable import PrettyTable

from .annotators.simulated_annotator import SimulatedAnnotator
from .exceptions import ConfigurationError, DomainError, ValidationError
from .logging_config import get_logger, setup_logging
from .models import Candidate, RankingReport
from .orchestrator import Orchestrator, RunConfig
from .pair_selectors import SelectionStrategy
from .session import RankingSession, SelectionMode, SessionConfig
from .storage.jsonl_storage import JSONLStorage


class CLIArgs(TypedDict):
    """Typed representation of parsed CLI arguments."""
    choices: list[str]
    output_dir: str
    strategy: str
    selection_mode: str
    required_per_pair: int
    min_information_gain: float | None
    annotators: int
    noise: float
    skip_rate: float
    snapshot_every: int
    budget: int | None
    workers: int
    seed: int | None
    debug: bool
    log_level: str


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Crowd Rank - Pairwise Crowd Ranking with Crowd-BT and Schulze"
    )

    source = parser.add_mutually_exclusive_group(required=True)
    _ = source.add_argument(
        "--choices",
        nargs="+",
        help="Choices to rank, best first (the order is the simulated ground truth)"
    )
    _ = source.add_argument(
        "--choices-file",
        help="File with one choice per line, best first"
    )
    _ = parser.add_argument(
        "--output-dir",
        required=True,
        help="Directory for the outcome log, snapshots and results.json"
    )

    # Session
    _ = parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in SelectionStrategy],
        default=SelectionStrategy.BELIEF_GAP.value,
        help="Pair selection strategy (default: belief-gap)"
    )
    _ = parser.add_argument(
        "--selection-mode",
        choices=[mode.value for mode in SelectionMode],
        default=SelectionMode.GLOBAL.value,
        help="Track compared pairs globally or per annotator (default: global)"
    )
    _ = parser.add_argument(
        "--required-per-pair",
        type=int,
        default=1,
        help="Comparisons required per pair before the ranking is complete (default: 1)"
    )
    _ = parser.add_argument(
        "--min-information-gain",
        type=float,
        help="Stop information-gain selection once no pair reaches this gain"
    )

    # Simulated annotators
    _ = parser.add_argument(
        "--annotators",
        type=int,
        default=3,
        help="Number of simulated annotators (default: 3)"
    )
    _ = parser.add_argument(
        "--noise",
        type=float,
        default=0.5,
        help="Standard deviation of simulated judgment noise (default: 0.5)"
    )
    _ = parser.add_argument(
        "--skip-rate",
        type=float,
        default=0.0,
        help="Probability that a simulated annotator skips a pair (default: 0)"
    )

    # Run
    _ = parser.add_argument(
        "--snapshot-every",
        type=int,
        default=10,
        help="Print progress every N outcomes (default: 10)"
    )
    _ = parser.add_argument(
        "--budget",
        type=int,
        help="Total outcomes to record (default: enough to complete every pair)"
    )
    _ = parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker threads for parallel judgments (default: 1)"
    )
    _ = parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for simulated annotators and random selection"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level (default: INFO)"
    )

    return parser.parse_args(argv)


def read_choices(ns: Namespace) -> list[str]:
    """Read choices from the command line or a file, dropping blank lines."""
    if ns.choices_file:
        path = Path(ns.choices_file)
        if not path.exists():
            raise ConfigurationError(f"Choices file does not exist: {path}")
        lines = path.read_text(encoding="utf-8").splitlines()
    else:
        lines = ns.choices
    return [line.strip() for line in lines if line.strip()]


def args_to_typed(ns: Namespace) -> CLIArgs:
    """Convert argparse Namespace to typed CLIArgs."""
    return CLIArgs(
        choices=read_choices(ns),
        output_dir=ns.output_dir,
        strategy=ns.strategy,
        selection_mode=ns.selection_mode,
        required_per_pair=ns.required_per_pair,
        min_information_gain=ns.min_information_gain,
        annotators=ns.annotators,
        noise=ns.noise,
        skip_rate=ns.skip_rate,
        snapshot_every=ns.snapshot_every,
        budget=ns.budget,
        workers=ns.workers,
        seed=ns.seed,
        debug=ns.debug,
        log_level=ns.log_level,
    )


def validate_config(args: CLIArgs) -> None:
    """Validate configuration parameters and fill in the default budget."""
    logger = get_logger("validate_config")

    if len(args["choices"]) < 2:
        raise ConfigurationError(f"At least 2 choices are required, got {len(args['choices'])}")
    if len(set(args["choices"])) != len(args["choices"]):
        raise ConfigurationError("Choices must be unique")
    if args["annotators"] < 1:
        raise ConfigurationError(f"annotators must be >= 1, got {args['annotators']}")

    output_dir = Path(args["output_dir"])
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Output directory: {output_dir}")

    if args["budget"] is None:
        n = len(args["choices"])
        budget = n * (n - 1) // 2 * args["required_per_pair"]
        if args["selection_mode"] == SelectionMode.PER_ANNOTATOR.value:
            budget *= args["annotators"]
        args["budget"] = budget
        logger.info(f"Computed budget: {budget}")
        print(f"Computed budget: {budget}")


def wire_components(args: CLIArgs) -> tuple[RankingSession, list[SimulatedAnnotator], JSONLStorage, RunConfig]:
    """Wire dependency injection components."""
    logger = get_logger("wire_components")

    candidates = [Candidate(candidate_id=choice, text=choice) for choice in args["choices"]]

    logger.info("Creating ranking session")
    session = RankingSession(
        candidates,
        SessionConfig(
            required_comparisons_per_pair=args["required_per_pair"],
            strategy=SelectionStrategy(args["strategy"]),
            selection_mode=SelectionMode(args["selection_mode"]),
            min_information_gain=args["min_information_gain"],
            seed=args["seed"],
        ),
    )

    logger.info("Creating storage")
    output_dir = Path(args["output_dir"])
    storage = JSONLStorage(output_dir / "outcomes.jsonl", output_dir / "latest_snapshot.json")

    # Ground truth: the first choice listed is the best
    n = len(candidates)
    ground_truth = {candidate.candidate_id: float(n - i) for i, candidate in enumerate(candidates)}
    annotators = list[SimulatedAnnotator]()
    for i in range(args["annotators"]):
        seed = None if args["seed"] is None else args["seed"] + i
        annotators.append(
            SimulatedAnnotator(
                ground_truth,
                noise=args["noise"],
                skip_rate=args["skip_rate"],
                annotator_id=f"annotator-{i + 1}",
                seed=seed,
            )
        )
    logger.info(f"Created {len(annotators)} simulated annotators, noise={args['noise']}, skip_rate={args['skip_rate']}")

    budget_value = args["budget"]
    assert budget_value is not None, "Budget must be set by validate_config"
    config = RunConfig(
        budget=budget_value,
        max_workers=args["workers"],
        snapshot_every=args["snapshot_every"],
    )

    return session, annotators, storage, config


def build_results_table(report: RankingReport, session: RankingSession) -> PrettyTable:
    """Tabulate the Schulze ranking alongside the Crowd-BT beliefs."""
    table = PrettyTable()
    table.field_names = ["Rank", "Choice", "Score", "Direct wins", "μ", "σ²", "Evals", "Win%"]
    for column in ("Rank", "Score", "Direct wins", "μ", "σ²", "Evals", "Win%"):
        table.align[column] = "r"
    table.align["Choice"] = "l"

    ranker = session.ranker
    for row in report.results:
        table.add_row([
            row.rank,
            row.candidate_id,
            row.score,
            row.direct_wins,
            f"{ranker.get_score(row.candidate_id):.3f}",
            f"{ranker.get_uncertainty(row.candidate_id):.3f}",
            ranker.get_total_eval_count(row.candidate_id),
            f"{ranker.get_win_percentage(row.candidate_id):.1f}%",
        ])
    return table


def write_results(report: RankingReport, session: RankingSession, output_dir: Path) -> Path:
    """Write the final ranking and beliefs to results.json."""
    remaining, total = session.progress()
    ranker_state = session.ranker.snapshot()
    payload = {
        "results": [
            {
                "candidate_id": row.candidate_id,
                "rank": row.rank,
                "score": row.score,
                "direct_wins": row.direct_wins,
            }
            for row in report.results
        ],
        "ranking_incomplete": report.ranking_incomplete,
        "comparisons_needed": report.comparisons_needed,
        "comparisons_remaining": remaining,
        "total_comparisons": total,
        "voter_count": session.voter_count(),
        "beliefs": ranker_state["beliefs"],
        "competence": ranker_state["competence"],
    }
    results_path = output_dir / "results.json"
    with open(results_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    return results_path


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    try:
        raw_args = parse_args(argv)
        args = args_to_typed(raw_args)

        setup_logging(level=args["log_level"], debug=args["debug"])
        logger = get_logger("main")

        logger.info("Starting Crowd Rank")
        validate_config(args)

        print("Crowd Rank - Pairwise Crowd Ranking")
        print("=" * 60)
        print(f"Choices: {len(args['choices'])}")
        print(f"Output directory: {args['output_dir']}")
        print(f"Strategy: {args['strategy']} ({args['selection_mode']})")
        print(f"Required per pair: {args['required_per_pair']}")
        print(f"Annotators: {args['annotators']} (noise {args['noise']}, skip rate {args['skip_rate']})")
        print(f"Budget: {args['budget']}")
        print(f"Workers: {args['workers']}")
        print("=" * 60)

        logger.info("Wiring components")
        session, annotators, storage, config = wire_components(args)

        orchestrator = Orchestrator(session=session, annotators=annotators, storage=storage, config=config)
        report = orchestrator.run()

        print("\nFinal Rankings:")
        print(build_results_table(report, session))

        results_path = write_results(report, session, Path(args["output_dir"]))
        print(f"\nResults written to {results_path}")

    except (ConfigurationError, ValidationError, DomainError) as e:
        logger = get_logger("main")
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger = get_logger("main")
        logger.warning("Ranking interrupted by user")
        print("\nRanking interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
