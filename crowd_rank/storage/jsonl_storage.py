"""
JSONL storage implementation.

Persists the outcome log to an append-only JSONL file and snapshots to both a
JSON file (latest) and a JSONL file (history).
"""

import json
import typing
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from typing_extensions import override

from ..exceptions import ValidationError
from ..interfaces import Storage, SystemState
from ..logging_config import get_logger
from ..models import ComparisonOutcome

# Module-level logger
logger = get_logger("jsonl_storage")


def outcome_to_dict(outcome: ComparisonOutcome) -> dict[str, Any]:
    return {
        "candidate_a": outcome.candidate_a,
        "candidate_b": outcome.candidate_b,
        "winner": outcome.winner,
        "annotator_id": outcome.annotator_id,
        "created_at": outcome.created_at,
    }


def outcome_from_dict(data: dict[str, Any]) -> ComparisonOutcome:
    """Build an outcome from a decoded JSON object, validating field types."""
    for key in ("candidate_a", "candidate_b", "winner"):
        assert key in data, f"Missing required field: {key}"
    assert isinstance(data["candidate_a"], str), "candidate_a must be a string"
    assert isinstance(data["candidate_b"], str), "candidate_b must be a string"
    assert data["winner"] is None or isinstance(data["winner"], str), "winner must be a string or null"

    created_at = data.get("created_at", 0.0)
    assert isinstance(created_at, (int, float)), "created_at must be a number"

    return ComparisonOutcome(
        candidate_a=data["candidate_a"],
        candidate_b=data["candidate_b"],
        winner=data["winner"],
        annotator_id=str(data.get("annotator_id", "anonymous")),
        created_at=float(created_at),
    )


class JSONLStorage(Storage):
    """
    JSONL-based storage implementation.

    Uses a JSONL file for outcomes (append-only) and both a JSON file and a
    JSONL file for snapshots.
    """

    outcomes_path: Path
    snapshot_path: Path
    snapshots_jsonl_path: Path

    def __init__(self, outcomes_path: Path, snapshot_path: Path):
        """
        Initialize JSONL storage.

        Args:
            outcomes_path: Path to JSONL file for the outcome log
            snapshot_path: Path to JSON file for latest snapshot
        """
        self.outcomes_path = Path(outcomes_path)
        self.snapshot_path = Path(snapshot_path)
        # Snapshot history lives next to the latest snapshot
        self.snapshots_jsonl_path = self.snapshot_path.parent / "snapshots.jsonl"

        self.outcomes_path.parent.mkdir(parents=True, exist_ok=True)
        self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(
            f"JSONL storage initialized: outcomes={self.outcomes_path}, snapshot={self.snapshot_path}, snapshots_jsonl={self.snapshots_jsonl_path}"
        )

    @override
    def persist_outcome(self, outcome: ComparisonOutcome) -> None:
        """Append a comparison outcome to the JSONL log."""
        logger.debug(f"Persisting outcome: {outcome.candidate_a} vs {outcome.candidate_b} -> {outcome.winner}")

        with open(self.outcomes_path, "a", encoding="utf-8") as f:
            json.dump(outcome_to_dict(outcome), f, ensure_ascii=False)
            f.write("\n")

    @override
    def load_outcomes(self) -> Iterable[ComparisonOutcome]:
        """Load all persisted outcomes from JSONL in log order."""
        if not self.outcomes_path.exists():
            return

        with open(self.outcomes_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue

                try:
                    data = typing.cast(dict[str, Any], json.loads(line))
                    assert isinstance(data, dict), "outcome must be a JSON object"
                    yield outcome_from_dict(data)
                except (json.JSONDecodeError, AssertionError, ValidationError) as e:
                    # Skip corrupted or invalid lines
                    logger.warning(f"Skipping invalid JSON line in {self.outcomes_path}: {e}")
                    continue

    @override
    def save_snapshot(self, state: SystemState) -> None:
        """Save system state snapshot to both JSON and JSONL files."""
        logger.debug(f"Saving snapshot with ranker_state and runtime_state to {self.snapshot_path}")

        # Latest snapshot (overwritten)
        with open(self.snapshot_path, "w", encoding="utf-8") as f:
            json.dump(state, f, indent=2, ensure_ascii=False)

        # Historical snapshots (append-only)
        with open(self.snapshots_jsonl_path, "a", encoding="utf-8") as f:
            json.dump(state, f, ensure_ascii=False)
            f.write("\n")

    @override
    def load_snapshot(self) -> SystemState | None:
        """Load system state snapshot from JSON."""
        if not self.snapshot_path.exists():
            logger.debug("No snapshot file exists")
            return None

        logger.info(f"Loading snapshot from {self.snapshot_path}")
        try:
            with open(self.snapshot_path, "r", encoding="utf-8") as f:
                data = typing.cast(dict[str, Any], json.load(f))

            assert "ranker_state" in data, "Missing required field: ranker_state"
            assert "runtime_state" in data, "Missing required field: runtime_state"
            assert isinstance(data["ranker_state"], dict), "ranker_state must be a dictionary"
            assert isinstance(data["runtime_state"], dict), "runtime_state must be a dictionary"

            ranker_state_data = typing.cast(dict[str, object], data["ranker_state"])
            assert isinstance(ranker_state_data.get("beliefs"), dict), (
                "ranker_state.beliefs must be a dictionary"
            )
            assert isinstance(ranker_state_data.get("competence"), dict), (
                "ranker_state.competence must be a dictionary"
            )

            return typing.cast(SystemState, typing.cast(object, data))

        except (json.JSONDecodeError, AssertionError) as e:
            logger.error(f"Failed to load snapshot from {self.snapshot_path}: {e}")
            return None

    def clear_outcomes(self) -> None:
        """Clear the outcome log (for testing)."""
        if self.outcomes_path.exists():
            self.outcomes_path.unlink()

    def clear_snapshot(self) -> None:
        """Clear snapshot (for testing)."""
        if self.snapshot_path.exists():
            self.snapshot_path.unlink()
        if self.snapshots_jsonl_path.exists():
            self.snapshots_jsonl_path.unlink()

    def get_outcome_count(self) -> int:
        """Get number of stored outcomes."""
        if not self.outcomes_path.exists():
            return 0

        count = 0
        with open(self.outcomes_path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    count += 1
        return count
