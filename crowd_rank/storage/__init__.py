"""
Storage implementations.

Provides implementations of the Storage interface for persisting the outcome
log and session state.

Available implementations:
- JSONLStorage: Persists outcomes to JSONL files and snapshots to JSON
"""

from .jsonl_storage import JSONLStorage

__all__ = ["JSONLStorage"]
