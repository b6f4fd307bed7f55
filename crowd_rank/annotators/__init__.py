"""
Annotator implementations.
"""

from .dummy_annotator import DummyAnnotator
from .simulated_annotator import SimulatedAnnotator

__all__ = [
    "DummyAnnotator",
    "SimulatedAnnotator",
]
