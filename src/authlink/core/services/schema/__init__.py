"""Schema evolution package."""

from .baseline import baseline_transformations
from .engine import SchemaEvolutionEngine, TransformationStatus
from .invariants import find_violations, snapshot_state, verify_invariants
from .transformations import AddField, AddMethod, RemoveMethod, Transformation

__all__ = [
    "AddField",
    "AddMethod",
    "RemoveMethod",
    "SchemaEvolutionEngine",
    "Transformation",
    "TransformationStatus",
    "baseline_transformations",
    "find_violations",
    "snapshot_state",
    "verify_invariants",
]
