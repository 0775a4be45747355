"""Structural diffing and shadow comparison of legacy/target outputs."""

from .comparator import ComparisonResult, ShadowComparator, with_timeout
from .differ import (
    ComparisonOptions,
    Discrepancy,
    DiscrepancyType,
    DiffResult,
    StructuralDiffer,
    diff,
)

__all__ = [
    "ComparisonResult",
    "ShadowComparator",
    "with_timeout",
    "ComparisonOptions",
    "Discrepancy",
    "DiscrepancyType",
    "DiffResult",
    "StructuralDiffer",
    "diff",
]
