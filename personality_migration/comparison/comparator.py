"""
Shadow Comparator

Runs the legacy and target implementations of one logical operation
concurrently, diffs their outcomes with the StructuralDiffer, and keeps
per-operation match statistics for the migration dashboard.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from personality_migration.comparison.differ import (
    ComparisonOptions,
    Discrepancy,
    DiscrepancyType,
    StructuralDiffer,
)
from personality_migration.errors import MismatchError
from personality_migration.utils.logger import StructuredLogger, get_logger

Thunk = Callable[[], Any]


def _get_iso_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _format_rate(matches: int, count: int) -> str:
    return f"{matches / count * 100:.2f}%"


def _describe_error(exc: BaseException) -> Dict[str, str]:
    return {"message": str(exc), "type": type(exc).__name__}


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of one compare() call. Immutable once recorded."""

    operation_name: str
    match: bool
    legacy_result: Any = None
    new_result: Any = None
    legacy_error: Optional[Dict[str, str]] = None
    new_error: Optional[Dict[str, str]] = None
    discrepancies: List[Discrepancy] = field(default_factory=list)
    duration_ms: float = 0.0
    timestamp: str = field(default_factory=_get_iso_timestamp)
    diff_error: Optional[Dict[str, str]] = None
    # Raw exceptions, kept so the router can re-raise an operative failure
    legacy_exception: Optional[BaseException] = field(default=None, repr=False, compare=False)
    new_exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "operation_name": self.operation_name,
            "match": self.match,
            "legacy_result": self.legacy_result,
            "new_result": self.new_result,
            "legacy_error": self.legacy_error,
            "new_error": self.new_error,
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
            "diff_error": self.diff_error,
        }


async def _invoke(thunk: Thunk) -> Any:
    value = thunk()
    if inspect.isawaitable(value):
        value = await value
    return value


async def _settle(thunk: Thunk) -> Tuple[Any, Optional[Exception]]:
    try:
        return await _invoke(thunk), None
    except Exception as exc:  # noqa: BLE001
        return None, exc


def with_timeout(thunk: Thunk, seconds: float) -> Callable[[], Awaitable[Any]]:
    """
    Wrap a thunk so it fails with asyncio.TimeoutError after ``seconds``.

    The comparator awaits natural completion; callers needing bounded
    latency wrap each side with this before calling compare().
    """

    async def bounded() -> Any:
        return await asyncio.wait_for(_invoke(thunk), timeout=seconds)

    return bounded


class ShadowComparator:
    """
    Executes legacy/new operation pairs and records how often they agree.

    Args:
        log_discrepancies: Emit a warning with the discrepancy list on mismatch
        throw_on_mismatch: Raise MismatchError instead of returning (CI gating)
        default_options: ComparisonOptions applied to every comparison
        on_mismatch: Optional callable invoked with each mismatching result
        on_result: Optional callable invoked with every recorded result
        logger: Structured logger override
    """

    def __init__(
        self,
        log_discrepancies: bool = True,
        throw_on_mismatch: bool = False,
        default_options: Any = None,
        on_mismatch: Optional[Callable[[ComparisonResult], Any]] = None,
        on_result: Optional[Callable[[ComparisonResult], Any]] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.log_discrepancies = log_discrepancies
        self.throw_on_mismatch = throw_on_mismatch
        self.default_options = ComparisonOptions.coerce(default_options)
        self.on_mismatch = on_mismatch
        self.on_result = on_result
        self.logger = logger or get_logger(__name__)

        self._history: List[ComparisonResult] = []
        self._operation_counts: "OrderedDict[str, Dict[str, int]]" = OrderedDict()
        self._total_comparisons = 0
        self._matches = 0
        self._mismatches = 0

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def compare(
        self,
        operation_name: str,
        legacy_op: Thunk,
        new_op: Thunk,
        options: Any = None,
    ) -> ComparisonResult:
        """
        Run both operations concurrently and compare their outcomes.

        Args:
            operation_name: Statistics key for this operation
            legacy_op: Zero-argument callable for the legacy implementation
            new_op: Zero-argument callable for the target implementation
            options: Per-call ComparisonOptions (layered on the defaults)

        Returns:
            ComparisonResult

        Raises:
            MismatchError: When throw_on_mismatch is set and the outcomes differ
        """
        result = await self._run(operation_name, legacy_op, new_op, options)
        if not result.match and self.throw_on_mismatch:
            raise MismatchError([result])
        return result

    async def compare_multiple(self, entries: Sequence[Mapping[str, Any]]) -> List[ComparisonResult]:
        """
        Run several independent comparisons.

        Each entry is a mapping with ``name``, ``legacy`` and ``new`` thunks and
        optional ``options``. Results keep the input order; one entry failing
        never prevents the others from completing and being recorded.
        """
        results: List[ComparisonResult] = list(
            await asyncio.gather(
                *(
                    self._run(entry["name"], entry["legacy"], entry["new"], entry.get("options"))
                    for entry in entries
                )
            )
        )
        mismatched = [result for result in results if not result.match]
        if mismatched and self.throw_on_mismatch:
            raise MismatchError(mismatched)
        return results

    def get_statistics(self) -> Dict[str, Any]:
        """Aggregate match statistics, rates as two-decimal percentage strings."""
        operation_stats = {
            name: {
                "count": counts["count"],
                "matches": counts["matches"],
                "mismatches": counts["mismatches"],
                "success_rate": _format_rate(counts["matches"], counts["count"]),
            }
            for name, counts in self._operation_counts.items()
        }

        if self._total_comparisons == 0:
            overall = "0%"
        else:
            overall = _format_rate(self._matches, self._total_comparisons)

        return {
            "total_operations": len(self._operation_counts),
            "total_comparisons": self._total_comparisons,
            "matches": self._matches,
            "mismatches": self._mismatches,
            "operation_stats": operation_stats,
            "overall_success_rate": overall,
        }

    def get_discrepancies(self) -> List[Dict[str, Any]]:
        """Every recorded discrepancy, tagged with its operation, in call order."""
        flattened: List[Dict[str, Any]] = []
        for result in self._history:
            if result.match:
                continue
            for discrepancy in result.discrepancies:
                entry = {"operation_name": result.operation_name}
                entry.update(discrepancy.to_dict())
                flattened.append(entry)
        return flattened

    def get_history(self, operation_name: Optional[str] = None) -> List[ComparisonResult]:
        if operation_name is None:
            return list(self._history)
        return [r for r in self._history if r.operation_name == operation_name]

    def clear(self) -> None:
        """Drop all history and reset every counter."""
        self._history.clear()
        self._operation_counts.clear()
        self._total_comparisons = 0
        self._matches = 0
        self._mismatches = 0

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _run(
        self,
        operation_name: str,
        legacy_op: Thunk,
        new_op: Thunk,
        options: Any,
    ) -> ComparisonResult:
        start_time = time.time()
        (legacy_value, legacy_exc), (new_value, new_exc) = await asyncio.gather(
            _settle(legacy_op), _settle(new_op)
        )
        duration_ms = (time.time() - start_time) * 1000

        legacy_error = _describe_error(legacy_exc) if legacy_exc is not None else None
        new_error = _describe_error(new_exc) if new_exc is not None else None
        diff_error = None

        if legacy_exc is None and new_exc is None:
            try:
                outcome = StructuralDiffer(self.default_options.merge(options)).diff(
                    legacy_value, new_value
                )
                match, discrepancies = outcome.match, outcome.discrepancies
            except Exception as e:  # noqa: BLE001
                # A diff that cannot complete counts as a mismatch at the root
                diff_error = _describe_error(e)
                match = False
                discrepancies = [
                    Discrepancy(
                        path="",
                        type=DiscrepancyType.VALUE_MISMATCH,
                        legacy=legacy_value,
                        new=new_value,
                    )
                ]
                self.logger.error(
                    "Structural diff failed",
                    operation=operation_name,
                    error=str(e),
                    context={"error_type": type(e).__name__},
                )
        elif legacy_exc is not None and new_exc is not None:
            match, discrepancies = False, []
        else:
            match = False
            discrepancies = [
                Discrepancy(
                    path="",
                    type=DiscrepancyType.ERROR_STATE_MISMATCH,
                    legacy="error" if legacy_exc is not None else "success",
                    new="error" if new_exc is not None else "success",
                )
            ]

        result = ComparisonResult(
            operation_name=operation_name,
            match=match,
            legacy_result=legacy_value,
            new_result=new_value,
            legacy_error=legacy_error,
            new_error=new_error,
            discrepancies=discrepancies,
            duration_ms=duration_ms,
            diff_error=diff_error,
            legacy_exception=legacy_exc,
            new_exception=new_exc,
        )
        self._record(result)
        await self._notify(self.on_result, result, "Result hook failed")

        if not match:
            if self.log_discrepancies:
                self.logger.warning(
                    "Comparison mismatch detected",
                    operation=operation_name,
                    context={
                        "legacy_error": legacy_error,
                        "new_error": new_error,
                        "diff_error": diff_error,
                        "discrepancies": [d.to_dict() for d in discrepancies],
                    },
                )
            await self._notify(self.on_mismatch, result, "Mismatch hook failed")
        return result

    def _record(self, result: ComparisonResult) -> None:
        counts = self._operation_counts.setdefault(
            result.operation_name, {"count": 0, "matches": 0, "mismatches": 0}
        )
        counts["count"] += 1
        self._total_comparisons += 1
        if result.match:
            counts["matches"] += 1
            self._matches += 1
        else:
            counts["mismatches"] += 1
            self._mismatches += 1
        self._history.append(result)

    async def _notify(
        self,
        hook: Optional[Callable[[ComparisonResult], Any]],
        result: ComparisonResult,
        failure_message: str,
    ) -> None:
        if hook is None:
            return
        try:
            outcome = hook(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:  # noqa: BLE001
            self.logger.error(
                failure_message,
                operation=result.operation_name,
                error=str(e),
            )
