"""
Structural Differ - path-tracking deep comparison of JSON-like values.

Compares the output of the legacy and target backends and reports every
difference with a dot/bracket path (``aliases[2].alias``), honouring ignored
fields, timestamp suppression and per-field custom equality.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

TIMESTAMP_FIELDS = frozenset(
    {
        "createdAt",
        "updatedAt",
        "deletedAt",
        "lastUpdated",
        "created_at",
        "updated_at",
        "deleted_at",
        "last_updated",
        "timestamp",
    }
)


class DiscrepancyType(Enum):
    """Kinds of structural difference."""

    VALUE_MISMATCH = "value_mismatch"
    # The legacy value lacks keys the new value has
    MISSING_KEYS_LEGACY = "missing_keys_legacy"
    # The new value lacks keys the legacy value has
    MISSING_KEYS_NEW = "missing_keys_new"
    ERROR_STATE_MISMATCH = "error_state_mismatch"


@dataclass(frozen=True)
class Discrepancy:
    """A single path-addressed difference between legacy and new values."""

    path: str
    type: DiscrepancyType
    legacy: Any = None
    new: Any = None
    keys: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": self.path,
            "type": self.type.value,
            "legacy": self.legacy,
            "new": self.new,
        }
        if self.keys is not None:
            data["keys"] = list(self.keys)
        return data


@dataclass(frozen=True)
class ComparisonOptions:
    """
    Tuning knobs for a comparison.

    Attributes:
        ignore_fields: Object keys skipped wherever they appear
        compare_timestamps: When False, timestamp-like keys are skipped
        custom_comparators: Field name -> equality callable; authoritative when present
    """

    ignore_fields: Tuple[str, ...] = ()
    compare_timestamps: bool = True
    custom_comparators: Mapping[str, Callable[[Any, Any], bool]] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> "ComparisonOptions":
        """Accept None, a ComparisonOptions, or a plain dict of option values."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls(
                ignore_fields=tuple(value.get("ignore_fields", ())),
                compare_timestamps=value.get("compare_timestamps", True),
                custom_comparators=dict(value.get("custom_comparators", {})),
            )
        raise TypeError(f"Unsupported comparison options: {type(value).__name__}")

    def merge(self, other: Any) -> "ComparisonOptions":
        """Layer per-call options over these defaults, returning a new object."""
        if other is None:
            return self
        other = ComparisonOptions.coerce(other)
        comparators = dict(self.custom_comparators)
        comparators.update(other.custom_comparators)
        ignore = tuple(dict.fromkeys(tuple(self.ignore_fields) + tuple(other.ignore_fields)))
        return ComparisonOptions(
            ignore_fields=ignore,
            compare_timestamps=other.compare_timestamps,
            custom_comparators=comparators,
        )


@dataclass(frozen=True)
class DiffResult:
    match: bool
    discrepancies: List[Discrepancy]


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _normalize(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def _strict_equal(legacy: Any, new: Any) -> bool:
    if legacy is new:
        return True
    # bool is an int subclass; True must not equal 1
    if isinstance(legacy, bool) or isinstance(new, bool):
        return type(legacy) is type(new) and legacy == new
    if legacy is None or new is None:
        return False
    try:
        return bool(legacy == new)
    except Exception:  # noqa: BLE001 - exotic __eq__ counts as unequal
        return False


class StructuralDiffer:
    """
    Deep comparison of two tree-shaped values.

    Values are expected to be acyclic JSON-like data; a container pair that
    is already being compared further up the path is treated as equal rather
    than recursed into again.
    """

    def __init__(self, options: Any = None):
        self.options = ComparisonOptions.coerce(options)
        self._ignored: Set[str] = set(self.options.ignore_fields)

    def diff(self, legacy: Any, new: Any) -> DiffResult:
        discrepancies: List[Discrepancy] = []
        self._compare(legacy, new, "", None, discrepancies, set())
        return DiffResult(match=not discrepancies, discrepancies=discrepancies)

    def _skip_key(self, key: Any) -> bool:
        if key in self._ignored:
            return True
        return not self.options.compare_timestamps and key in TIMESTAMP_FIELDS

    def _compare(
        self,
        legacy: Any,
        new: Any,
        path: str,
        field_name: Optional[str],
        out: List[Discrepancy],
        active: Set[Tuple[int, int]],
    ) -> None:
        comparator = (
            self.options.custom_comparators.get(field_name) if field_name is not None else None
        )
        if comparator is not None:
            if not comparator(legacy, new):
                out.append(Discrepancy(path, DiscrepancyType.VALUE_MISMATCH, legacy, new))
            return

        legacy = _normalize(legacy)
        new = _normalize(new)

        both_mappings = isinstance(legacy, Mapping) and isinstance(new, Mapping)
        both_sequences = _is_sequence(legacy) and _is_sequence(new)
        if not (both_mappings or both_sequences):
            if not _strict_equal(legacy, new):
                out.append(Discrepancy(path, DiscrepancyType.VALUE_MISMATCH, legacy, new))
            return

        pair = (id(legacy), id(new))
        if pair in active:
            return
        active.add(pair)
        try:
            if both_mappings:
                self._compare_mappings(legacy, new, path, out, active)
            else:
                self._compare_sequences(legacy, new, path, out, active)
        finally:
            active.discard(pair)

    def _compare_mappings(
        self,
        legacy: Mapping,
        new: Mapping,
        path: str,
        out: List[Discrepancy],
        active: Set[Tuple[int, int]],
    ) -> None:
        only_legacy = [key for key in legacy if key not in new]
        only_new = [key for key in new if key not in legacy]

        if only_legacy:
            out.append(
                Discrepancy(
                    path,
                    DiscrepancyType.MISSING_KEYS_NEW,
                    legacy={key: legacy[key] for key in only_legacy},
                    new=None,
                    keys=_sorted_keys(only_legacy),
                )
            )
        if only_new:
            out.append(
                Discrepancy(
                    path,
                    DiscrepancyType.MISSING_KEYS_LEGACY,
                    legacy=None,
                    new={key: new[key] for key in only_new},
                    keys=_sorted_keys(only_new),
                )
            )

        for key in legacy:
            if key not in new or self._skip_key(key):
                continue
            child_path = f"{path}.{key}" if path else str(key)
            self._compare(legacy[key], new[key], child_path, key, out, active)

    def _compare_sequences(
        self,
        legacy: Any,
        new: Any,
        path: str,
        out: List[Discrepancy],
        active: Set[Tuple[int, int]],
    ) -> None:
        for index in range(max(len(legacy), len(new))):
            child_path = f"{path}[{index}]"
            if index >= len(new):
                out.append(
                    Discrepancy(child_path, DiscrepancyType.VALUE_MISMATCH, legacy[index], None)
                )
            elif index >= len(legacy):
                out.append(Discrepancy(child_path, DiscrepancyType.VALUE_MISMATCH, None, new[index]))
            else:
                self._compare(legacy[index], new[index], child_path, None, out, active)


def _sorted_keys(keys: Iterable[Any]) -> List[str]:
    return sorted((str(key) for key in keys))


def diff(legacy: Any, new: Any, options: Any = None) -> DiffResult:
    """
    Compare two values.

    Args:
        legacy: Value produced by the legacy backend
        new: Value produced by the target backend
        options: ComparisonOptions, option dict, or None

    Returns:
        DiffResult with ``match`` and the discrepancy list
    """
    return StructuralDiffer(options).diff(legacy, new)
