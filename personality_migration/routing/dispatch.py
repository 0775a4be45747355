"""
Dispatch mode selection.

The mode is recomputed from the current flag values on every call and never
cached. Precedence for reads: shadow comparison > target > legacy.
Precedence for writes: dual-write > target > legacy.
"""

from dataclasses import dataclass
from enum import Enum

from personality_migration.flags.feature_flags import (
    COMPARISON_TESTING,
    PERSONALITY_DUAL_WRITE,
    PERSONALITY_READ,
    PERSONALITY_WRITE,
)


class OperationKind(Enum):
    READ = "read"
    WRITE = "write"


class DispatchMode(Enum):
    """Which backend(s) are operative for one call."""

    LEGACY_ONLY = "legacy_only"
    TARGET_ONLY = "target_only"
    DUAL_WRITE = "dual_write"
    SHADOW_COMPARE = "shadow_compare"


@dataclass(frozen=True)
class MigrationFlagKeys:
    """Flag names consulted for one migrating entity."""

    read: str = PERSONALITY_READ
    write: str = PERSONALITY_WRITE
    dual_write: str = PERSONALITY_DUAL_WRITE
    comparison: str = COMPARISON_TESTING


PERSONALITY_FLAG_KEYS = MigrationFlagKeys()


def select_dispatch_mode(
    flags, kind: OperationKind, keys: MigrationFlagKeys = PERSONALITY_FLAG_KEYS
) -> DispatchMode:
    """
    Derive the dispatch mode for one call from current flag state.

    Args:
        flags: Object exposing ``is_enabled(key) -> bool``
        kind: Whether the call reads or writes
        keys: Flag names for the migrating entity

    Returns:
        DispatchMode
    """
    if kind is OperationKind.READ:
        if flags.is_enabled(keys.comparison):
            return DispatchMode.SHADOW_COMPARE
        if flags.is_enabled(keys.read):
            return DispatchMode.TARGET_ONLY
        return DispatchMode.LEGACY_ONLY

    if flags.is_enabled(keys.dual_write):
        return DispatchMode.DUAL_WRITE
    if flags.is_enabled(keys.write):
        return DispatchMode.TARGET_ONLY
    return DispatchMode.LEGACY_ONLY
