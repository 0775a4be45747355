"""
Personality Router

Directs personality operations to the legacy manager, the target service,
or both, based on feature flags. Supports shadow comparison for reads and
best-effort dual writes, and keeps per-instance routing counters.

Callers always receive legacy-shaped results. Shadow and secondary-write
activity is visible only through get_routing_statistics() and the
comparator's statistics.
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from personality_migration.comparison.comparator import ShadowComparator
from personality_migration.comparison.differ import ComparisonOptions
from personality_migration.domain.personality import RegistrationOptions
from personality_migration.errors import MismatchError, ShadowError
from personality_migration.routing.dispatch import (
    PERSONALITY_FLAG_KEYS,
    DispatchMode,
    MigrationFlagKeys,
    OperationKind,
    select_dispatch_mode,
)
from personality_migration.utils.logger import StructuredLogger, get_logger, summarize_payload

SHADOW_READ_OPTIONS = ComparisonOptions(ignore_fields=("_internalId",), compare_timestamps=False)

LOG_PREFIX = "[PersonalityRouter]"


@dataclass
class RoutingStatistics:
    """Per-router counters; only ever incremented, zeroed by reset()."""

    legacy_reads: int = 0
    new_reads: int = 0
    legacy_writes: int = 0
    new_writes: int = 0
    dual_writes: int = 0
    comparison_tests: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def reset(self) -> None:
        for name in self.__dataclass_fields__:
            setattr(self, name, 0)


def _write_succeeded(result: Any) -> bool:
    """Whether a legacy write result reports success."""
    if not isinstance(result, dict):
        return result is not None
    if result.get("error"):
        return False
    return result.get("success", True) is not False


class PersonalityRouter:
    """
    Router between the legacy personality manager and the target service.

    Args:
        flags: Flag evaluator exposing ``is_enabled(key)``
        comparator: ShadowComparator used for shadow reads
        legacy: LegacyPersonalityBackend
        target: TargetPersonalityBackend
        logger: Structured logger override
        concurrent_dual_write: Issue both halves of a dual write before awaiting
        flag_keys: Flag names to consult
    """

    def __init__(
        self,
        flags,
        comparator: ShadowComparator,
        legacy,
        target,
        logger: Optional[StructuredLogger] = None,
        concurrent_dual_write: bool = False,
        flag_keys: MigrationFlagKeys = PERSONALITY_FLAG_KEYS,
    ):
        self.flags = flags
        self.comparator = comparator
        self.legacy = legacy
        self.target = target
        self.logger = logger or get_logger(__name__)
        self.concurrent_dual_write = concurrent_dual_write
        self.flag_keys = flag_keys
        self.stats = RoutingStatistics()

    def dispatch_mode(self, kind: OperationKind) -> DispatchMode:
        return select_dispatch_mode(self.flags, kind, self.flag_keys)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get_personality(self, name_or_alias: str) -> Optional[Dict[str, Any]]:
        """
        Get personality by name or alias.

        Returns:
            Legacy-shaped personality dict, or None when not found
        """
        return await self._read(
            "get_personality",
            lambda: self.legacy.get(name_or_alias),
            lambda: self.target.get(name_or_alias),
        )

    async def list_personalities(self) -> List[Dict[str, Any]]:
        """Get all personalities in legacy shape."""
        return await self._read(
            "list_personalities",
            self.legacy.list_all,
            self.target.list_all,
        )

    async def _read(
        self,
        operation: str,
        legacy_op: Callable[[], Awaitable[Any]],
        target_op: Callable[[], Awaitable[Any]],
    ) -> Any:
        mode = self.dispatch_mode(OperationKind.READ)

        if mode is DispatchMode.SHADOW_COMPARE:
            return await self._shadow_read(operation, legacy_op, target_op)

        if mode is DispatchMode.TARGET_ONLY:
            try:
                return await target_op()
            except Exception as e:
                self.logger.error(
                    f"{LOG_PREFIX} Error in new system {operation}",
                    operation=operation,
                    error=str(e),
                )
                raise
            finally:
                self.stats.new_reads += 1

        try:
            return await legacy_op()
        finally:
            self.stats.legacy_reads += 1

    async def _shadow_read(
        self,
        operation: str,
        legacy_op: Callable[[], Awaitable[Any]],
        target_op: Callable[[], Awaitable[Any]],
    ) -> Any:
        legacy_outcome: Dict[str, Any] = {}

        async def observed_legacy() -> Any:
            try:
                legacy_outcome["value"] = await legacy_op()
            except Exception as e:
                legacy_outcome["error"] = e
                raise
            return legacy_outcome["value"]

        try:
            result = await self.comparator.compare(
                operation, observed_legacy, target_op, SHADOW_READ_OPTIONS
            )
        except MismatchError:
            raise
        except Exception as e:  # noqa: BLE001
            self._log_shadow_failure("Shadow comparison failed", operation, e)
            if "error" in legacy_outcome:
                raise legacy_outcome["error"]
            if "value" in legacy_outcome:
                return legacy_outcome["value"]
            return await legacy_op()
        finally:
            self.stats.comparison_tests += 1

        if result.new_exception is not None:
            self._log_shadow_failure(
                "Shadow comparison: new system failed", operation, result.new_exception
            )
        if result.legacy_exception is not None:
            raise result.legacy_exception

        self.logger.debug(
            "Shadow comparison completed",
            operation=operation,
            context={
                "match": result.match,
                "discrepancy_count": len(result.discrepancies),
                "result": summarize_payload(result.legacy_result),
            },
        )
        return result.legacy_result

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def register_personality(
        self, name: str, owner_id: str, options: Any = None
    ) -> Dict[str, Any]:
        """
        Register a new personality.

        Args:
            name: Personality name
            owner_id: Owner user ID
            options: RegistrationOptions or mapping of option values

        Returns:
            ``{"success": True, "personality": {...}}`` or
            ``{"success": False, "error": "..."}``
        """
        options = RegistrationOptions.coerce(options)

        async def legacy_call() -> Dict[str, Any]:
            result = await self.legacy.register(name, owner_id, options)
            if isinstance(result, dict) and result.get("error"):
                return {"success": False, "error": result["error"]}
            return result

        return await self._write(
            "register_personality",
            legacy_call,
            lambda: self.target.register(name, owner_id, options),
            convert_failures=False,
        )

    async def remove_personality(self, name: str, requester_id: str) -> Dict[str, Any]:
        """
        Remove a personality.

        Returns:
            ``{"success": bool, "message": str}``; failures are reported, not raised
        """
        return await self._write(
            "remove_personality",
            lambda: self.legacy.remove(name, requester_id),
            lambda: self.target.remove(name, requester_id),
            convert_failures=True,
        )

    async def add_alias(self, name: str, alias: str, requester_id: str) -> Dict[str, Any]:
        """
        Add an alias to a personality.

        Returns:
            ``{"success": bool, "message": str}``; failures are reported, not raised
        """
        return await self._write(
            "add_alias",
            lambda: self.legacy.add_alias(name, alias, requester_id),
            lambda: self.target.add_alias(name, alias, requester_id),
            convert_failures=True,
        )

    async def _write(
        self,
        operation: str,
        legacy_op: Callable[[], Awaitable[Any]],
        target_op: Callable[[], Awaitable[Any]],
        convert_failures: bool,
    ) -> Dict[str, Any]:
        mode = self.dispatch_mode(OperationKind.WRITE)

        if convert_failures:
            legacy_op = self._reporting_failures(operation, legacy_op)

        if mode is DispatchMode.DUAL_WRITE:
            try:
                return await self._dual_write(operation, legacy_op, target_op)
            finally:
                self.stats.dual_writes += 1

        if mode is DispatchMode.TARGET_ONLY:
            if convert_failures:
                target_op = self._reporting_failures(operation, target_op)
            try:
                return await target_op()
            finally:
                self.stats.new_writes += 1

        try:
            return await legacy_op()
        finally:
            self.stats.legacy_writes += 1

    async def _dual_write(
        self,
        operation: str,
        legacy_op: Callable[[], Awaitable[Any]],
        target_op: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Write to legacy (operative) and target (best effort).

        Sequential mode only attempts the target write after the legacy write
        succeeded. Concurrent mode issues both before awaiting either.
        """
        if self.concurrent_dual_write:
            secondary = asyncio.ensure_future(self._secondary_write(operation, target_op))
            try:
                return await legacy_op()
            finally:
                await secondary

        legacy_result = await legacy_op()
        if _write_succeeded(legacy_result):
            await self._secondary_write(operation, target_op)
        else:
            self.logger.info(
                "Legacy write failed; skipping dual-write to new system",
                operation=operation,
            )
        return legacy_result

    async def _secondary_write(
        self, operation: str, target_op: Callable[[], Awaitable[Any]]
    ) -> None:
        try:
            await target_op()
        except Exception as e:  # noqa: BLE001
            self._log_shadow_failure("Dual-write to new system failed", operation, e)

    def _reporting_failures(
        self, operation: str, op: Callable[[], Awaitable[Any]]
    ) -> Callable[[], Awaitable[Dict[str, Any]]]:
        """Wrap a write so exceptions become ``{"success": False, "message"}``."""

        async def wrapped() -> Dict[str, Any]:
            try:
                return await op()
            except Exception as e:
                self.logger.warning(
                    f"{LOG_PREFIX} {operation} failed",
                    operation=operation,
                    error=str(e),
                )
                return {"success": False, "message": str(e)}

        return wrapped

    def _log_shadow_failure(self, message: str, operation: str, cause: BaseException) -> None:
        shadow = ShadowError(operation, cause)
        self.logger.error(
            f"{LOG_PREFIX} {message}",
            operation=operation,
            context={"kind": shadow.kind.value, "error_type": type(cause).__name__},
            error=str(cause),
        )

    # ------------------------------------------------------------------ #
    # Statistics
    # ------------------------------------------------------------------ #

    def get_routing_statistics(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = self.stats.to_dict()
        stats["target_system_active"] = self.flags.is_enabled(
            self.flag_keys.read
        ) or self.flags.is_enabled(self.flag_keys.write)
        stats["comparison_testing_active"] = self.flags.is_enabled(self.flag_keys.comparison)
        stats["dual_write_active"] = self.flags.is_enabled(self.flag_keys.dual_write)
        return stats

    def reset(self) -> None:
        """Zero the routing counters."""
        self.stats.reset()
