"""
Backend adapters for the legacy personality manager and the target service.

Both adapters expose the same coroutine surface and always return
legacy-shaped data, so the router can treat them interchangeably.
"""

import inspect
from typing import Any, Dict, List, Optional

from personality_migration.domain.personality import RegistrationOptions, target_to_legacy
from personality_migration.errors import OperativeError


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class LegacyPersonalityBackend:
    """
    Adapter over the legacy personality manager.

    The manager's functions may be synchronous or return awaitables. Name
    lookups already fall back to alias resolution inside the manager.
    """

    name = "legacy"

    def __init__(self, manager: Any):
        self.manager = manager

    async def get(self, name_or_alias: str) -> Optional[Dict[str, Any]]:
        return await _maybe_await(self.manager.get_personality_by_name_or_alias(name_or_alias))

    async def list_all(self) -> List[Dict[str, Any]]:
        return list(await _maybe_await(self.manager.get_all_personalities()) or [])

    async def register(
        self, name: str, owner_id: str, options: RegistrationOptions
    ) -> Dict[str, Any]:
        return await _maybe_await(
            self.manager.register_personality(
                name,
                owner_id,
                options.avatar_url,
                options.display_name,
                options.nsfw_content,
                options.temperature,
                options.max_word_count,
            )
        )

    async def remove(self, name: str, requester_id: str) -> Dict[str, Any]:
        return await _maybe_await(self.manager.remove_personality(name, requester_id))

    async def add_alias(self, name: str, alias: str, requester_id: str) -> Dict[str, Any]:
        return await _maybe_await(self.manager.add_alias(name, alias, requester_id))


class TargetPersonalityBackend:
    """
    Adapter over the target personality application service.

    Results are converted into the legacy shape. Failures raise; the router
    decides whether they are operative or shadow failures.
    """

    name = "target"

    def __init__(self, service: Any):
        self.service = service

    async def get(self, name_or_alias: str) -> Optional[Dict[str, Any]]:
        """Look up by name, then by alias, mirroring the legacy manager."""
        personality = await self.service.get_personality_by_name(name_or_alias)
        if personality is None:
            personality = await self.service.get_personality_by_alias(name_or_alias)
        return target_to_legacy(personality)

    async def list_all(self) -> List[Dict[str, Any]]:
        personalities = await self.service.list_all_personalities()
        return [target_to_legacy(p) for p in personalities or []]

    async def register(
        self, name: str, owner_id: str, options: RegistrationOptions
    ) -> Dict[str, Any]:
        personality = await self.service.register_personality(
            options.to_target_command(name, owner_id)
        )
        if personality is None:
            raise OperativeError(
                f"Target service returned no personality for {name}",
                operation="register_personality",
                backend=self.name,
            )
        return {"success": True, "personality": target_to_legacy(personality)}

    async def remove(self, name: str, requester_id: str) -> Dict[str, Any]:
        await self.service.remove_personality(
            {"personalityName": name, "requesterId": requester_id}
        )
        return {"success": True, "message": f"Personality {name} removed successfully"}

    async def add_alias(self, name: str, alias: str, requester_id: str) -> Dict[str, Any]:
        await self.service.add_alias(
            {"personalityName": name, "alias": alias, "requesterId": requester_id}
        )
        return {"success": True, "message": f"Alias {alias} added successfully"}
