"""Shared fixtures for the migration layer tests."""

import copy
from unittest.mock import AsyncMock, Mock

import pytest

from personality_migration.comparison.comparator import ShadowComparator
from personality_migration.flags.feature_flags import FeatureFlags
from personality_migration.routing.backends import (
    LegacyPersonalityBackend,
    TargetPersonalityBackend,
)
from personality_migration.routing.personality_router import PersonalityRouter

LEGACY_PERSONALITY = {
    "fullName": "test-personality",
    "displayName": "Test Personality",
    "owner": "user-123",
    "aliases": ["test-alias"],
    "avatarUrl": "https://example.com/avatar.png",
    "nsfwContent": False,
    "temperature": 0.7,
    "maxWordCount": 1000,
}

TARGET_PERSONALITY = {
    "name": "test-personality",
    "ownerId": "user-123",
    "aliases": [{"alias": "test-alias"}],
    "profile": {
        "displayName": "Test Personality",
        "avatarUrl": "https://example.com/avatar.png",
        "isNSFW": False,
        "temperature": 0.7,
        "maxWordCount": 1000,
    },
    "createdAt": "2024-01-01T00:00:00Z",
    "updatedAt": "2024-01-02T00:00:00Z",
}


@pytest.fixture
def legacy_personality():
    return copy.deepcopy(LEGACY_PERSONALITY)


@pytest.fixture
def target_personality():
    return copy.deepcopy(TARGET_PERSONALITY)


@pytest.fixture
def legacy_manager():
    """Legacy manager mixing sync lookups with async writes."""
    manager = Mock()
    manager.get_personality_by_name_or_alias = Mock(
        return_value=copy.deepcopy(LEGACY_PERSONALITY)
    )
    manager.get_all_personalities = Mock(return_value=[copy.deepcopy(LEGACY_PERSONALITY)])
    manager.register_personality = AsyncMock(
        return_value={"success": True, "personality": copy.deepcopy(LEGACY_PERSONALITY)}
    )
    manager.remove_personality = AsyncMock(
        return_value={"success": True, "message": "Personality test-personality removed"}
    )
    manager.add_alias = AsyncMock(
        return_value={"success": True, "message": "Alias added to test-personality"}
    )
    return manager


@pytest.fixture
def target_service():
    """Target application service with async methods only."""
    service = Mock()
    service.get_personality_by_name = AsyncMock(return_value=copy.deepcopy(TARGET_PERSONALITY))
    service.get_personality_by_alias = AsyncMock(return_value=None)
    service.list_all_personalities = AsyncMock(return_value=[copy.deepcopy(TARGET_PERSONALITY)])
    service.register_personality = AsyncMock(return_value=copy.deepcopy(TARGET_PERSONALITY))
    service.remove_personality = AsyncMock(return_value=None)
    service.add_alias = AsyncMock(return_value=None)
    return service


@pytest.fixture
def flags():
    """Flag evaluator isolated from the process environment."""
    return FeatureFlags(environ={})


@pytest.fixture
def comparator():
    return ShadowComparator(logger=Mock())


@pytest.fixture
def router_logger():
    return Mock()


@pytest.fixture
def router(flags, comparator, legacy_manager, target_service, router_logger):
    return PersonalityRouter(
        flags=flags,
        comparator=comparator,
        legacy=LegacyPersonalityBackend(legacy_manager),
        target=TargetPersonalityBackend(target_service),
        logger=router_logger,
    )
