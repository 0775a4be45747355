"""Dual-system routing between the legacy manager and the target service."""

from .backends import LegacyPersonalityBackend, TargetPersonalityBackend
from .dispatch import DispatchMode, MigrationFlagKeys, OperationKind, select_dispatch_mode
from .personality_router import PersonalityRouter, RoutingStatistics

__all__ = [
    "LegacyPersonalityBackend",
    "TargetPersonalityBackend",
    "DispatchMode",
    "MigrationFlagKeys",
    "OperationKind",
    "select_dispatch_mode",
    "PersonalityRouter",
    "RoutingStatistics",
]
