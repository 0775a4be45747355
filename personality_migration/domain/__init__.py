"""Domain shapes - personality representations for both backends."""

from .personality import LegacyPersonality, RegistrationOptions, target_to_legacy

__all__ = ["LegacyPersonality", "RegistrationOptions", "target_to_legacy"]
