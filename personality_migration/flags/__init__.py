"""Feature flag evaluation."""

from .feature_flags import (
    COMPARISON_TESTING,
    DEFAULT_FLAGS,
    PERSONALITY_DUAL_WRITE,
    PERSONALITY_READ,
    PERSONALITY_WRITE,
    FeatureFlags,
    create_feature_flags,
)

__all__ = [
    "COMPARISON_TESTING",
    "DEFAULT_FLAGS",
    "PERSONALITY_DUAL_WRITE",
    "PERSONALITY_READ",
    "PERSONALITY_WRITE",
    "FeatureFlags",
    "create_feature_flags",
]
