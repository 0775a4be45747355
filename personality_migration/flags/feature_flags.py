"""
Feature flag evaluation for the personality migration.

Flags are dotted keys (``ddd.personality.read``) resolved from, in order:
runtime overrides, ``FEATURE_FLAG_*`` environment variables, the YAML flag
file, and built-in defaults.
"""

import os
from typing import Dict, Mapping, Optional

from personality_migration.utils.logger import get_logger

logger = get_logger(__name__)

# Flag keys consumed by the router
PERSONALITY_READ = "ddd.personality.read"
PERSONALITY_WRITE = "ddd.personality.write"
PERSONALITY_DUAL_WRITE = "ddd.personality.dual-write"
COMPARISON_TESTING = "features.comparison-testing"

DEFAULT_FLAGS: Dict[str, bool] = {
    "ddd.commands.enabled": False,
    PERSONALITY_READ: False,
    PERSONALITY_WRITE: False,
    PERSONALITY_DUAL_WRITE: False,
    "ddd.events.enabled": False,
    COMPARISON_TESTING: False,
    "features.performance-logging": False,
    "features.enhanced-context": False,
}

ENV_PREFIX = "FEATURE_FLAG_"


def env_var_for(flag_key: str) -> str:
    """
    Environment variable name overriding a flag.

    Example:
        >>> env_var_for("ddd.personality.dual-write")
        "FEATURE_FLAG_DDD_PERSONALITY_DUAL_WRITE"
    """
    return ENV_PREFIX + flag_key.upper().replace(".", "_").replace("-", "_")


class FeatureFlags:
    """
    Boolean capability switches keyed by name.

    ``is_enabled`` is synchronous and side-effect free apart from a one-time
    warning for unknown keys, so the router may call it on every request.
    """

    def __init__(
        self,
        defaults: Optional[Mapping[str, bool]] = None,
        overrides: Optional[Mapping[str, bool]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            defaults: Flag values loaded from the flag file (merged over DEFAULT_FLAGS)
            overrides: Runtime overrides taking precedence over everything else
            environ: Environment mapping (defaults to os.environ, read per call)
        """
        self._defaults: Dict[str, bool] = dict(DEFAULT_FLAGS)
        if defaults:
            self._defaults.update({key: bool(value) for key, value in defaults.items()})
        self._overrides: Dict[str, bool] = dict(overrides or {})
        self._environ = environ
        self._warned_unknown: set = set()

    def _env(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def is_known(self, flag_key: str) -> bool:
        return flag_key in self._defaults or flag_key in self._overrides

    def is_enabled(self, flag_key: str) -> bool:
        """
        Check whether a flag is enabled.

        Args:
            flag_key: Dotted flag name

        Returns:
            True when enabled; False for disabled or unknown flags
        """
        if flag_key in self._overrides:
            return self._overrides[flag_key]

        raw = self._env().get(env_var_for(flag_key))
        if raw is not None:
            return raw.lower() == "true"

        if flag_key in self._defaults:
            return self._defaults[flag_key]

        if flag_key not in self._warned_unknown:
            self._warned_unknown.add(flag_key)
            logger.warning(
                "Unknown feature flag requested",
                operation="is_enabled",
                context={"flag": flag_key},
            )
        return False

    def set_flag(self, flag_key: str, value: bool) -> None:
        self._overrides[flag_key] = bool(value)
        logger.info(
            "Feature flag updated",
            operation="set_flag",
            context={"flag": flag_key, "enabled": bool(value)},
        )

    def enable(self, flag_key: str) -> None:
        self.set_flag(flag_key, True)

    def disable(self, flag_key: str) -> None:
        self.set_flag(flag_key, False)

    def get_all_flags(self) -> Dict[str, bool]:
        """Resolved value of every known flag."""
        keys = set(self._defaults) | set(self._overrides)
        return {key: self.is_enabled(key) for key in sorted(keys)}

    def reset(self) -> None:
        """Drop runtime overrides; environment and file values still apply."""
        self._overrides.clear()
        self._warned_unknown.clear()


def create_feature_flags(settings=None, overrides: Optional[Mapping[str, bool]] = None) -> FeatureFlags:
    """
    Build a fresh FeatureFlags instance from settings.

    Args:
        settings: Settings instance providing the flag file (optional)
        overrides: Runtime overrides

    Returns:
        FeatureFlags with file defaults applied
    """
    defaults = settings.load_flag_file() if settings is not None else {}
    return FeatureFlags(defaults=defaults, overrides=overrides)
