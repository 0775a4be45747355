"""
Personality domain shapes.

The legacy manager and the target service describe a personality
differently; callers of the router only ever see the legacy shape.

Legacy shape::

    {fullName, displayName, owner, aliases: [str], avatarUrl,
     nsfwContent, temperature, maxWordCount}

Target shape::

    {name, ownerId, aliases: [{alias}], profile: {displayName, avatarUrl,
     isNSFW, temperature, maxWordCount}, createdAt, updatedAt}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

LEGACY_FIELDS = (
    "fullName",
    "displayName",
    "owner",
    "aliases",
    "avatarUrl",
    "nsfwContent",
    "temperature",
    "maxWordCount",
)


def _field(source: Any, name: str, default: Any = None) -> Any:
    """Read a field from a dict or an attribute object."""
    if source is None:
        return default
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def _alias_name(alias: Any) -> Optional[str]:
    if isinstance(alias, str):
        return alias
    return _field(alias, "alias")


@dataclass
class LegacyPersonality:
    """
    Personality as the legacy manager represents it.

    Attributes:
        fullName: Canonical personality name
        displayName: Name shown in chat (falls back to fullName)
        owner: Owning user ID
        aliases: Alias strings
        avatarUrl: Avatar image URL
        nsfwContent: NSFW marker
        temperature: Model temperature
        maxWordCount: Response word budget
    """

    fullName: str
    displayName: Optional[str] = None
    owner: Optional[str] = None
    aliases: List[str] = field(default_factory=list)
    avatarUrl: Optional[str] = None
    nsfwContent: Optional[bool] = None
    temperature: Optional[float] = None
    maxWordCount: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LegacyPersonality":
        """Build from a legacy dict; unknown keys are dropped."""
        values = {name: data.get(name) for name in LEGACY_FIELDS if name in data}
        values["aliases"] = list(values.get("aliases") or [])
        return cls(**values)

    @classmethod
    def from_target(cls, target: Any) -> "LegacyPersonality":
        """
        Map a target-service personality onto the legacy shape.

        Every legacy field has a defined source; fields the target lacks map
        to None (aliases to an empty list, displayName to the name).
        """
        name = _field(target, "name")
        profile = _field(target, "profile")
        aliases = [
            alias_name
            for alias_name in (_alias_name(alias) for alias in (_field(target, "aliases") or []))
            if alias_name is not None
        ]
        return cls(
            fullName=name,
            displayName=_field(profile, "displayName") or name,
            owner=_field(target, "ownerId"),
            aliases=aliases,
            avatarUrl=_field(profile, "avatarUrl"),
            nsfwContent=_field(profile, "isNSFW"),
            temperature=_field(profile, "temperature"),
            maxWordCount=_field(profile, "maxWordCount"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fullName": self.fullName,
            "displayName": self.displayName,
            "owner": self.owner,
            "aliases": list(self.aliases),
            "avatarUrl": self.avatarUrl,
            "nsfwContent": self.nsfwContent,
            "temperature": self.temperature,
            "maxWordCount": self.maxWordCount,
        }


def target_to_legacy(target: Any) -> Optional[Dict[str, Any]]:
    """Convert a target personality to a legacy dict; None stays None."""
    if target is None:
        return None
    return LegacyPersonality.from_target(target).to_dict()


@dataclass
class RegistrationOptions:
    """Optional attributes supplied when registering a personality."""

    avatar_url: Optional[str] = None
    display_name: Optional[str] = None
    nsfw_content: Optional[bool] = None
    temperature: Optional[float] = None
    max_word_count: Optional[int] = None
    prompt: Optional[str] = None
    model_path: Optional[str] = None
    aliases: List[str] = field(default_factory=list)

    @classmethod
    def coerce(cls, value: Any) -> "RegistrationOptions":
        """Accept None, a RegistrationOptions, or a mapping of option values."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            known = {name: value[name] for name in cls.__dataclass_fields__ if name in value}
            known["aliases"] = list(known.get("aliases") or [])
            return cls(**known)
        raise TypeError(f"Unsupported registration options: {type(value).__name__}")

    def to_target_command(self, name: str, owner_id: str) -> Dict[str, Any]:
        """Registration command in the target service's format."""
        return {
            "name": name,
            "ownerId": owner_id,
            "prompt": self.prompt or f"You are {name}",
            "modelPath": self.model_path or "/default",
            "maxWordCount": self.max_word_count or 1000,
            "aliases": list(self.aliases),
        }
