"""Configuration loading."""

from .settings import SecretRedactionFilter, Settings

__all__ = ["SecretRedactionFilter", "Settings"]
