"""Core app configuration, password hashing and tokens."""

from usergate.core.config import get_settings, settings

__all__ = ["get_settings", "settings"]
