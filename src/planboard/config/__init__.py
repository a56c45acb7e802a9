"""Configuration for Planboard."""

from planboard.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
