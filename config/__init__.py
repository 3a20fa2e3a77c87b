"""Configuration module for the compliance content orchestrator."""

from config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
