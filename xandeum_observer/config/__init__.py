"""
Configuration management for the observer.

Loads settings from environment variables and an optional .env file.
"""

from xandeum_observer.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
