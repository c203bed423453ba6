"""
Configuration management for Backend SafeSend.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for RPC, list and threshold configuration.
"""

from backend_safesend.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
