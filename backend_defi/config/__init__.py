"""
Configuration management for Backend DeFi.

Loads and validates settings from environment variables and an optional .env
file. Exposes a single source of truth for node endpoint and polling timing.
"""

from backend_defi.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
