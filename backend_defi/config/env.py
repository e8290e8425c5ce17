"""
Environment variable loading and validation for Backend DeFi.

- DEFI_NODE_URL: node endpoint (default ws://127.0.0.1:9944)
- EXTRINSIC_POLL_INTERVAL_SEC: seconds between block polls (default 6, one block time)
- EXTRINSIC_TIMEOUT_SEC: reconciliation window in seconds (default 60)
- EXTRINSIC_SCAN_SKIPPED_BLOCKS: 1/true/yes/on to also scan blocks skipped between polls
- Loads .env from project root when available.
"""

from __future__ import annotations

import math
import os
from pathlib import Path

from dotenv import load_dotenv

from backend_defi.core.exceptions import ConfigError

# Project root: config is backend_defi/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_NODE_URL = "ws://127.0.0.1:9944"
DEFAULT_POLL_INTERVAL_SEC = 6.0
DEFAULT_TIMEOUT_SEC = 60.0

_TRUTHY = ("1", "true", "yes", "on")


def load_defi_env() -> None:
    """Load .env from project root. Existing environment variables win. Safe to call multiple times."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def get_node_url() -> str:
    """Return DEFI_NODE_URL, or the local development node."""
    load_defi_env()
    url = (os.getenv("DEFI_NODE_URL") or "").strip()
    return url or DEFAULT_NODE_URL


def _positive_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if not (math.isfinite(value) and value > 0):
        raise ConfigError(f"{name} must be a positive finite number, got {raw!r}")
    return value


def get_poll_interval_sec() -> float:
    load_defi_env()
    return _positive_float("EXTRINSIC_POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC)


def get_timeout_sec() -> float:
    load_defi_env()
    return _positive_float("EXTRINSIC_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC)


def scan_skipped_blocks() -> bool:
    """Return True when EXTRINSIC_SCAN_SKIPPED_BLOCKS is set to a truthy value."""
    load_defi_env()
    raw = (os.getenv("EXTRINSIC_SCAN_SKIPPED_BLOCKS") or "").strip().lower()
    return raw in _TRUTHY
