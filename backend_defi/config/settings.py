"""
Application settings.

Typed, immutable view over the environment (see config.env) shared by the
command line tools and any caller of check_extrinsic_status.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_defi.config.env import (
    get_node_url,
    get_poll_interval_sec,
    get_timeout_sec,
    scan_skipped_blocks,
)


@dataclass(frozen=True)
class Settings:
    """Node endpoint and reconciliation timing."""

    node_url: str
    """Node RPC endpoint (ws:// or http://)."""
    poll_interval_sec: float
    """Seconds between polls of the chain head."""
    timeout_sec: float
    """Overall reconciliation window; NotFound is returned once it elapses."""
    scan_skipped_blocks: bool = False
    """Also reconcile blocks produced between two polls."""


def get_settings() -> Settings:
    """
    Return the current application settings.

    Raises:
        ConfigError: a numeric setting is malformed or not positive.
    """
    return Settings(
        node_url=get_node_url(),
        poll_interval_sec=get_poll_interval_sec(),
        timeout_sec=get_timeout_sec(),
        scan_skipped_blocks=scan_skipped_blocks(),
    )
