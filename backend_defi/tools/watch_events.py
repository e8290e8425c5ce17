#!/usr/bin/env python3
"""
Log every event recorded in new blocks, optionally only one pallet's.

Stops on Ctrl+C, SIGTERM, or after --max-blocks new blocks.

Usage:
  python -m backend_defi.tools.watch_events --pallet defi
  python -m backend_defi.tools.watch_events --max-blocks 10
"""

from __future__ import annotations

import argparse
import sys

from backend_defi.chain_client import SubstrateChainClient
from backend_defi.chain_listener.watcher import watch_events
from backend_defi.config import get_settings
from backend_defi.core.exceptions import ConfigError
from backend_defi.defi_logging import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Watch events recorded in new blocks.")
    parser.add_argument("--url", default=None, help="Node endpoint (default DEFI_NODE_URL)")
    parser.add_argument("--pallet", default=None, help="Only events of this pallet, e.g. defi")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    parser.add_argument("--max-blocks", type=int, default=None, help="Stop after this many new blocks")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ConfigError as e:
        logger.error("watch_events_config_error", error=str(e))
        return 1

    url = args.url or settings.node_url
    try:
        with SubstrateChainClient(url) as client:
            emitted = watch_events(
                client,
                poll_interval_sec=(
                    args.interval if args.interval is not None else settings.poll_interval_sec
                ),
                pallet=args.pallet,
                max_blocks=args.max_blocks,
            )
    except ValueError as e:
        logger.error("watch_events_invalid_arguments", error=str(e))
        return 1
    logger.info("watch_events_done", url=url, blocks_emitted=emitted)
    return 0


if __name__ == "__main__":
    sys.exit(main())
