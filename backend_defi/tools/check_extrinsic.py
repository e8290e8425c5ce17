#!/usr/bin/env python3
"""
Report whether a submitted extrinsic succeeded, and if not, why.

Polls the node until the extrinsic signed by --sender for --pallet/--call
appears in a block, then prints the Outcome as JSON.

Exit codes: 0 Success, 1 Failure or Unknown, 2 NotFound, 3 node unreachable
or bad configuration.

Usage:
  python -m backend_defi.tools.check_extrinsic --pallet defi --call deposit \
      --sender 5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY
"""

from __future__ import annotations

import argparse
import sys

from backend_defi.chain_client import SubstrateChainClient
from backend_defi.chain_listener.models import OutcomeStatus
from backend_defi.chain_listener.poller import check_extrinsic_status
from backend_defi.config import get_settings
from backend_defi.core.exceptions import ConfigError, TransportError
from backend_defi.defi_logging import get_logger

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_NOT_FOUND = 2
EXIT_ERROR = 3

_EXIT_BY_STATUS = {
    OutcomeStatus.SUCCESS: EXIT_SUCCESS,
    OutcomeStatus.FAILURE: EXIT_FAILURE,
    OutcomeStatus.UNKNOWN: EXIT_FAILURE,
    OutcomeStatus.NOT_FOUND: EXIT_NOT_FOUND,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check the outcome of a submitted extrinsic.")
    parser.add_argument("--pallet", required=True, help="Pallet name, e.g. defi")
    parser.add_argument("--call", required=True, help="Call name, e.g. deposit or update_borrowing_rate")
    parser.add_argument("--sender", required=True, help="SS58 address that signed the extrinsic")
    parser.add_argument("--url", default=None, help="Node endpoint (default DEFI_NODE_URL)")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between polls (default EXTRINSIC_POLL_INTERVAL_SEC)")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait (default EXTRINSIC_TIMEOUT_SEC)")
    parser.add_argument("--scan-skipped", action="store_true", help="Also scan blocks produced between polls")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ConfigError as e:
        logger.error("check_extrinsic_config_error", error=str(e))
        return EXIT_ERROR

    url = args.url or settings.node_url
    try:
        with SubstrateChainClient(url) as client:
            outcome = check_extrinsic_status(
                client,
                args.pallet,
                args.call,
                args.sender,
                poll_interval_sec=(
                    args.interval if args.interval is not None else settings.poll_interval_sec
                ),
                timeout_sec=args.timeout if args.timeout is not None else settings.timeout_sec,
                scan_skipped_blocks=args.scan_skipped or settings.scan_skipped_blocks,
            )
    except TransportError as e:
        logger.error("check_extrinsic_node_unreachable", url=url, error=str(e))
        return EXIT_ERROR
    except ValueError as e:
        logger.error("check_extrinsic_invalid_arguments", error=str(e))
        return EXIT_ERROR

    print(outcome.to_json())
    return _EXIT_BY_STATUS[outcome.status]


if __name__ == "__main__":
    sys.exit(main())
