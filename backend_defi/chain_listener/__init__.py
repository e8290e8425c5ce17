"""
Chain listener package.

Polls a Substrate node for produced blocks, correlates each block's events
with its extrinsics, and classifies the outcome of a submitted extrinsic.
"""

from backend_defi.chain_listener.classifier import classify, find_target_extrinsic
from backend_defi.chain_listener.correlator import correlate
from backend_defi.chain_listener.error_decoder import decode_dispatch_error
from backend_defi.chain_listener.models import (
    Block,
    EventRecord,
    Extrinsic,
    Outcome,
    OutcomeStatus,
    Phase,
)
from backend_defi.chain_listener.poller import check_extrinsic_status, poll_until_match
from backend_defi.chain_listener.watcher import BlockEventWatcher, watch_events

__all__ = [
    "Block",
    "BlockEventWatcher",
    "EventRecord",
    "Extrinsic",
    "Outcome",
    "OutcomeStatus",
    "Phase",
    "check_extrinsic_status",
    "classify",
    "correlate",
    "decode_dispatch_error",
    "find_target_extrinsic",
    "poll_until_match",
    "watch_events",
]
