"""
Block poller: wait for a submitted extrinsic to land and report its outcome.

Each tick fetches the chain head, fetches the events recorded at that exact
block hash, correlates and classifies. The first matching extrinsic ends the
poll; otherwise the poller sleeps one interval and tries again until the
timeout elapses, then returns NotFound. The first ticks may run before the
extrinsic is included anywhere; that is handled by retrying like any other
miss.

Ticks are serialized: one outstanding chain call at a time. Instances share
no state, so independent reconciliations may run concurrently.
"""

from __future__ import annotations

import math
import time

from backend_defi.chain_client.base import ChainClient
from backend_defi.chain_listener.classifier import classify
from backend_defi.chain_listener.correlator import correlate
from backend_defi.chain_listener.models import Block, Outcome
from backend_defi.core.exceptions import TransportError
from backend_defi.defi_logging import bind_extrinsic

DEFAULT_POLL_INTERVAL_SEC = 6.0
DEFAULT_TIMEOUT_SEC = 60.0
NOT_FOUND_MESSAGE = "extrinsic not found within timeout"


def reconcile_block(
    client: ChainClient,
    block: Block,
    pallet: str,
    call: str,
    sender_address: str,
) -> Outcome:
    """Correlate and classify one block against the events recorded at its hash."""
    events = client.get_events_at(block.hash)
    events_by_index = correlate(block.extrinsics, events)
    return classify(
        block.extrinsics,
        events_by_index,
        pallet,
        call,
        sender_address,
        client=client,
        block=block,
    )


def _blocks_for_tick(
    client: ChainClient,
    head: Block,
    last_height: int | None,
    scan_skipped_blocks: bool,
) -> list[Block]:
    """Head alone, or every block after last_height up to head when catching up."""
    if not scan_skipped_blocks or last_height is None or head.height <= last_height + 1:
        return [head]
    blocks = [
        client.get_block(client.get_block_hash(height))
        for height in range(last_height + 1, head.height)
    ]
    blocks.append(head)
    return blocks


def poll_until_match(
    client: ChainClient,
    pallet: str,
    call: str,
    sender_address: str,
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
    timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    *,
    scan_skipped_blocks: bool = False,
) -> Outcome:
    """
    Poll the chain head until the target extrinsic is found or timeout_sec elapses.

    Args:
        client: Chain Client used for every call of this reconciliation.
        pallet: Pallet of the submitted call, e.g. "defi".
        call: Call name, e.g. "deposit".
        sender_address: SS58 address that signed the extrinsic.
        poll_interval_sec: Seconds between ticks (block time is ~6s).
        timeout_sec: Overall window; no chain call is issued after it elapses.
        scan_skipped_blocks: Also reconcile blocks produced between two ticks.

    Returns:
        The matched Outcome, or NotFound once the window elapses.

    Raises:
        ValueError: Empty names, or timing that is not positive and finite.
        TransportError: Every tick in the window failed to reach the node.
    """
    if not pallet or not call or not sender_address:
        raise ValueError("pallet, call and sender_address must be non-empty")
    if not (math.isfinite(poll_interval_sec) and poll_interval_sec > 0):
        raise ValueError(f"poll_interval_sec must be a positive finite number, got {poll_interval_sec!r}")
    if not (math.isfinite(timeout_sec) and timeout_sec > 0):
        raise ValueError(f"timeout_sec must be a positive finite number, got {timeout_sec!r}")

    log = bind_extrinsic(pallet, call, sender_address)
    started = time.monotonic()
    deadline = started + timeout_sec
    seen_hashes: set[str] = set()
    last_height: int | None = None
    last_error: TransportError | None = None
    any_tick_ok = False
    tick = 0

    log.info("poller_started", poll_interval_sec=poll_interval_sec, timeout_sec=timeout_sec)
    while True:
        tick += 1
        try:
            head = client.get_current_block()
            for block in _blocks_for_tick(client, head, last_height, scan_skipped_blocks):
                if block.hash in seen_hashes:
                    continue
                outcome = reconcile_block(client, block, pallet, call, sender_address)
                seen_hashes.add(block.hash)
                if outcome.matched:
                    log.info(
                        "poller_match_found",
                        tick=tick,
                        block_height=block.height,
                        extrinsic_index=outcome.extrinsic_index,
                        status=outcome.status.value,
                        elapsed_sec=round(time.monotonic() - started, 3),
                    )
                    return outcome
            last_height = head.height
            any_tick_ok = True
            log.debug("poller_no_match", tick=tick, block_height=head.height)
        except TransportError as e:
            last_error = e
            log.warning("poller_tick_transport_error", tick=tick, error=str(e))

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        time.sleep(min(poll_interval_sec, remaining))
        if time.monotonic() >= deadline:
            break

    if not any_tick_ok and last_error is not None:
        log.error("poller_transport_error_persisted", ticks=tick, error=str(last_error))
        raise last_error
    log.info("poller_timeout", ticks=tick, timeout_sec=timeout_sec)
    return Outcome.not_found(NOT_FOUND_MESSAGE)


def check_extrinsic_status(
    client: ChainClient,
    pallet: str,
    call: str,
    sender_address: str,
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
    timeout_sec: float | None = None,
    *,
    scan_skipped_blocks: bool = False,
) -> Outcome:
    """
    Reconciliation entry point for submission scripts.

    Call right after submitting a signed extrinsic; returns whether it
    succeeded and, if not, the decoded error. timeout_sec defaults to
    EXTRINSIC_TIMEOUT_SEC from the environment.
    """
    if timeout_sec is None:
        from backend_defi.config.env import get_timeout_sec

        timeout_sec = get_timeout_sec()
    return poll_until_match(
        client,
        pallet,
        call,
        sender_address,
        poll_interval_sec,
        timeout_sec,
        scan_skipped_blocks=scan_skipped_blocks,
    )
