"""
Block event watcher: print or forward every event the chain records.

Responsibilities:
- Poll the chain head at a fixed interval.
- Fetch the events of each newly seen block (deduplicated by hash).
- Optionally filter events (e.g. by pallet) and hand them to a callback.
- Stop after max_blocks, on stop(), or on SIGINT/SIGTERM.

Not used by the reconciliation core; this is a separate observer.
"""

from __future__ import annotations

import math
import signal
import threading
from collections import deque
from collections.abc import Callable
from typing import Any

from backend_defi.chain_client.base import ChainClient
from backend_defi.chain_listener.models import Block, EventRecord, OtherEvent
from backend_defi.core.exceptions import TransportError
from backend_defi.defi_logging import get_logger

logger = get_logger(__name__)

EventFilter = Callable[[EventRecord], bool]
EventCallback = Callable[[Block, list[EventRecord]], None]

DEFAULT_WATCH_INTERVAL_SEC = 6.0
MAX_SEEN_BLOCKS = 1_000


def pallet_filter(pallet: str) -> EventFilter:
    """Keep only events emitted by the given pallet (case-insensitive)."""
    wanted = pallet.lower()

    def _keep(record: EventRecord) -> bool:
        payload = record.payload
        if isinstance(payload, OtherEvent):
            return payload.module.lower() == wanted
        return wanted == "system"

    return _keep


def log_events(block: Block, events: list[EventRecord]) -> None:
    for record in events:
        logger.info("block_event", block_height=block.height, **record.to_dict())


class BlockEventWatcher:
    """
    Polling observer of recorded events, one callback per new block.

    Blocks only the thread that calls run() / start(); every wait is
    interruptible by stop().
    """

    def __init__(
        self,
        client: ChainClient,
        *,
        poll_interval_sec: float = DEFAULT_WATCH_INTERVAL_SEC,
        on_events: EventCallback | None = None,
        event_filter: EventFilter | None = None,
        max_blocks: int | None = None,
    ) -> None:
        """
        Args:
            client: Chain Client to poll.
            poll_interval_sec: Seconds between polls of the chain head.
            on_events: callback(block, events) for each new block; defaults to logging each event.
            event_filter: Keep only events for which this returns True.
            max_blocks: Stop after this many new blocks; None runs until stopped.
        """
        if not (math.isfinite(poll_interval_sec) and poll_interval_sec > 0):
            raise ValueError("poll_interval_sec must be a positive finite number")
        if max_blocks is not None and max_blocks <= 0:
            raise ValueError("max_blocks must be positive")
        self._client = client
        self._poll_interval_sec = poll_interval_sec
        self._on_events = on_events or log_events
        self._event_filter = event_filter
        self._max_blocks = max_blocks

        # Set for O(1) dedup + deque for FIFO eviction when over capacity
        self._seen: set[str] = set()
        self._seen_order: deque[str] = deque()
        self._blocks_emitted = 0
        self._stop_event = threading.Event()

    @property
    def blocks_emitted(self) -> int:
        return self._blocks_emitted

    def start(self) -> None:
        """
        Run until max_blocks, stop(), or SIGINT/SIGTERM.

        Installs signal handlers where supported (main thread only) and
        restores the previous ones on return.
        """
        def _handle_sig(signum: int, frame: Any) -> None:
            sig = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
            logger.info("watcher_shutdown_signal", signal=sig)
            self._stop_event.set()

        previous: dict[int, Any] = {}
        signums = [signal.SIGINT]
        if hasattr(signal, "SIGTERM"):
            signums.append(signal.SIGTERM)
        try:
            for signum in signums:
                previous[signum] = signal.signal(signum, _handle_sig)
        except ValueError:
            # Not in the main thread; stop() still works
            logger.debug("watcher_signal_handlers_skipped")

        try:
            self.run()
        finally:
            for signum, handler in previous.items():
                if handler is not None:
                    signal.signal(signum, handler)
            logger.info("watcher_stopped", blocks_emitted=self._blocks_emitted)

    def stop(self) -> None:
        """Request shutdown; run() returns after the current tick."""
        self._stop_event.set()

    def run(self) -> None:
        logger.info(
            "watcher_started",
            poll_interval_sec=self._poll_interval_sec,
            max_blocks=self._max_blocks,
        )
        while not self._stop_event.is_set():
            try:
                self._poll_once()
            except TransportError as e:
                logger.warning("watcher_tick_transport_error", error=str(e))
            if self._done():
                break
            self._wait(self._poll_interval_sec)

    def _wait(self, seconds: float) -> None:
        self._stop_event.wait(timeout=seconds)

    def _done(self) -> bool:
        if self._stop_event.is_set():
            return True
        return self._max_blocks is not None and self._blocks_emitted >= self._max_blocks

    def _mark_seen(self, block_hash: str) -> None:
        if len(self._seen) >= MAX_SEEN_BLOCKS:
            self._seen.discard(self._seen_order.popleft())
        self._seen.add(block_hash)
        self._seen_order.append(block_hash)

    def _poll_once(self) -> None:
        block = self._client.get_current_block()
        if block.hash in self._seen:
            logger.debug("watcher_block_already_seen", block_height=block.height)
            return
        events = self._client.get_events_at(block.hash)
        self._mark_seen(block.hash)
        if self._event_filter is not None:
            events = [e for e in events if self._event_filter(e)]
        self._blocks_emitted += 1
        logger.debug("watcher_new_block", block_height=block.height, event_count=len(events))
        self._dispatch(block, events)

    def _dispatch(self, block: Block, events: list[EventRecord]) -> None:
        try:
            self._on_events(block, events)
        except Exception as e:
            logger.exception("watcher_callback_failed", block_height=block.height, error=str(e))


def watch_events(
    client: ChainClient,
    *,
    poll_interval_sec: float = DEFAULT_WATCH_INTERVAL_SEC,
    pallet: str | None = None,
    max_blocks: int | None = None,
    on_events: EventCallback | None = None,
) -> int:
    """Run a BlockEventWatcher in the calling thread; return the number of blocks emitted."""
    watcher = BlockEventWatcher(
        client,
        poll_interval_sec=poll_interval_sec,
        on_events=on_events,
        event_filter=pallet_filter(pallet) if pallet else None,
        max_blocks=max_blocks,
    )
    watcher.start()
    return watcher.blocks_emitted
