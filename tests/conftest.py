"""
Pytest fixtures for Backend DeFi tests.

FakeChainClient serves scripted heads and events from memory; FakeClock
replaces the time module in the poller so timeouts elapse instantly.
"""

from __future__ import annotations

from collections.abc import Iterable

import pytest

from backend_defi.chain_listener.models import (
    Block,
    EventRecord,
    Extrinsic,
    ExtrinsicFailed,
    ExtrinsicSuccess,
    ModuleError,
    OtherEvent,
    Phase,
)
from backend_defi.core.exceptions import DecodeError, TransportError

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"


class FakeClock:
    """Stands in for the time module: monotonic() and sleep() on a virtual clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeChainClient:
    """
    In-memory ChainClient.

    heads: blocks returned by successive get_current_block() calls (the last
    one repeats); an Exception instance in the list is raised instead.
    """

    def __init__(
        self,
        heads: Iterable[Block | Exception] = (),
        events: dict[str, list[EventRecord]] | None = None,
        module_errors: dict[tuple[int, int], tuple[str, str]] | None = None,
        blocks: Iterable[Block] = (),
    ) -> None:
        self.heads = list(heads)
        self.events = dict(events or {})
        self.module_errors = dict(module_errors or {})
        self.blocks = {b.hash: b for b in blocks}
        for head in self.heads:
            if isinstance(head, Block):
                self.blocks.setdefault(head.hash, head)
        self.calls: list[tuple] = []
        self._head_pos = 0

    def get_current_block(self) -> Block:
        self.calls.append(("get_current_block",))
        if not self.heads:
            raise TransportError("get_current_block", "no head scripted")
        head = self.heads[min(self._head_pos, len(self.heads) - 1)]
        self._head_pos += 1
        if isinstance(head, Exception):
            raise head
        return head

    def get_block_hash(self, height: int) -> str:
        self.calls.append(("get_block_hash", height))
        for block in self.blocks.values():
            if block.height == height:
                return block.hash
        raise TransportError("get_block_hash", f"no block at height {height}")

    def get_block(self, block_hash: str) -> Block:
        self.calls.append(("get_block", block_hash))
        try:
            return self.blocks[block_hash]
        except KeyError:
            raise TransportError("get_block", f"unknown block {block_hash}") from None

    def get_events_at(self, block_hash: str) -> list[EventRecord]:
        self.calls.append(("get_events_at", block_hash))
        return list(self.events.get(block_hash, []))

    def resolve_module_error(self, module_index: int, error_index: int) -> tuple[str, str]:
        self.calls.append(("resolve_module_error", module_index, error_index))
        try:
            return self.module_errors[(module_index, error_index)]
        except KeyError:
            raise DecodeError(module_index, error_index, "not in fake metadata") from None

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)


def make_block(height: int, extrinsics: Iterable[Extrinsic] = ()) -> Block:
    return Block(height=height, hash=f"0x{height:064x}", extrinsics=tuple(extrinsics))


def inherent(index: int = 0) -> Extrinsic:
    return Extrinsic(index=index, pallet="Timestamp", call="set", sender=None)


def success(index: int, **info: object) -> EventRecord:
    return EventRecord(Phase.apply_extrinsic(index), ExtrinsicSuccess(dispatch_info=dict(info)))


def failed(index: int, module_index: int, error_index: int) -> EventRecord:
    return EventRecord(
        Phase.apply_extrinsic(index),
        ExtrinsicFailed(error=ModuleError(module_index, error_index)),
    )


def other(phase: Phase, module: str = "Defi", name: str = "Deposited") -> EventRecord:
    return EventRecord(phase, OtherEvent(module=module, name=name, attributes={}))


@pytest.fixture
def fake_clock(monkeypatch):
    """Virtual clock patched into the poller module."""
    import backend_defi.chain_listener.poller as poller

    clock = FakeClock()
    monkeypatch.setattr(poller, "time", clock)
    return clock


@pytest.fixture
def deposit_block():
    """Block 42: timestamp inherent, two unrelated calls, Alice's defi.deposit at position 3."""
    return make_block(
        42,
        [
            inherent(0),
            Extrinsic(index=1, pallet="Balances", call="transfer", sender=BOB),
            Extrinsic(index=2, pallet="Defi", call="deposit", sender=BOB),
            Extrinsic(index=3, pallet="Defi", call="deposit", sender=ALICE),
        ],
    )
