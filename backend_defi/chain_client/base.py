"""
Chain Client boundary.

The reconciliation core only needs these five calls. Implementations raise
TransportError when the node cannot be reached or answers with something
unusable, and DecodeError from resolve_module_error when metadata has no
entry for the pair. Tests use an in-memory fake; production uses
SubstrateChainClient.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from backend_defi.chain_listener.models import Block, EventRecord


class ChainClient(Protocol):
    def get_current_block(self) -> Block:
        """Fetch the chain head with its extrinsics."""
        ...

    def get_block_hash(self, height: int) -> str:
        """Hash of the block at the given height."""
        ...

    def get_block(self, block_hash: str) -> Block:
        """Fetch a block by hash."""
        ...

    def get_events_at(self, block_hash: str) -> list[EventRecord]:
        """Events recorded in the block with this hash, in order."""
        ...

    def resolve_module_error(self, module_index: int, error_index: int) -> tuple[str, str]:
        """Resolve a module error to (pallet name, error name) via runtime metadata."""
        ...
