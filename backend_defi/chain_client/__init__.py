"""
Chain node access.

ChainClient is the protocol the reconciliation core depends on;
SubstrateChainClient implements it over a Substrate node RPC endpoint.
"""

from backend_defi.chain_client.base import ChainClient
from backend_defi.chain_client.substrate import SubstrateChainClient

__all__ = ["ChainClient", "SubstrateChainClient"]
