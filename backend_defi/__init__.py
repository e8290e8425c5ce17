"""
Backend DeFi: extrinsic outcome reconciliation for a Substrate DeFi chain.

Polls the node's produced blocks, pairs each extrinsic with the events it
emitted, and reports whether a submitted deposit / borrow / rate update
succeeded, and if not, which module error the chain raised.
"""

__version__ = "0.1.0"
