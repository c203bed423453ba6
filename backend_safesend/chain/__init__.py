"""
Ethereum chain access package.

JSON-RPC gateway, transfer normalization and the concurrent signal fetchers
that feed the analytics engine.
"""

from backend_safesend.chain.fetcher import fetch_signals
from backend_safesend.chain.models import AddressSignals, Transfer
from backend_safesend.chain.normalizer import normalize_transfer, normalize_transfers
from backend_safesend.chain.rpc import RpcGateway

__all__ = [
    "AddressSignals",
    "RpcGateway",
    "Transfer",
    "fetch_signals",
    "normalize_transfer",
    "normalize_transfers",
]
