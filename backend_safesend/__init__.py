"""
Backend SafeSend — pre-send risk checks for Ethereum addresses.

Evaluates a recipient address at transaction time: fetches bytecode, nonce
and recent transfer history over JSON-RPC, runs a fixed set of heuristic
detectors and aggregates their findings into a 0–100 score with an
allow/block decision. Modular layout: chain (RPC + normalization),
analytics (detectors + aggregation), api_server (HTTP surface), config.
"""

__version__ = "0.1.0"
