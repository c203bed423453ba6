"""
Core utilities — exceptions and cross-cutting concerns shared by the chain,
analytics and API layers.
"""

from backend_safesend.core.exceptions import (
    ConfigurationError,
    InvalidAddressError,
    RpcError,
    RpcErrorKind,
    SafeSendError,
    UnsupportedChainError,
    UpstreamError,
)

__all__ = [
    "ConfigurationError",
    "InvalidAddressError",
    "RpcError",
    "RpcErrorKind",
    "SafeSendError",
    "UnsupportedChainError",
    "UpstreamError",
]
