"""
Application-level exceptions.

Domain errors carry a stable machine code and the HTTP status the API maps
them to. RpcError is raised by the gateway and classified as transport or
protocol failure; required lookups wrap it in UpstreamError.
"""

from __future__ import annotations

from enum import Enum


class SafeSendError(Exception):
    """Base class for errors surfaced by the check endpoint."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidAddressError(SafeSendError):
    code = "bad_address"
    status_code = 400


class UnsupportedChainError(SafeSendError):
    code = "unsupported_chain"
    status_code = 400


class ConfigurationError(SafeSendError):
    """Required configuration (RPC endpoint URL) is missing."""

    code = "missing_rpc_url"
    status_code = 500


class UpstreamError(SafeSendError):
    """A required on-chain lookup failed; the evaluation cannot complete."""

    code = "upstream_error"
    status_code = 500

    def __init__(self, lookup: str, cause: "RpcError") -> None:
        super().__init__(f"{lookup} failed: {cause}")
        self.lookup = lookup
        self.cause = cause


class RpcErrorKind(str, Enum):
    TRANSPORT = "transport"
    PROTOCOL = "protocol"


class RpcError(Exception):
    """
    JSON-RPC call failure.

    TRANSPORT: non-2xx HTTP status, timeout or connection failure (retryable).
    PROTOCOL: error envelope from the provider or a malformed response body.
    """

    def __init__(self, kind: RpcErrorKind, detail: str, method: str | None = None) -> None:
        super().__init__(f"{kind.value}: {detail}")
        self.kind = kind
        self.detail = detail
        self.method = method

    @property
    def retryable(self) -> bool:
        return self.kind is RpcErrorKind.TRANSPORT
