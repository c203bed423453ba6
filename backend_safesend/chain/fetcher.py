"""
Signal fetchers: bytecode, nonce and transfer history for one address.

The four lookups run concurrently. Bytecode and nonce are required (retried,
failure aborts with UpstreamError); transfer history is best-effort (failure
yields an empty list and is recorded in AddressSignals.degraded).
"""

from __future__ import annotations

import asyncio
from typing import Any

from backend_safesend.chain.models import AddressSignals, Transfer
from backend_safesend.chain.normalizer import normalize_transfers
from backend_safesend.chain.rpc import RpcGateway
from backend_safesend.core.exceptions import RpcError, RpcErrorKind, UpstreamError
from backend_safesend.safesend_logging import get_logger, short_address

logger = get_logger(__name__)

LOOKUP_BYTECODE = "bytecode"
LOOKUP_NONCE = "nonce"
LOOKUP_OUTBOUND = "outbound_transfers"
LOOKUP_INBOUND = "inbound_transfers"

TRANSFERS_METHOD = "alchemy_getAssetTransfers"
MAX_TRANSFERS = 100

_TRANSFER_QUERY_BASE: dict[str, Any] = {
    "fromBlock": "0x0",
    "toBlock": "latest",
    "category": ["external"],
    "withMetadata": True,
    "excludeZeroValue": False,
    "maxCount": hex(MAX_TRANSFERS),
    "order": "desc",
}


def transfer_query(address: str, direction: str) -> dict[str, Any]:
    """Build the asset-transfers filter; direction is 'from' (outbound) or 'to' (inbound)."""
    if direction not in ("from", "to"):
        raise ValueError("direction must be 'from' or 'to'")
    return {**_TRANSFER_QUERY_BASE, f"{direction}Address": address}


async def fetch_bytecode(gateway: RpcGateway, address: str) -> str | None:
    """Return runtime bytecode ("0x" for EOAs), or None when the result is not a hex string."""
    result = await gateway.call_with_retry("eth_getCode", [address, "latest"])
    if isinstance(result, str) and result.startswith("0x"):
        return result.lower()
    logger.warning("fetch_bytecode_unverifiable", address=short_address(address), result_type=type(result).__name__)
    return None


async def fetch_nonce(gateway: RpcGateway, address: str) -> int:
    result = await gateway.call_with_retry("eth_getTransactionCount", [address, "latest"])
    try:
        nonce = int(result, 16) if isinstance(result, str) else int(result)
    except (TypeError, ValueError) as e:
        raise RpcError(RpcErrorKind.PROTOCOL, "invalid_nonce", "eth_getTransactionCount") from e
    if nonce < 0:
        raise RpcError(RpcErrorKind.PROTOCOL, "invalid_nonce", "eth_getTransactionCount")
    return nonce


async def fetch_transfers(gateway: RpcGateway, address: str, direction: str) -> tuple[Transfer, ...]:
    """
    Fetch up to MAX_TRANSFERS most recent external transfers; one call, no retry.

    A result without a `transfers` list is a protocol error, so the caller
    degrades the lookup instead of scoring a partial payload.
    """
    result = await gateway.call(TRANSFERS_METHOD, [transfer_query(address, direction)])
    raws = result.get("transfers") if isinstance(result, dict) else None
    if not isinstance(raws, list):
        raise RpcError(RpcErrorKind.PROTOCOL, "invalid_transfers", TRANSFERS_METHOD)
    return normalize_transfers(raws)[:MAX_TRANSFERS]


async def fetch_signals(gateway: RpcGateway, address: str) -> AddressSignals:
    """
    Fetch all signals for an address concurrently.

    Raises UpstreamError when a required lookup fails. Best-effort failures
    are logged and listed in the returned signals' `degraded` tuple.
    """
    bytecode_res, nonce_res, out_res, in_res = await asyncio.gather(
        fetch_bytecode(gateway, address),
        fetch_nonce(gateway, address),
        fetch_transfers(gateway, address, "from"),
        fetch_transfers(gateway, address, "to"),
        return_exceptions=True,
    )

    for lookup, res in ((LOOKUP_BYTECODE, bytecode_res), (LOOKUP_NONCE, nonce_res)):
        if isinstance(res, RpcError):
            logger.error("fetch_required_failed", address=short_address(address), lookup=lookup, error=str(res))
            raise UpstreamError(lookup, res) from res
        if isinstance(res, BaseException):
            raise res

    degraded: list[str] = []
    transfers: dict[str, tuple[Transfer, ...]] = {}
    for lookup, res in ((LOOKUP_OUTBOUND, out_res), (LOOKUP_INBOUND, in_res)):
        if isinstance(res, RpcError):
            logger.warning("fetch_best_effort_failed", address=short_address(address), lookup=lookup, error=str(res))
            degraded.append(lookup)
            transfers[lookup] = ()
        elif isinstance(res, BaseException):
            raise res
        else:
            transfers[lookup] = res

    signals = AddressSignals(
        address=address,
        bytecode=bytecode_res,
        nonce=nonce_res,
        outbound=transfers[LOOKUP_OUTBOUND],
        inbound=transfers[LOOKUP_INBOUND],
        degraded=tuple(degraded),
    )
    logger.debug(
        "fetch_signals_done",
        address=short_address(address),
        nonce=signals.nonce,
        outbound=len(signals.outbound),
        inbound=len(signals.inbound),
        degraded=signals.degraded,
    )
    return signals
