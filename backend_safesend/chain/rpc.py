"""
JSON-RPC gateway — one async HTTP client per evaluation.

Responsibilities:
- Turn (method, params) into the decoded `result` or a typed RpcError.
- Enforce a per-call timeout; classify timeouts and connection failures as
  transport errors.
- Offer a bounded retry with exponential backoff for required lookups;
  plain `call` never retries.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from backend_safesend.core.exceptions import RpcError, RpcErrorKind
from backend_safesend.safesend_logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 10.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_MIN_RETRY_DELAY_SEC = 0.25
DEFAULT_MAX_RETRY_DELAY_SEC = 2.0


class RpcGateway:
    """
    Thin JSON-RPC-over-HTTPS wrapper.

    Use as an async context manager so the underlying httpx.AsyncClient is
    closed when the evaluation finishes:

        async with RpcGateway(url, timeout_sec=5.0) as gateway:
            code = await gateway.call("eth_getCode", [address, "latest"])
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        min_retry_delay_sec: float = DEFAULT_MIN_RETRY_DELAY_SEC,
        max_retry_delay_sec: float = DEFAULT_MAX_RETRY_DELAY_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            rpc_url: JSON-RPC HTTP endpoint (e.g. an Alchemy Sepolia URL).
            timeout_sec: HTTP timeout applied to every call.
            max_retries: Extra attempts made by call_with_retry on transport errors.
            min_retry_delay_sec: Initial backoff delay.
            max_retry_delay_sec: Cap for backoff delay.
            transport: Optional httpx transport (tests pass httpx.MockTransport).
        """
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        self._rpc_url = rpc_url.strip()
        self._timeout = timeout_sec
        self._max_retries = max_retries
        self._min_retry_delay = min_retry_delay_sec
        self._max_retry_delay = max_retry_delay_sec
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

    async def __aenter__(self) -> "RpcGateway":
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
            headers={"content-type": "application/json"},
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _build_body(self, method: str, params: list[Any]) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": list(params),
        }

    async def call(self, method: str, params: list[Any] | tuple[Any, ...] = ()) -> Any:
        """Perform one JSON-RPC call; raise RpcError on transport or RPC error."""
        if self._client is None:
            raise RuntimeError("RpcGateway used outside 'async with'")
        body = self._build_body(method, list(params))
        try:
            resp = await self._client.post(self._rpc_url, json=body)
        except httpx.TimeoutException as e:
            raise RpcError(RpcErrorKind.TRANSPORT, "timeout", method) from e
        except httpx.HTTPError as e:
            raise RpcError(RpcErrorKind.TRANSPORT, "network", method) from e

        if not resp.is_success:
            raise RpcError(RpcErrorKind.TRANSPORT, f"http_{resp.status_code}", method)

        try:
            data = resp.json()
        except ValueError as e:
            raise RpcError(RpcErrorKind.PROTOCOL, "invalid_json", method) from e
        if not isinstance(data, dict):
            raise RpcError(RpcErrorKind.PROTOCOL, "invalid_envelope", method)

        err = data.get("error")
        if err:
            if isinstance(err, dict):
                detail = f"{err.get('message', 'rpc_error')} (code={err.get('code')})"
            else:
                detail = str(err)
            raise RpcError(RpcErrorKind.PROTOCOL, detail, method)
        if "result" not in data:
            raise RpcError(RpcErrorKind.PROTOCOL, "missing_result", method)
        return data["result"]

    async def call_with_retry(self, method: str, params: list[Any] | tuple[Any, ...] = ()) -> Any:
        """Like call(), but retries transport errors with exponential backoff."""
        delay = self._min_retry_delay
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                return await self.call(method, params)
            except RpcError as e:
                if not e.retryable or attempt + 1 >= attempts:
                    if e.retryable:
                        logger.error(
                            "rpc_give_up",
                            method=method,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                    raise
                logger.warning(
                    "rpc_retry",
                    method=method,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                    error=str(e),
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_retry_delay)
        raise AssertionError("unreachable")
