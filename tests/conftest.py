"""
Pytest fixtures for SafeSend tests.

FakeRpc stands in for the JSON-RPC provider behind an httpx.MockTransport, so
the gateway, fetchers, pipeline and API run unmodified without network access.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest

from backend_safesend.config.settings import Settings

ADDRESS = "0x" + "ab" * 20
COUNTERPARTY = "0x" + "cd" * 20
RPC_URL = "https://rpc.test/v2/key"


def iso_ago(**delta: float) -> str:
    """ISO timestamp (Z suffix) for now minus the given timedelta kwargs."""
    ts = datetime.now(timezone.utc) - timedelta(**delta)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def raw_transfer(
    frm: str,
    to: str,
    value: Any,
    timestamp: str | None,
    tx_hash: str = "0xhash",
) -> dict[str, Any]:
    """Build an alchemy_getAssetTransfers-style record."""
    record: dict[str, Any] = {
        "hash": tx_hash,
        "from": frm,
        "to": to,
        "value": value,
        "asset": "ETH",
        "category": "external",
    }
    if timestamp is not None:
        record["metadata"] = {"blockTimestamp": timestamp}
    return record


class FakeRpc:
    """
    Scripted JSON-RPC provider.

    `failures` maps a lookup name (eth_getCode, eth_getTransactionCount,
    outbound, inbound) to an int (HTTP status), a dict (RPC error envelope)
    or an exception instance (raised as a transport failure).
    """

    def __init__(
        self,
        bytecode: Any = "0x",
        nonce: Any = "0x0",
        outbound: list[dict[str, Any]] | None = None,
        inbound: list[dict[str, Any]] | None = None,
        failures: dict[str, Any] | None = None,
    ) -> None:
        self.bytecode = bytecode
        self.nonce = nonce
        self.outbound = outbound or []
        self.inbound = inbound or []
        self.failures = dict(failures or {})
        self.calls: list[str] = []
        self.request_ids: list[Any] = []

    @staticmethod
    def lookup_name(body: dict[str, Any]) -> str:
        method = body["method"]
        if method == "alchemy_getAssetTransfers":
            return "outbound" if "fromAddress" in body["params"][0] else "inbound"
        return method

    def result_for(self, name: str) -> Any:
        if name == "eth_getCode":
            return self.bytecode
        if name == "eth_getTransactionCount":
            return self.nonce
        if name == "outbound":
            return {"transfers": self.outbound}
        if name == "inbound":
            return {"transfers": self.inbound}
        raise AssertionError(f"unexpected lookup {name}")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        name = self.lookup_name(body)
        self.calls.append(name)
        self.request_ids.append(body["id"])
        failure = self.failures.get(name)
        if isinstance(failure, BaseException):
            raise failure
        if isinstance(failure, int):
            return httpx.Response(failure, text="upstream exploded")
        if isinstance(failure, dict):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": failure})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": self.result_for(name)})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings() -> Settings:
    """Settings with a fake RPC URL and no backoff delay."""
    return Settings(
        rpc_url=RPC_URL,
        dust_threshold_eth=0.00002,
        rpc_timeout_sec=5.0,
        rpc_max_retries=2,
        rpc_retry_delay_sec=0.0,
        rpc_max_retry_delay_sec=0.0,
    )


@pytest.fixture
def fake_rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def client(settings, fake_rpc):
    """FastAPI TestClient wired to the fixture settings and FakeRpc transport."""
    from fastapi.testclient import TestClient

    from backend_safesend.api_server.server import app, get_rpc_transport
    from backend_safesend.config import get_settings

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_rpc_transport] = lambda: fake_rpc.transport
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
