"""
Tests for signal fetching and the end-to-end analytics pipeline.

Upstream is the FakeRpc provider from conftest (httpx.MockTransport).
"""

from __future__ import annotations

import asyncio
import dataclasses
import time

import pytest

from backend_safesend.analytics.analytics_pipeline import (
    evaluate_address,
    validate_address,
    validate_chain,
)
from backend_safesend.chain.fetcher import MAX_TRANSFERS, fetch_signals, transfer_query
from backend_safesend.chain.rpc import RpcGateway
from backend_safesend.core.exceptions import (
    ConfigurationError,
    InvalidAddressError,
    UnsupportedChainError,
    UpstreamError,
)
from conftest import ADDRESS, COUNTERPARTY, RPC_URL, FakeRpc, iso_ago, raw_transfer


def _evaluate(fake: FakeRpc, settings, **kwargs):
    return asyncio.run(evaluate_address(ADDRESS, settings, transport=fake.transport, **kwargs))


def _peer(i: int) -> str:
    return "0x" + f"{i:040x}"


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


def test_validate_address_canonicalizes():
    mixed = "0x" + "AbCd" * 10
    assert validate_address(mixed) == mixed.lower()
    assert validate_address(f"  {ADDRESS}  ") == ADDRESS


@pytest.mark.parametrize(
    "raw",
    [None, "", "0x123", ADDRESS + "a", "ab" * 21, "0x" + "zz" * 20, "0X" + "ab" * 20],
)
def test_validate_address_rejects(raw):
    with pytest.raises(InvalidAddressError):
        validate_address(raw)


def test_validate_chain():
    assert validate_chain(None, "sepolia") == "sepolia"
    assert validate_chain("Sepolia", "sepolia") == "sepolia"
    with pytest.raises(UnsupportedChainError):
        validate_chain("mainnet", "sepolia")


def test_transfer_query_shape():
    q = transfer_query(ADDRESS, "from")
    assert q["fromAddress"] == ADDRESS
    assert "toAddress" not in q
    assert q["category"] == ["external"]
    assert q["withMetadata"] is True
    assert q["order"] == "desc"
    assert q["maxCount"] == hex(MAX_TRANSFERS)
    assert transfer_query(ADDRESS, "to")["toAddress"] == ADDRESS
    with pytest.raises(ValueError):
        transfer_query(ADDRESS, "sideways")


# -----------------------------------------------------------------------------
# Fetching
# -----------------------------------------------------------------------------


def _fetch(fake: FakeRpc):
    async def go():
        async with RpcGateway(RPC_URL, min_retry_delay_sec=0.0, max_retry_delay_sec=0.0, transport=fake.transport) as gw:
            return await fetch_signals(gw, ADDRESS)

    return asyncio.run(go())


def test_fetch_signals_issues_four_lookups():
    fake = FakeRpc(
        bytecode="0x6080ABCD",
        nonce="0x1a",
        outbound=[raw_transfer(ADDRESS, COUNTERPARTY, 0.5, iso_ago(days=1))],
        inbound=[raw_transfer(COUNTERPARTY, ADDRESS, 1, iso_ago(days=2))],
    )
    signals = _fetch(fake)
    assert sorted(fake.calls) == sorted(["eth_getCode", "eth_getTransactionCount", "outbound", "inbound"])
    assert signals.bytecode == "0x6080abcd"
    assert signals.nonce == 26
    assert len(signals.outbound) == 1 and signals.outbound[0].to_address == COUNTERPARTY
    assert len(signals.inbound) == 1 and signals.inbound[0].value_native == 1.0
    assert signals.degraded == ()
    assert len(set(fake.request_ids)) == 4


def test_fetch_signals_caps_transfers():
    inbound = [raw_transfer(_peer(i), ADDRESS, 0.1, iso_ago(days=1)) for i in range(MAX_TRANSFERS + 20)]
    signals = _fetch(FakeRpc(inbound=inbound))
    assert len(signals.inbound) == MAX_TRANSFERS


def test_non_hex_bytecode_is_unverifiable():
    signals = _fetch(FakeRpc(bytecode=None))
    assert signals.bytecode is None
    assert not signals.is_contract


def test_invalid_nonce_aborts():
    with pytest.raises(UpstreamError) as exc_info:
        _fetch(FakeRpc(nonce="not-hex"))
    assert exc_info.value.lookup == "nonce"


# -----------------------------------------------------------------------------
# End to end
# -----------------------------------------------------------------------------


def test_fresh_eoa_without_history(settings):
    fake = FakeRpc()
    result = _evaluate(fake, settings)
    assert result.labels == ["EOA", "No history"]
    assert result.score == 32
    assert result.decision == "allow"
    assert result.degraded == ()


def test_dusting_target_is_blocked(settings):
    inbound = [
        raw_transfer(_peer(i + 1), ADDRESS, 0.00001, iso_ago(days=3, minutes=i), tx_hash=f"0x{i:02x}")
        for i in range(12)
    ]
    result = _evaluate(FakeRpc(inbound=inbound), settings)
    assert result.labels == [
        "EOA",
        "Newish address",
        "Inbound only",
        "Inbound burst",
        "Dusting",
        "Dusting pattern",
    ]
    assert result.score == 68
    assert result.decision == "block"


def test_blocklisted_address_scores_at_least_floor(settings):
    blocked = dataclasses.replace(settings, blocklist=frozenset({ADDRESS}))
    result = _evaluate(FakeRpc(), blocked)
    assert result.labels[0] == "Blocklisted"
    assert result.score == 100
    assert result.decision == "block"


def test_ens_query_is_checked(settings):
    flagged = dataclasses.replace(settings, bad_ens_names=frozenset({"scam.eth"}))
    result = _evaluate(FakeRpc(), flagged, ens="scam.eth")
    assert result.labels[0] == "ENS flagged"
    assert result.score == 52


def test_best_effort_failure_degrades(settings):
    fake = FakeRpc(
        inbound=[raw_transfer(COUNTERPARTY, ADDRESS, 0.5, iso_ago(days=40))] * 2,
        failures={"outbound": 503},
    )
    result = _evaluate(fake, settings)
    assert result.labels == ["EOA", "Low activity", "Inbound only"]
    assert result.score == 26
    assert result.decision == "allow"
    assert result.degraded == ("outbound_transfers",)
    assert fake.calls.count("outbound") == 1


def test_malformed_transfer_payload_degrades(settings):
    fake = FakeRpc(
        outbound=5,
        inbound=[raw_transfer(COUNTERPARTY, ADDRESS, 0.5, iso_ago(days=40))] * 2,
    )
    result = _evaluate(fake, settings)
    assert result.degraded == ("outbound_transfers",)
    assert result.labels == ["EOA", "Low activity", "Inbound only"]
    assert fake.calls.count("outbound") == 1


class _NoTransfersKeyRpc(FakeRpc):
    def result_for(self, name):
        if name == "inbound":
            return {"pageKey": "x"}
        return super().result_for(name)


def test_transfer_result_without_list_degrades():
    signals = _fetch(_NoTransfersKeyRpc())
    assert signals.inbound == ()
    assert signals.degraded == ("inbound_transfers",)


def test_required_failure_is_retried_then_aborts(settings):
    fake = FakeRpc(failures={"eth_getCode": 503})
    with pytest.raises(UpstreamError) as exc_info:
        _evaluate(fake, settings)
    assert exc_info.value.lookup == "bytecode"
    assert exc_info.value.code == "upstream_error"
    assert fake.calls.count("eth_getCode") == settings.rpc_max_retries + 1


def test_required_protocol_error_is_not_retried(settings):
    fake = FakeRpc(failures={"eth_getTransactionCount": {"code": -32000, "message": "boom"}})
    with pytest.raises(UpstreamError) as exc_info:
        _evaluate(fake, settings)
    assert exc_info.value.lookup == "nonce"
    assert fake.calls.count("eth_getTransactionCount") == 1


def test_missing_rpc_url_fails_before_io(settings):
    fake = FakeRpc()
    with pytest.raises(ConfigurationError):
        _evaluate(fake, dataclasses.replace(settings, rpc_url=""))
    assert fake.calls == []


def test_invalid_address_fails_before_io(settings):
    fake = FakeRpc()
    with pytest.raises(InvalidAddressError):
        asyncio.run(evaluate_address("0x123", settings, transport=fake.transport))
    assert fake.calls == []


def test_same_inputs_same_assessment(settings):
    inbound = [raw_transfer(_peer(i + 1), ADDRESS, 0.2, iso_ago(days=10)) for i in range(6)]
    now_ms = int(time.time() * 1000)
    first = _evaluate(FakeRpc(inbound=inbound), settings, now_ms=now_ms)
    second = _evaluate(FakeRpc(inbound=inbound), settings, now_ms=now_ms)
    assert first == second
    assert first.to_dict() == second.to_dict()
