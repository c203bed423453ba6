"""
Analytics pipeline: validate -> fetch signals -> detect -> aggregate.

Single entrypoint for the API: evaluate_address returns a fresh
RiskAssessment per call. Nothing is cached between calls; on-chain state can
change between checks.
"""

from __future__ import annotations

import re
import time

import httpx

from backend_safesend.analytics.aggregator import aggregate
from backend_safesend.analytics.detectors import DetectionContext, DetectorConfig, run_detectors
from backend_safesend.analytics.models import RiskAssessment
from backend_safesend.chain.fetcher import fetch_signals
from backend_safesend.chain.models import AddressSignals
from backend_safesend.chain.rpc import RpcGateway
from backend_safesend.config.settings import Settings
from backend_safesend.core.exceptions import (
    ConfigurationError,
    InvalidAddressError,
    UnsupportedChainError,
)
from backend_safesend.safesend_logging import get_logger, short_address

logger = get_logger(__name__)

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def validate_address(raw: str | None) -> str:
    """Return the canonical lowercase address or raise InvalidAddressError."""
    address = (raw or "").strip()
    if not ADDRESS_RE.match(address):
        raise InvalidAddressError(f"invalid address: {address[:12]!r}")
    return address.lower()


def validate_chain(raw: str | None, supported: str) -> str:
    chain = (raw or supported).strip().lower()
    if chain != supported.lower():
        raise UnsupportedChainError(f"unsupported chain: {chain!r}")
    return chain


def assess_signals(
    signals: AddressSignals,
    config: DetectorConfig,
    *,
    now_ms: int,
    ens: str | None = None,
) -> RiskAssessment:
    """Run detectors and aggregation over already-fetched signals (no I/O)."""
    ctx = DetectionContext(signals=signals, config=config, now_ms=now_ms, ens_name=ens)
    return aggregate(run_detectors(ctx), degraded=signals.degraded)


async def evaluate_address(
    address: str,
    settings: Settings,
    *,
    ens: str | None = None,
    now_ms: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RiskAssessment:
    """
    Evaluate one address end to end.

    Raises InvalidAddressError before any I/O, ConfigurationError when no RPC
    URL is configured, UpstreamError when a required lookup fails.
    """
    address = validate_address(address)
    if not settings.rpc_url:
        raise ConfigurationError("RPC endpoint URL is not configured")

    logger.info("analytics_pipeline_start", address=short_address(address))
    async with RpcGateway(
        settings.rpc_url,
        timeout_sec=settings.rpc_timeout_sec,
        max_retries=settings.rpc_max_retries,
        min_retry_delay_sec=settings.rpc_retry_delay_sec,
        max_retry_delay_sec=settings.rpc_max_retry_delay_sec,
        transport=transport,
    ) as gateway:
        signals = await fetch_signals(gateway, address)

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    assessment = assess_signals(signals, DetectorConfig.from_settings(settings), now_ms=now_ms, ens=ens)
    logger.info(
        "analytics_pipeline_done",
        address=short_address(address),
        score=assessment.score,
        decision=assessment.decision,
        findings=assessment.labels,
        degraded=list(assessment.degraded),
    )
    return assessment
