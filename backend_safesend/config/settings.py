"""
Application settings and environment configuration.

Responsibilities:
- Load configuration from environment variables and the .env file.
- Provide defaults for optional settings; the RPC URL is left empty when
  unset so /health keeps working and /check reports missing_rpc_url.
- Expose typed, immutable settings for the chain, analytics and API layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from backend_safesend.config import env


@dataclass(frozen=True)
class Settings:
    rpc_url: str = ""
    chain: str = env.DEFAULT_CHAIN
    blocklist: frozenset[str] = frozenset()
    watchlist: frozenset[str] = frozenset()
    bad_ens_addrs: dict[str, str] = field(default_factory=dict)
    bad_ens_names: frozenset[str] = frozenset()
    dust_threshold_eth: float = env.DEFAULT_DUST_THRESHOLD_ETH
    rpc_timeout_sec: float = 10.0
    rpc_max_retries: int = 2
    rpc_retry_delay_sec: float = 0.25
    rpc_max_retry_delay_sec: float = 2.0
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "info"


def get_settings() -> Settings:
    """
    Return the current application settings, read fresh from the environment.

    Called per request so blocklist/watchlist edits apply without a restart.
    """
    env.load_safesend_env()
    return Settings(
        rpc_url=env.get_rpc_url(),
        chain=(env.get_str("SAFESEND_CHAIN") or env.DEFAULT_CHAIN).lower(),
        blocklist=env.parse_csv_set(env.get_str("BADLIST_ADDRESSES")),
        watchlist=env.parse_csv_set(env.get_str("WATCHLIST_ADDRESSES")),
        bad_ens_addrs=env.parse_label_map(env.get_str("BAD_ENS_ADDRS")),
        bad_ens_names=env.parse_csv_set(env.get_str("BAD_ENS_NAMES")),
        dust_threshold_eth=env.get_float("DUST_THRESHOLD_ETH", env.DEFAULT_DUST_THRESHOLD_ETH),
        rpc_timeout_sec=env.get_float("RPC_TIMEOUT_SEC", 10.0),
        rpc_max_retries=max(0, env.get_int("RPC_MAX_RETRIES", 2)),
        rpc_retry_delay_sec=env.get_float("RPC_RETRY_DELAY_SEC", 0.25),
        rpc_max_retry_delay_sec=env.get_float("RPC_MAX_RETRY_DELAY_SEC", 2.0),
        api_host=env.get_str("API_HOST", "0.0.0.0"),
        api_port=env.get_int("API_PORT", 8000),
        log_level=env.get_str("LOG_LEVEL", "info").lower(),
    )
