"""
Environment variable loading and parsing for SafeSend.

- ALCHEMY_SEPOLIA_RPC / SAFESEND_RPC_URL: JSON-RPC endpoint (required by /check)
- BADLIST_ADDRESSES, WATCHLIST_ADDRESSES, BAD_ENS_NAMES: comma-separated lists
- BAD_ENS_ADDRS: JSON object address -> negative reputation label
- DUST_THRESHOLD_ETH: decimal string, native units
- Loads .env from project root when available.
"""

from __future__ import annotations

import json
import math
import os
from pathlib import Path

from dotenv import load_dotenv

from backend_safesend.safesend_logging import get_logger

logger = get_logger(__name__)

# Project root: config is backend_safesend/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

RPC_URL_ENV_NAMES = ("ALCHEMY_SEPOLIA_RPC", "SAFESEND_RPC_URL")
DEFAULT_CHAIN = "sepolia"
DEFAULT_DUST_THRESHOLD_ETH = 0.00002


def load_safesend_env() -> None:
    """Load .env from project root. Existing env vars win; safe to call repeatedly."""
    load_dotenv(_ENV_PATH, override=False)


def get_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def get_float(name: str, default: float) -> float:
    raw = get_str(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        logger.warning("config_invalid_float", name=name, value=raw, default=default)
        return default
    return value


def get_int(name: str, default: int) -> int:
    raw = get_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("config_invalid_int", name=name, value=raw, default=default)
        return default


def get_rpc_url() -> str:
    """First non-empty of ALCHEMY_SEPOLIA_RPC, SAFESEND_RPC_URL; empty string if none."""
    for name in RPC_URL_ENV_NAMES:
        url = get_str(name)
        if url:
            return url
    return ""


def parse_csv_set(raw: str | None) -> frozenset[str]:
    """Split a comma-separated list into a lowercased set, dropping blanks."""
    return frozenset(s.strip().lower() for s in (raw or "").split(",") if s.strip())


def parse_label_map(raw: str | None) -> dict[str, str]:
    """
    Parse a JSON object of address -> label with lowercased keys.

    Invalid JSON or a non-object yields an empty map (logged, not raised).
    """
    if not raw or not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("config_bad_ens_addrs_invalid", error=str(e))
        return {}
    if not isinstance(data, dict):
        logger.warning("config_bad_ens_addrs_not_object", type=type(data).__name__)
        return {}
    return {str(k).strip().lower(): str(v) for k, v in data.items() if str(k).strip()}
