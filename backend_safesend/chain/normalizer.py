"""
Transfer normalizer — raw provider transfer records to Transfer.

Total by construction: a malformed field degrades to its sentinel (value None,
timestamp 0, empty address) so one bad record never invalidates a batch.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from backend_safesend.chain.models import Transfer


def _lower(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def parse_value(raw: Any) -> float | None:
    """Parse a provider value to float; None if absent, unparseable or non-finite."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_timestamp_ms(raw: Any) -> int:
    """ISO 8601 timestamp to epoch milliseconds; 0 when missing or unparseable."""
    if not isinstance(raw, str) or not raw.strip():
        return 0
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return 0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    ms = int(dt.timestamp() * 1000)
    return ms if ms > 0 else 0


def normalize_transfer(raw: dict[str, Any]) -> Transfer:
    """Convert one alchemy_getAssetTransfers record into a Transfer."""
    metadata = raw.get("metadata")
    block_ts = metadata.get("blockTimestamp") if isinstance(metadata, dict) else None
    tx_hash = raw.get("hash")
    return Transfer(
        hash=tx_hash if isinstance(tx_hash, str) else "",
        from_address=_lower(raw.get("from")),
        to_address=_lower(raw.get("to")),
        value_native=parse_value(raw.get("value")),
        timestamp_ms=parse_timestamp_ms(block_ts),
    )


def normalize_transfers(raws: Any) -> tuple[Transfer, ...]:
    """Normalize a provider transfer list, skipping entries that are not objects."""
    if not isinstance(raws, (list, tuple)):
        return ()
    return tuple(normalize_transfer(r) for r in raws if isinstance(r, dict))
