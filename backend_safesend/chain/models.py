"""
Data models for on-chain signals.

Transfer is the canonical shape of one provider transfer record; AddressSignals
bundles everything fetched for a single address in one evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

EOA_BYTECODE = "0x"


@dataclass(frozen=True)
class Transfer:
    """
    Normalized external-value transfer.

    value_native is None when the provider value could not be parsed; such
    records are skipped by value-based heuristics but still counted.
    timestamp_ms is 0 when the provider supplied no usable block timestamp.
    """

    hash: str
    from_address: str
    to_address: str
    value_native: float | None
    timestamp_ms: int

    @property
    def has_timestamp(self) -> bool:
        return self.timestamp_ms > 0


@dataclass(frozen=True)
class AddressSignals:
    """All signals fetched for one address; bytecode None means the type is unverifiable."""

    address: str
    bytecode: str | None
    nonce: int
    outbound: tuple[Transfer, ...] = ()
    inbound: tuple[Transfer, ...] = ()
    degraded: tuple[str, ...] = field(default=())

    @property
    def total_transfers(self) -> int:
        return len(self.outbound) + len(self.inbound)

    @property
    def is_contract(self) -> bool:
        return self.bytecode is not None and self.bytecode != EOA_BYTECODE
