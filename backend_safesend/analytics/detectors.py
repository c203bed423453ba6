"""
Heuristic detectors over fetched address signals.

Every detector is a pure function `detector(ctx) -> Finding | None`. Labels,
severities and weights live in the RULES table; numeric thresholds are module
constants. DETECTORS fixes the evaluation order, which is also the display
order of findings. Tiered rules (account age, outbound frequency, dust count)
are single detectors so at most one tier fires.

Recency uses ctx.now_ms captured once per evaluation. Transfers without a
timestamp (timestamp_ms == 0) never count toward age, dormancy, trailing
windows or fast-out.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from functools import cached_property
from typing import Callable

from backend_safesend.analytics.models import (
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    Finding,
    Rule,
)
from backend_safesend.chain.models import EOA_BYTECODE, AddressSignals, Transfer
from backend_safesend.config.settings import Settings

MS_PER_DAY = 86_400_000
MS_PER_MINUTE = 60_000

EIP1167_PREFIX = "363d3d373d3d3d363d73"
TINY_BYTECODE_LEN = 200

NEW_ADDRESS_DAYS = 1
NEWISH_ADDRESS_DAYS = 7
RECENT_ADDRESS_DAYS = 30
DORMANT_DAYS = 180

LOW_ACTIVITY_MAX_TRANSFERS = 5
FAN_OUT_MIN_RECIPIENTS = 10
INBOUND_BURST_MIN_TRANSFERS = 5
INBOUND_BURST_MIN_SENDERS = 5
DUST_MEDIAN_MIN_SAMPLES = 3

OUTBOUND_WINDOW_MS = MS_PER_DAY
HIGH_FREQUENCY_MIN_OUTBOUND = 10
FREQUENT_MIN_OUTBOUND = 5

DUSTING_MIN_TINY = 6
POSSIBLE_DUSTING_MIN_TINY = 3

# Zero-value sends count too; address poisoning repeats them.
REPEATED_AMOUNT_MIN = 8
REPEATED_AMOUNT_DECIMALS = 6

FAST_OUT_WINDOW_MS = 30 * MS_PER_MINUTE

RULE_BLOCKLISTED = "blocklisted"

RULES: dict[str, Rule] = {
    r.key: r
    for r in (
        Rule(RULE_BLOCKLISTED, "Blocklisted", SEVERITY_HIGH, 90),
        Rule("negative_ens_link", "Negative ENS link", SEVERITY_HIGH, 25),
        Rule("ens_flagged", "ENS flagged", SEVERITY_HIGH, 20),
        Rule("contract", "Contract", SEVERITY_MEDIUM, 10),
        Rule("proxy_pattern", "Proxy pattern", SEVERITY_MEDIUM, 6),
        Rule("tiny_bytecode", "Tiny bytecode", SEVERITY_MEDIUM, 6),
        Rule("eoa", "EOA", SEVERITY_LOW, 0),
        Rule("no_history", "No history", SEVERITY_MEDIUM, 22),
        Rule("new_address", "New address", SEVERITY_HIGH, 28),
        Rule("newish_address", "Newish address", SEVERITY_MEDIUM, 18),
        Rule("recent_address", "Recent address", SEVERITY_LOW, 8),
        Rule("low_activity", "Low activity", SEVERITY_MEDIUM, 10),
        Rule("inbound_only", "Inbound only", SEVERITY_LOW, 6),
        Rule("fan_out", "Fan-out", SEVERITY_HIGH, 18),
        Rule("inbound_burst", "Inbound burst", SEVERITY_MEDIUM, 10),
        Rule("dusting_median", "Dusting", SEVERITY_MEDIUM, 12),
        Rule("dormant", "Dormant", SEVERITY_LOW, -5),
        Rule("high_frequency_outbound", "High-frequency outbound", SEVERITY_HIGH, 25),
        Rule("frequent_outbound", "Frequent outbound", SEVERITY_MEDIUM, 12),
        Rule("dusting_count", "Dusting pattern", SEVERITY_MEDIUM, 12),
        Rule("possible_dusting", "Possible dusting", SEVERITY_LOW, 6),
        Rule("repeated_amount", "Repeated amounts", SEVERITY_MEDIUM, 12),
        Rule("fast_out", "Fresh-in, fast-out", SEVERITY_HIGH, 25),
        Rule("watchlist_touch", "Watchlist counterparty", SEVERITY_LOW, 6),
        Rule("unknown_type", "Unknown type", SEVERITY_LOW, 0),
    )
}


@dataclass(frozen=True)
class DetectorConfig:
    """Configuration lists consumed by detectors; all keys lowercase."""

    blocklist: frozenset[str] = frozenset()
    watchlist: frozenset[str] = frozenset()
    bad_ens_addrs: dict[str, str] = field(default_factory=dict)
    bad_ens_names: frozenset[str] = frozenset()
    dust_threshold_eth: float = 0.00002

    @classmethod
    def from_settings(cls, settings: Settings) -> "DetectorConfig":
        return cls(
            blocklist=settings.blocklist,
            watchlist=settings.watchlist,
            bad_ens_addrs=settings.bad_ens_addrs,
            bad_ens_names=settings.bad_ens_names,
            dust_threshold_eth=settings.dust_threshold_eth,
        )


@dataclass
class DetectionContext:
    """Inputs shared by all detectors for one evaluation; derived views are cached."""

    signals: AddressSignals
    config: DetectorConfig
    now_ms: int
    ens_name: str | None = None

    @cached_property
    def address(self) -> str:
        return self.signals.address.lower()

    @cached_property
    def all_transfers(self) -> tuple[Transfer, ...]:
        return self.signals.outbound + self.signals.inbound

    @cached_property
    def known_timestamps(self) -> list[int]:
        return [t.timestamp_ms for t in self.all_transfers if t.has_timestamp]

    @cached_property
    def inbound_values(self) -> list[float]:
        return [t.value_native for t in self.signals.inbound if t.value_native is not None]

    @cached_property
    def tiny_inbound_count(self) -> int:
        threshold = self.config.dust_threshold_eth
        return sum(1 for v in self.inbound_values if 0 < v < threshold)

    @property
    def has_history(self) -> bool:
        return self.signals.total_transfers > 0

    def days_since(self, timestamp_ms: int) -> float:
        return (self.now_ms - timestamp_ms) / MS_PER_DAY


Detector = Callable[[DetectionContext], Finding | None]


def median(values: list[float]) -> float:
    """Median with the standard even/odd split; values must be non-empty."""
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


# -----------------------------------------------------------------------------
# Reputation lists
# -----------------------------------------------------------------------------


def detect_blocklisted(ctx: DetectionContext) -> Finding | None:
    if ctx.address in ctx.config.blocklist:
        return RULES[RULE_BLOCKLISTED].finding("Address appears on internal blocklist.")
    return None


def detect_negative_ens_link(ctx: DetectionContext) -> Finding | None:
    label = ctx.config.bad_ens_addrs.get(ctx.address)
    if label:
        return RULES["negative_ens_link"].finding(f"Associated with {label}")
    return None


def detect_ens_flagged(ctx: DetectionContext) -> Finding | None:
    name = (ctx.ens_name or "").strip()
    if name and name.lower() in ctx.config.bad_ens_names:
        return RULES["ens_flagged"].finding(f"{name} has negative reputation.")
    return None


# -----------------------------------------------------------------------------
# Account type (bytecode)
# -----------------------------------------------------------------------------


def detect_contract(ctx: DetectionContext) -> Finding | None:
    if ctx.signals.is_contract:
        return RULES["contract"].finding("Recipient is a contract address.")
    return None


def detect_proxy_pattern(ctx: DetectionContext) -> Finding | None:
    if ctx.signals.is_contract and EIP1167_PREFIX in ctx.signals.bytecode[2:].lower():
        return RULES["proxy_pattern"].finding("EIP-1167 minimal proxy detected.")
    return None


def detect_tiny_bytecode(ctx: DetectionContext) -> Finding | None:
    if ctx.signals.is_contract and len(ctx.signals.bytecode) < TINY_BYTECODE_LEN:
        return RULES["tiny_bytecode"].finding("Contract runtime is unusually short.")
    return None


def detect_eoa(ctx: DetectionContext) -> Finding | None:
    if ctx.signals.bytecode == EOA_BYTECODE:
        return RULES["eoa"].finding("Recipient is an externally owned address.")
    return None


# -----------------------------------------------------------------------------
# History and age
# -----------------------------------------------------------------------------


def detect_no_history(ctx: DetectionContext) -> Finding | None:
    if not ctx.has_history:
        return RULES["no_history"].finding("No transactions found in recent history.")
    return None


def classify_age(days_since_first: float) -> str | None:
    """Map age in days to the most specific tier rule key, or None when older than all tiers."""
    if days_since_first < NEW_ADDRESS_DAYS:
        return "new_address"
    if days_since_first < NEWISH_ADDRESS_DAYS:
        return "newish_address"
    if days_since_first < RECENT_ADDRESS_DAYS:
        return "recent_address"
    return None


_AGE_DETAILS = {
    "new_address": "First seen < 24h.",
    "newish_address": "First seen < 7d.",
    "recent_address": "First seen < 30d.",
}


def detect_address_age(ctx: DetectionContext) -> Finding | None:
    if not ctx.has_history or not ctx.known_timestamps:
        return None
    tier = classify_age(ctx.days_since(min(ctx.known_timestamps)))
    if tier is None:
        return None
    return RULES[tier].finding(_AGE_DETAILS[tier])


def detect_low_activity(ctx: DetectionContext) -> Finding | None:
    if ctx.has_history and ctx.signals.total_transfers < LOW_ACTIVITY_MAX_TRANSFERS:
        return RULES["low_activity"].finding(f"Fewer than {LOW_ACTIVITY_MAX_TRANSFERS} total transfers.")
    return None


def detect_inbound_only(ctx: DetectionContext) -> Finding | None:
    if ctx.has_history and not ctx.signals.outbound:
        return RULES["inbound_only"].finding("No outbound history.")
    return None


def detect_dormant(ctx: DetectionContext) -> Finding | None:
    if not ctx.has_history or not ctx.known_timestamps:
        return None
    if ctx.days_since(max(ctx.known_timestamps)) > DORMANT_DAYS:
        return RULES["dormant"].finding(f"Last activity > {DORMANT_DAYS} days ago. Slightly safer.")
    return None


# -----------------------------------------------------------------------------
# Counterparty patterns
# -----------------------------------------------------------------------------


def detect_fan_out(ctx: DetectionContext) -> Finding | None:
    recipients = {t.to_address for t in ctx.signals.outbound if t.to_address}
    if len(recipients) >= FAN_OUT_MIN_RECIPIENTS:
        return RULES["fan_out"].finding(f"{len(recipients)} distinct recent recipients.")
    return None


def detect_inbound_burst(ctx: DetectionContext) -> Finding | None:
    inbound = ctx.signals.inbound
    senders = {t.from_address for t in inbound if t.from_address}
    if (
        len(inbound) >= INBOUND_BURST_MIN_TRANSFERS
        and len(senders) >= INBOUND_BURST_MIN_SENDERS
        and not ctx.signals.outbound
    ):
        return RULES["inbound_burst"].finding("Many unique inbound senders, no outbound history.")
    return None


def detect_watchlist_touch(ctx: DetectionContext) -> Finding | None:
    if not ctx.config.watchlist:
        return None
    counterparties = {t.to_address for t in ctx.signals.outbound} | {t.from_address for t in ctx.signals.inbound}
    hits = sorted(counterparties & ctx.config.watchlist)
    if hits:
        noun = "counterparty" if len(hits) == 1 else "counterparties"
        return RULES["watchlist_touch"].finding(f"{len(hits)} watchlisted {noun} in recent transfers.")
    return None


# -----------------------------------------------------------------------------
# Value patterns
# -----------------------------------------------------------------------------


def detect_dusting_median(ctx: DetectionContext) -> Finding | None:
    values = ctx.inbound_values
    if len(values) < DUST_MEDIAN_MIN_SAMPLES:
        return None
    threshold = ctx.config.dust_threshold_eth
    mid = median(values)
    if 0 < mid < threshold:
        return RULES["dusting_median"].finding(f"Median inbound < {threshold} ETH.")
    return None


def detect_dusting_count(ctx: DetectionContext) -> Finding | None:
    tiny = ctx.tiny_inbound_count
    if tiny >= DUSTING_MIN_TINY:
        return RULES["dusting_count"].finding(f"{tiny} tiny inbound transfers.")
    if tiny >= POSSIBLE_DUSTING_MIN_TINY:
        return RULES["possible_dusting"].finding(f"{tiny} tiny inbound transfers.")
    return None


def detect_repeated_amount(ctx: DetectionContext) -> Finding | None:
    amounts = Counter(
        round(t.value_native, REPEATED_AMOUNT_DECIMALS)
        for t in ctx.signals.outbound
        if t.value_native is not None
    )
    if not amounts:
        return None
    value, count = amounts.most_common(1)[0]
    if count >= REPEATED_AMOUNT_MIN:
        return RULES["repeated_amount"].finding(f"{count} outbound transfers of {value:g} ETH.")
    return None


# -----------------------------------------------------------------------------
# Velocity
# -----------------------------------------------------------------------------


def detect_outbound_frequency(ctx: DetectionContext) -> Finding | None:
    recent = sum(
        1
        for t in ctx.signals.outbound
        if t.has_timestamp and ctx.now_ms - t.timestamp_ms <= OUTBOUND_WINDOW_MS
    )
    if recent >= HIGH_FREQUENCY_MIN_OUTBOUND:
        return RULES["high_frequency_outbound"].finding(f"{recent} outbound transfers in the last 24h.")
    if recent >= FREQUENT_MIN_OUTBOUND:
        return RULES["frequent_outbound"].finding(f"{recent} outbound transfers in the last 24h.")
    return None


def detect_fast_out(ctx: DetectionContext) -> Finding | None:
    inbound_ts = [t.timestamp_ms for t in ctx.signals.inbound if t.has_timestamp]
    if not inbound_ts:
        return None
    latest_in = max(inbound_ts)
    for t in ctx.signals.outbound:
        if t.has_timestamp and 0 <= t.timestamp_ms - latest_in <= FAST_OUT_WINDOW_MS:
            minutes = (t.timestamp_ms - latest_in) // MS_PER_MINUTE
            return RULES["fast_out"].finding(f"Funds moved out {minutes} min after latest inbound transfer.")
    return None


def detect_unknown_type(ctx: DetectionContext) -> Finding | None:
    if ctx.signals.bytecode is None:
        return RULES["unknown_type"].finding("Could not verify contract/EOA.")
    return None


DETECTORS: tuple[Detector, ...] = (
    detect_blocklisted,
    detect_negative_ens_link,
    detect_ens_flagged,
    detect_contract,
    detect_proxy_pattern,
    detect_tiny_bytecode,
    detect_eoa,
    detect_no_history,
    detect_address_age,
    detect_low_activity,
    detect_inbound_only,
    detect_fan_out,
    detect_inbound_burst,
    detect_dusting_median,
    detect_dormant,
    detect_outbound_frequency,
    detect_dusting_count,
    detect_repeated_amount,
    detect_fast_out,
    detect_watchlist_touch,
    detect_unknown_type,
)


def run_detectors(ctx: DetectionContext) -> list[Finding]:
    """Evaluate DETECTORS in order and return the findings that fired."""
    findings: list[Finding] = []
    for detector in DETECTORS:
        finding = detector(ctx)
        if finding is not None:
            findings.append(finding)
    return findings
