"""
Tests for score aggregation and the allow/block decision (analytics.aggregator).
"""

from __future__ import annotations

import pytest

from backend_safesend.analytics.aggregator import (
    BASE_SCORE,
    BLOCKLIST_FLOOR,
    DECISION_THRESHOLD,
    aggregate,
    decide,
)
from backend_safesend.analytics.detectors import RULES
from backend_safesend.analytics.models import Finding


def _finding(weight: int, label: str = "Synthetic", rule: str = "") -> Finding:
    return Finding(severity="low", label=label, detail="test", weight=weight, rule=rule)


def test_no_findings_is_base_score():
    result = aggregate([])
    assert result.score == BASE_SCORE
    assert result.decision == "allow"
    assert result.findings == ()
    assert result.degraded == ()


def test_weights_are_summed_onto_base():
    result = aggregate([_finding(22), _finding(18), _finding(-5)])
    assert result.score == BASE_SCORE + 22 + 18 - 5


def test_blocklist_floor_applies_even_with_negative_weights():
    blocklisted = RULES["blocklisted"].finding("Address appears on internal blocklist.")
    result = aggregate([blocklisted, _finding(-40)])
    assert result.score == BLOCKLIST_FLOOR
    assert result.decision == "block"


def test_blocklist_floor_does_not_lower_higher_scores():
    blocklisted = RULES["blocklisted"].finding("Address appears on internal blocklist.")
    result = aggregate([blocklisted, _finding(25)])
    assert result.score == 100


@pytest.mark.parametrize(
    "weights,expected",
    [
        ([200], 100),
        ([-50], 0),
        ([90, 25, 20], 100),
    ],
)
def test_score_is_clamped(weights, expected):
    assert aggregate([_finding(w) for w in weights]).score == expected


@pytest.mark.parametrize(
    "score,decision",
    [(0, "allow"), (DECISION_THRESHOLD - 1, "allow"), (DECISION_THRESHOLD, "block"), (100, "block")],
)
def test_decision_threshold(score, decision):
    assert decide(score) == decision


def test_findings_keep_order_and_degraded_passes_through():
    findings = [_finding(0, "A"), _finding(10, "B"), _finding(5, "C")]
    result = aggregate(findings, degraded=["outbound_transfers"])
    assert result.labels == ["A", "B", "C"]
    assert result.to_dict()["degraded"] == ["outbound_transfers"]


def test_to_dict_shape():
    result = aggregate([RULES["eoa"].finding("Recipient is an externally owned address.")])
    assert result.to_dict() == {
        "score": 10,
        "decision": "allow",
        "findings": [
            {
                "severity": "low",
                "label": "EOA",
                "detail": "Recipient is an externally owned address.",
                "weight": 0,
            }
        ],
        "degraded": [],
    }


def test_every_rule_firing_stays_in_range():
    result = aggregate([rule.finding("all") for rule in RULES.values()])
    assert 0 <= result.score <= 100
    assert result.decision == "block"
