"""
Aggregator: reduce findings to a 0-100 risk score and an allow/block decision.

score = BASE_SCORE + sum(weights), raised to BLOCKLIST_FLOOR when the address
is blocklisted, clamped to [0, 100] and rounded. Decision is block at or above
DECISION_THRESHOLD. Findings keep detector order.
"""

from __future__ import annotations

from typing import Iterable

from backend_safesend.analytics.detectors import RULE_BLOCKLISTED
from backend_safesend.analytics.models import DECISION_ALLOW, DECISION_BLOCK, Finding, RiskAssessment

BASE_SCORE = 10
BLOCKLIST_FLOOR = 95
DECISION_THRESHOLD = 60
SCORE_MIN = 0
SCORE_MAX = 100


def decide(score: int) -> str:
    return DECISION_BLOCK if score >= DECISION_THRESHOLD else DECISION_ALLOW


def aggregate(findings: Iterable[Finding], degraded: Iterable[str] = ()) -> RiskAssessment:
    """Pure reduction of fired findings into a RiskAssessment."""
    findings = tuple(findings)
    raw = BASE_SCORE + sum(f.weight for f in findings)
    if any(f.rule == RULE_BLOCKLISTED for f in findings):
        raw = max(raw, BLOCKLIST_FLOOR)
    score = int(round(max(SCORE_MIN, min(SCORE_MAX, raw))))
    return RiskAssessment(
        score=score,
        decision=decide(score),
        findings=findings,
        degraded=tuple(degraded),
    )
