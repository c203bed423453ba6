"""
Result models for the risk engine: Finding and RiskAssessment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"
SEVERITIES = (SEVERITY_LOW, SEVERITY_MEDIUM, SEVERITY_HIGH)

DECISION_ALLOW = "allow"
DECISION_BLOCK = "block"


@dataclass(frozen=True)
class Rule:
    """Static description of what a detector emits when it fires."""

    key: str
    label: str
    severity: str
    weight: int

    def finding(self, detail: str) -> "Finding":
        return Finding(
            severity=self.severity,
            label=self.label,
            detail=detail,
            weight=self.weight,
            rule=self.key,
        )


@dataclass(frozen=True)
class Finding:
    severity: str
    label: str
    detail: str
    weight: int
    rule: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "label": self.label,
            "detail": self.detail,
            "weight": self.weight,
        }


@dataclass(frozen=True)
class RiskAssessment:
    """Score in [0, 100], allow/block decision and findings in detector order."""

    score: int
    decision: str
    findings: tuple[Finding, ...] = ()
    degraded: tuple[str, ...] = field(default=())

    @property
    def labels(self) -> list[str]:
        return [f.label for f in self.findings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "decision": self.decision,
            "findings": [f.to_dict() for f in self.findings],
            "degraded": list(self.degraded),
        }
