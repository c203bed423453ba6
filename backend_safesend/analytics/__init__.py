"""
SafeSend analytics engine.

Runs heuristic detectors over fetched address signals and aggregates the
findings into a risk score and allow/block decision.
Modules: detectors, aggregator, analytics_pipeline.
"""

from backend_safesend.analytics.aggregator import aggregate
from backend_safesend.analytics.analytics_pipeline import assess_signals, evaluate_address
from backend_safesend.analytics.detectors import DETECTORS, RULES, run_detectors
from backend_safesend.analytics.models import Finding, RiskAssessment

__all__ = [
    "DETECTORS",
    "RULES",
    "Finding",
    "RiskAssessment",
    "aggregate",
    "assess_signals",
    "evaluate_address",
    "run_detectors",
]
