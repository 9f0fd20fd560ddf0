"""
Anomaly Detection Service for the Account Anomaly Detector

This package accumulates hourly performance rows and compares today's totals
against the same-weekday baseline using per-metric ratio thresholds.
"""

from .anomaly_detection_service import AnomalyDetectionService, accumulate, evaluate
from .models import (
    AccountComparison,
    AlertDecision,
    ManagedAccount,
    Metric,
    MetricTotals,
    ReportRow,
    RunContext,
    ThresholdSet,
)

__all__ = [
    "AnomalyDetectionService",
    "accumulate",
    "evaluate",
    "AccountComparison",
    "AlertDecision",
    "ManagedAccount",
    "Metric",
    "MetricTotals",
    "ReportRow",
    "RunContext",
    "ThresholdSet",
]
