"""
Reporting Service for the Account Anomaly Detector

This package owns the tracking workbook: run settings, the per-account
dashboard rows and the alert marks.
"""

from .reporting_service import ReportingService, TrackingSettings

__all__ = ["ReportingService", "TrackingSettings"]
