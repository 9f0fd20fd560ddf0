"""
Account Anomaly Detector - Services Package

This package contains the services that make up one alerting run: anomaly
detection, alert state tracking, the tracking workbook, notifications, the
per-account monitor and the run coordinator.
"""

from .base_service import BaseService
from .anomaly_detection_service import AnomalyDetectionService
from .alert_state_service import AlertStateService
from .reporting_service import ReportingService
from .notification_service import EmailNotificationService
from .account_monitor_service import AccountMonitorService
from .alert_run_service import AlertRunService

__all__ = [
    "BaseService",
    "AnomalyDetectionService",
    "AlertStateService",
    "ReportingService",
    "EmailNotificationService",
    "AccountMonitorService",
    "AlertRunService",
]
