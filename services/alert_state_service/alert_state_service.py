"""
Alert State Service for the Account Anomaly Detector

Keeps alerting idempotent within a day. The job runs hourly and a breach usually
persists for hours, so once an (account, metric) pair has alerted it stays
silent until the daily reset.

The "already alerted today" flag lives in the tracking workbook: both cells of
the metric's today/baseline pair are painted in the metric's color. A pair
counts as unmarked only when both cells are blank, "white" or "#ffffff".
"""

import logging
from typing import Any, Dict, Optional

from services.anomaly_detection_service.models import METRIC_ORDER, Metric
from services.reporting_service.reporting_service import (
    ALERT_RANGES,
    FIRST_DATA_ROW,
    MAX_ACCOUNT_ROWS,
    ReportingService,
    metric_columns,
)
from ..base_service import BaseService

UNMARKED_COLORS = frozenset(["", "white", "#ffffff"])

ALERT_COLORS = {
    Metric.IMPRESSIONS: "#ff0000",
    Metric.CLICKS: "#ff9900",
    Metric.CONVERSIONS: "#bf9000",
    Metric.COST: "#ffff00",
}


def is_unmarked(color: Optional[str]) -> bool:
    return (color or "").strip().lower() in UNMARKED_COLORS


class AlertStateService(BaseService):
    """
    Per-account, per-metric alert flags backed by the tracking workbook.

    Accounts are addressed by their index in the run's account iteration order.
    The read in :meth:`should_alert` and the write in :meth:`mark_alerted` are
    not atomic; two overlapping runs against one workbook can both alert.
    """

    def __init__(self, reporting: ReportingService, config: Optional[Dict[str, Any]] = None,
                 logger: Optional[logging.Logger] = None):
        super().__init__(None, config, logger)
        self.reporting = reporting

    def is_alerted(self, account_index: int, metric: Metric) -> bool:
        """Whether the metric has already alerted today for this account"""
        row = self.reporting.row_for(account_index)
        return not all(
            is_unmarked(self.reporting.get_background(row, column))
            for column in metric_columns(metric)
        )

    def should_alert(self, account_index: int, metric: Metric) -> bool:
        return not self.is_alerted(account_index, metric)

    def mark_alerted(self, account_index: int, metric: Metric, cutoff_hour: int) -> None:
        """Paint the metric's cell pair and record the alert time in its status column"""
        row = self.reporting.row_for(account_index)
        for column in metric_columns(metric):
            self.reporting.set_background(row, column, ALERT_COLORS[metric])
        self.reporting.set_region_cell(ALERT_RANGES[metric], account_index, f"Alert at {cutoff_hour}:00")
        self.logger.debug(f"Marked {metric.value} as alerted for account row {row}")

    def reset_daily(self) -> None:
        """Clear every alert mark and status cell for all dashboard rows"""
        rows = range(FIRST_DATA_ROW, FIRST_DATA_ROW + MAX_ACCOUNT_ROWS)
        columns = [column for metric in METRIC_ORDER for column in metric_columns(metric)]
        self.reporting.clear_backgrounds(rows, columns)
        for metric in METRIC_ORDER:
            self.reporting.clear_region(ALERT_RANGES[metric])
        self.logger.info("First run of the day: alert marks reset")
