"""
Account Monitor Service for the Account Anomaly Detector

Processes one child account per call: fetches today's and the historical hourly
rows, compares them, writes the dashboard row and returns the text of any new
alerts.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from errors import FetchError, ParseError
from services.alert_state_service import AlertStateService
from services.anomaly_detection_service import AnomalyDetectionService
from services.anomaly_detection_service.models import ManagedAccount, RunContext, ThresholdSet
from services.reporting_service import ReportingService
from ..base_service import BaseService


def account_header(account: ManagedAccount) -> str:
    return f"Account {account.name} ({account.customer_id}):"


class AccountMonitorService(BaseService):
    """Service checking a single account against its weekday baseline."""

    def __init__(
        self,
        ads_api,
        detection: AnomalyDetectionService,
        alert_state: AlertStateService,
        reporting: ReportingService,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            ads_api: Report source exposing ``iter_hourly_stats``
            detection: Accumulates and evaluates the report rows
            alert_state: Suppresses repeat alerts within the day
            reporting: Tracking workbook receiving the dashboard row
            config: Configuration dictionary
            logger: Logger instance
        """
        super().__init__(ads_api, config, logger)
        self.detection = detection
        self.alert_state = alert_state
        self.reporting = reporting

    def process_account(
        self,
        account: ManagedAccount,
        index: int,
        context: RunContext,
        thresholds: ThresholdSet,
    ) -> str:
        """
        Check one account and record the outcome.

        Fetch and parse failures are logged and yield an empty block; the account's
        dashboard row is then left as it was.

        Args:
            account: Account to check
            index: Position of the account in the run, which fixes its dashboard row
            context: Timing of the current run
            thresholds: Ratios per metric

        Returns:
            The account's alert block (header plus one line per new alert), or ""
            when nothing new alerted
        """
        start_time = datetime.now()
        self.logger.info(f"Processing account {account.customer_id} ({account.name})")

        try:
            today_rows = self.ads_api.iter_hourly_stats(
                account.customer_id, context.report_date, context.report_date
            )
            history_start, history_end = context.historical_range
            historical_rows = self.ads_api.iter_hourly_stats(
                account.customer_id, history_start, history_end, day_of_week=context.current_weekday
            )
            comparison = self.detection.compare(
                today_rows, historical_rows, context, thresholds, account.currency_code
            )
        except (FetchError, ParseError) as e:
            self.logger.error(f"Skipping account {account.customer_id}: {e}")
            self._track_execution(start_time, success=False)
            return ""

        alert_lines: List[str] = []
        for decision in comparison.triggered:
            if not self.alert_state.should_alert(index, decision.metric):
                self.logger.info(
                    f"{decision.metric.value} already alerted today for account {account.customer_id}"
                )
                continue
            self.alert_state.mark_alerted(index, decision.metric, context.cutoff_hour)
            alert_lines.append(decision.message)

        self.reporting.write_account_row(
            index, account.customer_id, comparison.today, comparison.baseline
        )
        self._track_execution(start_time, success=True)

        if not alert_lines:
            return ""
        self.logger.warning(f"Account {account.customer_id}: {len(alert_lines)} new alert(s)")
        return "\n".join([account_header(account)] + [f"    {line}" for line in alert_lines])
