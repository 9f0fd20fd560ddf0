"""
Alert Run Service for the Account Anomaly Detector

Drives one alerting run: reads and validates the settings, computes the run
timing, resets the alert marks on the first run of the day, checks every child
account and sends a single summary email when anything alerted.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytz

from errors import ConfigurationError, FetchError, NotificationError
from services.account_monitor_service import AccountMonitorService
from services.alert_state_service import AlertStateService
from services.anomaly_detection_service.models import RunContext, WEEKDAYS
from services.notification_service import EmailNotificationService
from services.reporting_service import ReportingService
from services.reporting_service.reporting_service import MAX_ACCOUNT_ROWS
from ..base_service import BaseService

DEFAULT_REPORTING_DELAY_HOURS = 3


def build_run_context(now: datetime, averaging_weeks: int,
                      reporting_delay_hours: int = DEFAULT_REPORTING_DELAY_HOURS) -> RunContext:
    """
    Derive the run timing from the wall clock.

    Report data lags by ``reporting_delay_hours``, so the clock is shifted back by
    that much; the shifted hour is the cutoff and its date and weekday are the day
    being checked.
    """
    if averaging_weeks < 1:
        raise ValueError(f"averaging_weeks must be at least 1, got {averaging_weeks}")
    reference_time = now - timedelta(hours=reporting_delay_hours)
    if hasattr(now.tzinfo, "normalize"):
        # pytz zones need normalizing after arithmetic across a DST change
        reference_time = now.tzinfo.normalize(reference_time)
    return RunContext(
        cutoff_hour=reference_time.hour,
        averaging_weeks=averaging_weeks,
        current_weekday=WEEKDAYS[reference_time.weekday()],
        reference_time=reference_time,
    )


class AlertRunService(BaseService):
    """Service coordinating a complete alerting run over all child accounts."""

    def __init__(
        self,
        ads_api,
        reporting: ReportingService,
        alert_state: AlertStateService,
        account_monitor: AccountMonitorService,
        notifier: EmailNotificationService,
        time_zone: str,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            ads_api: Account source exposing ``list_child_accounts``
            reporting: Tracking workbook
            alert_state: Alert marks kept in the workbook
            account_monitor: Per-account checker
            notifier: Sink for the summary email
            time_zone: IANA zone the run timing is computed in
            config: Configuration dictionary
            logger: Logger instance
        """
        super().__init__(ads_api, config, logger)
        self.reporting = reporting
        self.alert_state = alert_state
        self.account_monitor = account_monitor
        self.notifier = notifier
        try:
            self.time_zone = pytz.timezone(time_zone)
        except pytz.UnknownTimeZoneError:
            raise ConfigurationError(
                f"Unknown time zone '{time_zone}'. Set ALERT_TIMEZONE to an IANA name such as 'America/New_York'."
            )

        alerts_config = self.config.get("alerts", {})
        self.account_label = alerts_config.get("account_label")
        self.reporting_delay_hours = alerts_config.get("reporting_delay_hours", DEFAULT_REPORTING_DELAY_HOURS)
        self.max_accounts = min(alerts_config.get("max_accounts", MAX_ACCOUNT_ROWS), MAX_ACCOUNT_ROWS)

    def run(self, now: Optional[datetime] = None) -> List[str]:
        """
        Execute one run.

        Args:
            now: Wall-clock time of the run; defaults to the current time in the run's zone

        Returns:
            The non-empty alert blocks in account order

        Raises:
            ConfigurationError: before any workbook change, if the settings are invalid
            FetchError: if the account list cannot be retrieved; alerts collected
                before the failure are still sent
        """
        start_time = datetime.now()
        settings = self.reporting.read_settings()

        if now is None:
            now = datetime.now(self.time_zone)
        context = build_run_context(now, settings.averaging_weeks, self.reporting_delay_hours)
        self.logger.info(
            f"Run for {context.report_date} ({context.current_weekday}) with data up to "
            f"{context.cutoff_hour}:00, baseline over {context.averaging_weeks} week(s)"
        )

        if context.is_first_run_of_day:
            self.alert_state.reset_daily()
        self.reporting.write_run_info(context)
        self.reporting.save()

        blocks = []
        listing_error = None
        try:
            accounts = self.ads_api.list_child_accounts(label=self.account_label, limit=self.max_accounts)
            for index, account in enumerate(accounts):
                if index >= self.max_accounts:
                    break
                block = self.account_monitor.process_account(account, index, context, settings.thresholds)
                self.reporting.save()
                if block:
                    blocks.append(block)
        except FetchError as e:
            # Accounts already checked keep their marks, so their alerts still go out
            self.logger.error(f"Could not list child accounts, stopping after {len(blocks)} alerted account(s): {e}")
            listing_error = e

        self.logger.info(f"Run complete: {len(blocks)} account(s) with new alerts")
        if blocks:
            try:
                self.notifier.send_summary(settings.email, blocks, self.reporting.workbook_path)
            except NotificationError as e:
                self.logger.error(f"Alert notification failed: {e}")

        if listing_error is not None:
            self._track_execution(start_time, success=False)
            raise listing_error
        self._track_execution(start_time, success=True)
        return blocks
