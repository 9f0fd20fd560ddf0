"""
Tests for the per-account check.
"""

import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from errors import FetchError
from services.account_monitor_service import AccountMonitorService
from services.alert_state_service import AlertStateService
from services.anomaly_detection_service import AnomalyDetectionService
from services.anomaly_detection_service.models import Metric
from services.reporting_service.reporting_service import FIRST_DATA_ROW
from tests.conftest import make_row

HISTORY = [
    make_row(9, clicks=20, impressions=1000, conversions=2, cost="20.00"),
    make_row(10, clicks=20, impressions=1000, conversions=2, cost="20.00"),
]


@pytest.fixture
def mock_ads_api():
    """Report source returning fresh iterators on every call."""
    mock = MagicMock()
    mock.today_rows = [make_row(9, clicks=3, impressions=900, conversions=0, cost="50.00")]
    mock.history_rows = HISTORY

    def iter_hourly_stats(customer_id, start_date, end_date, day_of_week=None):
        return iter(mock.history_rows if day_of_week else mock.today_rows)

    mock.iter_hourly_stats = MagicMock(side_effect=iter_hourly_stats)
    return mock


@pytest.fixture
def monitor(mock_ads_api, reporting, mock_logger):
    alert_state = AlertStateService(reporting, logger=mock_logger)
    return AccountMonitorService(
        mock_ads_api, AnomalyDetectionService(logger=mock_logger), alert_state, reporting, logger=mock_logger
    )


def test_fetches_today_and_same_weekday_history(monitor, mock_ads_api, account, context, thresholds):
    monitor.process_account(account, 0, context, thresholds)

    today_call, history_call = mock_ads_api.iter_hourly_stats.call_args_list
    assert today_call.args == ("1234567890", context.report_date, context.report_date)
    assert history_call.args == ("1234567890",) + context.historical_range
    assert history_call.kwargs == {"day_of_week": "MONDAY"}


def test_alert_block_has_header_and_messages(monitor, account, context, thresholds):
    block = monitor.process_account(account, 0, context, thresholds)

    # baseline per week: 20 clicks, 1000 impressions, 20.00 cost
    assert block.splitlines() == [
        "Account Garden Shop (1234567890):",
        "    Clicks too low: 3 Clicks by 14:00, expecting at least 14.0",
        "    Cost too high: 50.00 USD by 14:00, expecting at most 30.00",
    ]


def test_second_run_same_day_does_not_realert(monitor, account, context, thresholds):
    assert monitor.process_account(account, 0, context, thresholds) != ""
    assert monitor.process_account(account, 0, context, thresholds) == ""


def test_new_breach_on_other_metric_still_alerts(monitor, mock_ads_api, account, context, thresholds):
    monitor.process_account(account, 0, context, thresholds)
    mock_ads_api.today_rows = [make_row(9, clicks=3, impressions=100, conversions=0, cost="50.00")]

    block = monitor.process_account(account, 0, context, thresholds)
    assert block.splitlines() == [
        "Account Garden Shop (1234567890):",
        "    Impressions too low: 100 Impressions by 14:00, expecting at least 500",
    ]


def test_no_breach_gives_empty_block_but_writes_row(monitor, mock_ads_api, reporting, account, context, thresholds):
    mock_ads_api.today_rows = [make_row(9, clicks=30, impressions=2000, conversions=3, cost="10.00")]

    assert monitor.process_account(account, 3, context, thresholds) == ""
    row = FIRST_DATA_ROW + 3
    assert reporting.sheet.cell(row=row, column=2).value == "1234567890"
    assert reporting.sheet.cell(row=row, column=4).value == 30
    assert reporting.sheet.cell(row=row, column=8).value == 20.0


def test_already_marked_metrics_give_empty_block(monitor, account, context, thresholds):
    monitor.alert_state.mark_alerted(0, Metric.CLICKS, 12)
    monitor.alert_state.mark_alerted(0, Metric.COST, 12)

    assert monitor.process_account(account, 0, context, thresholds) == ""


def test_fetch_error_skips_account(monitor, mock_ads_api, reporting, account, context, thresholds):
    mock_ads_api.iter_hourly_stats.side_effect = FetchError("quota exceeded")

    assert monitor.process_account(account, 0, context, thresholds) == ""
    assert reporting.sheet.cell(row=FIRST_DATA_ROW, column=2).value is None
    monitor.logger.error.assert_called_once()


def test_parse_error_skips_account(monitor, mock_ads_api, reporting, account, context, thresholds):
    mock_ads_api.today_rows = [make_row(9, clicks="??")]

    assert monitor.process_account(account, 0, context, thresholds) == ""
    assert reporting.sheet.cell(row=FIRST_DATA_ROW, column=2).value is None
    assert monitor.get_metrics()["failure_count"] == 1
