"""
Tests for the per-day alert marks.
"""

import pytest
from unittest.mock import MagicMock

from services.alert_state_service import AlertStateService
from services.alert_state_service.alert_state_service import ALERT_COLORS, is_unmarked
from services.anomaly_detection_service.models import Metric
from services.reporting_service.reporting_service import FIRST_DATA_ROW, metric_columns


@pytest.fixture
def alert_state(reporting, mock_logger):
    return AlertStateService(reporting, logger=mock_logger)


@pytest.mark.parametrize("color", ["", None, "white", "WHITE", "#ffffff", "#FFFFFF"])
def test_unmarked_sentinels(color):
    assert is_unmarked(color)


@pytest.mark.parametrize("color", ["#ff0000", "theme", "black"])
def test_marked_colors(color):
    assert not is_unmarked(color)


def test_fresh_workbook_allows_alerts(alert_state):
    for metric in Metric:
        assert alert_state.should_alert(0, metric)


def test_mark_alerted_blocks_that_metric_only(alert_state, reporting):
    alert_state.mark_alerted(1, Metric.CLICKS, 14)

    assert not alert_state.should_alert(1, Metric.CLICKS)
    assert alert_state.should_alert(1, Metric.COST)
    assert alert_state.should_alert(0, Metric.CLICKS)

    today_column, baseline_column = metric_columns(Metric.CLICKS)
    assert reporting.get_background(FIRST_DATA_ROW + 1, today_column) == ALERT_COLORS[Metric.CLICKS]
    assert reporting.get_background(FIRST_DATA_ROW + 1, baseline_column) == ALERT_COLORS[Metric.CLICKS]
    assert reporting.sheet.cell(row=FIRST_DATA_ROW + 1, column=12).value == "Alert at 14:00"


def test_one_colored_cell_counts_as_alerted(alert_state, reporting):
    _, baseline_column = metric_columns(Metric.IMPRESSIONS)
    reporting.set_background(FIRST_DATA_ROW, baseline_column, "#00ff00")
    assert alert_state.is_alerted(0, Metric.IMPRESSIONS)


def test_white_cells_count_as_unmarked(alert_state, reporting):
    for column in metric_columns(Metric.CONVERSIONS):
        reporting.set_background(FIRST_DATA_ROW, column, "#FFFFFF")
    assert alert_state.should_alert(0, Metric.CONVERSIONS)


def test_marks_survive_save_and_reload(alert_state, reporting, workbook_path):
    from services.reporting_service import ReportingService

    alert_state.mark_alerted(0, Metric.COST, 9)
    reporting.save()

    reloaded = AlertStateService(ReportingService(workbook_path, logger=MagicMock()), logger=MagicMock())
    assert not reloaded.should_alert(0, Metric.COST)


def test_reset_daily_clears_marks_and_status(alert_state, reporting):
    alert_state.mark_alerted(0, Metric.IMPRESSIONS, 5)
    alert_state.mark_alerted(49, Metric.COST, 5)

    alert_state.reset_daily()

    for metric in Metric:
        assert alert_state.should_alert(0, metric)
        assert alert_state.should_alert(49, metric)
    assert reporting.sheet.cell(row=FIRST_DATA_ROW, column=11).value is None
    assert reporting.sheet.cell(row=FIRST_DATA_ROW + 49, column=14).value is None
