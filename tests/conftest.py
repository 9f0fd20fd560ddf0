"""
Shared fixtures for the anomaly detector tests.
"""

import pytest
from decimal import Decimal
from datetime import datetime
from unittest.mock import MagicMock

from services.anomaly_detection_service.models import ManagedAccount, ReportRow, RunContext, ThresholdSet
from services.reporting_service import ReportingService


def make_row(hour, clicks=0, impressions=0, conversions=0, cost="0", day="MONDAY"):
    return ReportRow(
        hour_of_day=hour,
        day_of_week=day,
        clicks=clicks,
        impressions=impressions,
        conversions=conversions,
        cost=cost,
    )


@pytest.fixture
def workbook_path(tmp_path):
    """A tracking workbook with all alerts enabled and a real recipient."""
    path = str(tmp_path / "tracking.xlsx")
    ReportingService.create_template(path)
    reporting = ReportingService(path, logger=MagicMock())
    reporting.set_named_value("email", "alerts@agency.test")
    reporting.set_named_value("weeks", "2 weeks")
    reporting.set_named_value("impressions", 0.5)
    reporting.set_named_value("clicks", 0.7)
    reporting.set_named_value("conversions", "No alert")
    reporting.set_named_value("cost", 1.5)
    reporting.save()
    return path


@pytest.fixture
def reporting(workbook_path):
    return ReportingService(workbook_path, logger=MagicMock())


@pytest.fixture
def context():
    """Monday, data complete up to 14:00, two-week baseline."""
    return RunContext(
        cutoff_hour=14,
        averaging_weeks=2,
        current_weekday="MONDAY",
        reference_time=datetime(2024, 3, 11, 14, 20),
    )


@pytest.fixture
def thresholds():
    return ThresholdSet(
        impressions=Decimal("0.5"),
        clicks=Decimal("0.7"),
        conversions=None,
        cost=Decimal("1.5"),
    )


@pytest.fixture
def account():
    return ManagedAccount(
        customer_id="1234567890",
        name="Garden Shop",
        currency_code="USD",
        time_zone="America/New_York",
    )


@pytest.fixture
def mock_logger():
    return MagicMock()
