"""
Data model shared by the anomaly detection, alert state and reporting services.

All metric values are ``decimal.Decimal`` so that baseline rounding and the
threshold comparison behave exactly at the boundaries.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from errors import ConfigurationError

NO_ALERT = "No alert"

# Indexed by datetime.weekday(); names match the Google Ads DayOfWeek enum
WEEKDAYS = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY")


class Metric(Enum):
    IMPRESSIONS = "Impressions"
    CLICKS = "Clicks"
    CONVERSIONS = "Conversions"
    COST = "Cost"

    @property
    def field(self) -> str:
        return self.name.lower()


METRIC_ORDER = (Metric.IMPRESSIONS, Metric.CLICKS, Metric.CONVERSIONS, Metric.COST)

# Decimal places the baseline is rounded to before it is compared
BASELINE_PRECISION = {
    Metric.IMPRESSIONS: 0,
    Metric.CLICKS: 1,
    Metric.CONVERSIONS: 1,
    Metric.COST: 2,
}


def round_half_up(value: Decimal, places: int) -> Decimal:
    """Round ``value`` to ``places`` decimals, halves away from zero."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ReportRow:
    """One hourly row of an account performance report, fields as the platform sent them."""

    hour_of_day: Any
    day_of_week: str
    clicks: Any
    impressions: Any
    conversions: Any
    cost: Any


@dataclass(frozen=True)
class MetricTotals:
    impressions: Decimal = Decimal(0)
    clicks: Decimal = Decimal(0)
    conversions: Decimal = Decimal(0)
    cost: Decimal = Decimal(0)

    def get(self, metric: Metric) -> Decimal:
        return getattr(self, metric.field)

    def rounded(self) -> "MetricTotals":
        """Copy with every metric rounded to its baseline precision"""
        return MetricTotals(
            **{m.field: round_half_up(self.get(m), BASELINE_PRECISION[m]) for m in METRIC_ORDER}
        )


def parse_threshold(value: Any, name: str = "threshold") -> Optional[Decimal]:
    """
    Parse a threshold cell value.

    Args:
        value: A number, a numeric string (thousands separators allowed),
            the "No alert" sentinel, or blank
        name: Setting name used in error messages

    Returns:
        The ratio as a Decimal, or None when checking is disabled

    Raises:
        ConfigurationError: if the value is neither numeric nor the sentinel
    """
    if value is None:
        return None
    if isinstance(value, float):
        value = repr(value)
    text = str(value).replace(",", "").strip()
    if text == "" or text.lower() == NO_ALERT.lower():
        return None
    try:
        ratio = Decimal(text)
    except InvalidOperation:
        raise ConfigurationError(
            f"Threshold '{name}' has value '{value}'. Use a ratio such as 0.7 or '{NO_ALERT}'."
        )
    if not ratio.is_finite() or ratio < 0:
        raise ConfigurationError(
            f"Threshold '{name}' must be a non-negative ratio or '{NO_ALERT}', got '{value}'."
        )
    return ratio


@dataclass(frozen=True)
class ThresholdSet:
    """Per-metric ratios; None disables the check for that metric."""

    impressions: Optional[Decimal] = None
    clicks: Optional[Decimal] = None
    conversions: Optional[Decimal] = None
    cost: Optional[Decimal] = None

    def get(self, metric: Metric) -> Optional[Decimal]:
        return getattr(self, metric.field)

    @classmethod
    def from_values(cls, values: Dict[Metric, Any]) -> "ThresholdSet":
        return cls(**{m.field: parse_threshold(values.get(m), m.field) for m in METRIC_ORDER})


@dataclass(frozen=True)
class AlertDecision:
    metric: Metric
    triggered: bool
    message: str


@dataclass(frozen=True)
class AccountComparison:
    """Today's totals, the weekday baseline and the decisions derived from them."""

    today: MetricTotals
    baseline: MetricTotals
    decisions: Tuple[AlertDecision, ...]

    @property
    def triggered(self) -> Tuple[AlertDecision, ...]:
        return tuple(d for d in self.decisions if d.triggered)


@dataclass(frozen=True)
class ManagedAccount:
    """A child account of the umbrella account."""

    customer_id: str
    name: str
    currency_code: str
    time_zone: str


@dataclass(frozen=True)
class RunContext:
    """
    Per-run timing, computed once from the wall clock minus the reporting delay.

    ``reference_time`` is that shifted time; its date is the day being checked and
    its hour is the cutoff up to which rows are counted.
    """

    cutoff_hour: int
    averaging_weeks: int
    current_weekday: str
    reference_time: datetime

    @property
    def is_first_run_of_day(self) -> bool:
        return self.cutoff_hour == 1

    @property
    def report_date(self) -> date:
        return self.reference_time.date()

    @property
    def historical_range(self) -> Tuple[date, date]:
        """Window holding exactly ``averaging_weeks`` earlier occurrences of this weekday"""
        return (
            self.report_date - timedelta(days=7 * self.averaging_weeks),
            self.report_date - timedelta(days=1),
        )

    @property
    def timestamp_label(self) -> str:
        return f"{self.current_weekday.capitalize()}, {self.cutoff_hour}:00"
