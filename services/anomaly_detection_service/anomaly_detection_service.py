"""
Anomaly Detection Service for the Account Anomaly Detector

Accumulates hourly report rows into per-metric totals and compares today's
partial-day totals against the same-weekday baseline using fixed ratio thresholds.
Impressions, clicks and conversions alert when they fall short of the baseline;
cost alerts when it overshoots.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from errors import FetchError, ParseError
from services.base_service import BaseService
from .models import (
    BASELINE_PRECISION,
    METRIC_ORDER,
    AccountComparison,
    AlertDecision,
    Metric,
    MetricTotals,
    ReportRow,
    RunContext,
    ThresholdSet,
    round_half_up,
)

# Report fields truncated to whole events before weighting
COUNT_FIELDS = ("impressions", "clicks", "conversions")


def parse_number(value: Any, field: str) -> Decimal:
    """
    Parse a report field, stripping thousands separators from strings.

    Raises:
        ParseError: if the value is not a finite number
    """
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        number = Decimal(repr(value))
    else:
        try:
            number = Decimal(str(value).replace(",", "").strip())
        except InvalidOperation:
            raise ParseError(f"Non-numeric {field} value '{value}' in report row")
    if not number.is_finite():
        raise ParseError(f"Non-numeric {field} value '{value}' in report row")
    return number


def accumulate(rows: Iterable[ReportRow], cutoff_hour: int, weight_divisor: Any = 1) -> MetricTotals:
    """
    Sum report rows recorded before ``cutoff_hour`` into per-metric totals.

    The rows are consumed once, front to back. Counts are truncated to integers;
    cost keeps its fraction. Sums are kept exact and divided by
    ``weight_divisor`` once at the end.

    Args:
        rows: Single-pass sequence of report rows
        cutoff_hour: Rows with hour_of_day >= cutoff_hour are excluded
        weight_divisor: Number of weeks averaged, or 1 for the current day

    Returns:
        MetricTotals for the included rows

    Raises:
        ParseError: if an included row carries a non-numeric field
    """
    divisor = parse_number(weight_divisor, "weight divisor")
    if divisor <= 0:
        raise ValueError(f"weight_divisor must be positive, got {weight_divisor}")

    sums: Dict[str, Decimal] = {f: Decimal(0) for f in COUNT_FIELDS + ("cost",)}
    for row in rows:
        try:
            hour = int(row.hour_of_day)
        except (TypeError, ValueError):
            raise ParseError(f"Non-numeric hour value '{row.hour_of_day}' in report row")
        if hour >= cutoff_hour:
            continue
        for field in COUNT_FIELDS:
            whole = int(parse_number(getattr(row, field), field))
            sums[field] += whole
        sums["cost"] += parse_number(row.cost, "cost")

    return MetricTotals(**{field: total / divisor for field, total in sums.items()})


def _format_count(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return str(value)


def evaluate(
    today: MetricTotals,
    baseline: MetricTotals,
    thresholds: ThresholdSet,
    cutoff_hour: int,
    currency_code: str,
) -> List[AlertDecision]:
    """
    Compare today's totals with the baseline, one decision per enabled metric.

    The baseline is rounded to the metric's precision before it is multiplied by
    the threshold; today's value is compared unrounded.

    Args:
        today: Totals for the current day up to the cutoff hour
        baseline: Per-week average totals for the same weekday
        thresholds: Ratios per metric, None meaning no check
        cutoff_hour: Hour used in the alert message
        currency_code: Account currency used in the cost message

    Returns:
        Decisions in Impressions, Clicks, Conversions, Cost order, skipping
        metrics without a threshold
    """
    decisions = []
    for metric in METRIC_ORDER:
        ratio = thresholds.get(metric)
        if ratio is None:
            continue

        places = BASELINE_PRECISION[metric]
        limit = round_half_up(baseline.get(metric), places) * ratio
        expected = round_half_up(limit, places)
        value = today.get(metric)

        if metric is Metric.COST:
            triggered = value > limit
            message = (
                f"Cost too high: {round_half_up(value, 2)} {currency_code} by {cutoff_hour}:00, "
                f"expecting at most {expected}"
            )
        else:
            triggered = value < limit
            message = (
                f"{metric.value} too low: {_format_count(value)} {metric.value} by {cutoff_hour}:00, "
                f"expecting at least {expected}"
            )
        decisions.append(AlertDecision(metric=metric, triggered=triggered, message=message))
    return decisions


class AnomalyDetectionService(BaseService):
    """
    Service comparing an account's same-day performance with its weekday baseline.

    It is a thin stateful wrapper over :func:`accumulate` and :func:`evaluate`
    that adds logging and execution metrics.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, logger: Optional[logging.Logger] = None):
        super().__init__(None, config, logger)
        self.logger.debug("AnomalyDetectionService initialized")

    def compare(
        self,
        today_rows: Iterable[ReportRow],
        historical_rows: Iterable[ReportRow],
        context: RunContext,
        thresholds: ThresholdSet,
        currency_code: str,
    ) -> AccountComparison:
        """
        Accumulate both row streams and evaluate every enabled threshold.

        Raises:
            ParseError: propagated from accumulation
            FetchError: raised by a row source while it is being consumed
        """
        start_time = datetime.now()
        try:
            today = accumulate(today_rows, context.cutoff_hour, 1)
            baseline = accumulate(historical_rows, context.cutoff_hour, context.averaging_weeks)
        except (ParseError, FetchError):
            self._track_execution(start_time, success=False)
            raise

        decisions = evaluate(today, baseline, thresholds, context.cutoff_hour, currency_code)
        comparison = AccountComparison(today=today, baseline=baseline, decisions=tuple(decisions))

        self.logger.debug(
            f"Compared today {today} against baseline {baseline}: "
            f"{len(comparison.triggered)} of {len(decisions)} checks triggered"
        )
        self._track_execution(start_time, success=True)
        return comparison
