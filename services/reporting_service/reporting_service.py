"""
Reporting Service for the Account Anomaly Detector

The tracking workbook is the dashboard and the only persistent state of the
detector. It holds the run settings (averaging window, thresholds, recipient)
in named cells, one row of today/baseline values per account, the alert marks
as cell backgrounds and a per-metric alert status column.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.workbook.defined_name import DefinedName

from errors import ConfigurationError
from services.anomaly_detection_service.models import (
    METRIC_ORDER,
    NO_ALERT,
    Metric,
    MetricTotals,
    RunContext,
    ThresholdSet,
    round_half_up,
)
from ..base_service import BaseService

logger = logging.getLogger(__name__)

SHEET_TITLE = "Dashboard"
EMAIL_PLACEHOLDER = "foo@example.com"

# Sheet layout
FIRST_DATA_ROW = 8
MAX_ACCOUNT_ROWS = 50
ACCOUNT_ID_COLUMN = 2
TODAY_COLUMNS = {
    Metric.IMPRESSIONS: 3,
    Metric.CLICKS: 4,
    Metric.CONVERSIONS: 5,
    Metric.COST: 6,
}
BASELINE_OFFSET = len(TODAY_COLUMNS)
ALERT_COLUMNS = {
    Metric.IMPRESSIONS: 11,
    Metric.CLICKS: 12,
    Metric.CONVERSIONS: 13,
    Metric.COST: 14,
}
ALERT_RANGES = {metric: f"{metric.field}_alert" for metric in METRIC_ORDER}

# Named single cells: name -> (label, label cell, value cell)
SETTING_CELLS = {
    "date": ("Date", "B2", "C2"),
    "timestamp": ("Data up to", "B3", "C3"),
    "weeks": ("Averaging window", "B4", "C4"),
    "email": ("Email", "B5", "C5"),
    "impressions": ("Impressions threshold", "E2", "F2"),
    "clicks": ("Clicks threshold", "E3", "F3"),
    "conversions": ("Conversions threshold", "E4", "F4"),
    "cost": ("Cost threshold", "E5", "F5"),
}
HEADER_ROW = FIRST_DATA_ROW - 1

_WEEKS_PATTERN = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class TrackingSettings:
    """Run settings read from the tracking workbook."""

    email: str
    averaging_weeks: int
    thresholds: ThresholdSet


def metric_columns(metric: Metric) -> Tuple[int, int]:
    """Return the (today, baseline) column pair of a metric"""
    today_column = TODAY_COLUMNS[metric]
    return today_column, today_column + BASELINE_OFFSET


def parse_weeks(value: Any) -> int:
    """Parse the averaging window: an integer or text starting with one ("3 weeks")"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value != int(value):
            raise ConfigurationError(f"Averaging window must be a whole number of weeks, got {value}.")
        weeks = int(value)
    else:
        match = _WEEKS_PATTERN.match(str(value)) if value is not None else None
        if not match:
            raise ConfigurationError(
                f"Averaging window '{value}' is not a number of weeks. Set the 'weeks' cell to e.g. '3 weeks'."
            )
        weeks = int(match.group(1))
    if weeks < 1:
        raise ConfigurationError(f"Averaging window must be at least 1 week, got {weeks}.")
    return weeks


def _hex_to_argb(color: str) -> str:
    return "FF" + color.lstrip("#").upper()


class ReportingService(BaseService):
    """Service reading and writing the tracking workbook."""

    def __init__(self, workbook_path: str, config: Optional[Dict[str, Any]] = None,
                 logger: Optional[logging.Logger] = None) -> None:
        """
        Open the tracking workbook.

        Args:
            workbook_path: Path of the .xlsx tracking workbook
            config: Configuration dictionary
            logger: Logger instance

        Raises:
            ConfigurationError: if the workbook cannot be opened or lacks the dashboard sheet
        """
        super().__init__(None, config, logger)
        self.workbook_path = workbook_path
        if not os.path.isfile(workbook_path):
            raise ConfigurationError(
                f"Tracking workbook '{workbook_path}' does not exist. "
                "Create it with 'python main.py init-workbook <path>'."
            )
        try:
            self.workbook = load_workbook(workbook_path)
        except (OSError, ValueError, KeyError) as e:
            raise ConfigurationError(f"Tracking workbook '{workbook_path}' could not be opened: {e}")
        if SHEET_TITLE not in self.workbook.sheetnames:
            raise ConfigurationError(
                f"Tracking workbook '{workbook_path}' has no '{SHEET_TITLE}' sheet. "
                "Recreate it with 'python main.py init-workbook <path>'."
            )
        self.sheet = self.workbook[SHEET_TITLE]
        self.logger.info(f"Opened tracking workbook {workbook_path}")

    # Named ranges

    def _named_cells(self, name: str):
        defined = self.workbook.defined_names.get(name)
        if defined is None:
            raise ConfigurationError(
                f"Tracking workbook is missing the named range '{name}'. "
                "Recreate it with 'python main.py init-workbook <path>'."
            )
        cells = []
        for sheet_title, coordinate in defined.destinations:
            block = self.workbook[sheet_title][coordinate.replace("$", "")]
            if not isinstance(block, tuple):
                cells.append(block)
                continue
            for item in block:
                cells.extend(item if isinstance(item, tuple) else (item,))
        return cells

    def get_named_value(self, name: str) -> Any:
        return self._named_cells(name)[0].value

    def set_named_value(self, name: str, value: Any) -> None:
        self._named_cells(name)[0].value = value

    def set_region_cell(self, name: str, offset: int, value: Any) -> None:
        """Write one cell of a multi-row named region, ``offset`` rows from its top"""
        self._named_cells(name)[offset].value = value

    def clear_region(self, name: str) -> None:
        for cell in self._named_cells(name):
            cell.value = None

    # Settings

    def read_settings(self) -> TrackingSettings:
        """
        Read and validate the run settings.

        Raises:
            ConfigurationError: for a placeholder email, a bad averaging window or
                a malformed threshold
        """
        email = self.get_named_value("email")
        email = str(email).strip() if email is not None else ""
        if email == EMAIL_PLACEHOLDER:
            raise ConfigurationError(
                f"The notification email in the tracking workbook is still the placeholder "
                f"'{EMAIL_PLACEHOLDER}'. Enter a real address or leave the cell blank to disable emails."
            )

        averaging_weeks = parse_weeks(self.get_named_value("weeks"))
        thresholds = ThresholdSet.from_values(
            {metric: self.get_named_value(metric.field) for metric in METRIC_ORDER}
        )
        self.logger.info(
            f"Settings: averaging over {averaging_weeks} week(s), thresholds "
            + ", ".join(f"{m.value}={thresholds.get(m) if thresholds.get(m) is not None else NO_ALERT}"
                        for m in METRIC_ORDER)
        )
        return TrackingSettings(email=email, averaging_weeks=averaging_weeks, thresholds=thresholds)

    def write_run_info(self, context: RunContext) -> None:
        self.set_named_value("date", context.report_date)
        self.set_named_value("timestamp", context.timestamp_label)

    # Account rows

    def row_for(self, index: int) -> int:
        if not 0 <= index < MAX_ACCOUNT_ROWS:
            raise IndexError(f"Account index {index} is outside the {MAX_ACCOUNT_ROWS} dashboard rows")
        return FIRST_DATA_ROW + index

    def write_account_row(self, index: int, account_id: str, today: MetricTotals, baseline: MetricTotals) -> None:
        """Write the account id, today's totals and the rounded baseline to the account's row"""
        row = self.row_for(index)
        rounded = baseline.rounded()
        self.sheet.cell(row=row, column=ACCOUNT_ID_COLUMN, value=account_id)
        for metric in METRIC_ORDER:
            today_column, baseline_column = metric_columns(metric)
            today_value = today.get(metric)
            if metric is Metric.COST:
                self.sheet.cell(row=row, column=today_column, value=float(round_half_up(today_value, 2)))
                self.sheet.cell(row=row, column=baseline_column, value=float(rounded.get(metric)))
            elif metric is Metric.IMPRESSIONS:
                self.sheet.cell(row=row, column=today_column, value=int(today_value))
                self.sheet.cell(row=row, column=baseline_column, value=int(rounded.get(metric)))
            else:
                self.sheet.cell(row=row, column=today_column, value=int(today_value))
                self.sheet.cell(row=row, column=baseline_column, value=float(rounded.get(metric)))

    # Cell colors

    def get_background(self, row: int, column: int) -> str:
        """Return the cell background as '#rrggbb', or '' when the cell is unfilled"""
        fill = self.sheet.cell(row=row, column=column).fill
        if fill is None or fill.fill_type is None:
            return ""
        color = fill.fgColor
        if color is None or color.type != "rgb" or not isinstance(color.rgb, str):
            return "theme"
        return "#" + color.rgb[-6:].lower()

    def set_background(self, row: int, column: int, color: Optional[str]) -> None:
        cell = self.sheet.cell(row=row, column=column)
        if not color:
            cell.fill = PatternFill(fill_type=None)
            return
        argb = _hex_to_argb(color)
        cell.fill = PatternFill(fill_type="solid", start_color=argb, end_color=argb)

    def clear_backgrounds(self, rows: Iterable[int], columns: Iterable[int]) -> None:
        columns = list(columns)
        for row in rows:
            for column in columns:
                self.set_background(row, column, None)

    def save(self) -> None:
        self.workbook.save(self.workbook_path)
        self.logger.debug(f"Tracking workbook saved to {self.workbook_path}")

    @classmethod
    def create_template(cls, path: str) -> str:
        """
        Write a new tracking workbook with the dashboard layout and default settings.

        Every threshold starts as "No alert" and the email is blank, so the detector
        runs silently until the workbook is filled in.
        """
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE
        sheet["B1"] = "Account Anomaly Detector"
        sheet["B1"].font = Font(bold=True, size=14)

        defaults = {"weeks": "3 weeks", "email": None, "date": None, "timestamp": None}
        for name, (label, label_cell, value_cell) in SETTING_CELLS.items():
            sheet[label_cell] = label
            sheet[value_cell] = defaults.get(name, NO_ALERT)
            column, row = re.match(r"([A-Z]+)(\d+)", value_cell).groups()
            workbook.defined_names[name] = DefinedName(
                name, attr_text=f"'{SHEET_TITLE}'!${column}${row}"
            )

        headers = {ACCOUNT_ID_COLUMN: "Account"}
        for metric in METRIC_ORDER:
            today_column, baseline_column = metric_columns(metric)
            headers[today_column] = f"{metric.value} today"
            headers[baseline_column] = f"{metric.value} baseline"
            headers[ALERT_COLUMNS[metric]] = f"{metric.value} alert"
            letter = get_column_letter(ALERT_COLUMNS[metric])
            last_row = FIRST_DATA_ROW + MAX_ACCOUNT_ROWS - 1
            workbook.defined_names[ALERT_RANGES[metric]] = DefinedName(
                ALERT_RANGES[metric],
                attr_text=f"'{SHEET_TITLE}'!${letter}${FIRST_DATA_ROW}:${letter}${last_row}",
            )
        for column, title in headers.items():
            cell = sheet.cell(row=HEADER_ROW, column=column, value=title)
            cell.font = Font(bold=True)

        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        workbook.save(path)
        logger.info(f"Created tracking workbook {path}")
        return path
