"""
Tests for log setup.
"""

import logging
import os

from logger import LOGGER_NAME, get_latest_log_file, setup_logging
from services.base_service import BaseService


def test_service_logs_reach_run_log(tmp_path):
    log_dir = str(tmp_path / "logs")
    setup_logging(log_dir, "WARNING")

    BaseService().logger.info("Account 123 checked ✓")
    for handler in logging.getLogger(LOGGER_NAME).handlers:
        handler.flush()

    log_file = get_latest_log_file(log_dir)
    assert log_file is not None
    assert os.path.basename(log_file).startswith("anomaly_detector_")
    with open(log_file, encoding="utf-8") as f:
        assert "Account 123 checked ✓" in f.read()


def test_reinitialization_replaces_handlers(tmp_path):
    setup_logging(str(tmp_path), "INFO")
    logger = setup_logging(str(tmp_path), "INFO")
    assert len(logger.handlers) == 2


def test_no_log_dir(tmp_path):
    assert get_latest_log_file(str(tmp_path / "missing")) is None
