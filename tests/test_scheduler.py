"""
Tests for the hourly scheduler.
"""

import pytest
import schedule
from unittest.mock import MagicMock

from scheduler import AlertScheduler


def test_start_registers_hourly_job():
    scheduler = AlertScheduler(MagicMock(), minute=7, scheduler=schedule.Scheduler())
    scheduler.start()

    assert scheduler.running
    assert len(scheduler.scheduler.jobs) == 1
    job = scheduler.scheduler.jobs[0]
    assert job.unit == "hours"
    assert scheduler.next_run().minute == 7

    scheduler.stop()
    assert scheduler.scheduler.jobs == []


def test_failed_run_is_recorded_and_swallowed():
    logger = MagicMock()
    scheduler = AlertScheduler(MagicMock(side_effect=RuntimeError("boom")), logger=logger)

    assert scheduler._run_job() is None
    assert scheduler.last_error == "boom"
    assert scheduler.run_history[-1]["status"] == "failed"
    logger.error.assert_called_once()


def test_successful_run_returns_result():
    scheduler = AlertScheduler(MagicMock(return_value=["block"]))

    assert scheduler._run_job() == ["block"]
    assert scheduler.last_error is None
    assert scheduler.run_history[-1]["status"] == "completed"


def test_invalid_minute():
    with pytest.raises(ValueError):
        AlertScheduler(MagicMock(), minute=60)
