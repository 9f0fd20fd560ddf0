"""
Base Service for the Account Anomaly Detector

This module provides the BaseService class that all other services inherit from.
It handles common functionality like logging, configuration, and API access.
"""

import logging
from typing import Dict, Any, Optional
from datetime import datetime

from logger import LOGGER_NAME


class BaseService:
    """Base class for all services in the anomaly detector"""

    def __init__(
        self,
        ads_api=None,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the base service.

        Args:
            ads_api: Google Ads API wrapper instance
            config: Configuration dictionary
            logger: Logger instance
        """
        self.ads_api = ads_api
        self.config = config or {}

        if logger:
            self.logger = logger
        else:
            self.logger = self._setup_logger()

        # Track metrics for this service
        self.metrics = {
            "invocations": 0,
            "success_count": 0,
            "failure_count": 0,
            "last_run": None,
            "avg_execution_time_ms": 0,
        }

    def _setup_logger(self) -> logging.Logger:
        """Get a child of the anomaly detector logger named after this service"""
        return logging.getLogger(f"{LOGGER_NAME}.{self.__class__.__name__}")

    def _track_execution(self, start_time: datetime, success: bool):
        """
        Track execution metrics for this service

        Args:
            start_time: When the execution started
            success: Whether the execution was successful
        """
        self.metrics["invocations"] += 1

        if success:
            self.metrics["success_count"] += 1
        else:
            self.metrics["failure_count"] += 1

        execution_time_ms = (datetime.now() - start_time).total_seconds() * 1000

        prev_avg = self.metrics["avg_execution_time_ms"]
        prev_count = self.metrics["invocations"] - 1

        if prev_count > 0:
            self.metrics["avg_execution_time_ms"] = (
                prev_avg * prev_count + execution_time_ms
            ) / self.metrics["invocations"]
        else:
            self.metrics["avg_execution_time_ms"] = execution_time_ms

        self.metrics["last_run"] = datetime.now().isoformat()

        self.logger.debug(
            f"Execution tracked: success={success}, "
            f"time={execution_time_ms:.2f}ms, "
            f"avg={self.metrics['avg_execution_time_ms']:.2f}ms"
        )

    def get_metrics(self) -> Dict[str, Any]:
        """Get the current metrics for this service"""
        return self.metrics.copy()
