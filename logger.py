import logging
import os
import sys
import glob
from datetime import datetime

LOGGER_NAME = "AnomalyDetector"
LOG_FILE_PREFIX = "anomaly_detector_"


def setup_logging(log_dir="logs", level="INFO"):
    """
    Configure the anomaly detector logger with a file handler and a console handler.

    Every service logger is a child of this logger, so one call per process
    routes all service output to the same run log.

    Args:
        log_dir (str): Directory for run log files
        level (str): Console log level name

    Returns:
        logging.Logger: The configured parent logger
    """
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_file = os.path.join(log_dir, f"{LOG_FILE_PREFIX}{timestamp}.log")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers (in case of reinitialization)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, encoding='utf-8', mode='w')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    stream_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    logger.addHandler(stream_handler)

    logger.propagate = False
    logger.debug(f"Logging to {log_file}")
    return logger


def get_latest_log_file(log_dir="logs"):
    """Get the path to the most recent run log, or None if there is none"""
    if not os.path.exists(log_dir):
        return None

    log_files = glob.glob(os.path.join(log_dir, f"{LOG_FILE_PREFIX}*.log"))
    if not log_files:
        return None

    # Sort by modification time (most recent last)
    log_files.sort(key=lambda x: os.path.getmtime(x))
    return log_files[-1]
