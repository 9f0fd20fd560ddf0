"""
Error types for the Account Anomaly Detector.

ConfigurationError aborts a run before any tracking state is touched.
ParseError and FetchError are scoped to a single account and are caught by the
account monitor. NotificationError is logged and never rolls back written state.
"""


class AnomalyDetectorError(Exception):
    """Base class for all errors raised by the anomaly detector"""


class ConfigurationError(AnomalyDetectorError):
    """Missing, placeholder or malformed configuration"""


class ParseError(AnomalyDetectorError):
    """A report row carried a numeric field that could not be parsed"""


class FetchError(AnomalyDetectorError):
    """The report or account source failed or returned malformed data"""


class NotificationError(AnomalyDetectorError):
    """The notification sink failed to deliver a message"""
