import os
import logging
import pytz
from dotenv import load_dotenv

from errors import ConfigurationError

TRACKING_PLACEHOLDER = "YOUR_TRACKING_WORKBOOK_PATH"
MAX_ACCOUNTS_LIMIT = 50


def _int_env(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'. Fix it in .env or the environment.")


def _bool_env(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config():
    """
    Load configuration from environment variables.
    Prioritizes .env file if it exists.
    """
    env_path = ".env"
    if os.path.exists(env_path):
        logging.info("Loading configuration from .env file...")
        load_dotenv(dotenv_path=env_path)
    else:
        logging.info("No .env file found, relying on system environment variables.")

    config = {
        "google_ads": {
            "client_id": os.getenv("GOOGLE_ADS_CLIENT_ID"),
            "client_secret": os.getenv("GOOGLE_ADS_CLIENT_SECRET"),
            "developer_token": os.getenv("GOOGLE_ADS_DEVELOPER_TOKEN"),
            "refresh_token": os.getenv("GOOGLE_ADS_REFRESH_TOKEN"),
            "login_customer_id": os.getenv("GOOGLE_ADS_LOGIN_CUSTOMER_ID"),
        },
        "tracking": {
            "workbook_path": os.getenv("TRACKING_WORKBOOK_PATH", ""),
        },
        "alerts": {
            "account_label": os.getenv("ACCOUNT_LABEL") or None,
            "timezone": os.getenv("ALERT_TIMEZONE") or None,
            "reporting_delay_hours": _int_env("REPORTING_DELAY_HOURS", 3),
            "max_accounts": min(_int_env("MAX_ACCOUNTS", MAX_ACCOUNTS_LIMIT), MAX_ACCOUNTS_LIMIT),
        },
        "smtp": {
            "host": os.getenv("SMTP_HOST", "localhost"),
            "port": _int_env("SMTP_PORT", 587),
            "username": os.getenv("SMTP_USERNAME"),
            "password": os.getenv("SMTP_PASSWORD"),
            "use_tls": _bool_env("SMTP_USE_TLS", True),
            "sender": os.getenv("SMTP_SENDER", "anomaly-detector@localhost"),
        },
        "logging": {
            "log_dir": os.getenv("LOG_DIR", "logs"),
            "level": os.getenv("LOG_LEVEL", "INFO"),
        },
    }

    if not config["google_ads"]["developer_token"]:
        logging.warning("Google Ads developer token is missing.")
    if not config["google_ads"]["login_customer_id"]:
        logging.warning("Google Ads login (manager) customer id is missing.")

    return config


def validate_config(config):
    """
    Check the settings a run cannot proceed without.

    Raises:
        ConfigurationError: if the tracking workbook is unset, a placeholder or missing,
            or ALERT_TIMEZONE names an unknown zone
    """
    path = (config.get("tracking", {}).get("workbook_path") or "").strip()
    if not path or path == TRACKING_PLACEHOLDER:
        raise ConfigurationError(
            "TRACKING_WORKBOOK_PATH is not set. Create a workbook with "
            "'python main.py init-workbook <path>' and point TRACKING_WORKBOOK_PATH at it."
        )
    if not os.path.isfile(path):
        raise ConfigurationError(
            f"Tracking workbook '{path}' does not exist. Check TRACKING_WORKBOOK_PATH "
            "or create it with 'python main.py init-workbook <path>'."
        )
    if config["alerts"]["reporting_delay_hours"] < 0:
        raise ConfigurationError("REPORTING_DELAY_HOURS must not be negative.")
    if config["alerts"]["max_accounts"] < 1:
        raise ConfigurationError("MAX_ACCOUNTS must be at least 1.")
    time_zone = config["alerts"]["timezone"]
    if time_zone:
        try:
            pytz.timezone(time_zone)
        except pytz.UnknownTimeZoneError:
            raise ConfigurationError(
                f"ALERT_TIMEZONE '{time_zone}' is not a known time zone. Use an IANA name such as 'America/New_York'."
            )
    return config
