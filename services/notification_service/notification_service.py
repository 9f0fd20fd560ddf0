"""
Notification Service for the Account Anomaly Detector

Sends the consolidated alert summary by email over SMTP.
"""

import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional

from errors import NotificationError
from ..base_service import BaseService

SUMMARY_SUBJECT = "Google Ads accounts not performing as expected"


def split_addresses(to_address: str) -> List[str]:
    return [a.strip() for a in (to_address or "").split(",") if a.strip()]


class EmailNotificationService(BaseService):
    """Service delivering plain-text emails through the configured SMTP server."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, logger: Optional[logging.Logger] = None):
        """
        Args:
            config: Configuration dictionary with an "smtp" section
            logger: Logger instance
        """
        super().__init__(None, config, logger)
        self.smtp = self.config.get("smtp", {})

    def send(self, to_address: str, subject: str, body: str) -> bool:
        """
        Send one email. A blank address means notifications are disabled.

        Returns:
            True if a message was handed to the SMTP server, False if skipped

        Raises:
            NotificationError: on any SMTP or connection failure
        """
        recipients = split_addresses(to_address)
        if not recipients:
            self.logger.info("No notification email configured, skipping notification")
            return False

        sender = self.smtp.get("sender") or "anomaly-detector@localhost"
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = ", ".join(recipients)

        host = self.smtp.get("host", "localhost")
        port = self.smtp.get("port", 587)
        try:
            with smtplib.SMTP(host, port, timeout=60) as server:
                if self.smtp.get("use_tls", True):
                    server.starttls(context=ssl.create_default_context())
                if self.smtp.get("username"):
                    server.login(self.smtp["username"], self.smtp.get("password") or "")
                server.sendmail(sender, recipients, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send email to {', '.join(recipients)} via {host}:{port}: {e}")

        self.logger.info(f"Notification sent to {', '.join(recipients)}")
        return True

    def send_summary(self, to_address: str, blocks: List[str], dashboard: str) -> bool:
        """Send one email listing every account alert block"""
        body = (
            "The following accounts are not performing as expected today:\n\n"
            + "\n\n".join(blocks)
            + "\n\nLog into Google Ads and take a look.\n\n"
            + f"Alerts dashboard: {dashboard}\n"
        )
        return self.send(to_address, SUMMARY_SUBJECT, body)
