"""
Failure notification by email.
"""
import logging
import smtplib
from email.mime.text import MIMEText
from typing import Optional

from config import config

logger = logging.getLogger(__name__)


def build_message(error: str, from_address: str, to_address: str, subject: str) -> MIMEText:
    msg = MIMEText(f"Error : {error}\nThis notification is for your information only.", "plain")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = to_address
    return msg


class EmailNotifier:
    """Sends a plain-text error notification over SMTP.

    Sending never raises: a notification that cannot be delivered is logged
    and the caller carries on.
    """

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 from_address: Optional[str] = None, to_address: Optional[str] = None,
                 subject: Optional[str] = None, timeout: float = 30.0):
        self.host = host or config.SMTP_HOST
        self.port = port or config.SMTP_PORT
        self.from_address = from_address or config.SMTP_FROM
        self.to_address = to_address or config.SMTP_TO
        self.subject = subject or config.SMTP_SUBJECT
        self.timeout = timeout

    def notify(self, message: str) -> bool:
        """Send the notification. Returns False if it could not be sent."""
        try:
            msg = build_message(message, self.from_address, self.to_address, self.subject)
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.sendmail(self.from_address, [self.to_address], msg.as_string())
            logger.info(f"Error notification sent to {self.to_address}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email: {e}")
            return False


# Global instance
email_notifier = EmailNotifier()
