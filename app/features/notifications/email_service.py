"""Transactional email delivery through Resend"""
import logging
from typing import List, Optional

import resend

from app import config
from app.features.notifications.exceptions import EmailConfigurationError, EmailDeliveryError

logger = logging.getLogger(__name__)


class EmailSender:
    """Thin wrapper over ``resend.Emails.send``"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key if api_key is not None else config.RESEND_API_KEY
        if not self.api_key:
            raise EmailConfigurationError("RESEND_API_KEY not configured")

    def send(self, sender: str, to: List[str], subject: str, html: str) -> Optional[str]:
        """Send one email and return the provider message id"""
        resend.api_key = self.api_key
        params = {
            "from": sender,
            "to": to,
            "subject": subject,
            "html": html.strip(),
        }

        try:
            result = resend.Emails.send(params)
        except Exception as e:
            logger.error(f"EmailSender: Failed to send '{subject}' to {to}: {e}")
            raise EmailDeliveryError(str(e)) from e

        email_id = result.get("id") if isinstance(result, dict) else getattr(result, "id", None)
        logger.info(f"EmailSender: Sent '{subject}' to {to} (id={email_id})")
        return email_id
