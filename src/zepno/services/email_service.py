"""Email service — sends wallet top-up receipts via async SMTP."""

from __future__ import annotations

import logging
from decimal import Decimal
from email.message import EmailMessage

import aiosmtplib

logger = logging.getLogger(__name__)


class EmailService:
    """Sends transactional emails using the configured SMTP server.

    An empty *hostname* disables delivery; messages are only logged.
    """

    def __init__(
        self,
        hostname: str,
        port: int,
        sender: str,
        app_name: str,
        username: str = "",
        password: str = "",
    ) -> None:
        self._hostname = hostname
        self._port = port
        self._sender = sender
        self._app_name = app_name
        self._username = username
        self._password = password

    @property
    def enabled(self) -> bool:
        return bool(self._hostname)

    async def send_topup_receipt(
        self, to_email: str, user_name: str, amount: Decimal, balance: Decimal
    ) -> bool:
        """Email a receipt for a wallet top-up.

        Returns ``True`` if the message was handed to the SMTP server.
        Delivery problems are logged and never raised: the credit has
        already been committed by the time this runs.
        """
        if not self.enabled:
            logger.info("SMTP not configured — receipt for %s logged only", to_email)
            return False

        msg = EmailMessage()
        msg["Subject"] = f"₹{amount} added to your {self._app_name} wallet"
        msg["From"] = self._sender
        msg["To"] = to_email
        msg.set_content(
            f"Hello {user_name},\n\n"
            f"We received your payment of ₹{amount}. "
            f"Your wallet balance is now ₹{balance}.\n\n"
            "If you did not make this payment, please contact support "
            "immediately.\n\n"
            "Best regards,\n"
            f"The {self._app_name} Team"
        )

        logger.info("Sending top-up receipt to %s", to_email)
        try:
            await aiosmtplib.send(
                msg,
                hostname=self._hostname,
                port=self._port,
                username=self._username or None,
                password=self._password or None,
                start_tls=True,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Receipt email to %s failed: %s", to_email, exc)
            return False

        logger.info("Top-up receipt sent to %s", to_email)
        return True
