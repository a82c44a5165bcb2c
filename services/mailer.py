"""
OTP delivery over Flask-Mail.

When no SMTP account is configured (local development) the code is written
to the log instead, so the flows stay usable without a mail server.
"""
from __future__ import annotations

import logging

from flask_mail import Message

from services.errors import DeliveryFailed

logger = logging.getLogger(__name__)

SUBJECT = "Verify your account"


class MailOtpDelivery:
    def __init__(self, mail, sender: str | None = None, console_fallback: bool = False):
        self.mail = mail
        self.sender = sender
        self.console_fallback = console_fallback

    def deliver(self, address: str, code: str) -> None:
        body = f"Your verification OTP is : {code}"
        if self.console_fallback:
            logger.info("[EMAIL DEV] To: %s | Subject: %s | Body: %s", address, SUBJECT, body)
            return
        msg = Message(subject=SUBJECT, sender=self.sender, recipients=[address], body=body)
        try:
            self.mail.send(msg)
        except Exception as exc:
            logger.exception("Could not send OTP email to %s", address)
            raise DeliveryFailed() from exc
