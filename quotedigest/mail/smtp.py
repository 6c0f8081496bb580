"""
SMTP mail transport.

Sends multipart (text + HTML) messages with smtplib. A fresh connection
is opened per message; digests go out one at a time.
"""

from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import List
import logging
import smtplib

from quotedigest.config import (
    MAIL_FROM,
    REQUEST_TIMEOUT,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)
from quotedigest.mail.base import MailTransport, OutgoingMessage

logger = logging.getLogger(__name__)


class SmtpTransport(MailTransport):
    def __init__(
        self,
        host: str = None,
        port: int = None,
        username: str = None,
        password: str = None,
        use_tls: bool = None,
        sender: str = None,
        timeout: int = None,
    ):
        self.host = host if host is not None else SMTP_HOST
        self.port = port if port is not None else SMTP_PORT
        self.username = username if username is not None else SMTP_USERNAME
        self.password = password if password is not None else SMTP_PASSWORD
        self.use_tls = use_tls if use_tls is not None else SMTP_USE_TLS
        self.sender = sender if sender is not None else MAIL_FROM
        self.timeout = timeout if timeout is not None else REQUEST_TIMEOUT

    @property
    def name(self) -> str:
        return "smtp"

    def build_message(self, message: OutgoingMessage) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid(domain=self.sender.rsplit("@", 1)[-1].rstrip(">"))
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")
        return msg

    def send(self, message: OutgoingMessage) -> str:
        if not self.host:
            raise RuntimeError("SMTP_HOST is not configured")

        msg = self.build_message(message)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

        logger.debug("Sent %s to %s via %s", msg["Message-ID"], message.to, self.host)
        return msg["Message-ID"]


class MockTransport(MailTransport):
    """
    In-memory transport for testing and development.

    Messages are kept in `sent` instead of being delivered.
    """

    def __init__(self, fail_for: List[str] = None):
        self.sent: List[OutgoingMessage] = []
        self.fail_for = set(fail_for or [])

    @property
    def name(self) -> str:
        return "mock"

    def send(self, message: OutgoingMessage) -> str:
        if message.to in self.fail_for:
            raise ConnectionError(f"mock transport refused {message.to}")
        self.sent.append(message)
        logger.info("[mock mail] %s -> %s", message.subject, message.to)
        return f"<mock-{len(self.sent)}@localhost>"

    def clear(self) -> None:
        self.sent.clear()
