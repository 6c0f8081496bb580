"""
Mail module.

Outbound transports and digest template rendering.
"""

from quotedigest.mail.base import MailTransport, OutgoingMessage
from quotedigest.mail.smtp import SmtpTransport, MockTransport
from quotedigest.mail.renderer import DigestRenderer

__all__ = [
    "MailTransport",
    "OutgoingMessage",
    "SmtpTransport",
    "MockTransport",
    "DigestRenderer",
]
