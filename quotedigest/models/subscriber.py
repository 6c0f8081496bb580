"""Subscriber data model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import re

from quotedigest.errors import ValidationError
from quotedigest.models.quote import clean_text

# local@domain.tld, no whitespace
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    """
    Normalize and validate an email address.

    Raises:
        ValidationError: If the address does not look like local@domain.tld.
    """
    normalized = clean_text(email).lower()
    if not normalized or not EMAIL_PATTERN.match(normalized):
        raise ValidationError(f"invalid email address: {email!r}")
    return normalized


@dataclass
class Subscriber:
    """A digest subscriber keyed by normalized email."""

    email: str
    active: bool = True
    subscribed_at: datetime = field(default_factory=datetime.now)
    unsubscribed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.email = normalize_email(self.email)

    def deactivate(self, when: datetime = None) -> None:
        self.active = False
        self.unsubscribed_at = when or datetime.now()

    def reactivate(self, when: datetime = None) -> None:
        self.active = True
        self.subscribed_at = when or datetime.now()
        self.unsubscribed_at = None

    def to_dict(self) -> dict:
        return {
            "email": self.email,
            "active": self.active,
            "subscribed_at": self.subscribed_at.isoformat(),
            "unsubscribed_at": self.unsubscribed_at.isoformat() if self.unsubscribed_at else None,
        }
