"""
Signup and unsubscribe.

Signup is idempotent: an already-active email raises AlreadySubscribed
rather than touching the record, so callers can report it distinctly.
"""

import logging
from datetime import datetime

from quotedigest.errors import AlreadySubscribed, NotSubscribed
from quotedigest.models.subscriber import Subscriber, normalize_email
from quotedigest.storage.base import Store

logger = logging.getLogger(__name__)

SUBSCRIBED = "subscribed"
RESUBSCRIBED = "resubscribed"


class SubscriptionService:
    def __init__(self, store: Store):
        self.store = store

    def subscribe(self, email: str) -> str:
        """
        Subscribe an email to the digest.

        Returns:
            "subscribed" for a new email, "resubscribed" for a reactivated one.

        Raises:
            ValidationError: Malformed email.
            AlreadySubscribed: The email is already active.
        """
        normalized = normalize_email(email)
        existing = self.store.get_subscriber(normalized)

        if existing is None:
            self.store.save_subscriber(Subscriber(email=normalized))
            logger.info("New subscriber %s", normalized)
            return SUBSCRIBED

        if existing.active:
            raise AlreadySubscribed(f"{normalized} is already subscribed")

        existing.reactivate(datetime.now())
        self.store.save_subscriber(existing)
        logger.info("Resubscribed %s", normalized)
        return RESUBSCRIBED

    def unsubscribe(self, email: str) -> None:
        """
        Raises:
            ValidationError: Malformed email.
            NotSubscribed: Unknown or already inactive email.
        """
        normalized = normalize_email(email)
        existing = self.store.get_subscriber(normalized)

        if existing is None or not existing.active:
            raise NotSubscribed(f"{normalized} is not subscribed")

        existing.deactivate(datetime.now())
        self.store.save_subscriber(existing)
        logger.info("Unsubscribed %s", normalized)
