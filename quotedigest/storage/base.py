"""
Base storage abstraction for Quote Digest.

Defines the abstract interface that all storage backends must implement.
The engine needs only three read shapes (max index, ranged scan by index,
active subscriber set); the remaining methods serve quote submission and
signup/unsubscribe.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Set

from quotedigest.models.quote import Quote
from quotedigest.models.subscriber import Subscriber


class Store(ABC):
    """
    Abstract base class for all storage backends.

    Implementations must provide:
    - max_index / scan_by_index over quotes
    - active_subscribers
    - insert_quote, get_subscriber, save_subscriber
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the name of this storage backend.

        Used for logging and debugging.
        """
        pass

    # =========================================================================
    # Quotes
    # =========================================================================

    @abstractmethod
    def max_index(self) -> Optional[int]:
        """
        Highest quote index across all quotes, approved or not.

        Returns:
            The index, or None if no quotes exist.
        """
        pass

    @abstractmethod
    def scan_by_index(self, start: Optional[int], limit: int) -> List[Quote]:
        """
        Read quotes in ascending index order.

        Args:
            start: Inclusive lower bound on index, or None to start from
                the lowest index.
            limit: Maximum number of quotes to return.

        Returns:
            Up to `limit` quotes sorted by index ascending.
        """
        pass

    @abstractmethod
    def insert_quote(self, quote: Quote) -> Quote:
        """
        Persist a new quote.

        Returns:
            The stored quote (its id may be replaced by the store's record id).
        """
        pass

    # =========================================================================
    # Subscribers
    # =========================================================================

    @abstractmethod
    def active_subscribers(self) -> Set[str]:
        """Emails of all subscribers with active = True."""
        pass

    @abstractmethod
    def get_subscriber(self, email: str) -> Optional[Subscriber]:
        """Look up a subscriber by normalized email."""
        pass

    @abstractmethod
    def save_subscriber(self, subscriber: Subscriber) -> None:
        """Insert or update a subscriber keyed by email."""
        pass

    def __str__(self) -> str:
        return f"Store({self.name})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
