"""
Quote index allocation.

Each new quote gets max(index) + 1. The read-then-write is serialized by
a process-local lock; the store itself offers no transaction, so two
processes submitting at the same instant can still collide.
"""

import logging
import threading

from quotedigest.models.quote import Quote
from quotedigest.storage.base import Store

logger = logging.getLogger(__name__)


class QuoteIndexAllocator:
    """Assigns monotonically increasing indices to submitted quotes."""

    def __init__(self, store: Store):
        self.store = store
        self._lock = threading.Lock()

    def next_index(self) -> int:
        """
        Return the index the next submitted quote should receive.

        Returns:
            max index + 1, or 1 when no quotes exist.
        """
        current = self.store.max_index()
        return 1 if current is None else current + 1

    def submit(self, text: str, author: str, area: str) -> Quote:
        """
        Allocate an index and persist a new, unapproved quote.

        Raises:
            ValidationError: If text, author or area is empty after cleaning.
        """
        with self._lock:
            index = self.next_index()
            quote = Quote.from_submission(text, author, area, index)
            stored = self.store.insert_quote(quote)

        logger.info("Stored quote #%d by %s", stored.index, stored.author)
        return stored
