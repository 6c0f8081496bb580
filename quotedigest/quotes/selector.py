"""
Random approved quote selection.

Picks a random starting index in [1, max] and returns the first approved
quote in one batch of K quotes from there. If that batch has none, one
more batch is read from the start of the index space. Worst case is 2K
documents read, whatever the corpus size.

Selection is not uniform: an approved quote right after a long run of
unapproved or deleted indices is picked more often, and when approved
quotes sit more than K apart the call can fail even though some exist.
"""

import logging
import random
from typing import Iterable, Optional

from quotedigest.config import SCAN_BATCH_SIZE
from quotedigest.errors import EmptyCorpus, NoApprovedQuotes
from quotedigest.models.quote import Quote
from quotedigest.storage.base import Store

logger = logging.getLogger(__name__)


def _first_approved(quotes: Iterable[Quote]) -> Optional[Quote]:
    for quote in quotes:
        if quote.approved:
            return quote
    return None


class QuoteSelector:
    """
    Bounded scan-with-wraparound picker.

    Usage:
        selector = QuoteSelector(store)
        quote = selector.pick_random_approved()
    """

    def __init__(self, store: Store, batch_size: int = None, rng: random.Random = None):
        """
        Args:
            store: Store to read quotes from.
            batch_size: K, quotes read per scan. Defaults to SCAN_BATCH_SIZE.
            rng: Random source. Defaults to a fresh random.Random().
        """
        self.store = store
        self.batch_size = batch_size if batch_size is not None else SCAN_BATCH_SIZE
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")
        self.rng = rng or random.Random()

    def pick_random_approved(self) -> Quote:
        """
        Return one approved quote.

        Raises:
            EmptyCorpus: No quotes exist.
            NoApprovedQuotes: Neither the forward nor the wraparound batch
                contained an approved quote.
        """
        max_index = self.store.max_index()
        if max_index is None:
            logger.warning("Quote selection failed: corpus is empty")
            raise EmptyCorpus()

        target = self.rng.randint(1, max_index)

        found = _first_approved(self.store.scan_by_index(target, self.batch_size))
        if found:
            return found

        logger.debug("No approved quote in batch from #%d, wrapping around", target)
        found = _first_approved(self.store.scan_by_index(None, self.batch_size))
        if found:
            return found

        logger.warning(
            "Quote selection failed: no approved quote from #%d or from start (K=%d)",
            target,
            self.batch_size,
        )
        raise NoApprovedQuotes()
