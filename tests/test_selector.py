"""
Tests for random approved quote selection.

Covers the bounded scan-with-wraparound: forward batch from a random
target, one wraparound batch from the start, and the typed failures.
"""

import random

import pytest

from quotedigest.errors import EmptyCorpus, NoApprovedQuotes, NotFound
from quotedigest.quotes.selector import QuoteSelector

from tests.helpers import fixed_rng, make_quote, make_store


class TestEmptyAndUnapproved:
    """Failures when nothing can be selected."""

    def test_empty_corpus_raises(self):
        """
        GIVEN: A store with no quotes
        WHEN: A quote is requested
        THEN: EmptyCorpus is raised without scanning
        """
        store = make_store()
        selector = QuoteSelector(store, rng=fixed_rng(1))

        with pytest.raises(EmptyCorpus):
            selector.pick_random_approved()
        assert store.scan_calls == []

    def test_no_approved_quotes_after_both_scans(self):
        """
        GIVEN: Quotes 1..5, none approved
        WHEN: A quote is requested
        THEN: NoApprovedQuotes is raised after the forward and wraparound scans
        """
        store = make_store(count=5)
        selector = QuoteSelector(store, rng=fixed_rng(3))

        with pytest.raises(NoApprovedQuotes):
            selector.pick_random_approved()
        assert store.scan_calls == [(3, 20), (None, 20)]

    def test_failures_are_not_found(self):
        """Both failures share the NotFound base."""
        assert issubclass(EmptyCorpus, NotFound)
        assert issubclass(NoApprovedQuotes, NotFound)


class TestScenarios:
    """End-to-end selection scenarios."""

    def test_forward_scan_finds_later_approved_quote(self):
        """
        GIVEN: Quotes 1..5, only #4 approved
        WHEN: The random target is any of 1..4
        THEN: Quote #4 is returned from the forward batch
        """
        for target in range(1, 5):
            store = make_store(count=5, approved=[4])
            selector = QuoteSelector(store, rng=fixed_rng(target))

            quote = selector.pick_random_approved()

            assert quote.index == 4
            assert store.scan_calls == [(target, 20)]

    def test_wraparound_finds_earlier_approved_quote(self):
        """
        GIVEN: Quotes 1..5, only #2 approved, target 5
        WHEN: A quote is requested
        THEN: The forward batch (#5) misses and the wraparound finds #2
        """
        store = make_store(count=5, approved=[2])
        selector = QuoteSelector(store, rng=fixed_rng(5))

        quote = selector.pick_random_approved()

        assert quote.index == 2
        assert store.scan_calls == [(5, 20), (None, 20)]

    def test_target_drawn_from_one_to_max(self):
        """randint is called with the inclusive range [1, max index]."""
        store = make_store(count=7, approved=[7])
        rng = fixed_rng(6)
        QuoteSelector(store, rng=rng).pick_random_approved()

        rng.randint.assert_called_once_with(1, 7)


class TestBatchBehaviour:
    """Batch size, gaps and the documented bias."""

    def test_returns_first_approved_in_batch(self):
        """The lowest approved index at or above the target wins."""
        store = make_store(count=10, approved=[6, 8])
        quote = QuoteSelector(store, rng=fixed_rng(3)).pick_random_approved()
        assert quote.index == 6

    def test_tolerates_index_gaps(self):
        """
        GIVEN: Quotes 1..6 with #3 and #4 deleted, #5 approved
        WHEN: The target lands in the gap
        THEN: The scan continues to the next existing index
        """
        store = make_store(count=6, approved=[5])
        store.delete(3)
        store.delete(4)

        quote = QuoteSelector(store, rng=fixed_rng(3)).pick_random_approved()

        assert quote.index == 5

    def test_max_index_counts_unapproved_quotes(self):
        """The target range covers unapproved quotes too."""
        store = make_store(count=50, approved=[1])
        rng = fixed_rng(50)
        quote = QuoteSelector(store, rng=rng).pick_random_approved()

        rng.randint.assert_called_once_with(1, 50)
        assert quote.index == 1

    def test_sparse_approvals_can_fail_spuriously(self):
        """
        GIVEN: 30 quotes, only #25 approved, K = 20, target 1
        WHEN: A quote is requested
        THEN: Both batches cover 1..20 only and selection fails
        """
        store = make_store(count=30, approved=[25])
        selector = QuoteSelector(store, batch_size=20, rng=fixed_rng(1))

        with pytest.raises(NoApprovedQuotes):
            selector.pick_random_approved()

    def test_custom_batch_size(self):
        """The configured K is passed to every scan."""
        store = make_store(count=10, approved=[1])
        selector = QuoteSelector(store, batch_size=3, rng=fixed_rng(5))

        quote = selector.pick_random_approved()

        assert quote.index == 1
        assert store.scan_calls == [(5, 3), (None, 3)]

    def test_invalid_batch_size_rejected(self):
        with pytest.raises(ValueError):
            QuoteSelector(make_store(), batch_size=0)


class TestProperties:
    """Properties that hold for any corpus and any draw."""

    def test_never_returns_unapproved_and_scans_at_most_twice(self):
        """
        GIVEN: Randomly generated corpora with at least one approved quote
            among the first K
        WHEN: A quote is requested with a real random source
        THEN: It is approved and at most two batches were read
        """
        gen = random.Random(1234)

        for _ in range(200):
            count = gen.randint(1, 60)
            approved = {gen.randint(1, min(count, 20))}
            approved.update(i for i in range(1, count + 1) if gen.random() < 0.1)

            store = make_store(count=count, approved=sorted(approved))
            selector = QuoteSelector(store, rng=random.Random(gen.random()))

            quote = selector.pick_random_approved()

            assert quote.approved
            assert len(store.scan_calls) <= 2

    def test_returns_quote_object_from_store(self):
        store = make_store()
        stored = make_quote(1, approved=True, text="Stay hungry")
        store.insert_quote(stored)

        assert QuoteSelector(store, rng=fixed_rng(1)).pick_random_approved() is stored
