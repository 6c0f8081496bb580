"""
Tests for the digest worker (consumer) and scheduler (producer).
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from quotedigest.digest import DigestScheduler, DigestWorker
from quotedigest.digest.scheduler import DIGEST_TEMPLATE, build_trigger, digest_subject
from quotedigest.digest.worker import iso_week
from quotedigest.errors import (
    DeliveryFailed,
    NoApprovedQuotes,
    NoSubscribers,
    QueueUnavailable,
)
from quotedigest.jobs.base import JobQueue
from quotedigest.mail import MockTransport
from quotedigest.models.job import DigestPayload, JobStatus
from quotedigest.models.subscriber import Subscriber
from quotedigest.quotes.selector import QuoteSelector

from tests.helpers import fixed_rng, make_quote, make_store


def payload_for(*emails) -> DigestPayload:
    return DigestPayload(
        template=DIGEST_TEMPLATE,
        recipients=list(emails),
        subject=digest_subject(2),
        context={"week": 2, "year": 2025},
    )


# =============================================================================
# Worker
# =============================================================================

class TestDigestWorker:
    def make_worker(self, approved=(2,), transport=None):
        store = make_store(count=3, approved=approved)
        selector = QuoteSelector(store, rng=fixed_rng(1))
        return DigestWorker(selector, transport or MockTransport())

    def test_sends_one_digest(self):
        """
        GIVEN: An approved quote and a working transport
        WHEN: A single-recipient job is handled
        THEN: One message is sent containing the quote
        """
        worker = self.make_worker()

        result = worker.handle("job-1", payload_for("alice@example.com"))

        sent = worker.transport.sent
        assert len(sent) == 1
        assert sent[0].to == "alice@example.com"
        assert sent[0].subject == "Your quote for week 2"
        assert "Quote number 2" in sent[0].text
        assert "Quote number 2" in sent[0].html
        assert "alice@example.com" in sent[0].text
        assert result == {
            "recipient": "alice@example.com",
            "quote_index": 2,
            "message_id": "<mock-1@localhost>",
        }

    def test_html_body_is_escaped(self):
        store = make_store()
        store.insert_quote(make_quote(1, approved=True, author="A & B"))
        worker = DigestWorker(QuoteSelector(store, rng=fixed_rng(1)), MockTransport())

        worker.handle("job-1", payload_for("a@example.com"))

        message = worker.transport.sent[0]
        assert "A &amp; B" in message.html
        assert "A & B" in message.text

    def test_selector_failure_fails_job_without_sending(self):
        worker = self.make_worker(approved=())

        with pytest.raises(NoApprovedQuotes):
            worker.handle("job-1", payload_for("alice@example.com"))
        assert worker.transport.sent == []

    def test_transport_failure_raises_delivery_failed(self):
        transport = MockTransport(fail_for=["alice@example.com"])
        worker = self.make_worker(transport=transport)

        with pytest.raises(DeliveryFailed) as exc:
            worker.handle("job-1", payload_for("alice@example.com"))

        assert exc.value.recipient == "alice@example.com"
        assert "refused" in exc.value.reason
        assert isinstance(exc.value.__cause__, ConnectionError)

    def test_requires_exactly_one_recipient(self):
        worker = self.make_worker()
        with pytest.raises(ValueError):
            worker.handle("job-1", payload_for("a@example.com", "b@example.com"))
        with pytest.raises(ValueError):
            worker.handle("job-1", payload_for())
        assert worker.transport.sent == []

    def test_failure_reported_through_queue(self, queue):
        """
        GIVEN: The worker registered on a queue, no approved quotes
        WHEN: A job runs
        THEN: The queue emits one failed event carrying the selector error
        """
        worker = self.make_worker(approved=())
        failures = []
        queue.on("failed", lambda job, error: failures.append(error))
        queue.process(1, worker.handle)

        job = queue.add(payload_for("alice@example.com"))
        queue.wait_until_idle(timeout=5)

        assert job.status is JobStatus.FAILED
        assert len(failures) == 1
        assert isinstance(failures[0], NoApprovedQuotes)

    def test_iso_week(self):
        assert iso_week(datetime(2025, 1, 6)) == {"week": 2, "year": 2025}
        assert iso_week(datetime(2024, 12, 30)) == {"week": 1, "year": 2025}


# =============================================================================
# Scheduler
# =============================================================================

class TestEnqueue:
    def test_one_job_per_active_subscriber(self):
        """
        GIVEN: 3 active subscribers and 1 inactive
        WHEN: The digest run fires
        THEN: Exactly 3 jobs are added, each for a distinct single recipient
        """
        store = make_store(subscribers=["c@example.com", "a@example.com", "b@example.com"])
        inactive = Subscriber(email="gone@example.com")
        inactive.deactivate(datetime(2025, 1, 1))
        store.save_subscriber(inactive)
        queue = Mock(spec=JobQueue)
        queue.name = "mock"

        count = DigestScheduler(store, queue).enqueue_digest_for_all_active(
            now=datetime(2025, 1, 6)
        )

        assert count == 3
        assert queue.add.call_count == 3
        payloads = [call.args[0] for call in queue.add.call_args_list]
        assert [p.recipients for p in payloads] == [
            ["a@example.com"],
            ["b@example.com"],
            ["c@example.com"],
        ]
        for payload in payloads:
            assert payload.template == "digest"
            assert payload.subject == "Your quote for week 2"
            assert payload.context == {"week": 2, "year": 2025}

    def test_no_subscribers_enqueues_nothing(self):
        queue = Mock(spec=JobQueue)
        count = DigestScheduler(make_store(), queue).enqueue_digest_for_all_active()

        assert count == 0
        queue.add.assert_not_called()

    def test_manual_trigger_without_subscribers(self):
        with pytest.raises(NoSubscribers):
            DigestScheduler(make_store(), Mock(spec=JobQueue)).trigger_manual()

    def test_manual_trigger_returns_count(self):
        queue = Mock(spec=JobQueue)
        queue.name = "mock"
        store = make_store(subscribers=["a@example.com", "b@example.com"])

        assert DigestScheduler(store, queue).trigger_manual() == 2

    def test_queue_unavailable_propagates(self):
        queue = Mock(spec=JobQueue)
        queue.add.side_effect = QueueUnavailable("redis down")
        store = make_store(subscribers=["a@example.com"])

        with pytest.raises(QueueUnavailable):
            DigestScheduler(store, queue).trigger_manual()

    def test_scheduled_run_swallows_and_logs(self, caplog):
        queue = Mock(spec=JobQueue)
        queue.add.side_effect = QueueUnavailable("redis down")
        scheduler = DigestScheduler(make_store(subscribers=["a@example.com"]), queue)

        scheduler._scheduled_run()

        assert "Scheduled digest run failed" in caplog.text


class TestTimedTrigger:
    def test_start_and_shutdown(self):
        scheduler = DigestScheduler(make_store(), Mock(spec=JobQueue), "0 9 * * 1")
        assert not scheduler.running
        assert scheduler.next_run_time() is None

        scheduler.start()
        try:
            assert scheduler.running
            next_run = scheduler.next_run_time()
            assert next_run is not None
            assert next_run.weekday() == 0
            assert (next_run.hour, next_run.minute) == (9, 0)
        finally:
            scheduler.shutdown()

        assert not scheduler.running

    def test_start_is_idempotent(self):
        scheduler = DigestScheduler(make_store(), Mock(spec=JobQueue))
        scheduler.start()
        first = scheduler._scheduler
        try:
            scheduler.start()
            assert scheduler._scheduler is first
        finally:
            scheduler.shutdown()

    def test_invalid_cron_rejected(self):
        scheduler = DigestScheduler(make_store(), Mock(spec=JobQueue), "every monday")
        with pytest.raises(ValueError):
            scheduler.start()
        assert not scheduler.running


class TestCronDays:
    """Crontab day-of-week numbers follow the standard 0 = Sunday convention."""

    SATURDAY_NOON = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

    def next_fire(self, expression):
        trigger = build_trigger(expression, timezone="UTC")
        return trigger.get_next_fire_time(None, self.SATURDAY_NOON)

    def test_default_fires_monday_morning(self):
        """
        GIVEN: The default "0 9 * * 1" expression
        WHEN: The next fire time is computed from a Saturday
        THEN: It is the following Monday at 09:00
        """
        fire = self.next_fire("0 9 * * 1")

        assert fire.weekday() == 0
        assert (fire.year, fire.month, fire.day, fire.hour) == (2026, 10, 19, 9)

    def test_zero_and_seven_are_sunday(self):
        assert self.next_fire("0 9 * * 0").weekday() == 6
        assert self.next_fire("0 9 * * 7").weekday() == 6

    def test_range_and_step(self):
        assert self.next_fire("0 9 * * 1-5").weekday() == 0
        assert self.next_fire("0 9 * * */2").weekday() == 6

    def test_day_names_pass_through(self):
        assert self.next_fire("0 9 * * fri").weekday() == 4
        assert self.next_fire("0 9 * * mon-fri").weekday() == 0

    def test_invalid_day_rejected(self):
        with pytest.raises(ValueError):
            build_trigger("0 9 * * 9")
        with pytest.raises(ValueError):
            build_trigger("0 9 * *")
