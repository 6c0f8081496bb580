"""
Quote Digest Engine - wiring and lifecycle.

This module builds every component exactly once and injects them into
each other:

    Store → Allocator / Selector / Subscriptions
    Store + Queue → Scheduler (producer)
    Selector + Transport → Worker (the queue's single consumer)

The queue backend and the mail transport are chosen here, from settings,
and nowhere else.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import logging
import random
import threading

from quotedigest.config import Settings
from quotedigest.digest import DigestScheduler, DigestWorker
from quotedigest.jobs import JobQueue, QueueEvent, create_queue
from quotedigest.mail import MailTransport, MockTransport, SmtpTransport
from quotedigest.models.job import Job
from quotedigest.models.quote import Quote
from quotedigest.quotes import QuoteIndexAllocator, QuoteSelector
from quotedigest.storage import AirtableStore, MockAirtableStore, Store
from quotedigest.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)


# =============================================================================
# Queue statistics
# =============================================================================

@dataclass
class QueueStats:
    """Counters fed by queue event listeners."""
    completed: int = 0
    failed: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_event_at: Optional[datetime] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def on_completed(self, job: Job, result) -> None:
        with self._lock:
            self.completed += 1
            self.last_event_at = datetime.now()

    def on_failed(self, job: Job, error: BaseException) -> None:
        with self._lock:
            self.failed += 1
            self.last_error = f"{type(error).__name__}: {error}"
            self.last_event_at = datetime.now()

    def on_error(self, error: BaseException) -> None:
        with self._lock:
            self.errors += 1
            self.last_error = f"{type(error).__name__}: {error}"
            self.last_event_at = datetime.now()

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "completed": self.completed,
                "failed": self.failed,
                "errors": self.errors,
                "last_error": self.last_error,
                "last_event_at": self.last_event_at.isoformat() if self.last_event_at else None,
            }


def _log_completed(job: Job, result) -> None:
    logger.info("Digest job %s completed: %s", job.id, result)


def _log_failed(job: Job, error: BaseException) -> None:
    logger.error("Digest job %s for %s failed: %s", job.id, job.payload.recipients, error)


def _log_error(error: BaseException) -> None:
    logger.error("Queue error: %s", error)


# =============================================================================
# Engine
# =============================================================================

class QuoteDigestEngine:
    """
    Composition root for Quote Digest.

    Usage:
        engine = QuoteDigestEngine()
        engine.start()
        quote = engine.pick_random_approved()
        engine.enqueue_digest_for_all_active()
        engine.shutdown()

    Every collaborator can be passed in; anything omitted is built from
    settings.
    """

    def __init__(
        self,
        settings: Settings = None,
        store: Store = None,
        queue: JobQueue = None,
        transport: MailTransport = None,
        rng: random.Random = None,
    ):
        self.settings = settings or Settings.from_env()
        self.store = store or self._get_storage()
        self.queue = queue or create_queue(self.settings)
        self.transport = transport or self._get_transport()

        self.allocator = QuoteIndexAllocator(self.store)
        self.selector = QuoteSelector(self.store, self.settings.scan_batch_size, rng)
        self.subscriptions = SubscriptionService(self.store)
        self.worker = DigestWorker(self.selector, self.transport)
        self.scheduler = DigestScheduler(self.store, self.queue, self.settings.digest_cron)

        self.stats = QueueStats()
        self.queue.on(QueueEvent.COMPLETED, _log_completed)
        self.queue.on(QueueEvent.FAILED, _log_failed)
        self.queue.on(QueueEvent.ERROR, _log_error)
        self.queue.on(QueueEvent.COMPLETED, self.stats.on_completed)
        self.queue.on(QueueEvent.FAILED, self.stats.on_failed)
        self.queue.on(QueueEvent.ERROR, self.stats.on_error)

    def _get_storage(self) -> Store:
        """Get the configured storage backend."""
        if self.settings.airtable_api_key:
            return AirtableStore(
                api_key=self.settings.airtable_api_key,
                base_id=self.settings.airtable_base_id,
                quotes_table=self.settings.airtable_quotes_table,
                subscribers_table=self.settings.airtable_subscribers_table,
                timeout=self.settings.request_timeout,
            )
        logger.warning("AIRTABLE_API_KEY not set, using in-memory store")
        return MockAirtableStore()

    def _get_transport(self) -> MailTransport:
        """Get the configured mail transport."""
        if self.settings.smtp_host:
            return SmtpTransport(
                host=self.settings.smtp_host,
                port=self.settings.smtp_port,
                username=self.settings.smtp_username,
                password=self.settings.smtp_password,
                use_tls=self.settings.smtp_use_tls,
                sender=self.settings.mail_from,
                timeout=self.settings.request_timeout,
            )
        logger.warning("SMTP_HOST not set, digests will be logged instead of sent")
        return MockTransport()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start_worker(self) -> None:
        """Register the digest worker as the queue's handler (serial sends)."""
        if not self.queue.has_handler:
            self.queue.process(1, self.worker.handle)

    def start(self, schedule: bool = True) -> None:
        """Start consuming jobs and, optionally, the weekly trigger."""
        self.start_worker()
        if schedule:
            self.scheduler.start()

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        self.queue.close()

    # =========================================================================
    # Operations exposed to the web and CLI layers
    # =========================================================================

    def pick_random_approved(self) -> Quote:
        return self.selector.pick_random_approved()

    def enqueue_digest_for_all_active(self) -> int:
        return self.scheduler.enqueue_digest_for_all_active()

    def trigger_digest(self) -> int:
        return self.scheduler.trigger_manual()

    def submit_quote(self, text: str, author: str, area: str) -> Quote:
        return self.allocator.submit(text, author, area)

    def subscribe(self, email: str) -> str:
        return self.subscriptions.subscribe(email)

    def unsubscribe(self, email: str) -> None:
        self.subscriptions.unsubscribe(email)

    def health(self) -> dict:
        return {
            "status": "ok",
            "store": self.store.name,
            "queue": self.queue.name,
            "transport": self.transport.name,
            "scheduler_running": self.scheduler.running,
            "digest_cron": self.scheduler.cron_expression,
            "jobs": self.stats.to_dict(),
        }
