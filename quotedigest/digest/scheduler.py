"""
Digest scheduler: the queue's producer.

Each run reads the active subscriber set and enqueues one job per
subscriber, never one job for many recipients, so that one failed send
cannot hold up the others. Runs fire weekly from a cron trigger or on
demand.
"""

from datetime import datetime
from typing import Optional
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from quotedigest.config import DIGEST_CRON
from quotedigest.digest.worker import iso_week
from quotedigest.errors import NoSubscribers
from quotedigest.jobs.base import JobQueue
from quotedigest.models.job import DigestPayload
from quotedigest.storage.base import Store

logger = logging.getLogger(__name__)

DIGEST_TEMPLATE = "digest"
JOB_ID = "weekly-digest"

# Standard crontab numbering: 0 and 7 are Sunday
_DAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


def digest_subject(week: int) -> str:
    return f"Your quote for week {week}"


def _day_of_week_names(field: str) -> str:
    """
    Rewrite a numeric crontab day-of-week field as day names.

    APScheduler counts weekdays from Monday = 0, so numeric crontab
    days would fire one day late. Names mean the same in both.
    """
    if field == "*":
        return field

    days = []
    for item in field.split(","):
        base, _, step = item.partition("/")
        if base == "*":
            first, last = "0", "6"
        elif "-" in base:
            first, last = base.split("-", 1)
        else:
            first = last = base

        if not (first.isdigit() and last.isdigit()):
            # Already named (mon, mon-fri)
            days.append(item)
            continue

        first, last = int(first), int(last)
        if step and first == last:
            last = 6
        if not (0 <= first <= 7 and 0 <= last <= 7 and first <= last):
            raise ValueError(f"invalid day-of-week field {field!r}")

        for day in range(first, last + 1, int(step) if step else 1):
            name = _DAY_NAMES[day % 7]
            if name not in days:
                days.append(name)

    return ",".join(days)


def build_trigger(cron_expression: str, timezone=None) -> CronTrigger:
    """
    CronTrigger for a standard 5-field crontab expression.

    Raises:
        ValueError: The expression is malformed.
    """
    fields = cron_expression.split()
    if len(fields) != 5:
        raise ValueError(f"cron expression must have 5 fields, got {cron_expression!r}")
    fields[4] = _day_of_week_names(fields[4])
    return CronTrigger.from_crontab(" ".join(fields), timezone=timezone)


class DigestScheduler:
    """
    Usage:
        scheduler = DigestScheduler(store, queue)
        scheduler.start()                 # weekly cron
        scheduler.trigger_manual()        # on demand
    """

    def __init__(self, store: Store, queue: JobQueue, cron_expression: str = None):
        self.store = store
        self.queue = queue
        self.cron_expression = cron_expression or DIGEST_CRON
        self._scheduler: Optional[BackgroundScheduler] = None

    def enqueue_digest_for_all_active(self, now: datetime = None) -> int:
        """
        Enqueue one digest job per active subscriber.

        Returns:
            Number of jobs enqueued (0 when there are no subscribers).

        Raises:
            QueueUnavailable: The durable backend could not be reached.
        """
        subscribers = sorted(self.store.active_subscribers())
        if not subscribers:
            logger.info("Digest run skipped: no active subscribers")
            return 0

        context = iso_week(now)
        subject = digest_subject(context["week"])

        for email in subscribers:
            self.queue.add(DigestPayload(
                template=DIGEST_TEMPLATE,
                recipients=[email],
                subject=subject,
                context=dict(context),
            ))

        logger.info(
            "Enqueued %d digest jobs for week %d on %s queue",
            len(subscribers), context["week"], self.queue.name,
        )
        return len(subscribers)

    def trigger_manual(self, now: datetime = None) -> int:
        """
        On-demand run.

        Raises:
            NoSubscribers: Nothing to send.
            QueueUnavailable: The durable backend could not be reached.
        """
        count = self.enqueue_digest_for_all_active(now)
        if count == 0:
            raise NoSubscribers()
        return count

    def _scheduled_run(self) -> None:
        try:
            self.enqueue_digest_for_all_active()
        except Exception:
            logger.exception("Scheduled digest run failed")

    # =========================================================================
    # Timed trigger
    # =========================================================================

    def start(self) -> None:
        """Start the weekly cron trigger in a background thread."""
        if self._scheduler is not None:
            return

        trigger = build_trigger(self.cron_expression)
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._scheduled_run,
            trigger=trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Digest scheduled with cron %r", self.cron_expression)

    def next_run_time(self) -> Optional[datetime]:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def shutdown(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None
