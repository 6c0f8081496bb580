"""
Redis-backed durable job queue.

Keys (prefix = queue name):

    <prefix>:pending       list of job ids waiting to run
    <prefix>:processing    list of job ids claimed by a worker
    <prefix>:job:<id>      hash with data, status, result/error, timestamps

Workers claim a job by atomically moving its id from pending to
processing (BLMOVE), stamp started_at with HSETNX before running it,
and remove the id once the job settles. A job whose started_at is
already set is never run again, so delivery is at most once per job.
An id left in processing by a worker that died stays there with status
"running"; it is not requeued. There is no automatic retry of jobs
whose handler raised.
"""

from datetime import datetime
from typing import Any, List, Optional
import json
import logging
import threading

import redis

from quotedigest.config import (
    QUEUE_NAME,
    REDIS_DB,
    REDIS_HOST,
    REDIS_PASSWORD,
    REDIS_PORT,
)
from quotedigest.errors import QueueUnavailable
from quotedigest.jobs.base import JobQueue, QueueEvent
from quotedigest.models.job import DigestPayload, Job, JobStatus

logger = logging.getLogger(__name__)


class RedisJobQueue(JobQueue):
    """
    Durable queue over Redis lists.

    Configuration is pulled from quotedigest.config unless a client is
    passed in:
    - REDIS_HOST / REDIS_PORT / REDIS_PASSWORD / REDIS_DB
    - QUEUE_NAME: key prefix
    """

    def __init__(
        self,
        client: redis.Redis = None,
        host: str = None,
        port: int = None,
        password: str = None,
        db: int = None,
        queue_name: str = None,
        poll_timeout: int = 1,
        error_backoff: float = 1.0,
    ):
        super().__init__()
        self.queue_name = queue_name if queue_name is not None else QUEUE_NAME
        self.poll_timeout = poll_timeout
        self.error_backoff = error_backoff

        if client is None:
            client = redis.Redis(
                host=host if host is not None else REDIS_HOST,
                port=port if port is not None else REDIS_PORT,
                password=(password if password is not None else REDIS_PASSWORD) or None,
                db=db if db is not None else REDIS_DB,
                decode_responses=True,
                socket_connect_timeout=5,
                # Must outlive the BLMOVE poll
                socket_timeout=poll_timeout + 5,
            )
        self.client = client

        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    @property
    def name(self) -> str:
        return "redis"

    @property
    def pending_key(self) -> str:
        return f"{self.queue_name}:pending"

    @property
    def processing_key(self) -> str:
        return f"{self.queue_name}:processing"

    def job_key(self, job_id: str) -> str:
        return f"{self.queue_name}:job:{job_id}"

    # =========================================================================
    # Serialization
    # =========================================================================

    @staticmethod
    def _dump_job(job: Job) -> str:
        return json.dumps({
            "id": job.id,
            "payload": job.payload.to_dict(),
            "created_at": job.created_at.isoformat(),
        })

    @staticmethod
    def _load_job(raw: str) -> Job:
        data = json.loads(raw)
        return Job(
            id=data["id"],
            payload=DigestPayload.from_dict(data["payload"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    # =========================================================================
    # Producer side
    # =========================================================================

    def add(self, payload: DigestPayload) -> Job:
        """
        Store the job and push its id onto the pending list.

        Raises:
            QueueUnavailable: Redis could not be reached.
        """
        job = Job(payload=payload)

        try:
            pipe = self.client.pipeline()
            pipe.hset(self.job_key(job.id), mapping={
                "data": self._dump_job(job),
                "status": JobStatus.PENDING.value,
                "created_at": job.created_at.isoformat(),
            })
            pipe.rpush(self.pending_key, job.id)
            pipe.execute()
        except redis.RedisError as e:
            logger.error("Could not enqueue job for %s: %s", payload.recipients, e)
            raise QueueUnavailable(f"redis queue unavailable: {e}") from e

        logger.debug("Queued job %s for %s", job.id, payload.recipients)
        return job

    # =========================================================================
    # Consumer side
    # =========================================================================

    def _claim(self, job_id: str) -> bool:
        """
        Mark a job as started. Only the first claim succeeds, so an id
        that reappears in the pending list is never run twice.
        """
        first = self.client.hsetnx(self.job_key(job_id), "started_at", datetime.now().isoformat())
        if first:
            self.client.hset(self.job_key(job_id), "status", JobStatus.RUNNING.value)
        return bool(first)

    def _discard(self, job_id: str, reason: str) -> None:
        """Settle an unrunnable job as failed and drop it from processing."""
        pipe = self.client.pipeline()
        pipe.hset(self.job_key(job_id), mapping={
            "status": JobStatus.FAILED.value,
            "error": reason,
            "finished_at": datetime.now().isoformat(),
        })
        pipe.lrem(self.processing_key, 1, job_id)
        pipe.execute()

    def run_once(self, timeout: Optional[float] = None) -> Optional[Job]:
        """
        Claim and run at most one job.

        Args:
            timeout: Seconds to block waiting for a job. Defaults to
                poll_timeout.

        Returns:
            The settled Job, or None if nothing was run.
        """
        if self._handler is None:
            raise RuntimeError("no handler registered; call process() first")

        job_id = self.client.blmove(
            self.pending_key,
            self.processing_key,
            self.poll_timeout if timeout is None else timeout,
            "LEFT",
            "RIGHT",
        )
        if job_id is None:
            return None

        raw = self.client.hget(self.job_key(job_id), "data")
        if raw is None:
            logger.warning("Dropping job %s: no data stored", job_id)
            self.client.lrem(self.processing_key, 1, job_id)
            return None

        if not self._claim(job_id):
            logger.warning("Skipping job %s: already started by another worker", job_id)
            self.client.lrem(self.processing_key, 1, job_id)
            return None

        try:
            job = self._load_job(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Dropping job %s: unreadable record: %s", job_id, e)
            self._discard(job_id, f"{type(e).__name__}: {e}")
            self.events.emit(QueueEvent.ERROR, e)
            return None

        self._execute(job)
        self._record_outcome(job)
        return job

    def _record_outcome(self, job: Job) -> None:
        fields = {
            "status": job.status.value,
            "finished_at": job.finished_at.isoformat(),
        }
        if job.status is JobStatus.SUCCEEDED:
            fields["result"] = json.dumps(job.result, default=str)
        else:
            fields["error"] = job.error or ""

        pipe = self.client.pipeline()
        pipe.hset(self.job_key(job.id), mapping=fields)
        pipe.lrem(self.processing_key, 1, job.id)
        pipe.execute()

    def _start_workers(self, concurrency: int) -> None:
        self._stop.clear()
        for i in range(concurrency):
            thread = threading.Thread(
                target=self._worker_loop,
                name=f"{self.queue_name}-redis-worker-{i}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def _worker_loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except redis.RedisError as e:
                logger.error("Redis error in %s worker: %s", self.queue_name, e)
                self.events.emit(QueueEvent.ERROR, QueueUnavailable(str(e)))
                self._stop.wait(self.error_backoff)
            except Exception as e:
                logger.exception("Unexpected error in %s worker", self.queue_name)
                self.events.emit(QueueEvent.ERROR, e)
                self._stop.wait(self.error_backoff)

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_status(self, job_id: str) -> Optional[str]:
        return self.client.hget(self.job_key(job_id), "status")

    def pending(self) -> int:
        return self.client.llen(self.pending_key)

    def close(self, timeout: float = None) -> None:
        self._stop.set()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout if timeout is not None else self.poll_timeout + 1)
        self._threads.clear()
