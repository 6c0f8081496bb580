"""
In-process job queue.

Fallback backend used when no broker is configured. Jobs live in a
deque guarded by a condition variable and are run by daemon worker
threads. Nothing is persisted: a crash before a job runs loses it, and
a failed job is reported once and never requeued.

Jobs added before process() stay buffered and run once a handler is
registered.
"""

from collections import deque
from typing import Deque, List
import logging
import threading

from quotedigest.jobs.base import JobQueue
from quotedigest.models.job import DigestPayload, Job

logger = logging.getLogger(__name__)


class InProcessJobQueue(JobQueue):
    """
    Thread-backed FIFO queue.

    Usage:
        queue = InProcessJobQueue()
        queue.process(1, handler)
        queue.add(payload)
        queue.wait_until_idle(timeout=5)
    """

    def __init__(self, queue_name: str = "digest"):
        super().__init__()
        self.queue_name = queue_name
        self._buffer: Deque[Job] = deque()
        self._cond = threading.Condition()
        self._active = 0
        self._closed = False
        self._threads: List[threading.Thread] = []

    @property
    def name(self) -> str:
        return "memory"

    def add(self, payload: DigestPayload) -> Job:
        job = Job(payload=payload)
        with self._cond:
            if self._closed:
                raise RuntimeError(f"queue {self.queue_name!r} is closed")
            self._buffer.append(job)
            self._cond.notify_all()

        logger.debug("Queued job %s for %s", job.id, payload.recipients)
        return job

    def _start_workers(self, concurrency: int) -> None:
        for i in range(concurrency):
            thread = threading.Thread(
                target=self._worker_loop,
                name=f"{self.queue_name}-worker-{i}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def _worker_loop(self) -> None:
        while True:
            with self._cond:
                while not self._buffer and not self._closed:
                    self._cond.wait()
                if self._closed:
                    return
                job = self._buffer.popleft()
                self._active += 1

            try:
                self._execute(job)
            finally:
                with self._cond:
                    self._active -= 1
                    self._cond.notify_all()

    def pending(self) -> int:
        """Number of jobs waiting for a worker."""
        with self._cond:
            return len(self._buffer)

    def wait_until_idle(self, timeout: float = None) -> bool:
        """
        Block until the buffer is empty and no handler is running.

        Returns:
            False if the timeout expired first.
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._buffer and self._active == 0,
                timeout,
            )

    def close(self, timeout: float = None) -> None:
        with self._cond:
            self._closed = True
            dropped = len(self._buffer)
            self._cond.notify_all()

        if dropped:
            logger.warning("Closing %s queue with %d unprocessed jobs", self.queue_name, dropped)

        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout)
