"""
Base job queue abstraction for Quote Digest.

Defines the add / process / on contract shared by every backend, the
event registry, and the handler execution step so that both backends
settle jobs and emit events identically.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
import logging
import threading

from quotedigest.models.job import DigestPayload, Job

logger = logging.getLogger(__name__)

# (job_id, payload) -> result
Handler = Callable[[str, DigestPayload], Any]


class QueueEvent(str, Enum):
    COMPLETED = "completed"  # (job, result)
    FAILED = "failed"        # (job, error)
    ERROR = "error"          # (error)


class QueueEvents:
    """
    Listener registry for queue lifecycle events.

    Listeners are notifications only: the job has already settled when
    they run, and a listener that raises is logged and skipped.
    """

    def __init__(self):
        self._listeners: Dict[QueueEvent, List[Callable]] = {event: [] for event in QueueEvent}
        self._lock = threading.Lock()

    def on(self, event: Union[QueueEvent, str], callback: Callable) -> None:
        event = QueueEvent(event)
        with self._lock:
            self._listeners[event].append(callback)

    def emit(self, event: QueueEvent, *args) -> None:
        with self._lock:
            listeners = list(self._listeners[event])

        for callback in listeners:
            try:
                callback(*args)
            except Exception:
                logger.exception("Listener %r for %s event raised", callback, event.value)

    def listener_count(self, event: Union[QueueEvent, str]) -> int:
        with self._lock:
            return len(self._listeners[QueueEvent(event)])


class JobQueue(ABC):
    """
    Abstract base class for job queue backends.

    Implementations must provide:
    - add(payload): enqueue one job and return its handle
    - _start_workers(concurrency): begin dispatching to the handler
    - close(): stop dispatching

    Jobs are dispatched in add() order. Exactly one handler may be
    registered, via process().
    """

    def __init__(self):
        self.events = QueueEvents()
        self._handler: Optional[Handler] = None
        self._concurrency = 0

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name, used for logging and health output."""
        pass

    @abstractmethod
    def add(self, payload: DigestPayload) -> Job:
        """
        Enqueue a job without waiting for it to run.

        Returns:
            The pending Job.
        """
        pass

    @abstractmethod
    def _start_workers(self, concurrency: int) -> None:
        pass

    @abstractmethod
    def close(self, timeout: float = None) -> None:
        """Stop dispatching. Jobs still buffered are not run."""
        pass

    def process(self, concurrency: int, handler: Handler) -> None:
        """
        Register the handler and start dispatching.

        Args:
            concurrency: Maximum handlers executing at once (>= 1).
            handler: Called once per job with (job_id, payload).

        Raises:
            ValueError: concurrency < 1.
            RuntimeError: A handler is already registered.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        if self._handler is not None:
            raise RuntimeError(f"{self.name} queue already has a registered handler")

        self._handler = handler
        self._concurrency = concurrency
        logger.info("%s queue processing with concurrency=%d", self.name, concurrency)
        self._start_workers(concurrency)

    def on(self, event: Union[QueueEvent, str], callback: Callable) -> "JobQueue":
        """Register a listener for completed, failed or error."""
        self.events.on(event, callback)
        return self

    @property
    def has_handler(self) -> bool:
        return self._handler is not None

    def _execute(self, job: Job) -> bool:
        """
        Run the handler for one job, settle it, and emit its event.

        Returns:
            True if the job succeeded.
        """
        try:
            result = self._handler(job.id, job.payload)
        except Exception as e:
            job.mark_failed(e)
            logger.warning("Job %s failed: %s", job.id, job.error)
            self.events.emit(QueueEvent.FAILED, job, e)
            return False

        job.mark_succeeded(result)
        logger.debug("Job %s completed", job.id)
        self.events.emit(QueueEvent.COMPLETED, job, result)
        return True

    def __str__(self) -> str:
        return f"JobQueue({self.name})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
