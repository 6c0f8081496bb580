"""
Job queue module.

One add / process / on contract, two backends: Redis (durable) and an
in-process fallback. create_queue() picks one at startup.
"""

from quotedigest.config import Settings
from quotedigest.jobs.base import Handler, JobQueue, QueueEvent, QueueEvents
from quotedigest.jobs.memory import InProcessJobQueue
from quotedigest.jobs.redis_queue import RedisJobQueue


def create_queue(settings: Settings = None, client=None) -> JobQueue:
    """
    Build the queue backend selected by DURABLE_QUEUE_ENABLED.

    Args:
        settings: Settings to read. Defaults to the environment.
        client: Optional pre-built Redis client (durable backend only).
    """
    settings = settings or Settings.from_env()

    if settings.durable_queue_enabled:
        return RedisJobQueue(
            client=client,
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password,
            db=settings.redis_db,
            queue_name=settings.queue_name,
        )
    return InProcessJobQueue(queue_name=settings.queue_name)


__all__ = [
    "Handler",
    "JobQueue",
    "QueueEvent",
    "QueueEvents",
    "InProcessJobQueue",
    "RedisJobQueue",
    "create_queue",
]
