"""
Job data model for the digest queue.

A Job is owned by the queue for its whole life: created by add(),
settled when the registered handler returns or raises.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class DigestPayload:
    """
    What a digest job carries.

    Attributes:
        template: Template name to render (e.g. "digest").
        recipients: Exactly one email address.
        subject: Email subject line.
        context: Extra render context (ISO week number, etc.).
    """
    template: str
    recipients: List[str]
    subject: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "template": self.template,
            "recipients": list(self.recipients),
            "subject": self.subject,
            "context": dict(self.context),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DigestPayload":
        return cls(
            template=data["template"],
            recipients=list(data["recipients"]),
            subject=data["subject"],
            context=dict(data.get("context") or {}),
        )


@dataclass
class Job:
    """A unit of work tracked by a JobQueue."""
    payload: DigestPayload
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: JobStatus = JobStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    def mark_succeeded(self, result: Any) -> None:
        self.status = JobStatus.SUCCEEDED
        self.result = result
        self.finished_at = datetime.now()

    def mark_failed(self, error: BaseException) -> None:
        self.status = JobStatus.FAILED
        self.error = f"{type(error).__name__}: {error}"
        self.finished_at = datetime.now()

    @property
    def is_settled(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    def __repr__(self) -> str:
        return f"<Job id={self.id} status={self.status.value} recipients={self.payload.recipients}>"
