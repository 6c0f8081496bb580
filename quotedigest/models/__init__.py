"""
Data models module.

Defines data structures for quotes, subscribers and digest jobs.
"""

from quotedigest.models.quote import Quote, clean_text
from quotedigest.models.subscriber import Subscriber, normalize_email, EMAIL_PATTERN
from quotedigest.models.job import Job, JobStatus, DigestPayload

__all__ = [
    "Quote",
    "clean_text",
    "Subscriber",
    "normalize_email",
    "EMAIL_PATTERN",
    "Job",
    "JobStatus",
    "DigestPayload",
]
