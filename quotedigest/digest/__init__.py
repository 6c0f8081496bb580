"""
Digest module.

Produces weekly digest jobs and delivers them one subscriber at a time.
"""

from quotedigest.digest.worker import DigestWorker, iso_week
from quotedigest.digest.scheduler import DigestScheduler, digest_subject

__all__ = [
    "DigestWorker",
    "DigestScheduler",
    "digest_subject",
    "iso_week",
]
