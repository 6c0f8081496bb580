"""
Error taxonomy for Quote Digest.

Every failure the engine exposes to its callers is one of these types;
raw transport exceptions (requests, redis, smtplib) are wrapped before
they leave the component that caught them.
"""


class QuoteDigestError(Exception):
    """Base class for all Quote Digest errors."""


class ValidationError(QuoteDigestError, ValueError):
    """Malformed input (bad email, empty quote fields)."""


class StorageError(QuoteDigestError):
    """The document store could not be read or written."""


# =============================================================================
# Selection
# =============================================================================

class NotFound(QuoteDigestError):
    """The selector could not satisfy the request."""


class EmptyCorpus(NotFound):
    """No quotes have ever been allocated."""

    def __init__(self, message: str = "no quotes exist"):
        super().__init__(message)


class NoApprovedQuotes(NotFound):
    """Quotes exist but neither scan batch contained an approved one."""

    def __init__(self, message: str = "no approved quotes found"):
        super().__init__(message)


# =============================================================================
# Subscriptions
# =============================================================================

class AlreadySubscribed(QuoteDigestError):
    """Signup for an email that is already active."""


class NotSubscribed(QuoteDigestError):
    """Unsubscribe for an email that is unknown or already inactive."""


class NoSubscribers(QuoteDigestError):
    """A manual digest run found no active subscribers."""

    def __init__(self, message: str = "no subscribers"):
        super().__init__(message)


# =============================================================================
# Queue and delivery
# =============================================================================

class QueueUnavailable(QuoteDigestError):
    """The durable queue backend could not be reached at enqueue time."""


class DeliveryFailed(QuoteDigestError):
    """The mail transport raised while sending a digest."""

    def __init__(self, recipient: str, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"delivery to {recipient} failed: {reason}")
