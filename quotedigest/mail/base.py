"""
Base mail transport abstraction.

The digest worker only needs "send this rendered message to one
address"; SMTP, an HTTP mail API, or a test double can sit behind it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class OutgoingMessage:
    to: str
    subject: str
    html: str
    text: str


class MailTransport(ABC):
    """Abstract base class for outbound mail."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def send(self, message: OutgoingMessage) -> str:
        """
        Send one message.

        Returns:
            A message id for logging.

        Raises:
            Any exception on failure; the caller decides how to report it.
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
