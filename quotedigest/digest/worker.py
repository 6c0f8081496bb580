"""
Digest worker: the queue's only handler.

For each job: pick an approved quote, render the digest for the job's
single recipient, send it. A selector failure fails the job (no
placeholder digest is sent); a transport failure is logged and raised as
DeliveryFailed. There is no retry: a failed digest is lost for that run.
"""

from datetime import datetime
from typing import Any, Dict
import logging

from quotedigest.errors import DeliveryFailed
from quotedigest.mail.base import MailTransport, OutgoingMessage
from quotedigest.mail.renderer import DigestRenderer
from quotedigest.models.job import DigestPayload
from quotedigest.quotes.selector import QuoteSelector

logger = logging.getLogger(__name__)


def iso_week(when: datetime = None) -> Dict[str, int]:
    """ISO week number and ISO year for subject personalization."""
    iso = (when or datetime.now()).isocalendar()
    return {"week": iso[1], "year": iso[0]}


class DigestWorker:
    """
    Usage:
        worker = DigestWorker(selector, transport)
        queue.process(1, worker.handle)
    """

    def __init__(
        self,
        selector: QuoteSelector,
        transport: MailTransport,
        renderer: DigestRenderer = None,
    ):
        self.selector = selector
        self.transport = transport
        self.renderer = renderer or DigestRenderer()

    def build_context(self, payload: DigestPayload, quote, recipient: str) -> Dict[str, Any]:
        context = dict(iso_week())
        context.update(payload.context)
        context.update({
            "quote": quote.to_dict(),
            "subject": payload.subject,
            "recipient": recipient,
        })
        return context

    def handle(self, job_id: str, payload: DigestPayload) -> Dict[str, Any]:
        """
        Deliver one digest.

        Returns:
            {"recipient", "quote_index", "message_id"}

        Raises:
            NotFound: No approved quote could be selected.
            DeliveryFailed: The transport raised.
            ValueError: The payload does not carry exactly one recipient.
        """
        if len(payload.recipients) != 1:
            raise ValueError(
                f"digest job {job_id} must have exactly one recipient, got {len(payload.recipients)}"
            )
        recipient = payload.recipients[0]

        quote = self.selector.pick_random_approved()

        html, text = self.renderer.render(
            payload.template,
            self.build_context(payload, quote, recipient),
        )
        message = OutgoingMessage(to=recipient, subject=payload.subject, html=html, text=text)

        try:
            message_id = self.transport.send(message)
        except Exception as e:
            logger.error("Digest job %s: sending to %s failed: %s", job_id, recipient, e)
            raise DeliveryFailed(recipient, str(e)) from e

        logger.info("Digest job %s: sent quote #%d to %s", job_id, quote.index, recipient)
        return {
            "recipient": recipient,
            "quote_index": quote.index,
            "message_id": message_id,
        }
