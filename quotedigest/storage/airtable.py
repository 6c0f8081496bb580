"""
Airtable storage backend for Quote Digest.

Implements the Store interface using Airtable as the document store.
Uses the Airtable REST API for all operations.

Airtable API Documentation: https://airtable.com/developers/web/api/introduction

=============================================================================
AIRTABLE SCHEMA
=============================================================================

Quotes table:

| Column Name    | Field Type      | Description                          |
|----------------|-----------------|--------------------------------------|
| quote_id       | Single line text| Opaque id (UUID)                     |
| index          | Number          | Monotonic submission index           |
| text           | Long text       | The quotation                        |
| author         | Single line text| Who said it                          |
| area           | Single line text| Topic                                |
| approved       | Checkbox        | Moderation flag                      |
| submitted_at   | Date            | Submission time (ISO format)         |

Subscribers table:

| Column Name     | Field Type      | Description                         |
|-----------------|-----------------|-------------------------------------|
| email           | Email           | Normalized lowercase address (key)  |
| active          | Checkbox        | Receives digests                    |
| subscribed_at   | Date            | Last (re)subscription time          |
| unsubscribed_at | Date            | Last unsubscription time, if any    |

Note: there is no combined (approved, index) view; the selector filters
on approval client-side over small index-ordered batches.

=============================================================================
"""

import logging
import threading
import time
from datetime import datetime
from typing import List, Optional, Dict, Any, Set, Tuple
import requests

from quotedigest.config import (
    AIRTABLE_API_KEY,
    AIRTABLE_BASE_ID,
    AIRTABLE_QUOTES_TABLE,
    AIRTABLE_SUBSCRIBERS_TABLE,
    REQUEST_TIMEOUT,
)
from quotedigest.errors import StorageError
from quotedigest.models.quote import Quote
from quotedigest.models.subscriber import Subscriber
from quotedigest.storage.base import Store

logger = logging.getLogger(__name__)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


def _formula_string(value: str) -> str:
    """Quote a string literal for an Airtable formula."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class AirtableStore(Store):
    """
    Airtable-backed store.

    Configuration is pulled from environment variables via quotedigest.config:
    - AIRTABLE_API_KEY: API key for authentication
    - AIRTABLE_BASE_ID: Base ID (starts with "app")
    - AIRTABLE_QUOTES_TABLE / AIRTABLE_SUBSCRIBERS_TABLE: table names
    """

    # Airtable API base URL
    API_BASE = "https://api.airtable.com/v0"

    # Rate limiting: Airtable allows 5 requests per second
    REQUEST_DELAY = 0.25

    # Airtable caps page size at 100
    PAGE_SIZE = 100

    def __init__(
        self,
        api_key: str = None,
        base_id: str = None,
        quotes_table: str = None,
        subscribers_table: str = None,
        timeout: int = None,
    ):
        # Use provided values, or fall back to config if None (not empty string)
        self.api_key = api_key if api_key is not None else AIRTABLE_API_KEY
        self.base_id = base_id if base_id is not None else AIRTABLE_BASE_ID
        self.quotes_table = quotes_table if quotes_table is not None else AIRTABLE_QUOTES_TABLE
        self.subscribers_table = (
            subscribers_table if subscribers_table is not None else AIRTABLE_SUBSCRIBERS_TABLE
        )
        self.timeout = timeout if timeout is not None else REQUEST_TIMEOUT

        self._last_request_time = 0.0

    @property
    def name(self) -> str:
        return "airtable"

    def _table_url(self, table: str) -> str:
        return f"{self.API_BASE}/{self.base_id}/{table}"

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        now = time.time()
        elapsed = now - self._last_request_time
        if elapsed < self.REQUEST_DELAY:
            time.sleep(self.REQUEST_DELAY - elapsed)
        self._last_request_time = time.time()

    def _validate_config(self) -> None:
        if not self.api_key:
            raise ValueError("AIRTABLE_API_KEY is not configured")
        if not self.base_id:
            raise ValueError("AIRTABLE_BASE_ID is not configured")

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Issue one API call; network and HTTP errors become StorageError."""
        self._validate_config()
        self._rate_limit()

        try:
            response = requests.request(
                method,
                url,
                headers=self._headers,
                timeout=self.timeout,
                **kwargs,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error("Airtable %s %s failed: %s", method, url, e)
            raise StorageError(f"Airtable request failed: {e}") from e

    # =========================================================================
    # Serialization: models <-> Airtable
    # =========================================================================

    @staticmethod
    def quote_to_airtable_fields(quote: Quote) -> Dict[str, Any]:
        return {
            "quote_id": quote.id,
            "index": quote.index,
            "text": quote.text,
            "author": quote.author,
            "area": quote.area,
            "approved": quote.approved,
            "submitted_at": quote.submitted_at.isoformat(),
        }

    @staticmethod
    def airtable_record_to_quote(record: Dict[str, Any]) -> Optional[Quote]:
        """
        Convert an Airtable record to a Quote.

        Returns:
            Quote if conversion successful, None for malformed records.
        """
        fields = record.get("fields", {})
        try:
            return Quote(
                id=fields.get("quote_id") or record.get("id", ""),
                index=int(fields["index"]),
                text=fields.get("text", ""),
                author=fields.get("author", ""),
                area=fields.get("area", ""),
                # Airtable omits unchecked checkboxes
                approved=bool(fields.get("approved", False)),
                submitted_at=_parse_datetime(fields.get("submitted_at")) or datetime.now(),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed quote record %s: %s", record.get("id"), e)
            return None

    @staticmethod
    def subscriber_to_airtable_fields(subscriber: Subscriber) -> Dict[str, Any]:
        fields = {
            "email": subscriber.email,
            "active": subscriber.active,
            "subscribed_at": subscriber.subscribed_at.isoformat(),
        }
        fields["unsubscribed_at"] = (
            subscriber.unsubscribed_at.isoformat() if subscriber.unsubscribed_at else None
        )
        return fields

    @staticmethod
    def airtable_record_to_subscriber(record: Dict[str, Any]) -> Optional[Subscriber]:
        fields = record.get("fields", {})
        try:
            return Subscriber(
                email=fields["email"],
                active=bool(fields.get("active", False)),
                subscribed_at=_parse_datetime(fields.get("subscribed_at")) or datetime.now(),
                unsubscribed_at=_parse_datetime(fields.get("unsubscribed_at")),
            )
        except (KeyError, ValueError) as e:
            logger.warning("Skipping malformed subscriber record %s: %s", record.get("id"), e)
            return None

    # =========================================================================
    # API Operations
    # =========================================================================

    def _list_records(
        self,
        table: str,
        filter_formula: str = None,
        sort_field: str = None,
        sort_direction: str = "asc",
        max_records: int = None,
    ) -> List[Dict]:
        """
        List records with optional filtering and sorting.

        Follows Airtable's offset pagination until max_records is reached
        or the table is exhausted.
        """
        params: Dict[str, Any] = {"pageSize": self.PAGE_SIZE}
        if max_records is not None:
            params["maxRecords"] = max_records
            params["pageSize"] = min(self.PAGE_SIZE, max_records)
        if filter_formula:
            params["filterByFormula"] = filter_formula
        if sort_field:
            params["sort[0][field]"] = sort_field
            params["sort[0][direction]"] = sort_direction

        records: List[Dict] = []
        while True:
            data = self._request("GET", self._table_url(table), params=params)
            records.extend(data.get("records", []))

            offset = data.get("offset")
            if not offset or (max_records is not None and len(records) >= max_records):
                break
            params["offset"] = offset

        if max_records is not None:
            records = records[:max_records]
        return records

    def _find_subscriber_record(self, email: str) -> Optional[Tuple[str, Dict]]:
        records = self._list_records(
            self.subscribers_table,
            filter_formula=f"{{email}}={_formula_string(email)}",
            max_records=1,
        )
        if records:
            return (records[0]["id"], records[0].get("fields", {}))
        return None

    # =========================================================================
    # Store Interface Implementation
    # =========================================================================

    def max_index(self) -> Optional[int]:
        records = self._list_records(
            self.quotes_table,
            sort_field="index",
            sort_direction="desc",
            max_records=1,
        )
        if not records:
            return None
        value = records[0].get("fields", {}).get("index")
        return int(value) if value is not None else None

    def scan_by_index(self, start: Optional[int], limit: int) -> List[Quote]:
        formula = f"{{index}}>={int(start)}" if start is not None else None
        records = self._list_records(
            self.quotes_table,
            filter_formula=formula,
            sort_field="index",
            sort_direction="asc",
            max_records=limit,
        )
        quotes = []
        for record in records:
            quote = self.airtable_record_to_quote(record)
            if quote:
                quotes.append(quote)
        return quotes

    def insert_quote(self, quote: Quote) -> Quote:
        self._request(
            "POST",
            self._table_url(self.quotes_table),
            json={"fields": self.quote_to_airtable_fields(quote)},
        )
        return quote

    def active_subscribers(self) -> Set[str]:
        records = self._list_records(
            self.subscribers_table,
            filter_formula="{active}=TRUE()",
        )
        emails = set()
        for record in records:
            subscriber = self.airtable_record_to_subscriber(record)
            if subscriber and subscriber.active:
                emails.add(subscriber.email)
        return emails

    def get_subscriber(self, email: str) -> Optional[Subscriber]:
        existing = self._find_subscriber_record(email)
        if existing:
            record_id, fields = existing
            return self.airtable_record_to_subscriber({"id": record_id, "fields": fields})
        return None

    def save_subscriber(self, subscriber: Subscriber) -> None:
        """Update the record with the same email, or create one."""
        payload = {"fields": self.subscriber_to_airtable_fields(subscriber)}
        existing = self._find_subscriber_record(subscriber.email)

        if existing:
            record_id, _ = existing
            self._request(
                "PATCH",
                f"{self._table_url(self.subscribers_table)}/{record_id}",
                json=payload,
            )
        else:
            self._request("POST", self._table_url(self.subscribers_table), json=payload)


class MockAirtableStore(Store):
    """
    In-memory mock store for testing and development.

    Use this when Airtable is not configured or for testing.
    Data is stored in memory and lost when the process ends. Web request
    threads and queue workers share one instance, so every access holds
    the store lock.
    """

    def __init__(self, quotes: List[Quote] = None, subscribers: List[Subscriber] = None):
        self._quotes: Dict[int, Quote] = {}
        self._subscribers: Dict[str, Subscriber] = {}
        self._lock = threading.RLock()
        self.scan_calls: List[Tuple[Optional[int], int]] = []

        for quote in quotes or []:
            self._quotes[quote.index] = quote
        for subscriber in subscribers or []:
            self._subscribers[subscriber.email] = subscriber

    @property
    def name(self) -> str:
        return "mock"

    def max_index(self) -> Optional[int]:
        with self._lock:
            return max(self._quotes) if self._quotes else None

    def scan_by_index(self, start: Optional[int], limit: int) -> List[Quote]:
        with self._lock:
            self.scan_calls.append((start, limit))
            indices = sorted(i for i in self._quotes if start is None or i >= start)
            return [self._quotes[i] for i in indices[:limit]]

    def insert_quote(self, quote: Quote) -> Quote:
        with self._lock:
            self._quotes[quote.index] = quote
        return quote

    def active_subscribers(self) -> Set[str]:
        with self._lock:
            return {s.email for s in self._subscribers.values() if s.active}

    def get_subscriber(self, email: str) -> Optional[Subscriber]:
        with self._lock:
            return self._subscribers.get(email)

    def save_subscriber(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers[subscriber.email] = subscriber

    def approve(self, index: int, approved: bool = True) -> None:
        """Set the moderation flag (for testing and local development)."""
        with self._lock:
            self._quotes[index].approved = approved

    def delete(self, index: int) -> None:
        """Remove a quote, leaving a gap in the index space."""
        with self._lock:
            self._quotes.pop(index, None)

    def clear(self) -> None:
        """Clear all records (for testing)."""
        with self._lock:
            self._quotes.clear()
            self._subscribers.clear()
            self.scan_calls.clear()

    def count(self) -> int:
        """Return number of stored quotes (for testing)."""
        with self._lock:
            return len(self._quotes)
