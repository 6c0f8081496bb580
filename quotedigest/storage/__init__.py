"""
Storage module.

Handles persistence and retrieval of quotes and subscribers via Airtable
or the in-memory mock.
"""

from quotedigest.storage.base import Store
from quotedigest.storage.airtable import AirtableStore, MockAirtableStore

__all__ = [
    "Store",
    "AirtableStore",
    "MockAirtableStore",
]
