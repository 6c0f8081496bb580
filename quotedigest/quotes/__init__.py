"""
Quotes module.

Index allocation for submissions and random approved quote selection.
"""

from quotedigest.quotes.allocator import QuoteIndexAllocator
from quotedigest.quotes.selector import QuoteSelector

__all__ = [
    "QuoteIndexAllocator",
    "QuoteSelector",
]
