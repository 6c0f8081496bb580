"""
Shared test helpers.

Builders for quotes and stores, a fixed random source, a polling wait,
and an in-memory Redis stand-in for queue tests.
"""

import random
import threading
import time
from typing import Dict, List
from unittest.mock import Mock

from quotedigest.models.quote import Quote
from quotedigest.models.subscriber import Subscriber
from quotedigest.storage import MockAirtableStore


# =============================================================================
# Builders
# =============================================================================

def make_quote(index: int, approved: bool = False, **kwargs) -> Quote:
    return Quote(
        text=kwargs.get("text", f"Quote number {index}"),
        author=kwargs.get("author", f"Author {index}"),
        area=kwargs.get("area", "testing"),
        index=index,
        approved=approved,
    )


def make_store(count: int = 0, approved: List[int] = (), subscribers: List[str] = ()) -> MockAirtableStore:
    """Store with quotes 1..count, the given indices approved."""
    quotes = [make_quote(i, approved=i in approved) for i in range(1, count + 1)]
    subs = [Subscriber(email=email) for email in subscribers]
    return MockAirtableStore(quotes=quotes, subscribers=subs)


def fixed_rng(target: int) -> Mock:
    """A random source whose randint always returns target."""
    rng = Mock(spec=random.Random)
    rng.randint.return_value = target
    return rng


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


# =============================================================================
# Redis stand-in
# =============================================================================

class FakePipeline:
    """Buffers commands and applies them on execute()."""

    def __init__(self, client: "FakeRedis"):
        self._client = client
        self._calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self._calls.append((name, args, kwargs))
            return self
        return record

    def execute(self):
        results = [getattr(self._client, name)(*args, **kwargs) for name, args, kwargs in self._calls]
        self._calls = []
        return results


class FakeRedis:
    """
    Just enough of the redis-py client (decode_responses=True) for the
    queue: lists, hashes and pipelines, all in memory. Commands are
    atomic with respect to each other, as on a real server.
    """

    def __init__(self):
        self.lists: Dict[str, List[str]] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self._lock = threading.RLock()

    def pipeline(self):
        return FakePipeline(self)

    def hset(self, name, key=None, value=None, mapping=None):
        with self._lock:
            target = self.hashes.setdefault(name, {})
            if key is not None:
                target[key] = value
            for k, v in (mapping or {}).items():
                target[k] = v
            return 1

    def hsetnx(self, name, key, value):
        with self._lock:
            target = self.hashes.setdefault(name, {})
            if key in target:
                return 0
            target[key] = value
            return 1

    def hget(self, name, key):
        return self.hashes.get(name, {}).get(key)

    def hgetall(self, name):
        with self._lock:
            return dict(self.hashes.get(name, {}))

    def rpush(self, name, *values):
        with self._lock:
            self.lists.setdefault(name, []).extend(values)
            return len(self.lists[name])

    def llen(self, name):
        return len(self.lists.get(name, []))

    def lrem(self, name, count, value):
        with self._lock:
            items = self.lists.get(name, [])
            if value in items:
                items.remove(value)
                return 1
            return 0

    def lmove(self, first_list, second_list, src="LEFT", dest="RIGHT"):
        with self._lock:
            source = self.lists.get(first_list, [])
            if not source:
                return None
            value = source.pop(0) if src == "LEFT" else source.pop()
            target = self.lists.setdefault(second_list, [])
            if dest == "LEFT":
                target.insert(0, value)
            else:
                target.append(value)
            return value

    def blmove(self, first_list, second_list, timeout, src="LEFT", dest="RIGHT"):
        value = self.lmove(first_list, second_list, src, dest)
        if value is None and timeout:
            time.sleep(min(timeout, 0.01))
        return value


