"""
Pytest Configuration and Fixtures

This module provides:
- Project root on sys.path (main.py and web/ are not installed)
- Settings that never touch external services
- A fully wired engine on in-memory backends
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from quotedigest.config import Settings
from quotedigest.engine import QuoteDigestEngine
from quotedigest.jobs import InProcessJobQueue
from quotedigest.mail import MockTransport

from tests.helpers import FakeRedis, fixed_rng, make_store


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def settings():
    """Settings that never touch external services."""
    return Settings(
        app_env="test",
        durable_queue_enabled=False,
        airtable_api_key="",
        smtp_host="",
        scan_batch_size=20,
        digest_cron="0 9 * * 1",
    )


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def queue():
    q = InProcessJobQueue(queue_name="test")
    yield q
    q.close(timeout=1)


@pytest.fixture
def engine(settings, transport, queue):
    """Engine on in-memory store, in-process queue and mock mail."""
    store = make_store(
        count=5,
        approved=[2, 4],
        subscribers=["alice@example.com", "bob@example.com", "carol@example.com"],
    )
    eng = QuoteDigestEngine(
        settings=settings,
        store=store,
        queue=queue,
        transport=transport,
        rng=fixed_rng(1),
    )
    yield eng
    eng.shutdown()
