"""Shared test fixtures for all test groups."""

from datetime import UTC, datetime

import pytest
from fakeredis import FakeAsyncRedis

from dealflow.remote.fake import InMemoryRelationshipService, InMemorySubscriptionStore

FIXED_NOW = datetime(2030, 6, 15, 10, 30, 0, tzinfo=UTC)


@pytest.fixture
async def redis():
    """Create a fake Redis instance for testing."""
    fake_redis = FakeAsyncRedis(decode_responses=True)
    yield fake_redis
    await fake_redis.flushall()
    await fake_redis.aclose()


@pytest.fixture
def fixed_now():
    """Frozen clock value used by the in-memory service."""
    return FIXED_NOW


@pytest.fixture
def relationship_service():
    """Authoritative in-memory relationship service with a frozen clock."""
    return InMemoryRelationshipService(clock=lambda: FIXED_NOW)


@pytest.fixture
def subscription_store():
    """Empty in-memory subscription store."""
    return InMemorySubscriptionStore()
