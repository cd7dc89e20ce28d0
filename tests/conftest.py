"""Shared pytest fixtures and configuration."""

import json
from unittest.mock import AsyncMock

import pytest

from redirector.infrastructure.campaign_store import CampaignStore
from redirector.infrastructure.schemas import Campaign, Page


def make_campaign(*quotas, key="spring-sale", cycles_done=0, url="https://shop.test/p{id}"):
    """
    Build a campaign from (cycle_hits_done, cycle_hits_todo) pairs.

    Pages get ids 1..n in the given order.
    """
    pages = tuple(
        Page(
            id=index,
            name=f"Page {index}",
            url=url.format(id=index),
            cycle_hits_done=done,
            cycle_hits_todo=todo,
        )
        for index, (done, todo) in enumerate(quotas, start=1)
    )
    return Campaign(
        id=42,
        name="Spring Sale",
        key=key,
        params="",
        cycles_done=cycles_done,
        pages=pages,
    )


@pytest.fixture
def sample_campaign():
    """Three-page campaign with quota left on pages 1 and 3."""
    return make_campaign((0, 50), (30, 30), (10, 20))


@pytest.fixture
def sample_record():
    """Campaign record as stored in Redis."""
    return json.dumps({
        "ID": 7,
        "Name": "Landing test",
        "Key": "landing",
        "Params": "source=newsletter",
        "CyclesDone": 3,
        "Pages": [
            {"ID": 11, "Name": "A", "URL": "https://a.test/", "CycleHitsDone": 4, "CycleHitsTodo": 60},
            {"ID": 12, "Name": "B", "URL": "https://b.test/?ref=x", "CycleHitsDone": 2, "CycleHitsTodo": 40},
        ],
    })


@pytest.fixture
def mock_redis():
    """Create a mock Redis client."""
    mock = AsyncMock()
    mock.ping = AsyncMock(return_value=True)
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.lpush = AsyncMock(return_value=1)
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def store_with_mock(mock_redis):
    """Create a CampaignStore with mocked client."""
    return CampaignStore(client=mock_redis)


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as requiring external services (Redis)"
    )


def _redis_available():
    """Check if Redis is available."""
    import socket
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(('localhost', 6379))
        sock.close()
        return result == 0
    except Exception:
        return False


def pytest_collection_modifyitems(config, items):
    """Skip integration tests if Redis is not available."""
    if _redis_available():
        return
    skip_integration = pytest.mark.skip(reason="Redis not available")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def campaign_factory():
    """Factory building campaigns from (done, todo) quota pairs."""
    return make_campaign
