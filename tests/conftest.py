"""
Shared test fixtures for the channel service.

Provides async test client, database session mocks, Redis mocks,
a controllable clock, and channel / request factories.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from channel_service.database import get_db
from channel_service.redis_client import get_redis
from channel_service.schemas.channel import ChannelSnapshot
from channel_service.schemas.matching import MatchRequest


# --- Clock ---


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc))


# --- Mock Redis ---


@pytest.fixture
def mock_pipeline():
    """Queued-command pipeline double; commands record calls, execute is awaited."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[])
    return pipe


@pytest.fixture
def mock_redis(mock_pipeline):
    """AsyncMock Redis client with common methods."""
    redis = AsyncMock()
    redis.setex = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.mget = AsyncMock(return_value=[None, None, None])
    redis.delete = AsyncMock()
    redis.incr = AsyncMock(return_value=1)
    redis.expire = AsyncMock()
    redis.lrange = AsyncMock(return_value=[])
    redis.lpop = AsyncMock(return_value=None)
    redis.rpush = AsyncMock(return_value=1)
    redis.xadd = AsyncMock(return_value="1-0")
    redis.pipeline = MagicMock(return_value=mock_pipeline)
    return redis


# --- Mock Database Session ---


@pytest.fixture
def mock_db():
    """AsyncMock database session."""
    db = AsyncMock()

    # Mock the result object returned by db.execute()
    mock_result = MagicMock()
    mock_result.scalar_one_or_none = MagicMock(return_value=None)
    mock_result.scalars.return_value.all.return_value = []
    db.execute = AsyncMock(return_value=mock_result)
    db.flush = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()

    return db


# --- Factories ---


def _make_channel(channel_id: str = "chan-a", **overrides) -> ChannelSnapshot:
    """A well-behaved exchange listing BTC in the US with bank transfers."""
    data = {
        "id": channel_id,
        "name": channel_id.replace("-", " ").title(),
        "type": "exchange",
        "website": f"https://{channel_id}.example.com",
        "compliance": {"kyc_required": False, "supported_regions": ["US"]},
        "supported_assets": [{"asset_id": "BTC", "asset_type": "crypto"}],
        "fees": {
            "trading": {"maker": "0.001", "taker": "0.002"},
            "withdrawal": {"crypto": "5"},
        },
        "payment_methods": [{"method": "bank_transfer", "currencies": ["USD"]}],
        "support": {"chat": True, "response_time": "1hour"},
        "api": {"has_trading_api": True},
        "security": {
            "custody": {"type": "cold", "segregation": True},
            "audits": [{"auditor": "Acme Audit"}],
        },
    }
    data.update(overrides)
    return ChannelSnapshot.model_validate(data)


def _make_request(**overrides) -> MatchRequest:
    data = {
        "asset_id": "BTC",
        "amount": Decimal("10000"),
        "user_id": "user-1",
        "user_region": "US",
        "kyc_level": "basic",
        "payment_method": "bank_transfer",
    }
    data.update(overrides)
    return MatchRequest(**data)


@pytest.fixture
def make_channel():
    """Factory fixture for ChannelSnapshot instances."""
    return _make_channel


@pytest.fixture
def make_request():
    """Factory fixture for MatchRequest instances."""
    return _make_request


# --- Dependency Override Helpers ---


@pytest_asyncio.fixture
async def client(mock_db, mock_redis):
    """
    Async HTTP test client with get_db and get_redis overridden
    to use test doubles.
    """
    from channel_service.main import app

    async def override_get_db():
        yield mock_db

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
