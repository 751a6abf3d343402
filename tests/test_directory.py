"""Tests for the eligible-channel directory cache."""

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from channel_service.core.exceptions import BackingStoreError
from channel_service.matching_engine.directory import ChannelDirectory


@pytest.fixture
def source(make_channel):
    src = AsyncMock()
    src.fetch_eligible = AsyncMock(return_value=[make_channel("chan-a"), make_channel("chan-b")])
    return src


@pytest.mark.asyncio
async def test_miss_queries_source_and_caches(mock_redis, source):
    directory = ChannelDirectory(mock_redis, source, ttl_seconds=600)

    channels = await directory.get_eligible_channels("BTC", "US")

    assert [c.id for c in channels] == ["chan-a", "chan-b"]
    source.fetch_eligible.assert_awaited_once_with("BTC", "US")
    key, ttl, payload = mock_redis.setex.await_args.args
    assert key == "eligible_channels:BTC:US"
    assert ttl == 600
    assert [c["id"] for c in json.loads(payload)] == ["chan-a", "chan-b"]


@pytest.mark.asyncio
async def test_hit_skips_source(mock_redis, source, make_channel):
    cached = json.dumps([make_channel("chan-z").model_dump(mode="json")])
    mock_redis.get = AsyncMock(return_value=cached)
    directory = ChannelDirectory(mock_redis, source)

    channels = await directory.get_eligible_channels("BTC", "US")

    assert [c.id for c in channels] == ["chan-z"]
    assert channels[0].model_dump() == make_channel("chan-z").model_dump()
    source.fetch_eligible.assert_not_awaited()
    mock_redis.setex.assert_not_awaited()


@pytest.mark.asyncio
async def test_cached_empty_list_is_a_hit(mock_redis, source):
    mock_redis.get = AsyncMock(return_value="[]")
    directory = ChannelDirectory(mock_redis, source)

    assert await directory.get_eligible_channels("BTC", "US") == []
    source.fetch_eligible.assert_not_awaited()


@pytest.mark.asyncio
async def test_corrupt_entry_treated_as_miss(mock_redis, source):
    mock_redis.get = AsyncMock(return_value="{broken")
    directory = ChannelDirectory(mock_redis, source)

    channels = await directory.get_eligible_channels("BTC", "US")

    assert len(channels) == 2
    source.fetch_eligible.assert_awaited_once()
    mock_redis.setex.assert_awaited_once()


@pytest.mark.asyncio
async def test_redis_read_failure(mock_redis, source):
    mock_redis.get.side_effect = RedisError("timeout")
    directory = ChannelDirectory(mock_redis, source)

    with pytest.raises(BackingStoreError):
        await directory.get_eligible_channels("BTC", "US")
    source.fetch_eligible.assert_not_awaited()


@pytest.mark.asyncio
async def test_database_failure(mock_redis, source):
    source.fetch_eligible.side_effect = SQLAlchemyError("db down")
    directory = ChannelDirectory(mock_redis, source)

    with pytest.raises(BackingStoreError):
        await directory.get_eligible_channels("BTC", "US")


@pytest.mark.asyncio
async def test_redis_write_failure(mock_redis, source):
    mock_redis.setex.side_effect = RedisError("read only replica")
    directory = ChannelDirectory(mock_redis, source)

    with pytest.raises(BackingStoreError):
        await directory.get_eligible_channels("BTC", "US")


@pytest.mark.asyncio
async def test_invalidate(mock_redis, source):
    directory = ChannelDirectory(mock_redis, source)
    await directory.invalidate("ETH", "EU")
    mock_redis.delete.assert_awaited_once_with("eligible_channels:ETH:EU")


@pytest.mark.asyncio
async def test_invalidate_redis_failure(mock_redis, source):
    mock_redis.delete.side_effect = RedisError("connection reset")
    directory = ChannelDirectory(mock_redis, source)
    with pytest.raises(BackingStoreError):
        await directory.invalidate("ETH", "EU")
