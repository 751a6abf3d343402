"""Tests for the redirect token store."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import RedisError

from channel_service.core.exceptions import BackingStoreError, TokenNotFoundError
from channel_service.matching_engine.redirects import RedirectTokenStore, with_redirect_id


class TestWithRedirectId:

    def test_plain_url(self):
        assert with_redirect_id("https://x.example.com/go", "abc") == (
            "https://x.example.com/go?redirect_id=abc"
        )

    def test_keeps_existing_query(self):
        url = with_redirect_id("https://x.example.com/go?ref=hub&lang=en", "abc")
        assert url == "https://x.example.com/go?ref=hub&lang=en&redirect_id=abc"


@pytest.fixture
def store(mock_redis, clock):
    return RedirectTokenStore(mock_redis, ttl_seconds=3600, clock=clock)


def _remember_setex(mock_redis):
    """Make ``get`` return whatever the last ``setex`` wrote."""
    saved = {}

    async def setex(key, ttl, value):
        saved[key] = value

    async def get(key):
        return saved.get(key)

    mock_redis.setex = AsyncMock(side_effect=setex)
    mock_redis.get = AsyncMock(side_effect=get)
    return saved


@pytest.mark.asyncio
async def test_issue_writes_with_ttl(store, mock_redis, clock, make_request):
    record = await store.issue("chan-a", make_request(), "https://chan-a.example.com/api/redirect")

    key, ttl, payload = mock_redis.setex.await_args.args
    assert key == f"redirect:{record.token}"
    assert ttl == 3600
    assert record.issued_at == clock()
    assert (record.expires_at - record.issued_at).total_seconds() == 3600
    assert record.destination_url.endswith(f"redirect_id={record.token}")
    assert record.token in payload


@pytest.mark.asyncio
async def test_tokens_are_unique(store, make_request):
    request = make_request()
    first = await store.issue("chan-a", request, "https://a.example.com")
    second = await store.issue("chan-a", request, "https://a.example.com")
    assert first.token != second.token


@pytest.mark.asyncio
async def test_resolve_round_trip(store, mock_redis, make_request):
    _remember_setex(mock_redis)
    record = await store.issue("chan-a", make_request(), "https://a.example.com")

    resolved = await store.resolve(record.token)

    assert resolved.model_dump() == record.model_dump()
    assert resolved.request.user_id == "user-1"


@pytest.mark.asyncio
async def test_resolve_is_repeatable(store, mock_redis, make_request):
    _remember_setex(mock_redis)
    record = await store.issue("chan-a", make_request(), "https://a.example.com")

    await store.resolve(record.token)
    assert (await store.resolve(record.token)).token == record.token


@pytest.mark.asyncio
async def test_valid_one_second_before_expiry(store, mock_redis, clock, make_request):
    _remember_setex(mock_redis)
    record = await store.issue("chan-a", make_request(), "https://a.example.com")

    clock.advance(3600 - 1)
    assert (await store.resolve(record.token)).token == record.token


@pytest.mark.asyncio
async def test_not_found_one_second_after_expiry(store, mock_redis, clock, make_request):
    _remember_setex(mock_redis)
    record = await store.issue("chan-a", make_request(), "https://a.example.com")

    clock.advance(3600 + 1)
    with pytest.raises(TokenNotFoundError) as exc_info:
        await store.resolve(record.token)
    assert exc_info.value.token == record.token


@pytest.mark.asyncio
async def test_unknown_token(store):
    with pytest.raises(TokenNotFoundError, match="not found or expired"):
        await store.resolve("does-not-exist")


@pytest.mark.asyncio
async def test_unparseable_record(store, mock_redis):
    mock_redis.get = AsyncMock(return_value="garbage")
    with pytest.raises(TokenNotFoundError):
        await store.resolve("abc")


@pytest.mark.asyncio
async def test_redis_failure(store, mock_redis):
    mock_redis.get.side_effect = RedisError("connection reset")
    with pytest.raises(BackingStoreError):
        await store.resolve("abc")
