"""Tests for the attribution tracker — touchpoints, paths and counters."""

import logging
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from channel_service.attribution.config import ATTRIBUTION_EVENTS_STREAM, COUNTER_TTL_SECONDS
from channel_service.attribution.tracker import AttributionTracker
from channel_service.core.exceptions import BackingStoreError, ValidationError
from channel_service.models.attribution import AttributionEvent
from channel_service.schemas.attribution import AttributionEventCreate


@pytest.fixture
def tracker(mock_redis, mock_db, clock):
    return AttributionTracker(mock_redis, mock_db, window_seconds=86400, clock=clock)


def _click(channel_id: str = "chan-a", **overrides) -> AttributionEventCreate:
    data = {"user_id": "user-1", "event_type": "click", "channel_id": channel_id}
    data.update(overrides)
    return AttributionEventCreate(**data)


# ===========================================================================
# VALIDATION
# ===========================================================================


class TestValidation:

    @pytest.mark.asyncio
    async def test_missing_user_id(self, tracker, mock_db):
        with pytest.raises(ValidationError):
            await tracker.track_event(_click(user_id=""))
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_event_type(self, tracker):
        with pytest.raises(ValidationError):
            await tracker.track_event(_click(event_type=""))


# ===========================================================================
# KNOWN EVENT TYPES
# ===========================================================================


class TestTrackEvent:

    @pytest.mark.asyncio
    async def test_persists_event(self, tracker, mock_db, clock):
        event = await tracker.track_event(_click(utm_source="newsletter"))

        mock_db.add.assert_called_once_with(event)
        mock_db.flush.assert_awaited_once()
        assert isinstance(event, AttributionEvent)
        assert event.timestamp == clock()
        assert event.utm_source == "newsletter"
        assert event.session_id is None

    @pytest.mark.asyncio
    async def test_updates_path_atomically(self, tracker, mock_redis, mock_pipeline, clock):
        await tracker.track_event(_click())

        ts = int(clock().timestamp())
        mock_redis.pipeline.assert_called_once_with(transaction=True)
        mock_pipeline.lpush.assert_called_once_with("attribution_path:user-1", f"chan-a:click:{ts}")
        mock_pipeline.ltrim.assert_called_once_with("attribution_path:user-1", 0, 9)
        mock_pipeline.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_path_ttl_reset_to_window(self, tracker, mock_pipeline):
        await tracker.track_event(_click())
        mock_pipeline.expire.assert_any_call("attribution_path:user-1", 86400)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event_type, counter", [
        ("click", "clicks"),
        ("view", "views"),
        ("redirect", "redirects"),
        ("signup", "signups"),
    ])
    async def test_increments_daily_counter(self, tracker, mock_pipeline, event_type, counter):
        await tracker.track_event(_click(event_type=event_type))

        key = f"{counter}:chan-a:2026-10-18"
        mock_pipeline.incr.assert_called_once_with(key)
        mock_pipeline.expire.assert_any_call(key, COUNTER_TTL_SECONDS)

    @pytest.mark.asyncio
    async def test_no_channel_skips_counter(self, tracker, mock_pipeline):
        await tracker.track_event(_click(channel_id="", event_type="view"))

        mock_pipeline.lpush.assert_called_once()
        mock_pipeline.incr.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_timestamp_used_for_touchpoint(self, tracker, mock_pipeline, clock):
        earlier = clock().replace(hour=9)
        await tracker.track_event(_click(timestamp=earlier))

        touchpoint = mock_pipeline.lpush.call_args.args[1]
        assert touchpoint == f"chan-a:click:{int(earlier.timestamp())}"


# ===========================================================================
# UNKNOWN EVENT TYPES
# ===========================================================================


class TestUnknownEventType:

    @pytest.mark.asyncio
    async def test_stored_but_not_counted(self, tracker, mock_db, mock_redis, caplog):
        with caplog.at_level(logging.WARNING, logger="channel_service.attribution.tracker"):
            event = await tracker.track_event(_click(event_type="hover"))

        mock_db.add.assert_called_once_with(event)
        mock_redis.pipeline.assert_not_called()
        assert "hover" in caplog.text


# ===========================================================================
# FAILURES AND PUBLISHING
# ===========================================================================


class TestFailures:

    @pytest.mark.asyncio
    async def test_database_failure(self, tracker, mock_db, mock_redis):
        mock_db.flush.side_effect = SQLAlchemyError("insert failed")
        with pytest.raises(BackingStoreError):
            await tracker.track_event(_click())
        mock_redis.pipeline.assert_not_called()

    @pytest.mark.asyncio
    async def test_commit_failure_skips_path_and_counters(self, tracker, mock_db, mock_redis):
        mock_db.commit.side_effect = SQLAlchemyError("commit failed")
        with pytest.raises(BackingStoreError):
            await tracker.track_event(_click())
        mock_redis.pipeline.assert_not_called()

    @pytest.mark.asyncio
    async def test_redis_failure(self, tracker, mock_pipeline):
        mock_pipeline.execute.side_effect = RedisError("MULTI aborted")
        with pytest.raises(BackingStoreError):
            await tracker.track_event(_click())


class TestPublishing:

    @pytest.mark.asyncio
    async def test_publishes_event(self, mock_redis, mock_db, clock):
        publisher = AsyncMock()
        tracker = AttributionTracker(mock_redis, mock_db, publisher=publisher, clock=clock)

        event = await tracker.track_event(_click())

        stream, key, payload = publisher.publish.await_args.args
        assert stream == ATTRIBUTION_EVENTS_STREAM
        assert key == "user-1"
        assert payload["type"] == "attribution_event"
        assert payload["event"]["id"] == str(event.id)
        assert payload["event"]["channel_id"] == "chan-a"

    @pytest.mark.asyncio
    async def test_publish_failure_is_logged_not_raised(self, mock_redis, mock_db, clock, caplog):
        publisher = AsyncMock()
        publisher.publish.side_effect = RedisError("stream full")
        tracker = AttributionTracker(mock_redis, mock_db, publisher=publisher, clock=clock)

        with caplog.at_level(logging.ERROR):
            event = await tracker.track_event(_click())

        assert event.user_id == "user-1"
        assert "Failed to publish attribution event" in caplog.text


# ===========================================================================
# PATH READ
# ===========================================================================


@pytest.mark.asyncio
async def test_get_path(tracker, mock_redis):
    mock_redis.lrange = AsyncMock(return_value=["chan-b:click:2", "chan-a:click:1"])
    assert await tracker.get_path("user-1") == ["chan-b:click:2", "chan-a:click:1"]
    mock_redis.lrange.assert_awaited_once_with("attribution_path:user-1", 0, -1)
