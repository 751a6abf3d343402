"""
Attribution tracker — records user touchpoints.

Each tracked event fans out to:
  1. a permanent ``attribution_events`` row, committed before the Redis writes
  2. the user's attribution path (Redis list, newest first, capped at 10,
     TTL reset to the attribution window on every append)
  3. a per-channel daily counter keyed by event type

The path update runs LPUSH + LTRIM + EXPIRE inside one MULTI/EXEC
pipeline, so concurrent touchpoints for the same user can never leave the
list longer than the cap.  Unknown event types are kept for audit but
skip the path and counters.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from channel_service.attribution.config import (
    ATTRIBUTION_EVENTS_STREAM,
    ATTRIBUTION_WINDOW_SECONDS,
    COUNTER_TTL_SECONDS,
    EVENT_COUNTERS,
    MAX_PATH_LENGTH,
    counter_key,
    path_key,
)
from channel_service.core.clock import Clock, utcnow
from channel_service.core.exceptions import BackingStoreError, ValidationError
from channel_service.models.attribution import AttributionEvent
from channel_service.schemas.attribution import AttributionEventCreate

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

    from channel_service.services.event_publisher import EventPublisher

logger = logging.getLogger(__name__)


class AttributionTracker:
    """Persists touchpoints and maintains per-user attribution paths."""

    def __init__(
        self,
        redis: "aioredis.Redis",
        session: "AsyncSession",
        publisher: "EventPublisher | None" = None,
        window_seconds: int = ATTRIBUTION_WINDOW_SECONDS,
        clock: Clock = utcnow,
    ):
        self.redis = redis
        self.session = session
        self.publisher = publisher
        self.window_seconds = window_seconds
        self.clock = clock

    async def track_event(self, payload: AttributionEventCreate) -> AttributionEvent:
        if not payload.user_id or not payload.event_type:
            raise ValidationError("user_id and event_type are required")

        event = AttributionEvent(
            id=payload.id or uuid.uuid4(),
            user_id=payload.user_id,
            session_id=payload.session_id or None,
            event_type=payload.event_type,
            channel_id=payload.channel_id or None,
            asset_id=payload.asset_id or None,
            amount=payload.amount,
            redirect_id=payload.redirect_id or None,
            ip_address=payload.ip_address or None,
            user_agent=payload.user_agent or None,
            referrer=payload.referrer or None,
            utm_source=payload.utm_source or None,
            utm_medium=payload.utm_medium or None,
            utm_campaign=payload.utm_campaign or None,
            event_metadata=payload.metadata,
            timestamp=payload.timestamp or self.clock(),
        )

        try:
            self.session.add(event)
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise BackingStoreError("Failed to save attribution event") from exc

        counter = EVENT_COUNTERS.get(event.event_type)
        if counter is None:
            logger.warning(
                "Unknown attribution event type %r for user %s, stored only",
                event.event_type, event.user_id,
            )
        else:
            await self._record_touchpoint(event, counter)

        await self._publish(event)

        logger.debug("Tracked attribution event %s for user %s", event.event_type, event.user_id)
        return event

    async def get_path(self, user_id: str) -> list[str]:
        """Current path for *user_id*, newest first. Empty once it expires."""
        return list(await self.redis.lrange(path_key(user_id), 0, -1))

    # ── internals ────────────────────────────────────────────────────────

    async def _record_touchpoint(self, event: AttributionEvent, counter: str) -> None:
        key = path_key(event.user_id)
        day = self.clock().date()

        pipe = self.redis.pipeline(transaction=True)
        pipe.lpush(key, event.touchpoint)
        pipe.ltrim(key, 0, MAX_PATH_LENGTH - 1)
        pipe.expire(key, self.window_seconds)
        if event.channel_id:
            ckey = counter_key(counter, event.channel_id, day)
            pipe.incr(ckey)
            pipe.expire(ckey, COUNTER_TTL_SECONDS)

        try:
            await pipe.execute()
        except RedisError as exc:
            raise BackingStoreError(
                f"Failed to update attribution path for {event.user_id}"
            ) from exc

    async def _publish(self, event: AttributionEvent) -> None:
        if self.publisher is None:
            return
        try:
            await self.publisher.publish(
                ATTRIBUTION_EVENTS_STREAM,
                event.user_id,
                {
                    "type": "attribution_event",
                    "event": {
                        "id": str(event.id),
                        "user_id": event.user_id,
                        "session_id": event.session_id,
                        "event_type": event.event_type,
                        "channel_id": event.channel_id,
                        "asset_id": event.asset_id,
                        "amount": str(event.amount),
                        "redirect_id": event.redirect_id,
                        "timestamp": event.timestamp.isoformat(),
                    },
                },
            )
        except Exception:
            logger.exception("Failed to publish attribution event %s", event.id)
