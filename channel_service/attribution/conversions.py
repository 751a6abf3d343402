"""
Conversion & revenue aggregator.

On each conversion:
  1. read the user's attribution path and freeze a copy onto the record
  2. persist and commit the ``conversion_events`` row
  3. bump ``conversions:{channel}:{day}`` (INCR) and
     ``revenue:{channel}:{day}`` (INCRBYFLOAT) in one MULTI/EXEC pipeline

The row is committed before the counters move, so a failed commit never
leaves a counted conversion behind.

Counters only ever move through Redis' atomic increment commands, so
concurrent conversions for the same channel and day never lose updates.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from channel_service.attribution.config import (
    ATTRIBUTION_EVENTS_STREAM,
    CONVERSIONS_COUNTER,
    COUNTER_TTL_SECONDS,
    REVENUE_COUNTER,
    counter_key,
    path_key,
)
from channel_service.core.clock import Clock, utcnow
from channel_service.core.exceptions import BackingStoreError, ValidationError
from channel_service.models.attribution import ConversionEvent, ConversionType
from channel_service.schemas.attribution import ConversionCreate

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

    from channel_service.services.event_publisher import EventPublisher

logger = logging.getLogger(__name__)

CONVERSION_TYPES = {t.value for t in ConversionType}


class ConversionAggregator:
    """Books conversions against the user's attribution path."""

    def __init__(
        self,
        redis: "aioredis.Redis",
        session: "AsyncSession",
        publisher: "EventPublisher | None" = None,
        clock: Clock = utcnow,
    ):
        self.redis = redis
        self.session = session
        self.publisher = publisher
        self.clock = clock

    async def track_conversion(self, payload: ConversionCreate) -> ConversionEvent:
        if not payload.user_id or not payload.channel_id:
            raise ValidationError("user_id and channel_id are required")
        if payload.conversion_type not in CONVERSION_TYPES:
            raise ValidationError(
                f"conversion_type must be one of {sorted(CONVERSION_TYPES)}"
            )

        try:
            path = list(await self.redis.lrange(path_key(payload.user_id), 0, -1))
        except RedisError as exc:
            raise BackingStoreError(
                f"Failed to read attribution path for {payload.user_id}"
            ) from exc

        conversion = ConversionEvent(
            id=payload.id or uuid.uuid4(),
            user_id=payload.user_id,
            channel_id=payload.channel_id,
            asset_id=payload.asset_id or None,
            amount=payload.amount,
            fee=payload.fee,
            conversion_type=payload.conversion_type,
            attribution_path=path,
            revenue=payload.revenue,
            timestamp=payload.timestamp or self.clock(),
        )

        try:
            self.session.add(conversion)
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise BackingStoreError("Failed to save conversion event") from exc

        await self._increment_counters(conversion)
        await self._publish(conversion)

        logger.debug(
            "Tracked %s conversion for user %s on %s, revenue %s",
            conversion.conversion_type, conversion.user_id,
            conversion.channel_id, conversion.revenue,
        )
        return conversion

    async def get_conversions(
        self,
        channel_id: str | None,
        start: datetime,
        end: datetime,
    ) -> list[ConversionEvent]:
        """Persisted conversions with ``start <= timestamp <= end``, newest first."""
        stmt = select(ConversionEvent).where(
            ConversionEvent.timestamp >= start,
            ConversionEvent.timestamp <= end,
        )
        if channel_id:
            stmt = stmt.where(ConversionEvent.channel_id == channel_id)
        stmt = stmt.order_by(ConversionEvent.timestamp.desc())

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise BackingStoreError("Failed to query conversions") from exc
        return list(result.scalars().all())

    # ── internals ────────────────────────────────────────────────────────

    async def _increment_counters(self, conversion: ConversionEvent) -> None:
        day = self.clock().date()
        conv_key = counter_key(CONVERSIONS_COUNTER, conversion.channel_id, day)
        rev_key = counter_key(REVENUE_COUNTER, conversion.channel_id, day)

        pipe = self.redis.pipeline(transaction=True)
        pipe.incr(conv_key)
        pipe.incrbyfloat(rev_key, float(conversion.revenue))
        pipe.expire(conv_key, COUNTER_TTL_SECONDS)
        pipe.expire(rev_key, COUNTER_TTL_SECONDS)
        try:
            await pipe.execute()
        except RedisError as exc:
            raise BackingStoreError(
                f"Failed to update counters for channel {conversion.channel_id}"
            ) from exc

    async def _publish(self, conversion: ConversionEvent) -> None:
        if self.publisher is None:
            return
        try:
            await self.publisher.publish(
                ATTRIBUTION_EVENTS_STREAM,
                conversion.user_id,
                {
                    "type": "conversion_event",
                    "conversion": {
                        "id": str(conversion.id),
                        "user_id": conversion.user_id,
                        "channel_id": conversion.channel_id,
                        "asset_id": conversion.asset_id,
                        "amount": str(conversion.amount),
                        "fee": str(conversion.fee),
                        "conversion_type": conversion.conversion_type,
                        "attribution_path": list(conversion.attribution_path),
                        "revenue": str(conversion.revenue),
                        "timestamp": conversion.timestamp.isoformat(),
                    },
                },
            )
        except Exception:
            logger.exception("Failed to publish conversion %s", conversion.id)
