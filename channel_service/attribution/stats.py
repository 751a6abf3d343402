"""
Attribution stats rollup.

Daily counters live in Redis (``clicks:``, ``conversions:``, ``revenue:``
keyed by channel and day).  The rollup reads them for every active
channel, derives conversion rate and average order value, and upserts one
``attribution_stats`` row per ``(channel_id, period)``.  The stats
endpoint serves those rows.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError

from channel_service.attribution.config import (
    CONVERSIONS_COUNTER,
    EVENT_COUNTERS,
    REVENUE_COUNTER,
    STATS_ROLLUP_INTERVAL_SECONDS,
    counter_key,
)
from channel_service.core.clock import Clock, utcnow
from channel_service.core.exceptions import BackingStoreError
from channel_service.models.attribution import AttributionStats
from channel_service.services.channel_repository import ChannelRepository

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

MONEY_QUANTUM = Decimal("0.00000001")


def derive_rates(clicks: int, conversions: int, revenue: Decimal) -> tuple[float, Decimal]:
    """
    Conversion rate and average order value for one channel-day.

    The rate is a ratio (0.25 means one conversion per four clicks), zero
    when there were no clicks.  AOV is zero when there were no conversions.
    """
    rate = conversions / clicks if clicks > 0 else 0.0
    if conversions > 0:
        aov = (revenue / conversions).quantize(MONEY_QUANTUM)
    else:
        aov = Decimal("0")
    return rate, aov


def _to_int(raw) -> int:
    if raw is None:
        return 0
    return int(raw)


def _to_decimal(raw) -> Decimal:
    if raw is None:
        return Decimal("0")
    try:
        return Decimal(str(raw)).quantize(MONEY_QUANTUM)
    except InvalidOperation:
        logger.warning("Non-numeric revenue counter value %r, treating as 0", raw)
        return Decimal("0")


async def compute_daily_stats(
    redis: "aioredis.Redis",
    channel_id: str,
    day: date,
) -> dict:
    """Read one channel-day's counters and derive the stats snapshot."""
    keys = [
        counter_key(EVENT_COUNTERS["click"], channel_id, day),
        counter_key(CONVERSIONS_COUNTER, channel_id, day),
        counter_key(REVENUE_COUNTER, channel_id, day),
    ]
    try:
        raw_clicks, raw_conversions, raw_revenue = await redis.mget(keys)
    except RedisError as exc:
        raise BackingStoreError(f"Failed to read counters for channel {channel_id}") from exc

    clicks = _to_int(raw_clicks)
    conversions = _to_int(raw_conversions)
    revenue = _to_decimal(raw_revenue)
    rate, aov = derive_rates(clicks, conversions, revenue)

    return {
        "channel_id": channel_id,
        "period": day.isoformat(),
        "total_clicks": clicks,
        "total_conversions": conversions,
        "conversion_rate": rate,
        "total_revenue": revenue,
        "average_order_value": aov,
    }


class StatsRollup:
    """
    Periodic snapshot of Redis counters into ``attribution_stats``.

    A scheduled run (no explicit day) snapshots today.  When the previous
    run interval reaches back across midnight it first finalizes
    yesterday, so counters booked in the last hour of a day still land in
    that day's row.
    """

    def __init__(
        self,
        redis: "aioredis.Redis",
        session_factory=None,
        clock: Clock = utcnow,
        interval_seconds: int = STATS_ROLLUP_INTERVAL_SECONDS,
    ):
        self.redis = redis
        self._session_factory = session_factory
        self.clock = clock
        self.interval_seconds = interval_seconds

    @property
    def session_factory(self):
        if self._session_factory is not None:
            return self._session_factory
        from channel_service.database import async_session
        return async_session

    async def run(self, day: date | None = None) -> dict:
        """
        Upsert a stats row for every active channel.

        Each channel is written in its own session so one failure is logged
        and skipped without rolling back the others.
        """
        started_at = self.clock()
        finalize_day = None
        if day is None:
            day = started_at.date()
            previous = (started_at - timedelta(seconds=self.interval_seconds)).date()
            if previous < day:
                finalize_day = previous

        async with self.session_factory() as session:
            channel_ids = await ChannelRepository(session).list_active_ids()

        finalized = None
        if finalize_day is not None:
            done, missed = await self._rollup_day(channel_ids, finalize_day)
            finalized = {
                "period": finalize_day.isoformat(),
                "updated": len(done),
                "failed": missed,
            }

        updated, failed = await self._rollup_day(channel_ids, day)

        completed_at = self.clock()
        return {
            "period": day.isoformat(),
            "started_at": started_at.isoformat(),
            "completed_at": completed_at.isoformat(),
            "duration_ms": int((completed_at - started_at).total_seconds() * 1000),
            "channels": len(channel_ids),
            "updated": len(updated),
            "failed": failed,
            "finalized": finalized,
        }

    async def _rollup_day(self, channel_ids: list[str], day: date) -> tuple[list[str], list[str]]:
        updated: list[str] = []
        failed: list[str] = []
        for channel_id in channel_ids:
            try:
                stats = await compute_daily_stats(self.redis, channel_id, day)
                async with self.session_factory() as session:
                    await upsert_stats(session, stats, self.clock())
                    await session.commit()
            except Exception:
                logger.exception(
                    "Stats rollup failed for channel %s on %s", channel_id, day.isoformat(),
                )
                failed.append(channel_id)
                continue
            updated.append(channel_id)

        logger.info(
            "Stats rollup for %s: %d updated, %d failed",
            day.isoformat(), len(updated), len(failed),
        )
        return updated, failed


async def upsert_stats(session: "AsyncSession", stats: dict, now: datetime) -> None:
    """Insert or overwrite the row for ``(channel_id, period)``."""
    values = {**stats, "updated_at": now}
    stmt = pg_insert(AttributionStats.__table__).values(**values)
    stmt = stmt.on_conflict_do_update(
        constraint="uq_attribution_stats_channel_period",
        set_={
            "total_clicks": stmt.excluded.total_clicks,
            "total_conversions": stmt.excluded.total_conversions,
            "conversion_rate": stmt.excluded.conversion_rate,
            "total_revenue": stmt.excluded.total_revenue,
            "average_order_value": stmt.excluded.average_order_value,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await session.execute(stmt)


async def get_stats(session: "AsyncSession", channel_id: str, period: str) -> AttributionStats | None:
    try:
        result = await session.execute(
            select(AttributionStats).where(
                AttributionStats.channel_id == channel_id,
                AttributionStats.period == period,
            )
        )
    except SQLAlchemyError as exc:
        raise BackingStoreError("Failed to query attribution stats") from exc
    return result.scalar_one_or_none()
