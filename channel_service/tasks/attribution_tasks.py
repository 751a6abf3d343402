"""
Attribution Celery tasks — hourly rollup of daily counters into
``attribution_stats``.
"""

import asyncio
import logging

from channel_service.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _rollup_attribution_stats_async() -> dict:
    from channel_service.attribution.stats import StatsRollup
    from channel_service.redis_client import redis

    return await StatsRollup(redis).run()


@celery_app.task(name="channel_service.tasks.attribution_tasks.rollup_attribution_stats")
def rollup_attribution_stats():
    """Snapshot today's counters for every active channel, finalizing yesterday after midnight."""
    loop = asyncio.new_event_loop()
    try:
        result = loop.run_until_complete(_rollup_attribution_stats_async())
        for part in (result.get("finalized"), result):
            if part and part["failed"]:
                logger.warning(
                    "Stats rollup %s skipped %d channels: %s",
                    part["period"], len(part["failed"]), ", ".join(part["failed"]),
                )
        return result
    except Exception:
        logger.exception("Attribution stats rollup failed")
        raise
    finally:
        loop.close()
