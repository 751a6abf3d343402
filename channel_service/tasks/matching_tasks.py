"""
Matching engine Celery tasks.

Drains ``matching:queue`` on the schedule defined by MATCHING_INTERVAL.
Can also be triggered manually via ``scripts/run_matching.py``.
"""

import asyncio
import logging

from channel_service.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _drain_matching_queue_async() -> dict:
    """
    Build an engine on a fresh session and drain one batch.

    Uses async_session() directly (not FastAPI deps, since Celery runs
    outside request lifecycle).
    """
    from channel_service.database import async_session
    from channel_service.matching_engine.engine import build_matching_engine
    from channel_service.redis_client import redis

    async with async_session() as session:
        engine = build_matching_engine(redis, session)
        report = await engine.drain_queue(redis)
        await session.commit()
    return report


@celery_app.task(name="channel_service.tasks.matching_tasks.drain_matching_queue")
def drain_matching_queue():
    """
    Execute one queue-drain cycle.

    Celery tasks are synchronous, so we run the async engine
    in an event loop.
    """
    logger.info("Starting scheduled matching queue drain")
    loop = asyncio.new_event_loop()
    try:
        result = loop.run_until_complete(_drain_matching_queue_async())
        logger.info(
            "Matching drain %s completed: %d processed, %d dead-lettered",
            result["cycle_id"],
            result["processed"],
            result["dead_lettered"],
        )
        return result
    except Exception:
        logger.exception("Matching queue drain failed")
        raise
    finally:
        loop.close()
