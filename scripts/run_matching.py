"""
Manual matching trigger — drains the matching queue once from the command line.

Usage:
    python scripts/run_matching.py [--max-items N]

Useful for testing the matching engine without waiting for the Celery beat schedule.
"""

import argparse
import asyncio
import json

from channel_service.config import settings
from channel_service.core.logging_config import configure_logging
from channel_service.database import async_session
from channel_service.matching_engine.config import MAX_PER_CYCLE
from channel_service.matching_engine.engine import build_matching_engine
from channel_service.redis_client import redis


async def main(max_items: int):
    """Run a single drain cycle and print the report."""
    print("Starting manual matching queue drain...")
    async with async_session() as session:
        engine = build_matching_engine(redis, session)
        result = await engine.drain_queue(redis, max_items=max_items)
        await session.commit()
    await redis.aclose()

    print("\n=== Matching Drain Report ===")
    print(json.dumps(result, indent=2, default=str))
    print(f"\nProcessed: {result['processed']}")
    print(f"Published: {result['published']}")
    print(f"Dead-lettered: {result['dead_lettered']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--max-items", type=int, default=MAX_PER_CYCLE)
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    asyncio.run(main(args.max_items))
