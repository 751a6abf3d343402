"""
Event publisher — appends domain events to Redis streams.

Consumers (analytics, notification workers) read ``matching-events`` and
``attribution-events`` with consumer groups.  Publication is best-effort:
callers log failures and carry on.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from channel_service.config import settings

logger = logging.getLogger(__name__)


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    raise TypeError(f"Unserializable value: {type(value).__name__}")


class EventPublisher:
    """Publish ``{key, payload}`` entries to capped Redis streams."""

    def __init__(self, redis, maxlen: int = settings.EVENT_STREAM_MAXLEN):
        self.redis = redis
        self.maxlen = maxlen

    async def publish(self, stream: str, key: str, payload: dict) -> str:
        """Append one event; returns the stream entry id."""
        entry_id = await self.redis.xadd(
            stream,
            {"key": key, "payload": json.dumps(payload, default=_default)},
            maxlen=self.maxlen,
            approximate=True,
        )
        logger.debug("Published %s to %s (%s)", payload.get("type"), stream, entry_id)
        return entry_id
