"""
Channel directory cache — eligible channels per (asset, region).

Data layout:
  String — ``eligible_channels:{asset}:{region}``   JSON list of snapshots,
           TTL = ``CHANNEL_CACHE_TTL``

On a miss the backing repository is queried and the result cached.  There
is no invalidation hook from channel updates: a deactivated channel stays
matchable until its cache entry lapses.  Store failures surface as
``BackingStoreError``; no stale fallback is served because eligibility
gates compliance.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Protocol

from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from channel_service.core.exceptions import BackingStoreError
from channel_service.matching_engine.config import (
    CHANNEL_CACHE_TTL_SECONDS,
    ELIGIBLE_CHANNELS_KEY_PREFIX,
)
from channel_service.schemas.channel import ChannelSnapshot

if TYPE_CHECKING:
    import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class ChannelSource(Protocol):
    async def fetch_eligible(self, asset_id: str, region: str) -> list[ChannelSnapshot]:
        ...


def _cache_key(asset_id: str, region: str) -> str:
    return f"{ELIGIBLE_CHANNELS_KEY_PREFIX}:{asset_id}:{region}"


class ChannelDirectory:
    """Read-through cache in front of a ``ChannelSource``."""

    def __init__(
        self,
        redis: "aioredis.Redis",
        source: ChannelSource,
        ttl_seconds: int = CHANNEL_CACHE_TTL_SECONDS,
    ):
        self.redis = redis
        self.source = source
        self.ttl_seconds = ttl_seconds

    async def get_eligible_channels(self, asset_id: str, region: str) -> list[ChannelSnapshot]:
        key = _cache_key(asset_id, region)

        try:
            cached = await self.redis.get(key)
        except RedisError as exc:
            raise BackingStoreError(f"Channel cache read failed for {key}") from exc

        if cached is not None:
            channels = self._decode(key, cached)
            if channels is not None:
                return channels

        try:
            channels = await self.source.fetch_eligible(asset_id, region)
        except SQLAlchemyError as exc:
            raise BackingStoreError(
                f"Eligible channel query failed for {asset_id}/{region}"
            ) from exc

        payload = json.dumps([c.model_dump(mode="json") for c in channels])
        try:
            await self.redis.setex(key, self.ttl_seconds, payload)
        except RedisError as exc:
            raise BackingStoreError(f"Channel cache write failed for {key}") from exc

        return channels

    async def invalidate(self, asset_id: str, region: str) -> None:
        key = _cache_key(asset_id, region)
        try:
            await self.redis.delete(key)
        except RedisError as exc:
            raise BackingStoreError(f"Channel cache delete failed for {key}") from exc

    @staticmethod
    def _decode(key: str, cached: str) -> list[ChannelSnapshot] | None:
        """Decode a cached list; a corrupt entry is treated as a miss."""
        try:
            return [ChannelSnapshot.model_validate(c) for c in json.loads(cached)]
        except (ValueError, TypeError, PydanticValidationError):
            logger.warning("Discarding undecodable cache entry %s", key)
            return None
