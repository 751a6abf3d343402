"""
Redirect token store — opaque, time-limited handles to a channel URL.

Data layout:
  String — ``redirect:{token}``   JSON RedirectToken, TTL = ``REDIRECT_EXPIRATION``

Redis TTL garbage-collects expired records.  ``resolve`` also checks the
stored ``expires_at`` against the injected clock, so expiry is exact and
testable without waiting on Redis.  An expired token is indistinguishable
from one that was never issued.  Tokens are not single-use: any number of
resolves succeed inside the window.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from channel_service.core.clock import Clock, utcnow
from channel_service.core.exceptions import BackingStoreError, TokenNotFoundError
from channel_service.matching_engine.config import (
    REDIRECT_EXPIRATION_SECONDS,
    REDIRECT_KEY_PREFIX,
)
from channel_service.schemas.matching import MatchRequest, RedirectToken

if TYPE_CHECKING:
    import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def _redirect_key(token: str) -> str:
    return f"{REDIRECT_KEY_PREFIX}:{token}"


def with_redirect_id(url: str, token: str) -> str:
    """Append ``redirect_id=<token>`` to *url*, keeping any existing query."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append(("redirect_id", token))
    return urlunsplit(parts._replace(query=urlencode(query)))


class RedirectTokenStore:
    """Issues and resolves redirect tokens held in Redis."""

    def __init__(
        self,
        redis: "aioredis.Redis",
        ttl_seconds: int = REDIRECT_EXPIRATION_SECONDS,
        clock: Clock = utcnow,
    ):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    async def issue(
        self,
        channel_id: str,
        request: MatchRequest,
        destination_url: str,
    ) -> RedirectToken:
        token = str(uuid.uuid4())
        issued_at = self.clock()
        record = RedirectToken(
            token=token,
            channel_id=channel_id,
            destination_url=with_redirect_id(destination_url, token),
            request=request,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=self.ttl_seconds),
        )

        try:
            await self.redis.setex(
                _redirect_key(token),
                self.ttl_seconds,
                record.model_dump_json(),
            )
        except RedisError as exc:
            raise BackingStoreError(f"Failed to store redirect {token}") from exc

        return record

    async def resolve(self, token: str) -> RedirectToken:
        """Return the stored record or raise ``TokenNotFoundError``."""
        try:
            raw = await self.redis.get(_redirect_key(token))
        except RedisError as exc:
            raise BackingStoreError(f"Failed to read redirect {token}") from exc

        if raw is None:
            raise TokenNotFoundError(token)

        try:
            record = RedirectToken.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Unparseable redirect record for %s", token)
            raise TokenNotFoundError(token)

        if self.clock() >= record.expires_at:
            raise TokenNotFoundError(token)
        return record
