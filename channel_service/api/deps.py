"""
Reusable FastAPI dependencies that wire services to the request's
database session and the shared Redis client.

Dependencies:
  - get_matching_engine       — engine with directory, token store, publisher
  - get_token_store           — redirect token store on its own
  - get_attribution_tracker   — touchpoint tracker
  - get_conversion_aggregator — conversion booking and listing

http_error maps domain exceptions onto status codes for the routers.
"""

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from channel_service.attribution.conversions import ConversionAggregator
from channel_service.attribution.tracker import AttributionTracker
from channel_service.core.exceptions import (
    BackingStoreError,
    ChannelServiceError,
    EligibilityError,
    TokenNotFoundError,
    ValidationError,
)
from channel_service.database import get_db
from channel_service.matching_engine.engine import MatchingEngine, build_matching_engine
from channel_service.matching_engine.redirects import RedirectTokenStore
from channel_service.redis_client import get_redis
from channel_service.services.event_publisher import EventPublisher


async def get_matching_engine(
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> MatchingEngine:
    return build_matching_engine(redis, db)


async def get_token_store(redis=Depends(get_redis)) -> RedirectTokenStore:
    return RedirectTokenStore(redis)


async def get_attribution_tracker(
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> AttributionTracker:
    return AttributionTracker(redis, db, publisher=EventPublisher(redis))


async def get_conversion_aggregator(
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> ConversionAggregator:
    return ConversionAggregator(redis, db, publisher=EventPublisher(redis))


def http_error(exc: ChannelServiceError) -> HTTPException:
    """Map a domain error onto the matching HTTP status."""
    if isinstance(exc, (EligibilityError, TokenNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, BackingStoreError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))
