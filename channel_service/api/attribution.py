"""
Attribution endpoints — touchpoints, conversions and daily stats.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from channel_service.api.deps import (
    get_attribution_tracker,
    get_conversion_aggregator,
    http_error,
)
from channel_service.attribution.conversions import ConversionAggregator
from channel_service.attribution.stats import get_stats
from channel_service.attribution.tracker import AttributionTracker
from channel_service.core.exceptions import ChannelServiceError
from channel_service.database import get_db
from channel_service.schemas.attribution import (
    AttributionEventCreate,
    AttributionStatsEnvelope,
    AttributionStatsResponse,
    ConversionCreate,
    ConversionListPeriod,
    ConversionListResponse,
    ConversionResponse,
    ConversionTrackedResponse,
    TrackAck,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LOOKBACK_DAYS = 30


def _parse_date(value: str | None, field: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {field}, expected YYYY-MM-DD",
        ) from None


@router.post("/track", response_model=TrackAck)
async def track_event(
    payload: AttributionEventCreate,
    request: Request,
    tracker: AttributionTracker = Depends(get_attribution_tracker),
):
    """Record a touchpoint; request headers supply the client details."""
    payload.ip_address = request.client.host if request.client else ""
    payload.user_agent = request.headers.get("user-agent", "")
    payload.referrer = request.headers.get("referer", payload.referrer)

    try:
        await tracker.track_event(payload)
    except ChannelServiceError as exc:
        raise http_error(exc) from exc

    return TrackAck(message="Event tracked successfully")


@router.post("/conversions", response_model=ConversionTrackedResponse)
async def track_conversion(
    payload: ConversionCreate,
    aggregator: ConversionAggregator = Depends(get_conversion_aggregator),
):
    try:
        conversion = await aggregator.track_conversion(payload)
    except ChannelServiceError as exc:
        raise http_error(exc) from exc

    return ConversionTrackedResponse(
        message="Conversion tracked successfully",
        data=ConversionResponse.model_validate(conversion),
    )


@router.get("/stats", response_model=AttributionStatsEnvelope)
async def get_attribution_stats(
    channel_id: str = Query(..., min_length=1),
    period: str | None = Query(None, description="YYYY-MM-DD, defaults to today (UTC)"),
    db: AsyncSession = Depends(get_db),
):
    """Serve the latest rolled-up stats for one channel and day."""
    day = _parse_date(period, "period") or datetime.now(timezone.utc).date()

    try:
        stats = await get_stats(db, channel_id, day.isoformat())
    except ChannelServiceError as exc:
        raise http_error(exc) from exc

    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Attribution stats not found",
        )
    return AttributionStatsEnvelope(data=AttributionStatsResponse.model_validate(stats))


@router.get("/conversions", response_model=ConversionListResponse)
async def list_conversions(
    channel_id: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    aggregator: ConversionAggregator = Depends(get_conversion_aggregator),
):
    """List conversions between two dates (inclusive), last 30 days by default."""
    end = _parse_date(end_date, "end_date") or datetime.now(timezone.utc).date()
    start = _parse_date(start_date, "start_date") or end - timedelta(days=DEFAULT_LOOKBACK_DAYS)
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )

    try:
        conversions = await aggregator.get_conversions(
            channel_id,
            datetime.combine(start, time.min, tzinfo=timezone.utc),
            datetime.combine(end, time.max, tzinfo=timezone.utc),
        )
    except ChannelServiceError as exc:
        raise http_error(exc) from exc

    return ConversionListResponse(
        data=[ConversionResponse.model_validate(c) for c in conversions],
        count=len(conversions),
        period=ConversionListPeriod(start=start, end=end),
    )
