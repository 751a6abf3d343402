"""
Matching endpoints — rank channels for a request and resolve redirects.

Resolving a redirect also records a ``redirect`` touchpoint for the
requesting user so the attribution path reflects the hand-off.
"""

import logging

from fastapi import APIRouter, Depends, Request

from channel_service.api.deps import (
    get_attribution_tracker,
    get_matching_engine,
    get_token_store,
    http_error,
)
from channel_service.attribution.tracker import AttributionTracker
from channel_service.core.exceptions import BackingStoreError, ChannelServiceError
from channel_service.matching_engine.engine import MatchingEngine
from channel_service.matching_engine.redirects import RedirectTokenStore
from channel_service.schemas.attribution import AttributionEventCreate
from channel_service.schemas.matching import (
    MatchRequest,
    MatchResponse,
    RedirectResponse,
    RedirectToken,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# POST /match
# ---------------------------------------------------------------------------


@router.post("/match", response_model=MatchResponse)
async def match_channels(
    payload: MatchRequest,
    engine: MatchingEngine = Depends(get_matching_engine),
):
    """Return ranked channels for an asset, amount and region."""
    try:
        results = await engine.match_channels(payload)
    except ChannelServiceError as exc:
        if isinstance(exc, BackingStoreError):
            logger.error("Matching failed for %s/%s: %s", payload.asset_id, payload.user_region, exc)
        raise http_error(exc) from exc

    return MatchResponse(data=results, count=len(results))


# ---------------------------------------------------------------------------
# GET /redirect/{redirect_id}
# ---------------------------------------------------------------------------


@router.get("/redirect/{redirect_id}", response_model=RedirectResponse)
async def get_redirect(
    redirect_id: str,
    request: Request,
    store: RedirectTokenStore = Depends(get_token_store),
    tracker: AttributionTracker = Depends(get_attribution_tracker),
):
    """Resolve a redirect token issued by ``/match``."""
    try:
        record = await store.resolve(redirect_id)
    except ChannelServiceError as exc:
        raise http_error(exc) from exc

    await _record_redirect(tracker, record, request)
    return RedirectResponse(data=record)


async def _record_redirect(
    tracker: AttributionTracker,
    record: RedirectToken,
    request: Request,
) -> None:
    if not record.request.user_id:
        return
    try:
        await tracker.track_event(
            AttributionEventCreate(
                user_id=record.request.user_id,
                event_type="redirect",
                channel_id=record.channel_id,
                asset_id=record.request.asset_id,
                amount=record.request.amount,
                redirect_id=record.token,
                ip_address=request.client.host if request.client else "",
                user_agent=request.headers.get("user-agent", ""),
                referrer=request.headers.get("referer", ""),
            )
        )
    except ChannelServiceError as exc:
        logger.warning("Failed to record redirect touchpoint for %s: %s", record.token, exc)
