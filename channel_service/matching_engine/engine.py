"""
Main matching engine orchestrator.

Synchronous path (``match_channels``):
  fetch eligible channels → score each → drop unavailable and
  below-threshold results → stable sort by score → truncate → issue a
  redirect token for every survivor.

Queue-drain path (``drain_queue``):
  pop serialized requests from ``matching:queue``, match each, publish the
  result set to the ``matching-events`` stream.  Per-item failures are
  logged and the raw item is pushed to ``matching:dead_letter`` so one bad
  request never stalls the cycle.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from channel_service.core.clock import Clock, utcnow
from channel_service.core.exceptions import EligibilityError
from channel_service.matching_engine.config import (
    MATCHING_DEAD_LETTER_KEY,
    MATCHING_EVENTS_STREAM,
    MATCHING_QUEUE_KEY,
    MAX_MATCHING_RESULTS,
    MAX_PER_CYCLE,
    MIN_MATCHING_SCORE,
)
from channel_service.matching_engine.directory import ChannelDirectory
from channel_service.matching_engine.redirects import RedirectTokenStore
from channel_service.matching_engine.reporter import build_drain_report
from channel_service.matching_engine.scorer import MatchScorer, destination_url
from channel_service.schemas.matching import MatchRequest, MatchResult, RedirectInfo
from channel_service.services.channel_repository import ChannelRepository
from channel_service.services.event_publisher import EventPublisher

if TYPE_CHECKING:
    import redis.asyncio as aioredis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class MatchingEngine:
    """Ranks eligible channels for a request and hands out redirect tokens."""

    def __init__(
        self,
        directory: ChannelDirectory,
        token_store: RedirectTokenStore,
        scorer: MatchScorer | None = None,
        publisher: EventPublisher | None = None,
        max_results: int = MAX_MATCHING_RESULTS,
        min_score: float = MIN_MATCHING_SCORE,
        clock: Clock = utcnow,
    ):
        self.directory = directory
        self.token_store = token_store
        self.scorer = scorer or MatchScorer()
        self.publisher = publisher
        self.max_results = max_results
        self.min_score = min_score
        self.clock = clock

    # ── Public entry point ───────────────────────────────────────────────

    async def match_channels(self, request: MatchRequest) -> list[MatchResult]:
        """
        Return up to ``max_results`` available channels, best first.

        Raises ``EligibilityError`` when no channel lists the asset in the
        requester's region; store failures propagate as
        ``BackingStoreError``.
        """
        logger.debug(
            "Matching channels for asset %s, amount %s, region %s",
            request.asset_id, request.amount, request.user_region,
        )

        channels = await self.directory.get_eligible_channels(
            request.asset_id, request.user_region,
        )
        if not channels:
            raise EligibilityError(
                f"No eligible channels found for asset {request.asset_id} "
                f"in region {request.user_region}"
            )

        scored = [self.scorer.score(channel, request) for channel in channels]
        ranked = self.rank(scored)

        for result in ranked:
            result.redirect_info = await self._issue_redirect(result, request)

        logger.debug(
            "Matched %d of %d eligible channels for %s/%s",
            len(ranked), len(channels), request.asset_id, request.user_region,
        )
        return ranked

    def rank(self, results: list[MatchResult]) -> list[MatchResult]:
        """
        Filter, order and truncate scored results.

        ``sorted`` is stable, so equal scores keep the directory's fetch
        order and repeated calls return identical rankings.
        """
        survivors = [
            r for r in results
            if r.availability.available and r.match_score >= self.min_score
        ]
        ordered = sorted(survivors, key=lambda r: r.match_score, reverse=True)
        return ordered[: self.max_results]

    # ── Redirects ────────────────────────────────────────────────────────

    async def _issue_redirect(self, result: MatchResult, request: MatchRequest) -> RedirectInfo:
        record = await self.token_store.issue(
            result.channel_id, request, destination_url(result.channel),
        )
        return RedirectInfo(
            url=record.destination_url,
            method="GET",
            parameters={
                "asset_id": request.asset_id,
                "amount": str(request.amount),
                "redirect_id": record.token,
                "user_id": request.user_id,
                "timestamp": int(record.issued_at.timestamp()),
            },
            expires_at=record.expires_at,
        )

    # ── Queue drain ──────────────────────────────────────────────────────

    async def drain_queue(
        self,
        redis: "aioredis.Redis",
        max_items: int = MAX_PER_CYCLE,
    ) -> dict:
        """
        Process up to *max_items* queued requests and publish their results.

        Stops early when the queue is empty.  Returns a drain report.
        """
        started_at = self.clock()
        cycle_id = f"MQ-{started_at:%Y%m%d-%H%M%S}"
        processed = published = dead_lettered = results_total = 0

        while processed < max_items:
            raw = await redis.lpop(MATCHING_QUEUE_KEY)
            if raw is None:
                break
            processed += 1

            try:
                request = MatchRequest.model_validate_json(raw)
            except PydanticValidationError as exc:
                logger.error("Failed to decode matching request: %s", exc)
                await self._dead_letter(redis, raw, exc)
                dead_lettered += 1
                continue

            try:
                results = await self.match_channels(request)
                await self._publish_results(request, results)
            except Exception as exc:
                logger.exception(
                    "Failed to match queued request for user %s", request.user_id,
                )
                await self._dead_letter(redis, raw, exc)
                dead_lettered += 1
                continue

            published += 1
            results_total += len(results)

        report = build_drain_report(
            cycle_id=cycle_id,
            started_at=started_at,
            completed_at=self.clock(),
            processed=processed,
            published=published,
            dead_lettered=dead_lettered,
            results_total=results_total,
        )
        if processed:
            logger.info(
                "Drain %s: %d processed, %d published, %d dead-lettered",
                cycle_id, processed, published, dead_lettered,
            )
        return report

    async def _publish_results(self, request: MatchRequest, results: list[MatchResult]) -> None:
        if self.publisher is None:
            return
        await self.publisher.publish(
            MATCHING_EVENTS_STREAM,
            request.user_id,
            {
                "type": "matching_completed",
                "request": request.model_dump(mode="json"),
                "results": [r.model_dump(mode="json") for r in results],
                "result_count": len(results),
                "timestamp": int(self.clock().timestamp()),
            },
        )

    async def _dead_letter(self, redis: "aioredis.Redis", raw: str, exc: Exception) -> None:
        entry = json.dumps({
            "item": raw,
            "error": f"{type(exc).__name__}: {exc}",
            "failed_at": self.clock().isoformat(),
        })
        try:
            await redis.rpush(MATCHING_DEAD_LETTER_KEY, entry)
        except Exception:
            logger.exception("Failed to dead-letter matching request")


def build_matching_engine(
    redis: "aioredis.Redis",
    session: "AsyncSession",
    clock: Clock = utcnow,
) -> MatchingEngine:
    """Wire an engine from a Redis client and a DB session."""
    directory = ChannelDirectory(redis, ChannelRepository(session))
    return MatchingEngine(
        directory=directory,
        token_store=RedirectTokenStore(redis, clock=clock),
        publisher=EventPublisher(redis),
        clock=clock,
    )
