"""Tests for the Celery beat schedule and task wrappers."""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from channel_service.config import settings
from channel_service.tasks.attribution_tasks import rollup_attribution_stats
from channel_service.tasks.celery_app import celery_app
from channel_service.tasks.matching_tasks import drain_matching_queue


def test_beat_schedule():
    schedule = celery_app.conf.beat_schedule
    assert schedule["drain-matching-queue"]["task"] == (
        "channel_service.tasks.matching_tasks.drain_matching_queue"
    )
    assert schedule["drain-matching-queue"]["schedule"] == settings.MATCHING_INTERVAL
    assert schedule["rollup-attribution-stats"]["task"] == (
        "channel_service.tasks.attribution_tasks.rollup_attribution_stats"
    )
    assert schedule["rollup-attribution-stats"]["schedule"] == settings.STATS_ROLLUP_INTERVAL


def test_drain_task_returns_report():
    report = {"cycle_id": "MQ-20261018-120000", "processed": 3, "dead_lettered": 1}
    with patch(
        "channel_service.tasks.matching_tasks._drain_matching_queue_async",
        AsyncMock(return_value=report),
    ):
        assert drain_matching_queue() == report


def test_drain_task_reraises():
    with patch(
        "channel_service.tasks.matching_tasks._drain_matching_queue_async",
        AsyncMock(side_effect=RuntimeError("boom")),
    ):
        with pytest.raises(RuntimeError):
            drain_matching_queue()


def test_rollup_task_returns_report():
    report = {"period": "2026-10-18", "updated": 2, "failed": ["chan-x"]}
    with patch(
        "channel_service.tasks.attribution_tasks._rollup_attribution_stats_async",
        AsyncMock(return_value=report),
    ):
        assert rollup_attribution_stats() == report


def test_rollup_task_warns_on_finalize_failures(caplog):
    report = {
        "period": "2026-10-19", "updated": 1, "failed": [],
        "finalized": {"period": "2026-10-18", "updated": 0, "failed": ["chan-a"]},
    }
    with patch(
        "channel_service.tasks.attribution_tasks._rollup_attribution_stats_async",
        AsyncMock(return_value=report),
    ):
        with caplog.at_level(logging.WARNING, logger="channel_service.tasks.attribution_tasks"):
            rollup_attribution_stats()

    assert "2026-10-18" in caplog.text
    assert "chan-a" in caplog.text
