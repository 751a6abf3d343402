"""
Drain reporting — structured summaries of matching-queue drain cycles.

Returned by the Celery task and the manual script, and logged for
operators watching queue health.
"""

from datetime import datetime


def build_drain_report(
    cycle_id: str,
    started_at: datetime,
    completed_at: datetime,
    processed: int,
    published: int,
    dead_lettered: int,
    results_total: int = 0,
) -> dict:
    """
    Build a JSON-safe report for a completed drain cycle.

    ``processed`` counts every item popped from the queue, including the
    ones that ended up dead-lettered.
    """
    duration = completed_at - started_at
    duration_ms = int(duration.total_seconds() * 1000)

    if processed > 0:
        success_rate = f"{published / processed * 100:.1f}"
    else:
        success_rate = "0"

    return {
        "cycle_id": cycle_id,
        "started_at": started_at.isoformat(),
        "completed_at": completed_at.isoformat(),
        "duration_ms": duration_ms,
        "processed": processed,
        "published": published,
        "dead_lettered": dead_lettered,
        "results_total": results_total,
        "success_rate": success_rate,
    }
