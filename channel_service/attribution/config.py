"""
Attribution configuration — Redis keys, path cap and counter retention.
"""

from datetime import date

from channel_service.config import settings

ATTRIBUTION_PATH_KEY_PREFIX = "attribution_path"
ATTRIBUTION_EVENTS_STREAM = "attribution-events"

# Most recent touchpoints kept per user
MAX_PATH_LENGTH = 10

ATTRIBUTION_WINDOW_SECONDS = settings.ATTRIBUTION_WINDOW
COUNTER_TTL_SECONDS = settings.COUNTER_RETENTION_DAYS * 24 * 3600
STATS_ROLLUP_INTERVAL_SECONDS = settings.STATS_ROLLUP_INTERVAL

# Counter names per touchpoint type
EVENT_COUNTERS = {
    "click": "clicks",
    "view": "views",
    "redirect": "redirects",
    "signup": "signups",
}
CONVERSIONS_COUNTER = "conversions"
REVENUE_COUNTER = "revenue"


def path_key(user_id: str) -> str:
    return f"{ATTRIBUTION_PATH_KEY_PREFIX}:{user_id}"


def counter_key(counter: str, channel_id: str, day: date) -> str:
    """``{counter}:{channel}:{YYYY-MM-DD}``"""
    return f"{counter}:{channel_id}:{day.isoformat()}"
