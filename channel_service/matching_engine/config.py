"""
Matching engine configuration constants.

Defines scoring weights, fee normalisation bounds, sub-score penalties
and bonuses, the liquidity lookup table, and Redis keys used by the
matching pipeline.
"""

from dataclasses import dataclass
from decimal import Decimal

from channel_service.config import settings

# Redis keys
ELIGIBLE_CHANNELS_KEY_PREFIX = "eligible_channels"
REDIRECT_KEY_PREFIX = "redirect"
MATCHING_QUEUE_KEY = "matching:queue"
MATCHING_DEAD_LETTER_KEY = "matching:dead_letter"
MATCHING_EVENTS_STREAM = "matching-events"

# Result shaping
MAX_MATCHING_RESULTS = settings.MAX_MATCHING_RESULTS
MIN_MATCHING_SCORE = settings.MIN_MATCHING_SCORE
REDIRECT_EXPIRATION_SECONDS = settings.REDIRECT_EXPIRATION
CHANNEL_CACHE_TTL_SECONDS = settings.CHANNEL_CACHE_TTL

# Maximum number of queued requests to process per drain cycle
MAX_PER_CYCLE = settings.MATCHING_QUEUE_BATCH_SIZE


@dataclass(frozen=True)
class ScoringWeights:
    """Sub-score weights. Scores are divided by ``total`` so they stay in [0, 1]."""
    fee: float = 0.30
    availability: float = 0.25
    user_experience: float = 0.20
    security: float = 0.15
    liquidity: float = 0.10

    @property
    def total(self) -> float:
        return (
            self.fee
            + self.availability
            + self.user_experience
            + self.security
            + self.liquidity
        )


DEFAULT_WEIGHTS = ScoringWeights()

# Fee normalisation: total fee as a fraction of the order amount
FEE_FLOOR_RATE = Decimal("0.0001")     # at or below -> score 1.0
FEE_CEILING_RATE = Decimal("0.01")     # at or above -> score 0.0
FEE_CURRENCY = "USD"

# Availability penalties
PENALTY_KYC_MISSING = 0.3
PENALTY_NET_WORTH_CHECK = 0.1
PENALTY_PAYMENT_UNSUPPORTED = 0.4

# User-experience bonuses
UX_TRADING_API = 0.3
UX_LIVE_CHAT = 0.2
UX_PHONE = 0.2
UX_RESPONSE_TIME = {
    "instant": 0.3,
    "1hour": 0.2,
}
UX_RESPONSE_TIME_DEFAULT = 0.1

# Security bonuses
SECURITY_INSURANCE = 0.4
SECURITY_SEGREGATED_CUSTODY = 0.3
SECURITY_AUDITED = 0.3

# Liquidity by channel type. Order-book depth is not queried.
LIQUIDITY_SCORES: dict[str, float] = {
    "exchange": 0.9,
    "broker": 0.7,
    "dex": 0.6,
}
LIQUIDITY_DEFAULT = 0.5

# Availability reasons surfaced to the client
REASON_KYC_REQUIRED = "KYC verification required"
REASON_PAYMENT_UNSUPPORTED = "Payment method not supported"
