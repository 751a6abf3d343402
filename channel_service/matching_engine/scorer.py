"""
Channel scoring — weighted multi-factor match score for one channel.

Five independently normalised sub-scores are combined with
``ScoringWeights``:

* fee             — total estimated fee mapped linearly between an
                    amount-relative floor and ceiling
* availability    — starts at 1.0, penalised for missing KYC, a net-worth
                    gate and an unsupported payment method
* user experience — trading API, live chat, phone and response time
* security        — insurance, segregated custody, audits
* liquidity       — fixed lookup by channel type

The availability *object* on the result is computed separately from the
availability sub-score: a channel can score well and still be
``available=False``.  Callers must filter on ``available``.

Fee arithmetic uses ``Decimal``; sub-scores and the final score are floats.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from channel_service.matching_engine.config import (
    DEFAULT_WEIGHTS,
    FEE_CEILING_RATE,
    FEE_CURRENCY,
    FEE_FLOOR_RATE,
    LIQUIDITY_DEFAULT,
    LIQUIDITY_SCORES,
    PENALTY_KYC_MISSING,
    PENALTY_NET_WORTH_CHECK,
    PENALTY_PAYMENT_UNSUPPORTED,
    REASON_KYC_REQUIRED,
    REASON_PAYMENT_UNSUPPORTED,
    SECURITY_AUDITED,
    SECURITY_INSURANCE,
    SECURITY_SEGREGATED_CUSTODY,
    UX_LIVE_CHAT,
    UX_PHONE,
    UX_RESPONSE_TIME,
    UX_RESPONSE_TIME_DEFAULT,
    UX_TRADING_API,
    ScoringWeights,
)
from channel_service.schemas.channel import ChannelSnapshot
from channel_service.schemas.matching import (
    ChannelAvailability,
    FeeEstimate,
    MatchRequest,
    MatchResult,
    ProcessingTime,
)


# ── Fees ────────────────────────────────────────────────────────────────


def estimate_fees(channel: ChannelSnapshot, amount: Decimal) -> FeeEstimate:
    """Taker fee on the amount plus the flat crypto withdrawal fee."""
    trading_fee = amount * channel.fees.trading.taker
    withdrawal_fee = channel.fees.withdrawal.crypto
    return FeeEstimate(
        trading_fee=trading_fee,
        withdrawal_fee=withdrawal_fee,
        total_fee=trading_fee + withdrawal_fee,
        currency=FEE_CURRENCY,
    )


def fee_score(channel: ChannelSnapshot, amount: Decimal) -> float:
    """
    Map the total fee onto [0, 1], lower fee = higher score.

    floor   = amount * 0.0001  -> 1.0
    ceiling = amount * 0.01    -> 0.0
    Linear in between.
    """
    total_fee = estimate_fees(channel, amount).total_fee
    floor = amount * FEE_FLOOR_RATE
    ceiling = amount * FEE_CEILING_RATE

    if total_fee <= floor:
        return 1.0
    if total_fee >= ceiling:
        return 0.0
    return float(Decimal("1") - (total_fee - floor) / (ceiling - floor))


# ── Availability ────────────────────────────────────────────────────────


def _kyc_missing(channel: ChannelSnapshot, request: MatchRequest) -> bool:
    return channel.compliance.kyc_required and not request.kyc_level


def availability_score(channel: ChannelSnapshot, request: MatchRequest) -> float:
    score = 1.0
    if _kyc_missing(channel, request):
        score -= PENALTY_KYC_MISSING
    # Net worth is not known here; penalise whenever the gate exists
    if channel.compliance.minimum_net_worth > 0:
        score -= PENALTY_NET_WORTH_CHECK
    if not channel.supports_payment_method(request.payment_method):
        score -= PENALTY_PAYMENT_UNSUPPORTED
    return max(0.0, score)


def check_availability(channel: ChannelSnapshot, request: MatchRequest) -> ChannelAvailability:
    """Hard gates only: KYC and payment method."""
    availability = ChannelAvailability(available=True, reasons=[])
    if _kyc_missing(channel, request):
        availability.available = False
        availability.reasons.append(REASON_KYC_REQUIRED)
    if not channel.supports_payment_method(request.payment_method):
        availability.available = False
        availability.reasons.append(REASON_PAYMENT_UNSUPPORTED)
    return availability


# ── User experience / security / liquidity ──────────────────────────────


def ux_score(channel: ChannelSnapshot) -> float:
    score = 0.0
    if channel.api is not None and channel.api.has_trading_api:
        score += UX_TRADING_API
    if channel.support.chat:
        score += UX_LIVE_CHAT
    if channel.support.phone:
        score += UX_PHONE
    score += UX_RESPONSE_TIME.get(channel.support.response_time, UX_RESPONSE_TIME_DEFAULT)
    return min(score, 1.0)


def security_score(channel: ChannelSnapshot) -> float:
    security = channel.security
    score = 0.0
    if security.insurance is not None and security.insurance.coverage > 0:
        score += SECURITY_INSURANCE
    if security.custody.segregation:
        score += SECURITY_SEGREGATED_CUSTODY
    if security.audits:
        score += SECURITY_AUDITED
    return min(score, 1.0)


def liquidity_score(
    channel: ChannelSnapshot,
    table: Mapping[str, float] = LIQUIDITY_SCORES,
    default: float = LIQUIDITY_DEFAULT,
) -> float:
    return table.get(channel.type, default)


# ── Derived fields ──────────────────────────────────────────────────────


def estimate_processing_time(channel: ChannelSnapshot) -> ProcessingTime:
    if channel.compliance.kyc_required:
        kyc, deposit = "1-3 days", "1-2 hours"
    else:
        kyc, deposit = "not required", "instant"
    return ProcessingTime(
        kyc=kyc,
        deposit=deposit,
        trade="instant",
        withdrawal="1-24 hours",
    )


def destination_url(channel: ChannelSnapshot) -> str:
    """Where a redirect for this channel lands (before the token is appended)."""
    base = channel.website.rstrip("/")
    if channel.api is not None and channel.api.has_trading_api:
        return f"{base}/api/redirect"
    return base


# ── MatchScorer ─────────────────────────────────────────────────────────


class MatchScorer:
    """
    Pure scorer: ``score(channel, request) -> MatchResult``.

    Weights and the liquidity table are injectable so tests (and future
    tuning) can swap them without touching the scoring functions.
    """

    def __init__(
        self,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        liquidity_table: Mapping[str, float] | None = None,
        liquidity_default: float = LIQUIDITY_DEFAULT,
    ):
        if weights.total <= 0:
            raise ValueError("Scoring weights must sum to a positive value")
        self.weights = weights
        self.liquidity_table = liquidity_table if liquidity_table is not None else LIQUIDITY_SCORES
        self.liquidity_default = liquidity_default

    def sub_scores(self, channel: ChannelSnapshot, request: MatchRequest) -> dict[str, float]:
        return {
            "fee": fee_score(channel, request.amount),
            "availability": availability_score(channel, request),
            "user_experience": ux_score(channel),
            "security": security_score(channel),
            "liquidity": liquidity_score(
                channel, self.liquidity_table, self.liquidity_default,
            ),
        }

    def match_score(self, channel: ChannelSnapshot, request: MatchRequest) -> float:
        parts = self.sub_scores(channel, request)
        w = self.weights
        weighted = (
            parts["fee"] * w.fee
            + parts["availability"] * w.availability
            + parts["user_experience"] * w.user_experience
            + parts["security"] * w.security
            + parts["liquidity"] * w.liquidity
        )
        return min(max(weighted / w.total, 0.0), 1.0)

    def score(self, channel: ChannelSnapshot, request: MatchRequest) -> MatchResult:
        """Score one channel. The redirect descriptor is attached later by the engine."""
        return MatchResult(
            channel_id=channel.id,
            channel=channel,
            match_score=self.match_score(channel, request),
            estimated_fees=estimate_fees(channel, request.amount),
            availability=check_availability(channel, request),
            redirect_info=None,
            processing_time=estimate_processing_time(channel),
        )
