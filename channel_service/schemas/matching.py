"""
Pydantic schemas for channel matching requests, results and redirects.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from channel_service.schemas.channel import ChannelSnapshot


class MatchRequest(BaseModel):
    """A user's intent to acquire an asset. Built per call, never persisted."""
    asset_id: str = Field(..., min_length=1, examples=["BTC"])
    amount: Decimal = Field(..., gt=0, examples=[10000])
    user_id: str = Field("", examples=["user-123"])
    user_region: str = Field(..., min_length=1, examples=["US"])
    kyc_level: str = Field("", examples=["basic"])
    payment_method: str = Field("", examples=["bank_transfer"])
    preferences: dict[str, Any] = Field(default_factory=dict)


class FeeEstimate(BaseModel):
    trading_fee: Decimal
    withdrawal_fee: Decimal
    total_fee: Decimal
    currency: str = "USD"


class ChannelAvailability(BaseModel):
    available: bool = True
    reasons: list[str] = Field(default_factory=list)


class RedirectInfo(BaseModel):
    url: str
    method: str = "GET"
    parameters: dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime


class ProcessingTime(BaseModel):
    kyc: str
    deposit: str
    trade: str
    withdrawal: str


class MatchResult(BaseModel):
    """One scored candidate channel."""
    channel_id: str
    channel: ChannelSnapshot
    match_score: float
    estimated_fees: FeeEstimate
    availability: ChannelAvailability
    redirect_info: RedirectInfo | None = None
    processing_time: ProcessingTime


class MatchResponse(BaseModel):
    data: list[MatchResult]
    count: int


class RedirectToken(BaseModel):
    """Stored redirect record: where a click for this token goes."""
    token: str
    channel_id: str
    destination_url: str
    request: MatchRequest
    issued_at: datetime
    expires_at: datetime


class RedirectResponse(BaseModel):
    data: RedirectToken

