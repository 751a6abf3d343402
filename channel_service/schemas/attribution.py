"""
Pydantic schemas for attribution events, conversions and daily stats.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AttributionEventCreate(BaseModel):
    """Touchpoint payload. Request metadata is filled in by the server."""
    id: UUID | None = None
    user_id: str = ""
    session_id: str = ""
    event_type: str = Field("", examples=["click"])
    channel_id: str = ""
    asset_id: str = ""
    amount: Decimal = Decimal("0")
    redirect_id: str = ""
    ip_address: str = ""
    user_agent: str = ""
    referrer: str = ""
    utm_source: str = ""
    utm_medium: str = ""
    utm_campaign: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime | None = None


class ConversionCreate(BaseModel):
    id: UUID | None = None
    user_id: str = ""
    channel_id: str = ""
    asset_id: str = ""
    amount: Decimal = Decimal("0")
    fee: Decimal = Decimal("0")
    conversion_type: str = Field("", examples=["purchase"])
    revenue: Decimal = Decimal("0")
    timestamp: datetime | None = None


class ConversionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    channel_id: str
    asset_id: str | None = None
    amount: Decimal
    fee: Decimal
    conversion_type: str
    attribution_path: list[str]
    revenue: Decimal
    timestamp: datetime


class ConversionTrackedResponse(BaseModel):
    message: str
    data: ConversionResponse


class ConversionListPeriod(BaseModel):
    start: date
    end: date


class ConversionListResponse(BaseModel):
    data: list[ConversionResponse]
    count: int
    period: ConversionListPeriod


class AttributionStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    channel_id: str
    period: str
    total_clicks: int
    total_conversions: int
    conversion_rate: float
    total_revenue: Decimal
    average_order_value: Decimal


class AttributionStatsEnvelope(BaseModel):
    data: AttributionStatsResponse


class TrackAck(BaseModel):
    message: str
