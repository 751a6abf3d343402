"""
Attribution models — raw touchpoints, conversions and daily stat snapshots.

Touchpoints and conversions are append-only audit records.  A conversion
stores a frozen copy of the user's attribution path at the moment it was
booked.  ``AttributionStats`` rows are upserted by the hourly rollup and
are what the stats endpoint serves.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    DateTime,
    Float,
    Numeric,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from channel_service.database import Base


class AttributionEventType(str, enum.Enum):
    CLICK = "click"
    VIEW = "view"
    REDIRECT = "redirect"
    SIGNUP = "signup"


class ConversionType(str, enum.Enum):
    PURCHASE = "purchase"
    DEPOSIT = "deposit"
    TRADE = "trade"


class AttributionEvent(Base):
    __tablename__ = "attribution_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(64), index=True)
    # Free-form so unknown types are still kept for audit
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    channel_id: Mapped[str | None] = mapped_column(String(64), index=True)
    asset_id: Mapped[str | None] = mapped_column(String(64))
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=24, scale=8), default=Decimal("0"),
    )
    redirect_id: Mapped[str | None] = mapped_column(String(64))

    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(512))
    referrer: Mapped[str | None] = mapped_column(String(1024))
    utm_source: Mapped[str | None] = mapped_column(String(100))
    utm_medium: Mapped[str | None] = mapped_column(String(100))
    utm_campaign: Mapped[str | None] = mapped_column(String(100))
    event_metadata: Mapped[dict] = mapped_column("metadata", JSONB, default=dict)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    @property
    def touchpoint(self) -> str:
        """Path entry in ``channel:eventType:unixTimestamp`` form."""
        return f"{self.channel_id or ''}:{self.event_type}:{int(self.timestamp.timestamp())}"

    def __repr__(self) -> str:
        return f"<AttributionEvent {self.event_type} user={self.user_id} channel={self.channel_id}>"


class ConversionEvent(Base):
    __tablename__ = "conversion_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    channel_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    asset_id: Mapped[str | None] = mapped_column(String(64))
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=24, scale=8), default=Decimal("0"),
    )
    fee: Mapped[Decimal] = mapped_column(
        Numeric(precision=24, scale=8), default=Decimal("0"),
    )
    conversion_type: Mapped[str] = mapped_column(String(20), nullable=False)
    attribution_path: Mapped[list[str]] = mapped_column(ARRAY(String), default=list)
    revenue: Mapped[Decimal] = mapped_column(
        Numeric(precision=24, scale=8), default=Decimal("0"),
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<ConversionEvent {self.conversion_type} "
            f"channel={self.channel_id} revenue={self.revenue}>"
        )


class AttributionStats(Base):
    __tablename__ = "attribution_stats"
    __table_args__ = (
        UniqueConstraint("channel_id", "period", name="uq_attribution_stats_channel_period"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    channel_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    period: Mapped[str] = mapped_column(String(10), index=True, nullable=False)  # YYYY-MM-DD
    total_clicks: Mapped[int] = mapped_column(BigInteger, default=0)
    total_conversions: Mapped[int] = mapped_column(BigInteger, default=0)
    conversion_rate: Mapped[float] = mapped_column(Float, default=0.0)
    total_revenue: Mapped[Decimal] = mapped_column(
        Numeric(precision=24, scale=8), default=Decimal("0"),
    )
    average_order_value: Mapped[Decimal] = mapped_column(
        Numeric(precision=24, scale=8), default=Decimal("0"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<AttributionStats {self.channel_id} {self.period}>"


@event.listens_for(AttributionEvent, "init")
def _set_event_defaults(target, args, kwargs):
    if "id" not in kwargs:
        target.id = uuid.uuid4()
    if "timestamp" not in kwargs:
        target.timestamp = datetime.now(timezone.utc)
    if "amount" not in kwargs:
        target.amount = Decimal("0")
    if "event_metadata" not in kwargs:
        target.event_metadata = {}


@event.listens_for(ConversionEvent, "init")
def _set_conversion_defaults(target, args, kwargs):
    if "id" not in kwargs:
        target.id = uuid.uuid4()
    if "timestamp" not in kwargs:
        target.timestamp = datetime.now(timezone.utc)
    if "attribution_path" not in kwargs:
        target.attribution_path = []
    for field in ("amount", "fee", "revenue"):
        if field not in kwargs:
            setattr(target, field, Decimal("0"))
