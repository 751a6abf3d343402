"""
Channel model — a third-party venue that can fulfil asset acquisition.

Channel rows are written by the external channel-sync collaborator; this
service only reads them.  Compliance fields are plain columns so the
eligibility query can filter on ``supported_regions`` directly; the
remaining descriptor blocks are JSONB.
"""

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Numeric,
    String,
    Text,
    Enum as SAEnum,
    event,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from channel_service.database import Base
from channel_service.schemas.channel import (
    ChannelAPI,
    ChannelAsset,
    ChannelCompliance,
    ChannelFees,
    ChannelSecurity,
    ChannelSnapshot,
    ChannelSupport,
    PaymentMethod,
)


class ChannelType(str, enum.Enum):
    EXCHANGE = "exchange"
    BROKER = "broker"
    DEX = "dex"
    ISSUER = "issuer"
    BANK = "bank"
    PLATFORM = "platform"


class Channel(Base):
    __tablename__ = "channels"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text)
    type: Mapped[ChannelType] = mapped_column(
        SAEnum(ChannelType, name="channeltype"), nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), default="active")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    website: Mapped[str | None] = mapped_column(String(255))

    # Compliance
    kyc_required: Mapped[bool] = mapped_column(Boolean, default=False)
    kyc_levels: Mapped[list[str]] = mapped_column(ARRAY(String), default=list)
    accredited_only: Mapped[bool] = mapped_column(Boolean, default=False)
    minimum_net_worth: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2), default=Decimal("0"),
    )
    supported_regions: Mapped[list[str]] = mapped_column(ARRAY(String), default=list)
    restricted_regions: Mapped[list[str]] = mapped_column(ARRAY(String), default=list)

    # Descriptor blocks
    supported_assets: Mapped[list[dict]] = mapped_column(JSONB, default=list)
    fees: Mapped[dict] = mapped_column(JSONB, default=dict)
    payment_methods: Mapped[list[dict]] = mapped_column(JSONB, default=list)
    support: Mapped[dict] = mapped_column(JSONB, default=dict)
    api: Mapped[dict | None] = mapped_column(JSONB)
    security: Mapped[dict] = mapped_column(JSONB, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def to_snapshot(self) -> ChannelSnapshot:
        """Build the read-only snapshot used by the directory cache and scorer."""
        channel_type = self.type.value if isinstance(self.type, ChannelType) else self.type
        return ChannelSnapshot(
            id=self.id,
            name=self.name,
            type=channel_type,
            is_active=bool(self.is_active),
            website=self.website or "",
            compliance=ChannelCompliance(
                kyc_required=bool(self.kyc_required),
                kyc_levels=list(self.kyc_levels or []),
                accredited_only=bool(self.accredited_only),
                minimum_net_worth=self.minimum_net_worth or Decimal("0"),
                supported_regions=list(self.supported_regions or []),
                restricted_regions=list(self.restricted_regions or []),
            ),
            supported_assets=[ChannelAsset(**a) for a in self.supported_assets or []],
            fees=ChannelFees(**(self.fees or {})),
            payment_methods=[PaymentMethod(**pm) for pm in self.payment_methods or []],
            support=ChannelSupport(**(self.support or {})),
            api=ChannelAPI(**self.api) if self.api else None,
            security=ChannelSecurity(**(self.security or {})),
        )

    def __repr__(self) -> str:
        return f"<Channel {self.id} ({self.type}) active={self.is_active}>"


@event.listens_for(Channel, "init")
def _set_channel_defaults(target, args, kwargs):
    if "status" not in kwargs:
        target.status = "active"
    if "is_active" not in kwargs:
        target.is_active = True
    if "kyc_required" not in kwargs:
        target.kyc_required = False
    if "accredited_only" not in kwargs:
        target.accredited_only = False
    if "minimum_net_worth" not in kwargs:
        target.minimum_net_worth = Decimal("0")
    for list_field in ("kyc_levels", "supported_regions", "restricted_regions",
                       "supported_assets", "payment_methods"):
        if list_field not in kwargs:
            setattr(target, list_field, [])
    for dict_field in ("fees", "support", "security"):
        if dict_field not in kwargs:
            setattr(target, dict_field, {})
