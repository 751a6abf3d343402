"""SQLAlchemy ORM models for the channel service."""

from channel_service.models.channel import Channel, ChannelType
from channel_service.models.attribution import (
    AttributionEvent,
    AttributionEventType,
    AttributionStats,
    ConversionEvent,
    ConversionType,
)

__all__ = [
    "Channel", "ChannelType",
    "AttributionEvent", "AttributionEventType",
    "ConversionEvent", "ConversionType",
    "AttributionStats",
]
