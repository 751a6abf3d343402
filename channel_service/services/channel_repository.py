"""
Channel repository — read-only queries against the ``channels`` table.

Channel rows are maintained by the channel-sync collaborator; the
matching engine only needs the eligibility query and the list of
active channel ids for the stats rollup.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from channel_service.models.channel import Channel
from channel_service.schemas.channel import ChannelSnapshot

logger = logging.getLogger(__name__)


class ChannelRepository:
    """Thin query layer over an ``AsyncSession``."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_eligible(self, asset_id: str, region: str) -> list[ChannelSnapshot]:
        """
        Active channels that list *asset_id* and support *region*.

        ``supported_assets @> [{"asset_id": ...}]`` on the JSONB column and
        ``supported_regions @> ARRAY[region]`` on the text array.  Results
        come back in primary-key order so ranking ties are deterministic.
        """
        stmt = (
            select(Channel)
            .where(
                Channel.status == "active",
                Channel.is_active.is_(True),
                Channel.supported_assets.contains([{"asset_id": asset_id}]),
                Channel.supported_regions.contains([region]),
            )
            .order_by(Channel.id)
        )
        result = await self.session.execute(stmt)
        channels = list(result.scalars().all())
        logger.debug(
            "Eligibility query for %s/%s returned %d channels",
            asset_id, region, len(channels),
        )
        return [c.to_snapshot() for c in channels]

    async def list_active_ids(self) -> list[str]:
        result = await self.session.execute(
            select(Channel.id)
            .where(Channel.status == "active", Channel.is_active.is_(True))
            .order_by(Channel.id)
        )
        return list(result.scalars().all())
