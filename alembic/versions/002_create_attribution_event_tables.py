"""create attribution and conversion event tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID

# revision identifiers, used by Alembic
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "attribution_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("session_id", sa.String(64), nullable=True),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=True),
        sa.Column("asset_id", sa.String(64), nullable=True),
        sa.Column(
            "amount",
            sa.Numeric(precision=24, scale=8),
            server_default="0",
            nullable=False,
        ),
        sa.Column("redirect_id", sa.String(64), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("referrer", sa.String(1024), nullable=True),
        sa.Column("utm_source", sa.String(100), nullable=True),
        sa.Column("utm_medium", sa.String(100), nullable=True),
        sa.Column("utm_campaign", sa.String(100), nullable=True),
        sa.Column("metadata", JSONB(), server_default="{}", nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_attribution_events_user_id", "attribution_events", ["user_id"])
    op.create_index("ix_attribution_events_session_id", "attribution_events", ["session_id"])
    op.create_index("ix_attribution_events_channel_id", "attribution_events", ["channel_id"])
    op.create_index("ix_attribution_events_timestamp", "attribution_events", ["timestamp"])

    op.create_table(
        "conversion_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=False),
        sa.Column("asset_id", sa.String(64), nullable=True),
        sa.Column(
            "amount",
            sa.Numeric(precision=24, scale=8),
            server_default="0",
            nullable=False,
        ),
        sa.Column(
            "fee",
            sa.Numeric(precision=24, scale=8),
            server_default="0",
            nullable=False,
        ),
        sa.Column("conversion_type", sa.String(20), nullable=False),
        sa.Column("attribution_path", ARRAY(sa.String()), server_default="{}", nullable=False),
        sa.Column(
            "revenue",
            sa.Numeric(precision=24, scale=8),
            server_default="0",
            nullable=False,
        ),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "conversion_type IN ('purchase', 'deposit', 'trade')",
            name="ck_conversion_events_type",
        ),
    )
    op.create_index("ix_conversion_events_user_id", "conversion_events", ["user_id"])
    op.create_index("ix_conversion_events_channel_id", "conversion_events", ["channel_id"])
    op.create_index("ix_conversion_events_timestamp", "conversion_events", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_conversion_events_timestamp", table_name="conversion_events")
    op.drop_index("ix_conversion_events_channel_id", table_name="conversion_events")
    op.drop_index("ix_conversion_events_user_id", table_name="conversion_events")
    op.drop_table("conversion_events")

    op.drop_index("ix_attribution_events_timestamp", table_name="attribution_events")
    op.drop_index("ix_attribution_events_channel_id", table_name="attribution_events")
    op.drop_index("ix_attribution_events_session_id", table_name="attribution_events")
    op.drop_index("ix_attribution_events_user_id", table_name="attribution_events")
    op.drop_table("attribution_events")
