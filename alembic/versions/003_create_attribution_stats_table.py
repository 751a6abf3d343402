"""create attribution stats table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic
revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "attribution_stats",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("channel_id", sa.String(64), nullable=False),
        sa.Column("period", sa.String(10), nullable=False),
        sa.Column("total_clicks", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("total_conversions", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("conversion_rate", sa.Float(), server_default="0", nullable=False),
        sa.Column(
            "total_revenue",
            sa.Numeric(precision=24, scale=8),
            server_default="0",
            nullable=False,
        ),
        sa.Column(
            "average_order_value",
            sa.Numeric(precision=24, scale=8),
            server_default="0",
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        # One snapshot per channel per day; the rollup upserts on this
        sa.UniqueConstraint("channel_id", "period", name="uq_attribution_stats_channel_period"),
    )
    op.create_index("ix_attribution_stats_channel_id", "attribution_stats", ["channel_id"])
    op.create_index("ix_attribution_stats_period", "attribution_stats", ["period"])


def downgrade() -> None:
    op.drop_index("ix_attribution_stats_period", table_name="attribution_stats")
    op.drop_index("ix_attribution_stats_channel_id", table_name="attribution_stats")
    op.drop_table("attribution_stats")
