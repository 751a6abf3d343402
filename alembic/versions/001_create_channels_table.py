"""create channels table

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

# revision identifiers, used by Alembic
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    channeltype = sa.Enum(
        "exchange", "broker", "dex", "issuer", "bank", "platform",
        name="channeltype",
    )
    channeltype.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "channels",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", channeltype, nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("kyc_required", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("kyc_levels", ARRAY(sa.String()), server_default="{}", nullable=False),
        sa.Column("accredited_only", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            "minimum_net_worth",
            sa.Numeric(precision=18, scale=2),
            server_default="0",
            nullable=False,
        ),
        sa.Column("supported_regions", ARRAY(sa.String()), server_default="{}", nullable=False),
        sa.Column("restricted_regions", ARRAY(sa.String()), server_default="{}", nullable=False),
        sa.Column("supported_assets", JSONB(), server_default="[]", nullable=False),
        sa.Column("fees", JSONB(), server_default="{}", nullable=False),
        sa.Column("payment_methods", JSONB(), server_default="[]", nullable=False),
        sa.Column("support", JSONB(), server_default="{}", nullable=False),
        sa.Column("api", JSONB(), nullable=True),
        sa.Column("security", JSONB(), server_default="{}", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_channels_is_active", "channels", ["is_active"])

    # Containment lookups used by the eligibility query
    op.create_index(
        "ix_channels_supported_assets",
        "channels",
        ["supported_assets"],
        postgresql_using="gin",
    )
    op.create_index(
        "ix_channels_supported_regions",
        "channels",
        ["supported_regions"],
        postgresql_using="gin",
    )


def downgrade() -> None:
    op.drop_index("ix_channels_supported_regions", table_name="channels")
    op.drop_index("ix_channels_supported_assets", table_name="channels")
    op.drop_index("ix_channels_is_active", table_name="channels")
    op.drop_table("channels")

    sa.Enum(name="channeltype").drop(op.get_bind(), checkfirst=True)
