"""Add device catalogue tables with duplicate tracking.

Revision ID: 20261019000100
Revises:
Create Date: 2026-10-19 00:01:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019000100"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # 1) Devices
    op.create_table(
        "devices",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("normalized_name", sa.String(), nullable=True),
        sa.Column("duplicate_status", sa.String(), nullable=False, server_default="unique"),
        sa.Column("duplicate_of_id", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "duplicate_status IN ('unique', 'potential', 'duplicate')",
            name="ck_devices_duplicate_status",
        ),
    )
    op.create_index("idx_devices_normalized_name_type", "devices", ["normalized_name", "type"])
    op.create_index("idx_devices_duplicate_status", "devices", ["duplicate_status"])
    op.create_index("idx_devices_duplicate_of_id", "devices", ["duplicate_of_id"])
    op.create_index("idx_devices_created_at_id", "devices", ["created_at", "id"])

    # 2) Configs & ratings
    op.create_table(
        "configs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("capacity", sa.String(), nullable=True),
        sa.Column("ram", sa.String(), nullable=True),
    )
    op.create_table(
        "ratings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False, unique=True),
    )

    # 3) Rows owned by a device
    op.create_table(
        "links",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.String(36), sa.ForeignKey("devices.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("idx_links_device_id", "links", ["device_id"])

    op.create_table(
        "pros_cons",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("device_id", sa.String(36), sa.ForeignKey("devices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("source", sa.String(), nullable=True),
    )
    op.create_index("idx_pros_cons_device_id", "pros_cons", ["device_id"])

    # 4) Many-to-many joins
    op.create_table(
        "config_to_device",
        sa.Column("config_id", sa.String(36), sa.ForeignKey("configs.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("device_id", sa.String(36), sa.ForeignKey("devices.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_index("idx_config_to_device_device_id", "config_to_device", ["device_id"])

    op.create_table(
        "device_to_rating",
        sa.Column("device_id", sa.String(36), sa.ForeignKey("devices.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("rating_id", sa.String(36), sa.ForeignKey("ratings.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_index("idx_device_to_rating_rating_id", "device_to_rating", ["rating_id"])

    # 5) Rating positions: one slot per position, one position per device
    op.create_table(
        "rating_positions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("rating_id", sa.String(36), sa.ForeignKey("ratings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("device_id", sa.String(36), sa.ForeignKey("devices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("custom_description", sa.Text(), nullable=True),
        sa.UniqueConstraint("rating_id", "device_id", name="uq_rating_positions_rating_device"),
        sa.UniqueConstraint("rating_id", "position", name="uq_rating_positions_rating_position"),
    )
    op.create_index("idx_rating_positions_device_id", "rating_positions", ["device_id"])

    # 6) Characteristics profile and its children
    op.create_table(
        "device_characteristics",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("device_id", sa.String(36), nullable=False),
        sa.Column("slug", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("brand", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="DRAFT"),
        sa.Column("height_mm", sa.Double(), nullable=True),
        sa.Column("width_mm", sa.Double(), nullable=True),
        sa.Column("thickness_mm", sa.Double(), nullable=True),
        sa.Column("weight_g", sa.Double(), nullable=True),
        sa.Column("cpu", sa.String(), nullable=True),
        sa.Column("gpu", sa.String(), nullable=True),
        sa.Column("nfc", sa.Boolean(), nullable=True),
        sa.Column("battery_capacity_mah", sa.Double(), nullable=True),
        sa.Column("os", sa.String(), nullable=True),
    )
    op.create_index("idx_device_characteristics_device_id", "device_characteristics", ["device_id"])

    op.create_table(
        "screens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "characteristics_id",
            sa.String(36),
            sa.ForeignKey("device_characteristics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.String(), nullable=False),
        sa.Column("size_in", sa.Double(), nullable=True),
        sa.Column("display_type", sa.String(), nullable=True),
        sa.Column("resolution", sa.String(), nullable=True),
        sa.Column("refresh_rate", sa.Integer(), nullable=True),
        sa.Column("is_main", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("characteristics_id", "position", name="uq_screens_characteristics_position"),
    )

    op.create_table(
        "skus",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "characteristics_id",
            sa.String(36),
            sa.ForeignKey("device_characteristics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("market_id", sa.String(), nullable=False),
        sa.Column("ram_gb", sa.Integer(), nullable=False),
        sa.Column("storage_gb", sa.Integer(), nullable=False),
    )
    op.create_index("idx_skus_characteristics_id", "skus", ["characteristics_id"])

    op.create_table(
        "cameras",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "characteristics_id",
            sa.String(36),
            sa.ForeignKey("device_characteristics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("resolution_mp", sa.Double(), nullable=False),
        sa.Column("aperture_fstop", sa.String(), nullable=False),
        sa.Column("sensor", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=True),
    )
    op.create_index("idx_cameras_characteristics_id", "cameras", ["characteristics_id"])

    op.create_table(
        "benchmarks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "characteristics_id",
            sa.String(36),
            sa.ForeignKey("device_characteristics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("score", sa.Double(), nullable=False),
    )
    op.create_index("idx_benchmarks_characteristics_id", "benchmarks", ["characteristics_id"])


def downgrade() -> None:
    op.drop_table("benchmarks")
    op.drop_table("cameras")
    op.drop_table("skus")
    op.drop_table("screens")
    op.drop_table("device_characteristics")
    op.drop_table("rating_positions")
    op.drop_table("device_to_rating")
    op.drop_table("config_to_device")
    op.drop_table("pros_cons")
    op.drop_table("links")
    op.drop_table("ratings")
    op.drop_table("configs")
    op.drop_table("devices")
