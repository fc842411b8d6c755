"""SQLAlchemy models for the device catalogue."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Double,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from backend.common.db import Base
from backend.common.models import DuplicateStatus


def _new_id() -> str:
    return str(uuid4())


class Device(Base):
    """Catalogue device (phone, tablet, ...)."""

    __tablename__ = "devices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Duplicate detection
    normalized_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    duplicate_status: Mapped[str] = mapped_column(
        String, nullable=False, default=DuplicateStatus.unique.value
    )
    # Only meaningful while duplicate_status == "duplicate"
    duplicate_of_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=datetime.utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, default=datetime.utcnow, server_default=func.now(), onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "duplicate_status IN ('unique', 'potential', 'duplicate')",
            name="ck_devices_duplicate_status",
        ),
        Index("idx_devices_normalized_name_type", "normalized_name", "type"),
        Index("idx_devices_duplicate_status", "duplicate_status"),
        Index("idx_devices_duplicate_of_id", "duplicate_of_id"),
        Index("idx_devices_created_at_id", "created_at", "id"),
    )


class Config(Base):
    """Memory/storage configuration a device is sold in."""

    __tablename__ = "configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    capacity: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    ram: Mapped[Optional[str]] = mapped_column(String, nullable=True)


class Rating(Base):
    """Named ranking list of devices."""

    __tablename__ = "ratings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, nullable=False, unique=True)


class Link(Base):
    """Marketplace price listing of a device."""

    __tablename__ = "links"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    device_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("devices.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=datetime.utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, default=datetime.utcnow, server_default=func.now(), onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_links_device_id", "device_id"),
    )


class ProsCons(Base):
    """Single pro or con statement about a device."""

    __tablename__ = "pros_cons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    device_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String, nullable=False)  # "pro" or "con"
    text: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    __table_args__ = (
        Index("idx_pros_cons_device_id", "device_id"),
    )


# Many-to-many join tables, no identity of their own
config_to_device = Table(
    "config_to_device",
    Base.metadata,
    Column("config_id", String(36), ForeignKey("configs.id", ondelete="CASCADE"), primary_key=True),
    Column("device_id", String(36), ForeignKey("devices.id", ondelete="CASCADE"), primary_key=True),
    Index("idx_config_to_device_device_id", "device_id"),
)

device_to_rating = Table(
    "device_to_rating",
    Base.metadata,
    Column("device_id", String(36), ForeignKey("devices.id", ondelete="CASCADE"), primary_key=True),
    Column("rating_id", String(36), ForeignKey("ratings.id", ondelete="CASCADE"), primary_key=True),
    Index("idx_device_to_rating_rating_id", "rating_id"),
)


class RatingPosition(Base):
    """Rank of a device inside a rating; one slot per position."""

    __tablename__ = "rating_positions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    rating_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("ratings.id", ondelete="CASCADE"),
        nullable=False,
    )
    device_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    custom_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("rating_id", "device_id", name="uq_rating_positions_rating_device"),
        UniqueConstraint("rating_id", "position", name="uq_rating_positions_rating_position"),
        Index("idx_rating_positions_device_id", "device_id"),
    )


class DeviceCharacteristics(Base):
    """Technical characteristics profile of a device."""

    __tablename__ = "device_characteristics"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    # No FK: a profile kept aside during a merge may outlive its device row
    device_id: Mapped[str] = mapped_column(String(36), nullable=False)
    slug: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    brand: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")
    height_mm: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    width_mm: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    thickness_mm: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    weight_g: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    cpu: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    gpu: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    nfc: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    battery_capacity_mah: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    os: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    __table_args__ = (
        Index("idx_device_characteristics_device_id", "device_id"),
    )


class Screen(Base):
    """Display of a characteristics profile."""

    __tablename__ = "screens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    characteristics_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("device_characteristics.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[str] = mapped_column(String, nullable=False)
    size_in: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    display_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    resolution: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    refresh_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_main: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("characteristics_id", "position", name="uq_screens_characteristics_position"),
    )


class Sku(Base):
    """Memory variant of a characteristics profile."""

    __tablename__ = "skus"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    characteristics_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("device_characteristics.id", ondelete="CASCADE"),
        nullable=False,
    )
    market_id: Mapped[str] = mapped_column(String, nullable=False)
    ram_gb: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_gb: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_skus_characteristics_id", "characteristics_id"),
    )


class Camera(Base):
    """Camera module of a characteristics profile."""

    __tablename__ = "cameras"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    characteristics_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("device_characteristics.id", ondelete="CASCADE"),
        nullable=False,
    )
    resolution_mp: Mapped[float] = mapped_column(Double, nullable=False)
    aperture_fstop: Mapped[str] = mapped_column(String, nullable=False)
    sensor: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    __table_args__ = (
        Index("idx_cameras_characteristics_id", "characteristics_id"),
    )


class Benchmark(Base):
    """Benchmark score of a characteristics profile."""

    __tablename__ = "benchmarks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    characteristics_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("device_characteristics.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    score: Mapped[float] = mapped_column(Double, nullable=False)

    __table_args__ = (
        Index("idx_benchmarks_characteristics_id", "characteristics_id"),
    )


# Children removed together with a characteristics profile
CHARACTERISTICS_CHILDREN = (Benchmark, Camera, Sku, Screen)
