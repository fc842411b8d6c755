"""pytest configuration for the catalogue duplicate tests."""

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
from uuid import uuid4

# Add the repository root to the path so we can import modules
backend_path = Path(__file__).parent.parent.parent
sys.path.insert(0, str(backend_path))

# Must be set before backend.common.* is imported
os.environ.setdefault("CATALOGUE_API_KEY", "test-api-key")
os.environ.setdefault("POSTGRES_DSN", "sqlite+aiosqlite://")

import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.db import Base, build_engine, build_session_factory
from backend.common.models import DuplicateStatus
from backend.common.models_db import (
    Benchmark,
    Camera,
    Config,
    Device,
    DeviceCharacteristics,
    Link,
    ProsCons,
    Rating,
    RatingPosition,
    Screen,
    Sku,
    config_to_device,
    device_to_rating,
)


class CatalogueBuilder:
    """Inserts catalogue rows and returns their ids."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _save(self, obj) -> str:
        self.session.add(obj)
        await self.session.commit()
        return obj.id

    async def device(
        self,
        name: Optional[str] = "iPhone 15",
        type: Optional[str] = "phone",
        normalized_name: Optional[str] = None,
        status: DuplicateStatus = DuplicateStatus.unique,
        duplicate_of_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        device = Device(
            id=str(uuid4()),
            name=name,
            type=type,
            normalized_name=normalized_name,
            duplicate_status=status.value,
            duplicate_of_id=duplicate_of_id,
        )
        if created_at is not None:
            device.created_at = created_at
        return await self._save(device)

    async def link(self, device_id: str, price: int = 1000, updated_at: Optional[datetime] = None) -> str:
        link = Link(id=str(uuid4()), device_id=device_id, price=price, url="https://shop.example/item")
        if updated_at is not None:
            link.updated_at = updated_at
        return await self._save(link)

    async def pros_cons(self, device_id: str, type: str = "pro", text: str = "Great battery") -> str:
        return await self._save(ProsCons(id=str(uuid4()), device_id=device_id, type=type, text=text))

    async def config(self, name: str) -> str:
        return await self._save(Config(id=str(uuid4()), name=name))

    async def attach_config(self, device_id: str, config_id: str) -> None:
        await self.session.execute(
            config_to_device.insert().values(config_id=config_id, device_id=device_id)
        )
        await self.session.commit()

    async def rating(self, slug: str) -> str:
        return await self._save(Rating(id=str(uuid4()), name=slug.title(), slug=slug))

    async def attach_rating(self, device_id: str, rating_id: str) -> None:
        await self.session.execute(
            device_to_rating.insert().values(device_id=device_id, rating_id=rating_id)
        )
        await self.session.commit()

    async def position(self, device_id: str, rating_id: str, position: int) -> str:
        return await self._save(
            RatingPosition(id=str(uuid4()), device_id=device_id, rating_id=rating_id, position=position)
        )

    async def characteristics(self, device_id: str, slug: str, with_children: bool = True) -> str:
        characteristics_id = await self._save(
            DeviceCharacteristics(
                id=str(uuid4()),
                device_id=device_id,
                slug=slug,
                name=slug.replace("-", " ").title(),
                cpu="A16 Bionic",
            )
        )
        if with_children:
            self.session.add_all([
                Screen(id=str(uuid4()), characteristics_id=characteristics_id, position="main", size_in=6.1),
                Sku(id=str(uuid4()), characteristics_id=characteristics_id, market_id="ru", ram_gb=6, storage_gb=128),
                Camera(id=str(uuid4()), characteristics_id=characteristics_id, resolution_mp=48, aperture_fstop="1.6"),
                Benchmark(id=str(uuid4()), characteristics_id=characteristics_id, name="antutu", score=1400000),
            ])
            await self.session.commit()
        return characteristics_id

    async def status_of(self, device_id: str):
        """(duplicate_status, duplicate_of_id) read straight from the table, or None."""
        result = await self.session.execute(
            select(Device.duplicate_status, Device.duplicate_of_id).where(Device.id == device_id)
        )
        return result.first()


async def snapshot(session: AsyncSession) -> dict:
    """Every row of every table, for before/after comparisons."""
    tables = {}
    for table in Base.metadata.sorted_tables:
        result = await session.execute(select(table))
        tables[table.name] = sorted(tuple(str(v) for v in row) for row in result.all())
    return tables


@pytest_asyncio.fixture
async def async_engine():
    """Fresh in-memory database with the full catalogue schema."""
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(async_engine):
    return build_session_factory(async_engine)


@pytest_asyncio.fixture
async def async_db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def catalogue(async_db_session):
    return CatalogueBuilder(async_db_session)


@pytest_asyncio.fixture
async def db_snapshot(async_db_session):
    async def _take() -> dict:
        return await snapshot(async_db_session)
    return _take
