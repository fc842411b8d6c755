"""Duplicate detection pass over the device catalogue."""

import logging

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.models import DuplicateStatus, ScanResultOut
from backend.common.models_db import Device
from backend.common.name_utils import NameNormalizer, normalize_device_name

logger = logging.getLogger(__name__)


class DuplicateScanner:
    """
    Flags groups of devices sharing (normalized_name, type) as potential duplicates.

    The pass is not one transaction: every backfilled row and every marked
    group is committed on its own, so an interrupted scan keeps its progress
    and a rerun converges.
    """

    def __init__(self, db: AsyncSession, normalizer: NameNormalizer = normalize_device_name) -> None:
        self.db = db
        self.normalizer = normalizer

    async def scan(self) -> ScanResultOut:
        backfilled_count = await self.backfill_normalized_names()
        groups_found, devices_marked = await self.mark_potential_groups()

        logger.info(
            "Duplicate scan finished: %d names backfilled, %d groups, %d devices marked",
            backfilled_count,
            groups_found,
            devices_marked,
        )
        return ScanResultOut(
            backfilled_count=backfilled_count,
            groups_found=groups_found,
            devices_marked=devices_marked,
        )

    async def backfill_normalized_names(self) -> int:
        """Compute missing normalized names one row at a time."""
        result = await self.db.execute(
            select(Device.id, Device.name).where(
                or_(Device.normalized_name.is_(None), Device.normalized_name == "")
            )
        )
        rows = result.all()

        backfilled_count = 0
        for device_id, name in rows:
            if not name:
                continue
            try:
                normalized_name = self.normalizer(name)
                if not normalized_name:
                    logger.debug("Name %r of device %s normalizes to nothing", name, device_id)
                    continue
                await self.db.execute(
                    update(Device)
                    .where(Device.id == device_id)
                    .values(normalized_name=normalized_name)
                )
                await self.db.commit()
                backfilled_count += 1
            except Exception:
                await self.db.rollback()
                logger.warning(
                    "Failed to backfill normalized name for device %s", device_id, exc_info=True
                )

        return backfilled_count

    async def mark_potential_groups(self) -> tuple[int, int]:
        """Mark unique members of every (normalized_name, type) group of 2+ as potential."""
        result = await self.db.execute(
            select(Device.normalized_name, Device.type, func.count(Device.id))
            .where(Device.normalized_name.is_not(None), Device.normalized_name != "")
            .group_by(Device.normalized_name, Device.type)
            .having(func.count(Device.id) >= 2)
        )
        groups = result.all()

        devices_marked = 0
        for normalized_name, device_type, _count in groups:
            type_filter = Device.type.is_(None) if device_type is None else Device.type == device_type
            # Potential devices are already flagged, confirmed duplicates are never demoted
            update_result = await self.db.execute(
                update(Device)
                .where(
                    Device.normalized_name == normalized_name,
                    type_filter,
                    Device.duplicate_status == DuplicateStatus.unique.value,
                )
                .values(duplicate_status=DuplicateStatus.potential.value)
            )
            await self.db.commit()
            devices_marked += update_result.rowcount

        return len(groups), devices_marked
