"""Merge preview and execution for duplicate devices."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Type

from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.catalogue_api.app.errors import (
    DuplicateResolutionError,
    InvalidDuplicateRequestError,
    MergePreconditionError,
)
from backend.catalogue_api.app.repos.devices import load_merge_pair, repoint_duplicates
from backend.catalogue_api.app.schemas import (
    CharacteristicsSummaryOut,
    MergeConflictsOut,
    MergeDeviceOut,
    MergePreviewOut,
    MergeResultOut,
    TransferCountsOut,
    TransferredOut,
)
from backend.common.models import CharacteristicsAction, DuplicateStatus
from backend.common.models_db import (
    CHARACTERISTICS_CHILDREN,
    Device,
    DeviceCharacteristics,
    Link,
    ProsCons,
    RatingPosition,
    config_to_device,
    device_to_rating,
)

logger = logging.getLogger(__name__)

# (canonical_position, duplicate_position) -> position kept on the canonical row
PositionPolicy = Callable[[int, int], int]


def lower_position_wins(canonical_position: int, duplicate_position: int) -> int:
    """Position 1 is the top of a rating, so the smaller number is the better rank."""
    return min(canonical_position, duplicate_position)


@dataclass(frozen=True)
class ManyToManyRelation:
    """Join table between devices and some other entity."""

    table: Table
    owner_column: str
    target_column: str


CONFIG_RELATION = ManyToManyRelation(config_to_device, "device_id", "config_id")
RATING_RELATION = ManyToManyRelation(device_to_rating, "device_id", "rating_id")


async def merge_many_to_many(
    db: AsyncSession,
    relation: ManyToManyRelation,
    duplicate_id: str,
    canonical_id: str,
) -> int:
    """
    Give the canonical device the union of both devices' associations.

    Only targets the canonical device does not already hold are inserted, then
    every row of the duplicate device is dropped. Returns the number of
    associations added to the canonical device.
    """
    owner = relation.table.c[relation.owner_column]
    target = relation.table.c[relation.target_column]

    duplicate_result = await db.execute(select(target).where(owner == duplicate_id))
    duplicate_targets = set(duplicate_result.scalars().all())

    canonical_result = await db.execute(select(target).where(owner == canonical_id))
    canonical_targets = set(canonical_result.scalars().all())

    to_move = sorted(duplicate_targets - canonical_targets)
    if to_move:
        await db.execute(
            insert(relation.table),
            [
                {relation.owner_column: canonical_id, relation.target_column: target_id}
                for target_id in to_move
            ],
        )

    await db.execute(delete(relation.table).where(owner == duplicate_id))
    return len(to_move)


async def _count(db: AsyncSession, model: Type, device_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(model).where(model.device_id == device_id)
    )
    return result.scalar() or 0


async def _count_join_rows(db: AsyncSession, relation: ManyToManyRelation, device_id: str) -> int:
    owner = relation.table.c[relation.owner_column]
    result = await db.execute(
        select(func.count()).select_from(relation.table).where(owner == device_id)
    )
    return result.scalar() or 0


async def _get_characteristics(db: AsyncSession, device_id: str) -> List[CharacteristicsSummaryOut]:
    """Every profile owned by ``device_id``; normally at most one."""
    result = await db.execute(
        select(DeviceCharacteristics.id, DeviceCharacteristics.slug, DeviceCharacteristics.name)
        .where(DeviceCharacteristics.device_id == device_id)
        .order_by(DeviceCharacteristics.id)
    )
    return [CharacteristicsSummaryOut(id=row.id, slug=row.slug, name=row.name) for row in result]


async def get_merge_preview(
    db: AsyncSession,
    canonical_id: str,
    duplicate_id: str,
) -> MergePreviewOut:
    """Describe what merging ``duplicate_id`` into ``canonical_id`` would do. Read-only."""
    canonical, duplicate = await load_merge_pair(db, canonical_id, duplicate_id)

    positions_result = await db.execute(
        select(RatingPosition.rating_id).where(RatingPosition.device_id == duplicate_id)
    )
    duplicate_rating_ids = set(positions_result.scalars().all())

    positions_result = await db.execute(
        select(RatingPosition.rating_id).where(RatingPosition.device_id == canonical_id)
    )
    canonical_rating_ids = set(positions_result.scalars().all())
    rating_conflict_ids = sorted(duplicate_rating_ids & canonical_rating_ids)

    duplicate_profiles = await _get_characteristics(db, duplicate_id)
    canonical_profiles = await _get_characteristics(db, canonical_id)

    return MergePreviewOut(
        canonical=MergeDeviceOut.model_validate(canonical),
        duplicate=MergeDeviceOut.model_validate(duplicate),
        to_transfer=TransferCountsOut(
            links=await _count(db, Link, duplicate_id),
            pros_cons=await _count(db, ProsCons, duplicate_id),
            configs=await _count_join_rows(db, CONFIG_RELATION, duplicate_id),
            ratings=await _count_join_rows(db, RATING_RELATION, duplicate_id),
            rating_positions=len(duplicate_rating_ids),
        ),
        conflicts=MergeConflictsOut(
            rating_conflicts=len(rating_conflict_ids),
            rating_conflict_ids=rating_conflict_ids,
            has_characteristics_conflict=bool(duplicate_profiles) and bool(canonical_profiles),
            duplicate_characteristics=duplicate_profiles[0] if duplicate_profiles else None,
            canonical_characteristics=canonical_profiles[0] if canonical_profiles else None,
            duplicate_profiles=duplicate_profiles,
            canonical_profiles=canonical_profiles,
        ),
    )


class DeviceMerger:
    """Folds a duplicate device's relations into its canonical device in one transaction."""

    def __init__(
        self,
        db: AsyncSession,
        position_policy: PositionPolicy = lower_position_wins,
    ) -> None:
        self.db = db
        self.position_policy = position_policy

    async def merge(
        self,
        canonical_id: str,
        duplicate_id: str,
        characteristics_action: CharacteristicsAction = CharacteristicsAction.keep_canonical,
        delete_after_merge: bool = False,
    ) -> MergeResultOut:
        if characteristics_action == CharacteristicsAction.keep_both and delete_after_merge:
            raise InvalidDuplicateRequestError(
                "Cannot keep both characteristics profiles and delete the duplicate device"
            )

        try:
            # Locks both rows before any write
            await load_merge_pair(self.db, canonical_id, duplicate_id, lock=True)

            transferred = TransferredOut()
            transferred.links = await self._reassign(Link, duplicate_id, canonical_id)
            transferred.pros_cons = await self._reassign(ProsCons, duplicate_id, canonical_id)
            transferred.configs = await merge_many_to_many(
                self.db, CONFIG_RELATION, duplicate_id, canonical_id
            )
            transferred.device_to_ratings = await merge_many_to_many(
                self.db, RATING_RELATION, duplicate_id, canonical_id
            )
            transferred.rating_positions = await self._merge_rating_positions(
                duplicate_id, canonical_id
            )
            transferred.characteristics = await self._merge_characteristics(
                duplicate_id, canonical_id, characteristics_action
            )
            await self._flip_statuses(duplicate_id, canonical_id)

            if delete_after_merge:
                leftover = await _get_characteristics(self.db, duplicate_id)
                if leftover:
                    raise MergePreconditionError(
                        f"Duplicate device still owns {len(leftover)} characteristics profile(s); "
                        "it cannot be deleted"
                    )
                await self.db.execute(delete(Device).where(Device.id == duplicate_id))

            await self.db.commit()
        except DuplicateResolutionError:
            await self.db.rollback()
            raise
        except Exception:
            await self.db.rollback()
            logger.error(
                "Merge of %s into %s failed, transaction rolled back",
                duplicate_id,
                canonical_id,
                exc_info=True,
            )
            raise

        logger.info(
            "Merged device %s into %s: %s (deleted=%s)",
            duplicate_id,
            canonical_id,
            transferred.model_dump(),
            delete_after_merge,
        )
        return MergeResultOut(transferred=transferred, duplicate_deleted=delete_after_merge)

    async def _reassign(self, model: Type, duplicate_id: str, canonical_id: str) -> int:
        result = await self.db.execute(
            update(model).where(model.device_id == duplicate_id).values(device_id=canonical_id)
        )
        return result.rowcount

    async def _merge_rating_positions(self, duplicate_id: str, canonical_id: str) -> int:
        duplicate_result = await self.db.execute(
            select(RatingPosition.id, RatingPosition.rating_id, RatingPosition.position)
            .where(RatingPosition.device_id == duplicate_id)
        )
        duplicate_positions = duplicate_result.all()

        canonical_result = await self.db.execute(
            select(RatingPosition.id, RatingPosition.rating_id, RatingPosition.position)
            .where(RatingPosition.device_id == canonical_id)
        )
        canonical_by_rating = {row.rating_id: row for row in canonical_result}

        moved = 0
        for duplicate_position in duplicate_positions:
            existing = canonical_by_rating.get(duplicate_position.rating_id)

            if existing is None:
                await self.db.execute(
                    update(RatingPosition)
                    .where(RatingPosition.id == duplicate_position.id)
                    .values(device_id=canonical_id)
                )
                moved += 1
                continue

            best_position = self.position_policy(existing.position, duplicate_position.position)
            # Free the slot first, (rating_id, position) is unique
            await self.db.execute(
                delete(RatingPosition).where(RatingPosition.id == duplicate_position.id)
            )
            if best_position != existing.position:
                await self.db.execute(
                    update(RatingPosition)
                    .where(RatingPosition.id == existing.id)
                    .values(position=best_position)
                )
            logger.info(
                "Rating %s conflict: canonical position %d, duplicate position %d, kept %d",
                duplicate_position.rating_id,
                existing.position,
                duplicate_position.position,
                best_position,
            )

        return moved

    async def _merge_characteristics(
        self,
        duplicate_id: str,
        canonical_id: str,
        action: CharacteristicsAction,
    ) -> int:
        # Acts on every profile of either device; the count stays 0 or 1
        duplicate_profiles = await _get_characteristics(self.db, duplicate_id)
        if not duplicate_profiles:
            return 0

        canonical_profiles = await _get_characteristics(self.db, canonical_id)
        if not canonical_profiles:
            await self._move_characteristics(duplicate_profiles, canonical_id)
            return 1

        if action == CharacteristicsAction.use_duplicate:
            for profile in canonical_profiles:
                await self._delete_characteristics(profile.id)
            await self._move_characteristics(duplicate_profiles, canonical_id)
            return 1

        if action == CharacteristicsAction.keep_canonical:
            for profile in duplicate_profiles:
                await self._delete_characteristics(profile.id)
            return 0

        logger.info(
            "Keeping characteristics %s on duplicate device %s unresolved",
            [profile.id for profile in duplicate_profiles],
            duplicate_id,
        )
        return 0

    async def _move_characteristics(
        self, profiles: List[CharacteristicsSummaryOut], device_id: str
    ) -> None:
        # Child rows reference the profile id and follow it
        await self.db.execute(
            update(DeviceCharacteristics)
            .where(DeviceCharacteristics.id.in_([profile.id for profile in profiles]))
            .values(device_id=device_id)
        )

    async def _delete_characteristics(self, characteristics_id: str) -> None:
        for child in CHARACTERISTICS_CHILDREN:
            await self.db.execute(delete(child).where(child.characteristics_id == characteristics_id))
        await self.db.execute(
            delete(DeviceCharacteristics).where(DeviceCharacteristics.id == characteristics_id)
        )

    async def _flip_statuses(self, duplicate_id: str, canonical_id: str) -> None:
        await repoint_duplicates(self.db, duplicate_id, canonical_id)
        await self.db.execute(
            update(Device)
            .where(Device.id == duplicate_id)
            .values(
                duplicate_status=DuplicateStatus.duplicate.value,
                duplicate_of_id=canonical_id,
            )
        )
        await self.db.execute(
            update(Device)
            .where(Device.id == canonical_id)
            .values(duplicate_status=DuplicateStatus.unique.value, duplicate_of_id=None)
        )


async def merge_duplicate(
    db: AsyncSession,
    canonical_id: str,
    duplicate_id: str,
    characteristics_action: CharacteristicsAction = CharacteristicsAction.keep_canonical,
    delete_after_merge: bool = False,
    position_policy: PositionPolicy = lower_position_wins,
) -> MergeResultOut:
    """Merge ``duplicate_id`` into ``canonical_id``."""
    merger = DeviceMerger(db, position_policy=position_policy)
    return await merger.merge(
        canonical_id,
        duplicate_id,
        characteristics_action=characteristics_action,
        delete_after_merge=delete_after_merge,
    )
