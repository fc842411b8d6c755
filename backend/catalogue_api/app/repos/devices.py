"""Repository layer for device duplicate status and candidate lookups."""

import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import and_, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.catalogue_api.app.errors import (
    DeviceNotFoundError,
    InvalidDuplicateRequestError,
    MergePreconditionError,
)
from backend.catalogue_api.app.schemas import (
    DeviceCandidateOut,
    DuplicateCandidatesOut,
    DuplicateListItemOut,
    DuplicateListOut,
    DuplicateStatsOut,
    SimilarDeviceOut,
    SimilarDevicesOut,
    SuccessOut,
)
from backend.common.constants import (
    CURSOR_SEPARATOR,
    DEFAULT_DUPLICATE_CANDIDATES_LIMIT,
    DEFAULT_DUPLICATE_LIST_LIMIT,
    DEFAULT_SIMILAR_MATCHES_LIMIT,
)
from backend.common.models import DuplicateStatus, DuplicateStatusFilter, MatchType
from backend.common.models_db import Device, DeviceCharacteristics, Link
from backend.common.name_utils import NameNormalizer, normalize_device_name

logger = logging.getLogger(__name__)


async def get_device(db: AsyncSession, device_id: str) -> Device:
    """Fetch a device or raise DeviceNotFoundError."""
    result = await db.execute(select(Device).where(Device.id == device_id))
    device = result.scalar_one_or_none()
    if device is None:
        raise DeviceNotFoundError(f"Device {device_id} not found")
    return device


async def load_merge_pair(
    db: AsyncSession,
    canonical_id: str,
    duplicate_id: str,
    lock: bool = False,
) -> Tuple[Device, Device]:
    """
    Load and validate the (canonical, duplicate) pair of a merge-like operation.

    With ``lock`` the rows are read with SELECT ... FOR UPDATE in id order, so
    two overlapping operations serialize on the row locks and the later one
    re-validates against the earlier one's committed status.

    Raises:
        InvalidDuplicateRequestError: canonical_id equals duplicate_id
        DeviceNotFoundError: either id does not resolve
        MergePreconditionError: the canonical device is itself a duplicate
    """
    if canonical_id == duplicate_id:
        raise InvalidDuplicateRequestError("Cannot merge device with itself")

    stmt = (
        select(Device)
        .where(Device.id.in_([canonical_id, duplicate_id]))
        .order_by(Device.id)
        .execution_options(populate_existing=True)
    )
    if lock:
        stmt = stmt.with_for_update()

    result = await db.execute(stmt)
    devices = {device.id: device for device in result.scalars().all()}

    canonical = devices.get(canonical_id)
    if canonical is None:
        raise DeviceNotFoundError("Canonical device not found")

    duplicate = devices.get(duplicate_id)
    if duplicate is None:
        raise DeviceNotFoundError("Duplicate device not found")

    if canonical.duplicate_status == DuplicateStatus.duplicate.value:
        raise MergePreconditionError(
            "Cannot merge into a device that is itself a duplicate. Resolve the chain first."
        )

    return canonical, duplicate


async def repoint_duplicates(db: AsyncSession, from_id: str, to_id: str) -> int:
    """Move every confirmed duplicate of ``from_id`` onto ``to_id``."""
    result = await db.execute(
        update(Device)
        .where(
            Device.duplicate_of_id == from_id,
            Device.duplicate_status == DuplicateStatus.duplicate.value,
            Device.id != to_id,
        )
        .values(duplicate_of_id=to_id)
    )
    if result.rowcount:
        logger.info("Re-pointed %d duplicates of %s to %s", result.rowcount, from_id, to_id)
    return result.rowcount


async def mark_as_duplicate(
    db: AsyncSession,
    canonical_id: str,
    duplicate_id: str,
) -> SuccessOut:
    """Flag a device as duplicate of another without transferring relations."""
    try:
        await load_merge_pair(db, canonical_id, duplicate_id, lock=True)
        await repoint_duplicates(db, duplicate_id, canonical_id)
        await db.execute(
            update(Device)
            .where(Device.id == duplicate_id)
            .values(
                duplicate_status=DuplicateStatus.duplicate.value,
                duplicate_of_id=canonical_id,
            )
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Marked device %s as duplicate of %s", duplicate_id, canonical_id)
    return SuccessOut()


async def resolve_as_unique(db: AsyncSession, device_id: str) -> SuccessOut:
    """Clear any duplicate flag; earlier merges are not undone."""
    result = await db.execute(
        update(Device)
        .where(Device.id == device_id)
        .values(duplicate_status=DuplicateStatus.unique.value, duplicate_of_id=None)
    )
    if not result.rowcount:
        await db.rollback()
        raise DeviceNotFoundError(f"Device {device_id} not found")
    await db.commit()

    logger.info("Resolved device %s as unique", device_id)
    return SuccessOut()


async def find_similar_by_name(
    db: AsyncSession,
    name: str,
    device_type: Optional[str] = None,
    limit: int = DEFAULT_SIMILAR_MATCHES_LIMIT,
    normalizer: NameNormalizer = normalize_device_name,
) -> SimilarDevicesOut:
    """
    Look up devices that may be the same product as ``name``.

    Exact matches compare normalized name (and type when given). When nothing
    matches exactly, fall back to a substring search on the display name,
    meant only to seed candidate discovery.
    """
    normalized_name = normalizer(name)
    if not normalized_name:
        return SimilarDevicesOut(matches=[], match_type=MatchType.exact)

    stmt = select(Device).where(Device.normalized_name == normalized_name)
    if device_type:
        stmt = stmt.where(Device.type == device_type)
    result = await db.execute(stmt.order_by(Device.created_at).limit(limit))
    exact_matches = result.scalars().all()

    if exact_matches:
        return SimilarDevicesOut(
            matches=[SimilarDeviceOut.model_validate(d) for d in exact_matches],
            match_type=MatchType.exact,
        )

    trimmed_name = name.strip()
    first_words = " ".join(trimmed_name.split()[:2])
    result = await db.execute(
        select(Device)
        .where(
            or_(
                Device.name.ilike(f"%{_escape_like(trimmed_name)}%", escape="\\"),
                Device.name.ilike(f"%{_escape_like(first_words)}%", escape="\\"),
            )
        )
        .order_by(Device.created_at)
        .limit(limit)
    )
    fuzzy_matches = result.scalars().all()

    return SimilarDevicesOut(
        matches=[SimilarDeviceOut.model_validate(d) for d in fuzzy_matches],
        match_type=MatchType.fuzzy,
    )


async def get_duplicate_candidates(
    db: AsyncSession,
    device_id: str,
    limit: int = DEFAULT_DUPLICATE_CANDIDATES_LIMIT,
) -> DuplicateCandidatesOut:
    """List devices sharing normalized name and type with ``device_id``."""
    current = await get_device(db, device_id)

    candidates = []
    if current.normalized_name:
        type_filter = Device.type.is_(None) if current.type is None else Device.type == current.type
        result = await db.execute(
            select(Device)
            .where(
                Device.normalized_name == current.normalized_name,
                type_filter,
                Device.id != device_id,
            )
            .order_by(Device.created_at)
            .limit(limit)
        )
        candidates = list(result.scalars().all())

    device_ids = [current.id] + [c.id for c in candidates]

    # Devices that own a characteristics profile
    profile_result = await db.execute(
        select(DeviceCharacteristics.device_id)
        .where(DeviceCharacteristics.device_id.in_(device_ids))
        .distinct()
    )
    has_profile = set(profile_result.scalars().all())

    # Link counts per device
    count_result = await db.execute(
        select(Link.device_id, func.count(Link.id))
        .where(Link.device_id.in_(device_ids))
        .group_by(Link.device_id)
    )
    links_count = {row[0]: row[1] for row in count_result}

    # Most recently updated link carries the current price
    latest_links = {}
    links_result = await db.execute(
        select(Link.device_id, Link.price, Link.updated_at)
        .where(Link.device_id.in_(device_ids))
        .order_by(desc(Link.updated_at))
    )
    for link_device_id, price, updated_at in links_result:
        latest_links.setdefault(link_device_id, (price, updated_at))

    def _format(device: Device) -> DeviceCandidateOut:
        price, price_updated_at = latest_links.get(device.id, (None, None))
        return DeviceCandidateOut(
            id=device.id,
            name=device.name,
            type=device.type,
            image_url=device.image_url,
            created_at=device.created_at,
            has_profile=device.id in has_profile,
            latest_price=price,
            price_updated_at=price_updated_at,
            links_count=links_count.get(device.id, 0),
        )

    return DuplicateCandidatesOut(
        current=_format(current),
        candidates=[_format(c) for c in candidates],
    )


async def list_devices_by_duplicate_status(
    db: AsyncSession,
    status_filter: DuplicateStatusFilter,
    limit: int = DEFAULT_DUPLICATE_LIST_LIMIT,
    cursor: Optional[str] = None,
) -> DuplicateListOut:
    """Keyset-paginated review queue, newest first."""
    statuses = [s.value for s in status_filter.statuses()]
    stmt = select(Device).where(Device.duplicate_status.in_(statuses))

    if cursor:
        cursor_created_at, cursor_id = decode_cursor(cursor)
        stmt = stmt.where(
            or_(
                Device.created_at < cursor_created_at,
                and_(Device.created_at == cursor_created_at, Device.id < cursor_id),
            )
        )

    stmt = stmt.order_by(desc(Device.created_at), desc(Device.id)).limit(limit + 1)
    result = await db.execute(stmt)
    devices = list(result.scalars().all())

    next_cursor = None
    if len(devices) > limit:
        devices = devices[:limit]
        next_cursor = encode_cursor(devices[-1].created_at, devices[-1].id)

    # Display names of the canonical devices
    canonical_ids = {d.duplicate_of_id for d in devices if d.duplicate_of_id}
    canonical_names = {}
    if canonical_ids:
        names_result = await db.execute(
            select(Device.id, Device.name).where(Device.id.in_(canonical_ids))
        )
        canonical_names = {row[0]: row[1] for row in names_result}

    return DuplicateListOut(
        devices=[
            DuplicateListItemOut(
                id=d.id,
                name=d.name,
                type=d.type,
                image_url=d.image_url,
                normalized_name=d.normalized_name,
                duplicate_status=DuplicateStatus(d.duplicate_status),
                duplicate_of_id=d.duplicate_of_id,
                canonical_device_name=canonical_names.get(d.duplicate_of_id) if d.duplicate_of_id else None,
                created_at=d.created_at,
            )
            for d in devices
        ],
        next_cursor=next_cursor,
    )


async def get_duplicate_stats(db: AsyncSession) -> DuplicateStatsOut:
    """Count devices per duplicate status."""
    result = await db.execute(
        select(Device.duplicate_status, func.count(Device.id)).group_by(Device.duplicate_status)
    )
    counts = {status: count for status, count in result}
    return DuplicateStatsOut(
        unique=counts.get(DuplicateStatus.unique.value, 0),
        potential=counts.get(DuplicateStatus.potential.value, 0),
        duplicate=counts.get(DuplicateStatus.duplicate.value, 0),
    )


def encode_cursor(created_at: datetime, device_id: str) -> str:
    return f"{created_at.isoformat()}{CURSOR_SEPARATOR}{device_id}"


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    created_at_raw, sep, device_id = cursor.partition(CURSOR_SEPARATOR)
    if not sep or not device_id:
        raise InvalidDuplicateRequestError(f"Invalid cursor: {cursor}")
    try:
        created_at = datetime.fromisoformat(created_at_raw)
    except ValueError as exc:
        raise InvalidDuplicateRequestError(f"Invalid cursor: {cursor}") from exc
    return created_at, device_id


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
