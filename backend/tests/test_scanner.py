"""Tests for the duplicate scan pass."""

import pytest
from sqlalchemy import select

from backend.common.models import DuplicateStatus
from backend.common.models_db import Device
from backend.common.name_utils import normalize_device_name
from backend.dedup_service.app.scanner import DuplicateScanner


async def _normalized_name(session, device_id):
    result = await session.execute(select(Device.normalized_name).where(Device.id == device_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_scan_marks_group_as_potential(async_db_session, catalogue):
    a = await catalogue.device(name="iPhone 15", type="phone", normalized_name="iphone15")
    b = await catalogue.device(name="iphone-15", type="phone", normalized_name="iphone15")
    c = await catalogue.device(name="Pixel 8", type="phone", normalized_name="pixel8")

    result = await DuplicateScanner(async_db_session).scan()

    assert result.success is True
    assert result.groups_found == 1
    assert result.devices_marked == 2
    assert (await catalogue.status_of(a)).duplicate_status == DuplicateStatus.potential.value
    assert (await catalogue.status_of(b)).duplicate_status == DuplicateStatus.potential.value
    assert (await catalogue.status_of(c)).duplicate_status == DuplicateStatus.unique.value


@pytest.mark.asyncio
async def test_second_scan_marks_nothing_new(async_db_session, catalogue):
    await catalogue.device(normalized_name="iphone15")
    await catalogue.device(normalized_name="iphone15")
    scanner = DuplicateScanner(async_db_session)

    await scanner.scan()
    second = await scanner.scan()

    assert second.backfilled_count == 0
    assert second.groups_found == 1
    assert second.devices_marked == 0


@pytest.mark.asyncio
async def test_scan_backfills_missing_normalized_names(async_db_session, catalogue):
    a = await catalogue.device(name="Galaxy S24+", normalized_name=None)
    b = await catalogue.device(name="Galaxy S24 Plus", normalized_name="")
    nameless = await catalogue.device(name=None, normalized_name=None)

    result = await DuplicateScanner(async_db_session).scan()

    assert result.backfilled_count == 2
    assert await _normalized_name(async_db_session, a) == "galaxys24plus"
    assert await _normalized_name(async_db_session, b) == "galaxys24plus"
    assert await _normalized_name(async_db_session, nameless) is None
    assert result.groups_found == 1
    assert result.devices_marked == 2


@pytest.mark.asyncio
async def test_scan_never_demotes_confirmed_duplicates(async_db_session, catalogue):
    a = await catalogue.device(normalized_name="iphone15")
    b = await catalogue.device(
        normalized_name="iphone15", status=DuplicateStatus.duplicate, duplicate_of_id=a
    )

    result = await DuplicateScanner(async_db_session).scan()

    assert result.devices_marked == 1
    assert await catalogue.status_of(a) == (DuplicateStatus.potential.value, None)
    assert await catalogue.status_of(b) == (DuplicateStatus.duplicate.value, a)


@pytest.mark.asyncio
async def test_scan_skips_rows_the_normalizer_rejects(async_db_session, catalogue):
    def flaky_normalizer(name):
        if name == "Broken ™ name":
            raise ValueError("cannot normalize")
        return normalize_device_name(name)

    broken = await catalogue.device(name="Broken ™ name", normalized_name=None)
    fine = await catalogue.device(name="Pixel 8", normalized_name=None)

    result = await DuplicateScanner(async_db_session, normalizer=flaky_normalizer).scan()

    assert result.success is True
    assert result.backfilled_count == 1
    assert await _normalized_name(async_db_session, broken) is None
    assert await _normalized_name(async_db_session, fine) == "pixel8"


@pytest.mark.asyncio
async def test_scan_keeps_types_apart(async_db_session, catalogue):
    phone = await catalogue.device(type="phone", normalized_name="galaxytab")
    tablet = await catalogue.device(type="tablet", normalized_name="galaxytab")

    result = await DuplicateScanner(async_db_session).scan()

    assert result.groups_found == 0
    assert result.devices_marked == 0
    assert (await catalogue.status_of(phone)).duplicate_status == DuplicateStatus.unique.value
    assert (await catalogue.status_of(tablet)).duplicate_status == DuplicateStatus.unique.value


@pytest.mark.asyncio
async def test_scan_groups_devices_without_type(async_db_session, catalogue):
    a = await catalogue.device(type=None, normalized_name="nothingphone2")
    b = await catalogue.device(type=None, normalized_name="nothingphone2")
    typed = await catalogue.device(type="phone", normalized_name="nothingphone2")

    result = await DuplicateScanner(async_db_session).scan()

    assert result.groups_found == 1
    assert result.devices_marked == 2
    assert (await catalogue.status_of(a)).duplicate_status == DuplicateStatus.potential.value
    assert (await catalogue.status_of(b)).duplicate_status == DuplicateStatus.potential.value
    assert (await catalogue.status_of(typed)).duplicate_status == DuplicateStatus.unique.value
