from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.catalogue_api.app.auth import verify_api_key
from backend.catalogue_api.app.repos.devices import (
    find_similar_by_name,
    get_duplicate_candidates,
    get_duplicate_stats,
    list_devices_by_duplicate_status,
    mark_as_duplicate,
    resolve_as_unique,
)
from backend.catalogue_api.app.repos.merge import get_merge_preview, merge_duplicate
from backend.catalogue_api.app.schemas import (
    DuplicateCandidatesOut,
    DuplicateListOut,
    DuplicateStatsOut,
    MarkDuplicateIn,
    MergeIn,
    MergePreviewOut,
    MergeResultOut,
    SimilarDevicesOut,
    SuccessOut,
)
from backend.common.config import Settings, get_settings
from backend.common.constants import MAX_DUPLICATE_LIST_LIMIT
from backend.common.db import get_session
from backend.common.models import DuplicateStatusFilter, ScanResultOut
from backend.dedup_service.app.scanner import DuplicateScanner

# All duplicate management endpoints require the API key
router = APIRouter(prefix="/v1/devices", tags=["duplicates"], dependencies=[Depends(verify_api_key)])


@router.post("/duplicates/scan", response_model=ScanResultOut)
async def scan_for_duplicates_endpoint(db: AsyncSession = Depends(get_session)):
    """Backfill normalized names and flag (normalized name, type) groups as potential duplicates."""
    return await DuplicateScanner(db).scan()


@router.get("/duplicates/stats", response_model=DuplicateStatsOut)
async def get_duplicate_stats_endpoint(db: AsyncSession = Depends(get_session)):
    """Count devices per duplicate status."""
    return await get_duplicate_stats(db)


@router.get("/duplicates/merge-preview", response_model=MergePreviewOut)
async def get_merge_preview_endpoint(
    canonical_id: str = Query(..., min_length=1),
    duplicate_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_session)
):
    """Show what merging duplicate_id into canonical_id would transfer and where it conflicts."""
    return await get_merge_preview(db, canonical_id, duplicate_id)


@router.post("/duplicates/merge", response_model=MergeResultOut)
async def merge_duplicate_endpoint(
    payload: MergeIn,
    db: AsyncSession = Depends(get_session)
):
    """Merge a duplicate device into its canonical version."""
    return await merge_duplicate(
        db,
        payload.canonical_id,
        payload.duplicate_id,
        characteristics_action=payload.characteristics_action,
        delete_after_merge=payload.delete_after_merge,
    )


@router.post("/duplicates/mark", response_model=SuccessOut)
async def mark_as_duplicate_endpoint(
    payload: MarkDuplicateIn,
    db: AsyncSession = Depends(get_session)
):
    """Flag a device as duplicate of another without moving its relations."""
    return await mark_as_duplicate(db, payload.canonical_id, payload.duplicate_id)


@router.get("/duplicates", response_model=DuplicateListOut)
async def list_duplicates_endpoint(
    status: DuplicateStatusFilter = Query(..., description="potential, duplicate or all_non_unique"),
    limit: int | None = Query(None, ge=1, le=MAX_DUPLICATE_LIST_LIMIT, description="Page size"),
    cursor: str | None = Query(None, description="next_cursor of the previous page"),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings)
):
    """List devices by duplicate status, newest first."""
    return await list_devices_by_duplicate_status(
        db, status, limit or settings.duplicate_list_limit, cursor
    )


@router.get("/similar", response_model=SimilarDevicesOut)
async def find_similar_endpoint(
    name: str = Query(..., min_length=2, description="Display name to look up"),
    type: str | None = Query(None, description="Restrict to a device type"),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings)
):
    """Find devices whose name matches, exactly after normalization or by substring."""
    return await find_similar_by_name(db, name, type, limit=settings.similar_matches_limit)


@router.get("/{device_id}/duplicate-candidates", response_model=DuplicateCandidatesOut)
async def get_duplicate_candidates_endpoint(
    device_id: str,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings)
):
    """Devices sharing normalized name and type with the given device."""
    return await get_duplicate_candidates(db, device_id, limit=settings.duplicate_candidates_limit)


@router.post("/{device_id}/resolve-unique", response_model=SuccessOut)
async def resolve_as_unique_endpoint(
    device_id: str,
    db: AsyncSession = Depends(get_session)
):
    """Dismiss a duplicate flag."""
    return await resolve_as_unique(db, device_id)
