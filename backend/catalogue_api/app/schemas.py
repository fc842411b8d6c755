"""Pydantic schemas for duplicate detection and merging."""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from backend.common.models import CharacteristicsAction, DuplicateStatus, MatchType


# ============ Candidate Schemas ============

class DeviceCandidateOut(BaseModel):
    """Device summary shown next to its possible duplicates."""
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime
    has_profile: bool = False
    latest_price: Optional[int] = None
    price_updated_at: Optional[datetime] = None
    links_count: int = 0


class DuplicateCandidatesOut(BaseModel):
    current: Optional[DeviceCandidateOut] = None
    candidates: List[DeviceCandidateOut] = []


class SimilarDeviceOut(BaseModel):
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


class SimilarDevicesOut(BaseModel):
    matches: List[SimilarDeviceOut] = []
    match_type: MatchType = MatchType.exact


# ============ Status Schemas ============

class MarkDuplicateIn(BaseModel):
    canonical_id: str = Field(min_length=1)
    duplicate_id: str = Field(min_length=1)


class SuccessOut(BaseModel):
    success: bool = True


class DuplicateListItemOut(BaseModel):
    """Device row in the duplicate review queue."""
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    image_url: Optional[str] = None
    normalized_name: Optional[str] = None
    duplicate_status: DuplicateStatus
    duplicate_of_id: Optional[str] = None
    canonical_device_name: Optional[str] = None
    created_at: datetime


class DuplicateListOut(BaseModel):
    devices: List[DuplicateListItemOut] = []
    next_cursor: Optional[str] = None


class DuplicateStatsOut(BaseModel):
    unique: int = 0
    potential: int = 0
    duplicate: int = 0


# ============ Merge Schemas ============

class MergeDeviceOut(BaseModel):
    id: str
    name: Optional[str] = None
    duplicate_status: DuplicateStatus

    class Config:
        from_attributes = True


class CharacteristicsSummaryOut(BaseModel):
    id: str
    slug: str
    name: str

    class Config:
        from_attributes = True


class TransferCountsOut(BaseModel):
    """Rows owned by the duplicate device that a merge would touch."""
    links: int = 0
    pros_cons: int = 0
    configs: int = 0
    ratings: int = 0
    rating_positions: int = 0


class MergeConflictsOut(BaseModel):
    rating_conflicts: int = 0
    rating_conflict_ids: List[str] = []
    has_characteristics_conflict: bool = False
    # First profile of each side; the *_profiles lists hold all of them
    duplicate_characteristics: Optional[CharacteristicsSummaryOut] = None
    canonical_characteristics: Optional[CharacteristicsSummaryOut] = None
    duplicate_profiles: List[CharacteristicsSummaryOut] = []
    canonical_profiles: List[CharacteristicsSummaryOut] = []


class MergePreviewOut(BaseModel):
    canonical: MergeDeviceOut
    duplicate: MergeDeviceOut
    to_transfer: TransferCountsOut
    conflicts: MergeConflictsOut


class MergeIn(BaseModel):
    canonical_id: str = Field(min_length=1)
    duplicate_id: str = Field(min_length=1)
    characteristics_action: CharacteristicsAction = CharacteristicsAction.keep_canonical
    delete_after_merge: bool = False


class TransferredOut(BaseModel):
    """Rows actually moved onto the canonical device."""
    links: int = 0
    pros_cons: int = 0
    configs: int = 0
    device_to_ratings: int = 0
    rating_positions: int = 0
    characteristics: int = 0


class MergeResultOut(BaseModel):
    success: bool = True
    transferred: TransferredOut
    duplicate_deleted: bool = False
