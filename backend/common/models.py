from __future__ import annotations

import enum

from pydantic import BaseModel


class DuplicateStatus(str, enum.Enum):
    unique = "unique"
    potential = "potential"
    duplicate = "duplicate"


class DuplicateStatusFilter(str, enum.Enum):
    potential = "potential"
    duplicate = "duplicate"
    all_non_unique = "all_non_unique"

    def statuses(self) -> list[DuplicateStatus]:
        if self is DuplicateStatusFilter.all_non_unique:
            return [DuplicateStatus.potential, DuplicateStatus.duplicate]
        return [DuplicateStatus(self.value)]


class CharacteristicsAction(str, enum.Enum):
    keep_canonical = "keep_canonical"
    use_duplicate = "use_duplicate"
    keep_both = "keep_both"


class MatchType(str, enum.Enum):
    exact = "exact"
    fuzzy = "fuzzy"


class ScanResultOut(BaseModel):
    """Outcome of a duplicate scan pass, shared by the API and the scan worker."""

    success: bool = True
    backfilled_count: int = 0
    groups_found: int = 0
    devices_marked: int = 0
