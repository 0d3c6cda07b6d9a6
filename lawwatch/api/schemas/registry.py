"""
Registry schemas for API.

DTOs for whole-registry snapshots and the aggregate diffs recorded by the
registry checksum monitor.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from lawwatch.api.schemas.base import BaseSchema, BaseResponse
from lawwatch.core.domain.entities import DiffEntry, RegistryDiff, RegistrySnapshot
from lawwatch.core.enums import ChangeType

# ======================== REGISTRY MODELS ========================

class DiffEntryDTO(BaseSchema):
    law_id: str
    name: str
    number: str
    category: str
    change_type: ChangeType
    previous_value: Optional[str] = None
    current_value: Optional[str] = None
    detected_at: datetime


class RegistryDiffDTO(BaseSchema):
    previous_snapshot_id: str = Field(..., description="Snapshot the diff starts from")
    current_snapshot_id: str = Field(..., description="Snapshot the diff ends at")
    detected_at: datetime
    total_new: int = Field(..., ge=0)
    total_modified: int = Field(..., ge=0)
    total_removed: int = Field(..., ge=0)
    affected_categories: List[str] = Field(default_factory=list)
    new_laws: List[DiffEntryDTO] = Field(default_factory=list)
    modified_laws: List[DiffEntryDTO] = Field(default_factory=list)
    removed_laws: List[DiffEntryDTO] = Field(default_factory=list)


class CategorySummaryDTO(BaseSchema):
    category: str
    count: int = Field(..., ge=0)
    last_modified: str = Field(..., description="Latest promulgation date in the category")


class RegistrySnapshotDTO(BaseSchema):
    id: str
    snapshot_date: datetime
    total_instrument_count: int = Field(..., ge=0)
    checksum: str
    version: str
    source: str
    last_update_date: datetime
    categories: List[CategorySummaryDTO] = Field(default_factory=list)


class RegistryCheckDTO(BaseSchema):
    changed: bool = Field(..., description="Whether a significant diff was recorded")
    diff: Optional[RegistryDiffDTO] = None


class RegistryCheckResponse(BaseResponse[RegistryCheckDTO]):
    pass


class RegistryDiffListResponse(BaseResponse[List[RegistryDiffDTO]]):
    pass


class RegistrySnapshotResponse(BaseResponse[RegistrySnapshotDTO]):
    pass

# ======================== CONVERSION FUNCTIONS ========================

def _entry_to_dto(entry: DiffEntry) -> DiffEntryDTO:
    return DiffEntryDTO(
        law_id=entry.law_id,
        name=entry.name,
        number=entry.number,
        category=entry.category,
        change_type=entry.change_type,
        previous_value=entry.previous_value,
        current_value=entry.current_value,
        detected_at=entry.detected_at,
    )


def registry_diff_to_dto(diff: RegistryDiff) -> RegistryDiffDTO:
    return RegistryDiffDTO(
        previous_snapshot_id=diff.previous_snapshot_id,
        current_snapshot_id=diff.current_snapshot_id,
        detected_at=diff.detected_at,
        total_new=diff.summary.total_new,
        total_modified=diff.summary.total_modified,
        total_removed=diff.summary.total_removed,
        affected_categories=list(diff.summary.affected_categories),
        new_laws=[_entry_to_dto(e) for e in diff.new_laws],
        modified_laws=[_entry_to_dto(e) for e in diff.modified_laws],
        removed_laws=[_entry_to_dto(e) for e in diff.removed_laws],
    )


def registry_snapshot_to_dto(snapshot: RegistrySnapshot) -> RegistrySnapshotDTO:
    return RegistrySnapshotDTO(
        id=snapshot.id,
        snapshot_date=snapshot.snapshot_date,
        total_instrument_count=snapshot.total_instrument_count,
        checksum=snapshot.checksum,
        version=snapshot.metadata.version,
        source=snapshot.metadata.source,
        last_update_date=snapshot.metadata.last_update_date,
        categories=[
            CategorySummaryDTO(category=c.category, count=c.count, last_modified=c.last_modified)
            for c in snapshot.metadata.categories
        ],
    )
