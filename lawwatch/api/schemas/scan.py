"""
Scan schemas for API.

DTOs for scan results, change detections and scan statistics.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from lawwatch.api.schemas.base import BaseSchema, BaseResponse
from lawwatch.core.domain.entities import ChangeDetection, ScanResult
from lawwatch.core.enums import ChangeType, ScanType
from lawwatch.services.scan_orchestrator import ScanStatistics

# ======================== CHANGE MODELS ========================

class FieldChangeDTO(BaseSchema):
    """Represents a change in a specific field."""
    field: str = Field(..., description="Name of the changed field")
    old_value: Optional[str] = Field(None, description="Previous value")
    new_value: Optional[str] = Field(None, description="New value")


class ChangeDetectionDTO(BaseSchema):
    id: str = Field(..., description="Change detection identifier")
    law_id: str = Field(..., description="Law identifier")
    law_name: str = Field(..., description="Law title")
    law_number: str = Field(..., description="Law number")
    category: str = Field(..., description="Law category")
    change_type: ChangeType = Field(..., description="Change classification")
    changes: List[FieldChangeDTO] = Field(default_factory=list, description="Changed fields")
    detected_at: datetime = Field(..., description="When the change was detected")
    previous_snapshot_id: Optional[str] = Field(None, description="Snapshot before the change")
    current_snapshot_id: Optional[str] = Field(None, description="Snapshot after the change")

# ======================== SCAN MODELS ========================

class CategoryScanRequest(BaseSchema):
    """Request for a category-restricted scan."""
    categories: List[str] = Field(
        default_factory=list,
        description="Categories to report; empty reports every category"
    )

    @field_validator('categories')
    @classmethod
    def strip_categories(cls, v: List[str]) -> List[str]:
        cleaned = [c.strip() for c in v]
        if any(not c for c in cleaned):
            raise ValueError("Category names cannot be empty")
        return cleaned


class ScanResultDTO(BaseSchema):
    scan_id: str = Field(..., description="Scan identifier")
    scan_type: ScanType = Field(..., description="Scan type")
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    total_laws_scanned: int = Field(..., ge=0)
    is_baseline: bool = Field(default=False, description="First scan against an empty store")
    total_changes: int = Field(..., ge=0)
    new_laws: List[ChangeDetectionDTO] = Field(default_factory=list)
    revised_laws: List[ChangeDetectionDTO] = Field(default_factory=list)
    abolished_laws: List[ChangeDetectionDTO] = Field(default_factory=list)
    metadata_changes: List[ChangeDetectionDTO] = Field(default_factory=list)


class ScanStatisticsDTO(BaseSchema):
    last_scan_at: Optional[datetime] = Field(None, description="Completion time of the latest scan")
    total_laws: int = Field(..., ge=0, description="Laws covered by the latest scan")
    last_week_changes: int = Field(..., ge=0)
    last_month_changes: int = Field(..., ge=0)

# ======================== RESPONSE MODELS ========================

class ScanResultResponse(BaseResponse[ScanResultDTO]):
    pass


class ChangeListResponse(BaseResponse[List[ChangeDetectionDTO]]):
    pass


class ScanStatisticsResponse(BaseResponse[ScanStatisticsDTO]):
    pass

# ======================== CONVERSION FUNCTIONS ========================

def change_detection_to_dto(detection: ChangeDetection) -> ChangeDetectionDTO:
    return ChangeDetectionDTO(
        id=detection.id,
        law_id=detection.law_id,
        law_name=detection.law_name,
        law_number=detection.law_number,
        category=detection.category,
        change_type=detection.change_type,
        changes=[FieldChangeDTO(**c.to_dict()) for c in detection.changes],
        detected_at=detection.detected_at,
        previous_snapshot_id=detection.previous_snapshot_id,
        current_snapshot_id=detection.current_snapshot_id,
    )


def scan_result_to_dto(scan: ScanResult) -> ScanResultDTO:
    return ScanResultDTO(
        scan_id=scan.scan_id,
        scan_type=scan.scan_type,
        started_at=scan.started_at,
        completed_at=scan.completed_at,
        duration_seconds=scan.duration_seconds,
        total_laws_scanned=scan.total_laws_scanned,
        is_baseline=scan.is_baseline,
        total_changes=scan.total_changes,
        new_laws=[change_detection_to_dto(d) for d in scan.new_laws],
        revised_laws=[change_detection_to_dto(d) for d in scan.revised_laws],
        abolished_laws=[change_detection_to_dto(d) for d in scan.abolished_laws],
        metadata_changes=[change_detection_to_dto(d) for d in scan.metadata_changes],
    )


def scan_statistics_to_dto(statistics: ScanStatistics) -> ScanStatisticsDTO:
    return ScanStatisticsDTO(
        last_scan_at=statistics.last_scan_at,
        total_laws=statistics.total_laws,
        last_week_changes=statistics.last_week_changes,
        last_month_changes=statistics.last_month_changes,
    )
