"""
API v1 - Scan Endpoints

Manual scan triggers and change queries.
"""

import time

from fastapi import APIRouter, Depends, Query, Request

from lawwatch.api.dependencies import get_scan_orchestrator
from lawwatch.api.errors import get_request_id, unwrap_or_raise
from lawwatch.api.schemas.base import ResponseMetadata
from lawwatch.api.schemas.scan import (
    CategoryScanRequest, ChangeListResponse, ScanResultResponse, ScanStatisticsResponse,
    change_detection_to_dto, scan_result_to_dto, scan_statistics_to_dto
)
from lawwatch.core.logging_config import get_logger
from lawwatch.services.scan_orchestrator import ScanOrchestrator

logger = get_logger(__name__)

router = APIRouter(prefix="/scans", tags=["Scans"])


def _metadata(request: Request, start: float) -> ResponseMetadata:
    return ResponseMetadata(
        request_id=get_request_id(request),
        duration_ms=(time.perf_counter() - start) * 1000
    )

# ======================== SCAN TRIGGERS ========================

@router.post("/full", response_model=ScanResultResponse, summary="Run a full registry scan")
async def run_full_scan(
    request: Request,
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator)
) -> ScanResultResponse:
    start = time.perf_counter()
    scan = unwrap_or_raise(await orchestrator.perform_full_scan(), request)
    return ScanResultResponse(success=True, data=scan_result_to_dto(scan), metadata=_metadata(request, start))


@router.post("/incremental", response_model=ScanResultResponse, summary="Run an incremental scan")
async def run_incremental_scan(
    request: Request,
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator)
) -> ScanResultResponse:
    start = time.perf_counter()
    scan = unwrap_or_raise(await orchestrator.perform_incremental_scan(), request)
    return ScanResultResponse(success=True, data=scan_result_to_dto(scan), metadata=_metadata(request, start))


@router.post("/category", response_model=ScanResultResponse, summary="Run a scan reporting selected categories")
async def run_category_scan(
    request: Request,
    body: CategoryScanRequest,
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator)
) -> ScanResultResponse:
    start = time.perf_counter()
    logger.info("Category scan requested", extra={"categories": body.categories})
    scan = unwrap_or_raise(await orchestrator.perform_category_scan(body.categories), request)
    return ScanResultResponse(success=True, data=scan_result_to_dto(scan), metadata=_metadata(request, start))

# ======================== QUERIES ========================

@router.get("/changes", response_model=ChangeListResponse, summary="Recent change detections")
async def get_recent_changes(
    request: Request,
    days: int = Query(7, ge=1, le=365, description="Look-back window in days"),
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator)
) -> ChangeListResponse:
    start = time.perf_counter()
    changes = unwrap_or_raise(await orchestrator.get_recent_changes(days), request)
    return ChangeListResponse(
        success=True,
        data=[change_detection_to_dto(c) for c in changes],
        metadata=_metadata(request, start)
    )


@router.get("/statistics", response_model=ScanStatisticsResponse, summary="Scan statistics")
async def get_scan_statistics(
    request: Request,
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator)
) -> ScanStatisticsResponse:
    start = time.perf_counter()
    statistics = unwrap_or_raise(await orchestrator.get_scan_statistics(), request)
    return ScanStatisticsResponse(
        success=True,
        data=scan_statistics_to_dto(statistics),
        metadata=_metadata(request, start)
    )
