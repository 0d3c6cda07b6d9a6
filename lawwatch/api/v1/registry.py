"""
API v1 - Registry Endpoints

Whole-registry checksum checks and the diffs and snapshots they record.
"""

from fastapi import APIRouter, Depends, Path, Query, Request

from lawwatch.api.dependencies import get_registry_monitor
from lawwatch.api.errors import get_request_id, unwrap_or_raise
from lawwatch.api.schemas.base import ResponseMetadata
from lawwatch.api.schemas.registry import (
    RegistryCheckDTO, RegistryCheckResponse, RegistryDiffListResponse, RegistrySnapshotResponse,
    registry_diff_to_dto, registry_snapshot_to_dto
)
from lawwatch.services.registry_monitor import RegistryMonitor

router = APIRouter(prefix="/registry", tags=["Registry"])


@router.post("/check", response_model=RegistryCheckResponse, summary="Run a registry checksum check")
async def check_registry(
    request: Request,
    monitor: RegistryMonitor = Depends(get_registry_monitor)
) -> RegistryCheckResponse:
    diff = unwrap_or_raise(await monitor.check_for_updates(), request)
    return RegistryCheckResponse(
        success=True,
        data=RegistryCheckDTO(
            changed=diff is not None,
            diff=registry_diff_to_dto(diff) if diff is not None else None
        ),
        metadata=ResponseMetadata(request_id=get_request_id(request))
    )


@router.get("/diffs", response_model=RegistryDiffListResponse, summary="Recorded registry diffs")
async def get_registry_diffs(
    request: Request,
    limit: int = Query(10, ge=1, le=100, description="Maximum number of diffs"),
    monitor: RegistryMonitor = Depends(get_registry_monitor)
) -> RegistryDiffListResponse:
    diffs = unwrap_or_raise(await monitor.get_recent_diffs(limit), request)
    return RegistryDiffListResponse(
        success=True,
        data=[registry_diff_to_dto(d) for d in diffs],
        metadata=ResponseMetadata(request_id=get_request_id(request))
    )


@router.get("/snapshots/{snapshot_id}", response_model=RegistrySnapshotResponse, summary="A registry snapshot")
async def get_registry_snapshot(
    request: Request,
    snapshot_id: str = Path(..., min_length=1),
    monitor: RegistryMonitor = Depends(get_registry_monitor)
) -> RegistrySnapshotResponse:
    snapshot = unwrap_or_raise(await monitor.get_snapshot(snapshot_id), request)
    return RegistrySnapshotResponse(
        success=True,
        data=registry_snapshot_to_dto(snapshot),
        metadata=ResponseMetadata(request_id=get_request_id(request))
    )
