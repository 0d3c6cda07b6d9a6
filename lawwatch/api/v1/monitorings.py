"""
API v1 - Monitoring Endpoints
"""

from fastapi import APIRouter, Depends, Path, Query, Request, status

from lawwatch.api.dependencies import get_monitoring_service
from lawwatch.api.errors import get_request_id, unwrap_or_raise
from lawwatch.api.schemas.base import BaseResponse, ResponseMetadata
from lawwatch.api.schemas.monitoring import (
    MonitoringCreateRequest, MonitoringListResponse, MonitoringResponse,
    NotificationListResponse, monitoring_to_dto, notification_to_dto
)
from lawwatch.services.monitoring_service import MonitoringService

router = APIRouter(tags=["Monitoring"])


@router.post(
    "/monitorings",
    response_model=MonitoringResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a whole-registry monitoring"
)
async def create_monitoring(
    request: Request,
    body: MonitoringCreateRequest,
    service: MonitoringService = Depends(get_monitoring_service)
) -> MonitoringResponse:
    monitoring = unwrap_or_raise(
        await service.create_comprehensive_monitoring(
            user_id=body.user_id,
            name=body.name,
            target_categories=body.target_categories,
            notify_on_new=body.notify_on_new,
            notify_on_modified=body.notify_on_modified,
            notify_on_removed=body.notify_on_removed,
            email_address=body.email_address,
        ),
        request
    )
    return MonitoringResponse(
        success=True,
        data=monitoring_to_dto(monitoring),
        metadata=ResponseMetadata(request_id=get_request_id(request))
    )


@router.get("/monitorings", response_model=MonitoringListResponse, summary="A user's monitorings")
async def list_monitorings(
    request: Request,
    user_id: str = Query(..., min_length=1),
    service: MonitoringService = Depends(get_monitoring_service)
) -> MonitoringListResponse:
    monitorings = unwrap_or_raise(await service.get_user_monitorings(user_id), request)
    return MonitoringListResponse(
        success=True,
        data=[monitoring_to_dto(m) for m in monitorings],
        metadata=ResponseMetadata(request_id=get_request_id(request))
    )


@router.post(
    "/monitorings/{monitoring_id}/deactivate",
    response_model=MonitoringResponse,
    summary="Deactivate a monitoring"
)
async def deactivate_monitoring(
    request: Request,
    monitoring_id: str = Path(..., min_length=1),
    user_id: str = Query(..., min_length=1),
    service: MonitoringService = Depends(get_monitoring_service)
) -> MonitoringResponse:
    monitoring = unwrap_or_raise(await service.deactivate_monitoring(monitoring_id, user_id), request)
    return MonitoringResponse(
        success=True,
        data=monitoring_to_dto(monitoring),
        metadata=ResponseMetadata(request_id=get_request_id(request))
    )


@router.delete(
    "/monitorings/{monitoring_id}",
    response_model=BaseResponse[None],
    summary="Delete a monitoring"
)
async def delete_monitoring(
    request: Request,
    monitoring_id: str = Path(..., min_length=1),
    user_id: str = Query(..., min_length=1),
    service: MonitoringService = Depends(get_monitoring_service)
) -> BaseResponse[None]:
    unwrap_or_raise(await service.delete_monitoring(monitoring_id, user_id), request)
    return BaseResponse[None](success=True, metadata=ResponseMetadata(request_id=get_request_id(request)))


@router.get("/notifications", response_model=NotificationListResponse, summary="A user's notifications")
async def list_notifications(
    request: Request,
    user_id: str = Query(..., min_length=1),
    service: MonitoringService = Depends(get_monitoring_service)
) -> NotificationListResponse:
    notifications = unwrap_or_raise(await service.get_user_notifications(user_id), request)
    return NotificationListResponse(
        success=True,
        data=[notification_to_dto(n) for n in notifications],
        metadata=ResponseMetadata(request_id=get_request_id(request))
    )


@router.post(
    "/notifications/{notification_id}/read",
    response_model=BaseResponse[None],
    summary="Mark a notification as read"
)
async def mark_notification_read(
    request: Request,
    notification_id: str = Path(..., min_length=1),
    service: MonitoringService = Depends(get_monitoring_service)
) -> BaseResponse[None]:
    unwrap_or_raise(await service.mark_notification_read(notification_id), request)
    return BaseResponse[None](success=True, metadata=ResponseMetadata(request_id=get_request_id(request)))
