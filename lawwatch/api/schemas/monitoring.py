"""
Monitoring schemas for API.

DTOs for monitoring configurations and the notifications they produce.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from lawwatch.api.schemas.base import BaseSchema, BaseResponse
from lawwatch.core.domain.entities import MonitoringConfiguration, Notification
from lawwatch.core.enums import ChangeType, CheckInterval, NotificationType

# ======================== REQUEST MODELS ========================

class MonitoringCreateRequest(BaseSchema):
    user_id: str = Field(..., min_length=1, max_length=255, description="Owner of the monitoring")
    name: str = Field(..., min_length=1, max_length=500, description="Monitoring name")
    target_categories: List[str] = Field(
        default_factory=list,
        description="Categories to watch; empty watches every category"
    )
    notify_on_new: bool = True
    notify_on_modified: bool = True
    notify_on_removed: bool = True
    email_address: Optional[str] = Field(
        None, max_length=320, description="Address for email delivery; omitted disables email"
    )

# ======================== RESPONSE MODELS ========================

class MonitoringDTO(BaseSchema):
    id: str
    user_id: str
    name: str
    target_categories: List[str] = Field(default_factory=list)
    change_types: List[ChangeType] = Field(default_factory=list)
    email_address: Optional[str] = None
    check_interval: CheckInterval
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_check_at: Optional[datetime] = None


class NotificationDTO(BaseSchema):
    id: str
    monitoring_id: str
    title: str
    summary: str
    notification_type: NotificationType
    total_new: int = Field(..., ge=0)
    total_modified: int = Field(..., ge=0)
    total_removed: int = Field(..., ge=0)
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class MonitoringResponse(BaseResponse[MonitoringDTO]):
    pass


class MonitoringListResponse(BaseResponse[List[MonitoringDTO]]):
    pass


class NotificationListResponse(BaseResponse[List[NotificationDTO]]):
    pass

# ======================== CONVERSION FUNCTIONS ========================

def monitoring_to_dto(monitoring: MonitoringConfiguration) -> MonitoringDTO:
    return MonitoringDTO(
        id=monitoring.id,
        user_id=monitoring.user_id,
        name=monitoring.name,
        target_categories=list(monitoring.settings.target_categories),
        change_types=list(monitoring.settings.change_types),
        email_address=monitoring.settings.notification_settings.email_address,
        check_interval=monitoring.settings.check_interval,
        is_active=monitoring.is_active,
        created_at=monitoring.created_at,
        updated_at=monitoring.updated_at,
        last_check_at=monitoring.last_check_at,
    )


def notification_to_dto(notification: Notification) -> NotificationDTO:
    summary = notification.diff.summary
    return NotificationDTO(
        id=notification.id,
        monitoring_id=notification.monitoring_id,
        title=notification.title,
        summary=notification.summary,
        notification_type=notification.notification_type,
        total_new=summary.total_new,
        total_modified=summary.total_modified,
        total_removed=summary.total_removed,
        is_read=notification.is_read,
        read_at=notification.read_at,
        created_at=notification.created_at,
    )
