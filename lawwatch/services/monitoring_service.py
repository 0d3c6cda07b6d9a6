"""
Monitoring Service

Registration of whole-registry monitoring configurations and access to the
notifications they produced.
"""

from typing import List, Optional

from lawwatch.core.domain.entities import (
    MonitoringConfiguration, MonitoringSettings, Notification,
    NotificationPreferences, create_monitoring_configuration
)
from lawwatch.core.enums import ChangeType, CheckInterval
from lawwatch.core.exceptions import ErrorCode, ValidationError
from lawwatch.core.logging_config import get_logger
from lawwatch.core.result import Result, Ok, Err
from lawwatch.core.domain.repositories import LawWatchStore
from lawwatch.services.notification.service import is_valid_email


class MonitoringService:
    """User-scoped monitoring configuration operations."""

    def __init__(self, store: LawWatchStore):
        self.store = store
        self.logger = get_logger(__name__)

    async def create_comprehensive_monitoring(
        self,
        user_id: str,
        name: str,
        target_categories: Optional[List[str]] = None,
        notify_on_new: bool = True,
        notify_on_modified: bool = True,
        notify_on_removed: bool = True,
        email_address: Optional[str] = None
    ) -> Result[MonitoringConfiguration]:
        """
        Register a daily monitoring of the whole registry (or of ``target_categories``).

        Email delivery is enabled only when ``email_address`` is given.
        """
        if email_address is not None and not is_valid_email(email_address):
            return Err(f"Invalid email address: {email_address}", ErrorCode.VALIDATION_ERROR)

        change_types = []
        if notify_on_new:
            change_types.append(ChangeType.NEW)
        if notify_on_modified:
            change_types.extend([ChangeType.REVISED, ChangeType.METADATA_CHANGED])
        if notify_on_removed:
            change_types.append(ChangeType.ABOLISHED)
        if not change_types:
            return Err("At least one change type must be monitored", ErrorCode.VALIDATION_ERROR)

        try:
            monitoring = create_monitoring_configuration(
                user_id=user_id,
                name=name,
                settings=MonitoringSettings(
                    target_categories=list(target_categories or []),
                    change_types=change_types,
                    notification_settings=NotificationPreferences(
                        email=email_address is not None,
                        email_address=email_address,
                    ),
                    check_interval=CheckInterval.DAILY,
                ),
            )
        except ValidationError as e:
            return Err(e.message, e.error_code)

        saved = await self.store.monitorings.save(monitoring)
        if isinstance(saved, Err):
            return Err(f"Failed to create monitoring: {saved.error}", saved.code)

        self.logger.info(
            f"Monitoring created: {monitoring.name}",
            extra={"monitoring_id": monitoring.id, "user_id": user_id}
        )
        return Ok(monitoring)

    async def get_user_monitorings(self, user_id: str) -> Result[List[MonitoringConfiguration]]:
        return await self.store.monitorings.get_by_user(user_id)

    async def deactivate_monitoring(self, monitoring_id: str, user_id: str) -> Result[MonitoringConfiguration]:
        found = await self.store.monitorings.get_by_id(monitoring_id)
        if isinstance(found, Err):
            return found

        monitoring = found.value
        if monitoring is None or monitoring.user_id != user_id:
            return Err(f"Monitoring '{monitoring_id}' not found", ErrorCode.ENTITY_NOT_FOUND)

        monitoring.deactivate()
        updated = await self.store.monitorings.update(monitoring)
        if isinstance(updated, Err):
            return Err(f"Failed to deactivate monitoring: {updated.error}", updated.code)
        return Ok(monitoring)

    async def delete_monitoring(self, monitoring_id: str, user_id: str) -> Result[None]:
        """Remove a monitoring owned by ``user_id``; notifications it produced are kept."""
        found = await self.store.monitorings.get_by_id(monitoring_id)
        if isinstance(found, Err):
            return found
        if found.value is None or found.value.user_id != user_id:
            return Err(f"Monitoring '{monitoring_id}' not found", ErrorCode.ENTITY_NOT_FOUND)

        deleted = await self.store.monitorings.delete(monitoring_id)
        if isinstance(deleted, Err):
            return Err(f"Failed to delete monitoring: {deleted.error}", deleted.code)

        self.logger.info("Monitoring deleted", extra={"monitoring_id": monitoring_id, "user_id": user_id})
        return Ok(None)

    async def get_user_notifications(self, user_id: str) -> Result[List[Notification]]:
        return await self.store.notifications.get_by_user(user_id)

    async def mark_notification_read(self, notification_id: str) -> Result[None]:
        return await self.store.notifications.mark_read(notification_id)
