"""
Monitoring Repositories - monitoring configurations and notifications
"""

from typing import List, Optional

from sqlalchemy import delete, desc, select

from lawwatch.core.domain.entities import MonitoringConfiguration, Notification, utc_now
from lawwatch.core.exceptions import ErrorCode
from lawwatch.core.result import Result, Ok, Err
from lawwatch.infrastructure.database.models import (
    MonitoringConfigurationRecord, NotificationRecord
)
from lawwatch.infrastructure.database.repositories.base import SQLAlchemyBaseRepository
from lawwatch.infrastructure.database.repositories.mappers import (
    monitoring_to_domain, monitoring_to_orm, notification_to_domain, notification_to_orm
)


class SQLAlchemyMonitoringRepository(SQLAlchemyBaseRepository):

    async def save(self, monitoring: MonitoringConfiguration) -> Result[None]:
        async def work(session):
            session.add(monitoring_to_orm(monitoring))

        return await self._execute("save_monitoring", work)

    async def get_by_id(self, monitoring_id: str) -> Result[Optional[MonitoringConfiguration]]:
        async def work(session):
            row = await session.get(MonitoringConfigurationRecord, monitoring_id)
            return monitoring_to_domain(row) if row else None

        return await self._execute("get_monitoring", work)

    async def get_by_user(self, user_id: str) -> Result[List[MonitoringConfiguration]]:
        async def work(session):
            result = await session.execute(
                select(MonitoringConfigurationRecord)
                .where(MonitoringConfigurationRecord.user_id == user_id)
                .order_by(MonitoringConfigurationRecord.created_at)
            )
            return [monitoring_to_domain(row) for row in result.scalars().all()]

        return await self._execute("get_user_monitorings", work)

    async def get_active(self) -> Result[List[MonitoringConfiguration]]:
        async def work(session):
            result = await session.execute(
                select(MonitoringConfigurationRecord)
                .where(MonitoringConfigurationRecord.is_active.is_(True))
                .order_by(MonitoringConfigurationRecord.created_at)
            )
            return [monitoring_to_domain(row) for row in result.scalars().all()]

        return await self._execute("get_active_monitorings", work)

    async def update(self, monitoring: MonitoringConfiguration) -> Result[None]:
        async def work(session):
            existing = await session.get(MonitoringConfigurationRecord, monitoring.id)
            if existing is None:
                return False
            await session.merge(monitoring_to_orm(monitoring))
            return True

        result = await self._execute("update_monitoring", work)
        if isinstance(result, Err):
            return result
        if not result.value:
            return Err(f"Monitoring '{monitoring.id}' not found", ErrorCode.ENTITY_NOT_FOUND)
        return Ok(None)

    async def delete(self, monitoring_id: str) -> Result[None]:
        async def work(session):
            await session.execute(
                delete(MonitoringConfigurationRecord)
                .where(MonitoringConfigurationRecord.id == monitoring_id)
            )

        return await self._execute("delete_monitoring", work)


class SQLAlchemyNotificationRepository(SQLAlchemyBaseRepository):

    async def save(self, notification: Notification) -> Result[None]:
        async def work(session):
            session.add(notification_to_orm(notification))

        return await self._execute("save_notification", work)

    async def get_by_user(self, user_id: str) -> Result[List[Notification]]:
        """Notifications for ``user_id``, newest first."""
        async def work(session):
            result = await session.execute(
                select(NotificationRecord)
                .where(NotificationRecord.user_id == user_id)
                .order_by(desc(NotificationRecord.created_at))
            )
            return [notification_to_domain(row) for row in result.scalars().all()]

        return await self._execute("get_user_notifications", work)

    async def mark_read(self, notification_id: str) -> Result[None]:
        """Idempotent; the first read time is kept."""
        async def work(session):
            row = await session.get(NotificationRecord, notification_id)
            if row is None:
                return False
            if not row.is_read:
                row.is_read = True
                row.read_at = utc_now()
            return True

        result = await self._execute("mark_notification_read", work)
        if isinstance(result, Err):
            return result
        if not result.value:
            return Err(f"Notification '{notification_id}' not found", ErrorCode.ENTITY_NOT_FOUND)
        return Ok(None)
