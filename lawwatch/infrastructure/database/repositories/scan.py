"""
Scan Repositories - scan results and change detections
"""

from datetime import timedelta
from typing import List, Optional

from sqlalchemy import desc, select

from lawwatch.core.domain.entities import ChangeDetection, ScanResult, utc_now
from lawwatch.core.result import Result
from lawwatch.infrastructure.database.models import ChangeDetectionRecord, ScanResultRecord
from lawwatch.infrastructure.database.repositories.base import SQLAlchemyBaseRepository
from lawwatch.infrastructure.database.repositories.mappers import (
    detection_to_domain, detection_to_orm, scan_result_to_domain, scan_result_to_orm
)


class SQLAlchemyScanResultRepository(SQLAlchemyBaseRepository):

    async def save(self, scan_result: ScanResult) -> Result[None]:
        async def work(session):
            await session.merge(scan_result_to_orm(scan_result))

        return await self._execute("save_scan_result", work)

    async def get_latest(self) -> Result[Optional[ScanResult]]:
        async def work(session):
            result = await session.execute(
                select(ScanResultRecord)
                .order_by(desc(ScanResultRecord.completed_at))
                .limit(1)
            )
            row = result.scalars().first()
            return scan_result_to_domain(row) if row else None

        return await self._execute("get_latest_scan_result", work)


class SQLAlchemyChangeDetectionRepository(SQLAlchemyBaseRepository):

    async def save(self, detection: ChangeDetection) -> Result[None]:
        async def work(session):
            await session.merge(detection_to_orm(detection))

        return await self._execute("save_change_detection", work)

    async def get_recent(self, days: int = 7) -> Result[List[ChangeDetection]]:
        """Detections from the last ``days`` days, newest first."""
        since = utc_now() - timedelta(days=days)

        async def work(session):
            result = await session.execute(
                select(ChangeDetectionRecord)
                .where(ChangeDetectionRecord.detected_at >= since)
                .order_by(desc(ChangeDetectionRecord.detected_at))
            )
            return [detection_to_domain(row) for row in result.scalars().all()]

        return await self._execute("get_recent_changes", work)
