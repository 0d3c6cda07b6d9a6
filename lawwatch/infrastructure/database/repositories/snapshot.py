"""
Snapshot Repositories - per-instrument snapshots, registry snapshots and registry diffs
"""

from typing import List, Optional

from sqlalchemy import desc, func, select

from lawwatch.core.domain.entities import InstrumentSnapshot, RegistryDiff, RegistrySnapshot
from lawwatch.core.result import Result
from lawwatch.infrastructure.database.models import (
    LawSnapshot, RegistryDiffRecord, RegistrySnapshotRecord
)
from lawwatch.infrastructure.database.repositories.base import SQLAlchemyBaseRepository
from lawwatch.infrastructure.database.repositories.mappers import (
    diff_to_domain, diff_to_orm, registry_snapshot_to_domain, registry_snapshot_to_orm,
    snapshot_to_domain, snapshot_to_orm
)


class SQLAlchemySnapshotRepository(SQLAlchemyBaseRepository):
    """Append-only store of instrument snapshots."""

    async def save(self, snapshot: InstrumentSnapshot) -> Result[None]:
        async def work(session):
            await session.merge(snapshot_to_orm(snapshot))

        return await self._execute("save_snapshot", work)

    async def get_latest(self, law_id: str) -> Result[Optional[InstrumentSnapshot]]:
        async def work(session):
            result = await session.execute(
                select(LawSnapshot)
                .where(LawSnapshot.law_id == law_id)
                .order_by(desc(LawSnapshot.captured_at))
                .limit(1)
            )
            row = result.scalars().first()
            return snapshot_to_domain(row) if row else None

        return await self._execute("get_latest_snapshot", work)

    async def get_all_latest(self) -> Result[List[InstrumentSnapshot]]:
        """Newest snapshot per law, ranked with a window function."""
        async def work(session):
            ranked = select(
                LawSnapshot.id.label("snapshot_id"),
                func.row_number().over(
                    partition_by=LawSnapshot.law_id,
                    order_by=desc(LawSnapshot.captured_at)
                ).label("rank")
            ).subquery()

            result = await session.execute(
                select(LawSnapshot)
                .join(ranked, ranked.c.snapshot_id == LawSnapshot.id)
                .where(ranked.c.rank == 1)
                .order_by(LawSnapshot.law_id)
            )
            return [snapshot_to_domain(row) for row in result.scalars().all()]

        return await self._execute("get_all_latest_snapshots", work)


class SQLAlchemyRegistrySnapshotRepository(SQLAlchemyBaseRepository):

    async def save(self, snapshot: RegistrySnapshot) -> Result[None]:
        async def work(session):
            await session.merge(registry_snapshot_to_orm(snapshot))

        return await self._execute("save_registry_snapshot", work)

    async def get_latest(self) -> Result[Optional[RegistrySnapshot]]:
        async def work(session):
            result = await session.execute(
                select(RegistrySnapshotRecord)
                .order_by(desc(RegistrySnapshotRecord.created_at))
                .limit(1)
            )
            row = result.scalars().first()
            return registry_snapshot_to_domain(row) if row else None

        return await self._execute("get_latest_registry_snapshot", work)

    async def get_by_id(self, snapshot_id: str) -> Result[Optional[RegistrySnapshot]]:
        async def work(session):
            row = await session.get(RegistrySnapshotRecord, snapshot_id)
            return registry_snapshot_to_domain(row) if row else None

        return await self._execute("get_registry_snapshot", work)


class SQLAlchemyRegistryDiffRepository(SQLAlchemyBaseRepository):

    async def save(self, diff: RegistryDiff) -> Result[None]:
        async def work(session):
            session.add(diff_to_orm(diff))

        return await self._execute("save_registry_diff", work)

    async def get_recent(self, limit: int = 10) -> Result[List[RegistryDiff]]:
        async def work(session):
            result = await session.execute(
                select(RegistryDiffRecord)
                .order_by(desc(RegistryDiffRecord.detected_at))
                .limit(limit)
            )
            return [diff_to_domain(row) for row in result.scalars().all()]

        return await self._execute("get_recent_registry_diffs", work)
