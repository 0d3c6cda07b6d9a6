"""
SQLAlchemy Store - repository bundle handed to services
"""

from lawwatch.infrastructure.database.connection import DatabaseManager
from lawwatch.infrastructure.database.repositories.monitoring import (
    SQLAlchemyMonitoringRepository, SQLAlchemyNotificationRepository
)
from lawwatch.infrastructure.database.repositories.scan import (
    SQLAlchemyChangeDetectionRepository, SQLAlchemyScanResultRepository
)
from lawwatch.infrastructure.database.repositories.snapshot import (
    SQLAlchemyRegistryDiffRepository, SQLAlchemyRegistrySnapshotRepository,
    SQLAlchemySnapshotRepository
)


class SQLAlchemyLawWatchStore:
    """
    All repositories over one ``DatabaseManager``.

    Each repository call commits on its own; a multi-step scan is therefore
    not atomic and partially written results stay visible after a failure.
    """

    def __init__(self, db: DatabaseManager):
        self.db = db
        session_factory = db.get_session

        self.snapshots = SQLAlchemySnapshotRepository(session_factory)
        self.registry_snapshots = SQLAlchemyRegistrySnapshotRepository(session_factory)
        self.registry_diffs = SQLAlchemyRegistryDiffRepository(session_factory)
        self.scan_results = SQLAlchemyScanResultRepository(session_factory)
        self.change_detections = SQLAlchemyChangeDetectionRepository(session_factory)
        self.monitorings = SQLAlchemyMonitoringRepository(session_factory)
        self.notifications = SQLAlchemyNotificationRepository(session_factory)

    async def health_check(self) -> bool:
        return await self.db.check_connection()


__all__ = ['SQLAlchemyLawWatchStore']
