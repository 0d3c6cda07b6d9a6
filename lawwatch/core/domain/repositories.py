"""
Repository Interfaces - Pure Abstractions

Protocol-based contracts for the persistent store. Every method returns a
``Result`` and never raises across the boundary; implementations wrap their
own failures with the originating message.
"""

from typing import Protocol, List, Optional

from lawwatch.core.domain.entities import (
    Instrument, RegistryFetch, InstrumentSnapshot, RegistrySnapshot, RegistryDiff, ScanResult,
    ChangeDetection, MonitoringConfiguration, Notification
)
from lawwatch.core.result import Result

# ======================== SNAPSHOT REPOSITORIES ========================

class SnapshotRepository(Protocol):
    """Per-instrument snapshots."""

    async def save(self, snapshot: InstrumentSnapshot) -> Result[None]:
        ...

    async def get_latest(self, law_id: str) -> Result[Optional[InstrumentSnapshot]]:
        """Latest snapshot for one instrument, ``None`` when never seen."""
        ...

    async def get_all_latest(self) -> Result[List[InstrumentSnapshot]]:
        """Latest snapshot of every instrument ever seen."""
        ...


class RegistrySnapshotRepository(Protocol):
    """Whole-registry snapshots."""

    async def save(self, snapshot: RegistrySnapshot) -> Result[None]:
        ...

    async def get_latest(self) -> Result[Optional[RegistrySnapshot]]:
        ...

    async def get_by_id(self, snapshot_id: str) -> Result[Optional[RegistrySnapshot]]:
        ...


class RegistryDiffRepository(Protocol):

    async def save(self, diff: RegistryDiff) -> Result[None]:
        ...

    async def get_recent(self, limit: int = 10) -> Result[List[RegistryDiff]]:
        ...

# ======================== SCAN REPOSITORIES ========================

class ScanResultRepository(Protocol):

    async def save(self, scan_result: ScanResult) -> Result[None]:
        ...

    async def get_latest(self) -> Result[Optional[ScanResult]]:
        ...


class ChangeDetectionRepository(Protocol):

    async def save(self, detection: ChangeDetection) -> Result[None]:
        ...

    async def get_recent(self, days: int = 7) -> Result[List[ChangeDetection]]:
        """Detections from the last ``days`` days, newest first."""
        ...

# ======================== MONITORING REPOSITORIES ========================

class MonitoringRepository(Protocol):

    async def save(self, monitoring: MonitoringConfiguration) -> Result[None]:
        ...

    async def get_by_id(self, monitoring_id: str) -> Result[Optional[MonitoringConfiguration]]:
        ...

    async def get_by_user(self, user_id: str) -> Result[List[MonitoringConfiguration]]:
        ...

    async def get_active(self) -> Result[List[MonitoringConfiguration]]:
        ...

    async def update(self, monitoring: MonitoringConfiguration) -> Result[None]:
        ...

    async def delete(self, monitoring_id: str) -> Result[None]:
        ...


class NotificationRepository(Protocol):

    async def save(self, notification: Notification) -> Result[None]:
        ...

    async def get_by_user(self, user_id: str) -> Result[List[Notification]]:
        ...

    async def mark_read(self, notification_id: str) -> Result[None]:
        """Idempotent: marking an already-read notification succeeds without changes."""
        ...

# ======================== UPSTREAM CLIENT ========================

class UpstreamRegistryClient(Protocol):
    """Source of the full instrument registry."""

    async def fetch_all(self) -> Result[RegistryFetch]:
        """Full registry listing; upstream failures are returned, not raised."""
        ...

    async def fetch_detail(self, law_id: str) -> Result[Instrument]:
        """Single instrument; unknown ids fail with ENTITY_NOT_FOUND."""
        ...

# ======================== STORE ========================

class LawWatchStore(Protocol):
    """Bundle of repositories handed to services."""

    snapshots: SnapshotRepository
    registry_snapshots: RegistrySnapshotRepository
    registry_diffs: RegistryDiffRepository
    scan_results: ScanResultRepository
    change_detections: ChangeDetectionRepository
    monitorings: MonitoringRepository
    notifications: NotificationRepository


__all__ = [
    'UpstreamRegistryClient',
    'SnapshotRepository',
    'RegistrySnapshotRepository',
    'RegistryDiffRepository',
    'ScanResultRepository',
    'ChangeDetectionRepository',
    'MonitoringRepository',
    'NotificationRepository',
    'LawWatchStore',
]
