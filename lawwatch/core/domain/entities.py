"""
Domain Entities

Legal instruments, snapshots, diffs, scan results and monitoring records.
These are pure domain objects with no persistence concerns.
"""

import random
import string
import time
from dataclasses import dataclass, field, replace
from typing import List, Optional, Dict
from datetime import datetime, timezone
from uuid import uuid4

from lawwatch.core.enums import (
    ChangeType, ScanType, NotificationType, CheckInterval, InstrumentStatus
)
from lawwatch.core.exceptions import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _epoch_ms(moment: Optional[datetime] = None) -> int:
    if moment is None:
        return int(time.time() * 1000)
    return int(moment.timestamp() * 1000)


def _random_suffix(length: int = 6) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))

# ======================== VALUE OBJECTS ========================

@dataclass(frozen=True)
class Instrument:
    """A legal instrument as returned by the upstream registry."""
    id: str
    name: str
    number: str
    category: str
    status: str
    promulgation_date: str
    last_revision_date: Optional[str] = None
    content_hash: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Instrument id is required")


@dataclass(frozen=True)
class FieldChange:
    """Represents a change in a specific field."""
    field: str
    old_value: Optional[str]
    new_value: Optional[str]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"field": self.field, "old_value": self.old_value, "new_value": self.new_value}


@dataclass(frozen=True)
class CategorySummary:
    """Instrument count and most recent promulgation date for one category."""
    category: str
    count: int
    last_modified: str


@dataclass(frozen=True)
class RegistryMetadata:
    version: str
    last_update_date: datetime
    source: str = "e-Gov API"
    categories: List[CategorySummary] = field(default_factory=list)


@dataclass(frozen=True)
class RegistryFetch:
    """Full registry listing returned by the upstream client."""
    instruments: List[Instrument]
    total_count: int
    last_updated: datetime
    version: str = "1"

# ======================== SNAPSHOTS ========================

@dataclass(frozen=True)
class InstrumentSnapshot:
    """
    Point-in-time record of one instrument's fingerprinted state.

    Snapshots are never mutated; a new scan writes a new snapshot which
    supersedes the previous one as "latest" for the same ``law_id``.
    """
    id: str
    law_id: str
    law_name: str
    law_number: str
    promulgation_date: str
    category: str
    status: str
    metadata_hash: str
    last_revision_date: Optional[str] = None
    content_hash: Optional[str] = None
    version: str = "1.0.0"
    captured_at: datetime = field(default_factory=utc_now)
    # Set only on snapshots written because the law left the registry
    removed_from_registry: bool = False

    def comparable_fields(self) -> Dict[str, Optional[str]]:
        return {
            "law_name": self.law_name,
            "law_number": self.law_number,
            "promulgation_date": self.promulgation_date,
            "last_revision_date": self.last_revision_date,
            "category": self.category,
            "status": self.status,
        }

    def as_abolished(self, captured_at: Optional[datetime] = None) -> 'InstrumentSnapshot':
        """Copy of this snapshot with the status forced to abolished."""
        captured_at = captured_at or utc_now()
        return replace(
            self,
            id=create_snapshot_id(self.law_id, captured_at),
            status=InstrumentStatus.ABOLISHED.value,
            captured_at=captured_at,
            removed_from_registry=True,
        )


@dataclass(frozen=True)
class RegistrySnapshot:
    """Point-in-time record of the whole registry: count, checksum and per-category summary."""
    id: str
    snapshot_date: datetime
    total_instrument_count: int
    checksum: str
    metadata: RegistryMetadata
    created_at: datetime = field(default_factory=utc_now)

    @property
    def category_summaries(self) -> List[CategorySummary]:
        return self.metadata.categories

# ======================== CHANGE DETECTION ========================

@dataclass(frozen=True)
class ChangeDetection:
    """A single instrument's classified change."""
    id: str
    law_id: str
    law_name: str
    law_number: str
    category: str
    change_type: ChangeType
    changes: List[FieldChange] = field(default_factory=list)
    detected_at: datetime = field(default_factory=utc_now)
    previous_snapshot_id: Optional[str] = None
    current_snapshot_id: Optional[str] = None

    @property
    def changed_fields(self) -> List[str]:
        return [c.field for c in self.changes]


@dataclass(frozen=True)
class DiffEntry:
    """One entry of a registry diff bucket."""
    law_id: str
    name: str
    number: str
    category: str
    change_type: ChangeType
    previous_value: Optional[str] = None
    current_value: Optional[str] = None
    detected_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_detection(cls, detection: ChangeDetection) -> 'DiffEntry':
        previous_value = current_value = None
        if detection.changes:
            previous_value = ", ".join(f"{c.field}={c.old_value}" for c in detection.changes)
            current_value = ", ".join(f"{c.field}={c.new_value}" for c in detection.changes)
        return cls(
            law_id=detection.law_id,
            name=detection.law_name,
            number=detection.law_number,
            category=detection.category,
            change_type=detection.change_type,
            previous_value=previous_value,
            current_value=current_value,
            detected_at=detection.detected_at,
        )


@dataclass(frozen=True)
class DiffSummary:
    total_new: int
    total_modified: int
    total_removed: int
    affected_categories: List[str] = field(default_factory=list)

    @classmethod
    def from_entries(
        cls,
        new_laws: List[DiffEntry],
        modified_laws: List[DiffEntry],
        removed_laws: List[DiffEntry]
    ) -> 'DiffSummary':
        categories = {e.category for e in (*new_laws, *modified_laws, *removed_laws)}
        return cls(
            total_new=len(new_laws),
            total_modified=len(modified_laws),
            total_removed=len(removed_laws),
            affected_categories=sorted(categories),
        )


@dataclass(frozen=True)
class RegistryDiff:
    """Classified changes between two snapshots, bucketed into new / modified / removed."""
    previous_snapshot_id: str
    current_snapshot_id: str
    detected_at: datetime
    new_laws: List[DiffEntry]
    modified_laws: List[DiffEntry]
    removed_laws: List[DiffEntry]
    summary: DiffSummary

    @property
    def has_significant_changes(self) -> bool:
        return (
            self.summary.total_new > 0
            or self.summary.total_modified > 0
            or self.summary.total_removed > 0
        )

    @property
    def entries(self) -> List[DiffEntry]:
        return [*self.new_laws, *self.modified_laws, *self.removed_laws]


@dataclass
class ScanResult:
    """Outcome of one registry scan cycle."""
    scan_id: str
    scan_type: ScanType
    started_at: datetime
    completed_at: datetime
    total_laws_scanned: int
    new_laws: List[ChangeDetection] = field(default_factory=list)
    revised_laws: List[ChangeDetection] = field(default_factory=list)
    abolished_laws: List[ChangeDetection] = field(default_factory=list)
    metadata_changes: List[ChangeDetection] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    is_baseline: bool = False

    @property
    def total_changes(self) -> int:
        return (
            len(self.new_laws) + len(self.revised_laws)
            + len(self.abolished_laws) + len(self.metadata_changes)
        )

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

# ======================== MONITORING ========================

@dataclass(frozen=True)
class NotificationThreshold:
    """Minimum counts per bucket before a notification is emitted."""
    min_new_laws: int = 1
    min_modified_laws: int = 1
    min_removed_laws: int = 1


@dataclass(frozen=True)
class NotificationPreferences:
    email: bool = True
    email_address: Optional[str] = None
    immediate_notify: bool = True
    daily_summary: bool = False
    weekly_summary: bool = False
    threshold: NotificationThreshold = field(default_factory=NotificationThreshold)

    @property
    def notification_type(self) -> NotificationType:
        if self.immediate_notify:
            return NotificationType.IMMEDIATE
        if self.daily_summary:
            return NotificationType.DAILY_SUMMARY
        return NotificationType.WEEKLY_SUMMARY


@dataclass(frozen=True)
class MonitoringSettings:
    target_categories: List[str] = field(default_factory=list)
    change_types: List[ChangeType] = field(default_factory=list)
    notification_settings: NotificationPreferences = field(default_factory=NotificationPreferences)
    check_interval: CheckInterval = CheckInterval.DAILY


@dataclass
class MonitoringConfiguration:
    """A user's standing request to be told about registry changes."""
    id: str
    user_id: str
    name: str
    settings: MonitoringSettings
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    last_check_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.user_id:
            raise ValidationError("user_id is required", field_errors={"user_id": ["required"]})
        if not self.name or not self.name.strip():
            raise ValidationError("Monitoring name is required", field_errors={"name": ["required"]})

    def mark_checked(self, checked_at: Optional[datetime] = None) -> None:
        self.last_check_at = checked_at or utc_now()
        self.updated_at = self.last_check_at

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = utc_now()


@dataclass
class Notification:
    """A change notification addressed to one monitoring configuration's owner."""
    id: str
    monitoring_id: str
    user_id: str
    title: str
    summary: str
    diff: RegistryDiff
    notification_type: NotificationType
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)

    def mark_as_read(self, read_at: Optional[datetime] = None) -> None:
        """Unread -> read exactly once; later calls keep the first read time."""
        if self.is_read:
            return
        self.is_read = True
        self.read_at = read_at or utc_now()

# ======================== FACTORY FUNCTIONS ========================

def create_scan_id(started_at: Optional[datetime] = None) -> str:
    return f"scan-{_epoch_ms(started_at)}-{_random_suffix()}"


def create_snapshot_id(law_id: str, captured_at: Optional[datetime] = None) -> str:
    return f"snapshot-{law_id}-{_epoch_ms(captured_at)}"


def create_registry_snapshot_id(created_at: Optional[datetime] = None) -> str:
    return f"registry-snapshot-{_epoch_ms(created_at)}-{_random_suffix()}"


def create_change_detection(
    snapshot: InstrumentSnapshot,
    change_type: ChangeType,
    changes: Optional[List[FieldChange]] = None,
    previous_snapshot_id: Optional[str] = None,
    detected_at: Optional[datetime] = None
) -> ChangeDetection:
    """Build a change detection describing ``snapshot``'s instrument."""
    return ChangeDetection(
        id=f"change-{snapshot.law_id}-{uuid4().hex[:12]}",
        law_id=snapshot.law_id,
        law_name=snapshot.law_name,
        law_number=snapshot.law_number,
        category=snapshot.category,
        change_type=change_type,
        changes=list(changes or []),
        detected_at=detected_at or utc_now(),
        previous_snapshot_id=previous_snapshot_id,
        current_snapshot_id=snapshot.id,
    )


def create_registry_diff(
    previous_snapshot_id: str,
    current_snapshot_id: str,
    new_laws: List[DiffEntry],
    modified_laws: List[DiffEntry],
    removed_laws: List[DiffEntry],
    detected_at: Optional[datetime] = None
) -> RegistryDiff:
    """Build a diff whose summary is computed from the entry lists."""
    return RegistryDiff(
        previous_snapshot_id=previous_snapshot_id,
        current_snapshot_id=current_snapshot_id,
        detected_at=detected_at or utc_now(),
        new_laws=list(new_laws),
        modified_laws=list(modified_laws),
        removed_laws=list(removed_laws),
        summary=DiffSummary.from_entries(new_laws, modified_laws, removed_laws),
    )


def create_monitoring_configuration(
    user_id: str,
    name: str,
    settings: MonitoringSettings
) -> MonitoringConfiguration:
    now = utc_now()
    return MonitoringConfiguration(
        id=f"monitoring-{uuid4().hex}",
        user_id=user_id,
        name=name.strip() if name else name,
        settings=settings,
        created_at=now,
        updated_at=now,
    )


def create_notification(
    monitoring: MonitoringConfiguration,
    title: str,
    summary: str,
    diff: RegistryDiff
) -> Notification:
    return Notification(
        id=f"notification-{uuid4().hex}",
        monitoring_id=monitoring.id,
        user_id=monitoring.user_id,
        title=title,
        summary=summary,
        diff=diff,
        notification_type=monitoring.settings.notification_settings.notification_type,
    )


__all__ = [
    'utc_now',
    'Instrument',
    'FieldChange',
    'CategorySummary',
    'RegistryMetadata',
    'RegistryFetch',
    'InstrumentSnapshot',
    'RegistrySnapshot',
    'ChangeDetection',
    'DiffEntry',
    'DiffSummary',
    'RegistryDiff',
    'ScanResult',
    'NotificationThreshold',
    'NotificationPreferences',
    'MonitoringSettings',
    'MonitoringConfiguration',
    'Notification',
    'create_scan_id',
    'create_snapshot_id',
    'create_registry_snapshot_id',
    'create_change_detection',
    'create_registry_diff',
    'create_monitoring_configuration',
    'create_notification',
]
