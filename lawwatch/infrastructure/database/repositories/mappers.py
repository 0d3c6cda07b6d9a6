"""
ORM <-> domain conversion.

JSON columns hold plain dicts; datetimes inside them are ISO-8601 strings.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from lawwatch.core.domain.entities import (
    CategorySummary, ChangeDetection, DiffEntry, DiffSummary, FieldChange,
    InstrumentSnapshot, MonitoringConfiguration, MonitoringSettings, Notification,
    NotificationPreferences, NotificationThreshold, RegistryDiff, RegistryMetadata,
    RegistrySnapshot, ScanResult
)
from lawwatch.core.enums import ChangeType, CheckInterval, NotificationType, ScanType
from lawwatch.infrastructure.database.models import (
    ChangeDetectionRecord, LawSnapshot, MonitoringConfigurationRecord,
    NotificationRecord, RegistryDiffRecord, RegistrySnapshotRecord, ScanResultRecord
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None

# ======================== SNAPSHOTS ========================

def snapshot_to_orm(snapshot: InstrumentSnapshot) -> LawSnapshot:
    return LawSnapshot(
        id=snapshot.id,
        law_id=snapshot.law_id,
        law_name=snapshot.law_name,
        law_number=snapshot.law_number,
        promulgation_date=snapshot.promulgation_date,
        last_revision_date=snapshot.last_revision_date,
        category=snapshot.category,
        status=snapshot.status,
        content_hash=snapshot.content_hash,
        metadata_hash=snapshot.metadata_hash,
        version=snapshot.version,
        captured_at=snapshot.captured_at,
        removed_from_registry=snapshot.removed_from_registry,
    )


def snapshot_to_domain(row: LawSnapshot) -> InstrumentSnapshot:
    return InstrumentSnapshot(
        id=row.id,
        law_id=row.law_id,
        law_name=row.law_name,
        law_number=row.law_number or "",
        promulgation_date=row.promulgation_date or "",
        category=row.category,
        status=row.status,
        metadata_hash=row.metadata_hash,
        last_revision_date=row.last_revision_date,
        content_hash=row.content_hash,
        version=row.version,
        captured_at=row.captured_at,
        removed_from_registry=bool(row.removed_from_registry),
    )


def registry_snapshot_to_orm(snapshot: RegistrySnapshot) -> RegistrySnapshotRecord:
    return RegistrySnapshotRecord(
        id=snapshot.id,
        snapshot_date=snapshot.snapshot_date,
        total_instrument_count=snapshot.total_instrument_count,
        checksum=snapshot.checksum,
        version=snapshot.metadata.version,
        last_update_date=snapshot.metadata.last_update_date,
        source=snapshot.metadata.source,
        categories=[
            {"category": c.category, "count": c.count, "last_modified": c.last_modified}
            for c in snapshot.metadata.categories
        ],
        created_at=snapshot.created_at,
    )


def registry_snapshot_to_domain(row: RegistrySnapshotRecord) -> RegistrySnapshot:
    return RegistrySnapshot(
        id=row.id,
        snapshot_date=row.snapshot_date,
        total_instrument_count=row.total_instrument_count,
        checksum=row.checksum,
        metadata=RegistryMetadata(
            version=row.version,
            last_update_date=row.last_update_date,
            source=row.source,
            categories=[CategorySummary(**c) for c in row.categories or []],
        ),
        created_at=row.created_at,
    )

# ======================== CHANGES ========================

def detection_to_dict(detection: ChangeDetection) -> Dict[str, Any]:
    return {
        "id": detection.id,
        "law_id": detection.law_id,
        "law_name": detection.law_name,
        "law_number": detection.law_number,
        "category": detection.category,
        "change_type": detection.change_type.value,
        "changes": [c.to_dict() for c in detection.changes],
        "detected_at": _iso(detection.detected_at),
        "previous_snapshot_id": detection.previous_snapshot_id,
        "current_snapshot_id": detection.current_snapshot_id,
    }


def detection_from_dict(data: Dict[str, Any]) -> ChangeDetection:
    return ChangeDetection(
        id=data["id"],
        law_id=data["law_id"],
        law_name=data["law_name"],
        law_number=data.get("law_number", ""),
        category=data["category"],
        change_type=ChangeType(data["change_type"]),
        changes=[FieldChange(**c) for c in data.get("changes", [])],
        detected_at=_parse_iso(data.get("detected_at")),
        previous_snapshot_id=data.get("previous_snapshot_id"),
        current_snapshot_id=data.get("current_snapshot_id"),
    )


def detection_to_orm(detection: ChangeDetection) -> ChangeDetectionRecord:
    return ChangeDetectionRecord(
        id=detection.id,
        law_id=detection.law_id,
        law_name=detection.law_name,
        law_number=detection.law_number,
        category=detection.category,
        change_type=detection.change_type.value,
        changes=[c.to_dict() for c in detection.changes],
        previous_snapshot_id=detection.previous_snapshot_id,
        current_snapshot_id=detection.current_snapshot_id,
        detected_at=detection.detected_at,
    )


def detection_to_domain(row: ChangeDetectionRecord) -> ChangeDetection:
    return ChangeDetection(
        id=row.id,
        law_id=row.law_id,
        law_name=row.law_name,
        law_number=row.law_number or "",
        category=row.category,
        change_type=ChangeType(row.change_type),
        changes=[FieldChange(**c) for c in row.changes or []],
        detected_at=row.detected_at,
        previous_snapshot_id=row.previous_snapshot_id,
        current_snapshot_id=row.current_snapshot_id,
    )


def _entry_to_dict(entry: DiffEntry) -> Dict[str, Any]:
    return {
        "law_id": entry.law_id,
        "name": entry.name,
        "number": entry.number,
        "category": entry.category,
        "change_type": entry.change_type.value,
        "previous_value": entry.previous_value,
        "current_value": entry.current_value,
        "detected_at": _iso(entry.detected_at),
    }


def _entry_from_dict(data: Dict[str, Any]) -> DiffEntry:
    return DiffEntry(
        law_id=data["law_id"],
        name=data["name"],
        number=data.get("number", ""),
        category=data["category"],
        change_type=ChangeType(data["change_type"]),
        previous_value=data.get("previous_value"),
        current_value=data.get("current_value"),
        detected_at=_parse_iso(data.get("detected_at")),
    )


def diff_to_dict(diff: RegistryDiff) -> Dict[str, Any]:
    return {
        "previous_snapshot_id": diff.previous_snapshot_id,
        "current_snapshot_id": diff.current_snapshot_id,
        "detected_at": _iso(diff.detected_at),
        "new_laws": [_entry_to_dict(e) for e in diff.new_laws],
        "modified_laws": [_entry_to_dict(e) for e in diff.modified_laws],
        "removed_laws": [_entry_to_dict(e) for e in diff.removed_laws],
        "summary": {
            "total_new": diff.summary.total_new,
            "total_modified": diff.summary.total_modified,
            "total_removed": diff.summary.total_removed,
            "affected_categories": list(diff.summary.affected_categories),
        },
    }


def diff_from_dict(data: Dict[str, Any]) -> RegistryDiff:
    return RegistryDiff(
        previous_snapshot_id=data["previous_snapshot_id"],
        current_snapshot_id=data["current_snapshot_id"],
        detected_at=_parse_iso(data["detected_at"]),
        new_laws=[_entry_from_dict(e) for e in data.get("new_laws", [])],
        modified_laws=[_entry_from_dict(e) for e in data.get("modified_laws", [])],
        removed_laws=[_entry_from_dict(e) for e in data.get("removed_laws", [])],
        summary=DiffSummary(**data["summary"]),
    )


def diff_to_orm(diff: RegistryDiff) -> RegistryDiffRecord:
    data = diff_to_dict(diff)
    return RegistryDiffRecord(
        previous_snapshot_id=diff.previous_snapshot_id,
        current_snapshot_id=diff.current_snapshot_id,
        detected_at=diff.detected_at,
        new_laws=data["new_laws"],
        modified_laws=data["modified_laws"],
        removed_laws=data["removed_laws"],
        summary=data["summary"],
    )


def diff_to_domain(row: RegistryDiffRecord) -> RegistryDiff:
    return diff_from_dict({
        "previous_snapshot_id": row.previous_snapshot_id,
        "current_snapshot_id": row.current_snapshot_id,
        "detected_at": _iso(row.detected_at),
        "new_laws": row.new_laws or [],
        "modified_laws": row.modified_laws or [],
        "removed_laws": row.removed_laws or [],
        "summary": row.summary,
    })

# ======================== SCAN RESULTS ========================

def scan_result_to_orm(scan: ScanResult) -> ScanResultRecord:
    return ScanResultRecord(
        scan_id=scan.scan_id,
        scan_type=scan.scan_type.value,
        started_at=scan.started_at,
        completed_at=scan.completed_at,
        total_laws_scanned=scan.total_laws_scanned,
        new_laws=[detection_to_dict(d) for d in scan.new_laws],
        revised_laws=[detection_to_dict(d) for d in scan.revised_laws],
        abolished_laws=[detection_to_dict(d) for d in scan.abolished_laws],
        metadata_changes=[detection_to_dict(d) for d in scan.metadata_changes],
        errors=list(scan.errors),
        is_baseline=scan.is_baseline,
    )


def scan_result_to_domain(row: ScanResultRecord) -> ScanResult:
    def detections(items: Optional[List[Dict[str, Any]]]) -> List[ChangeDetection]:
        return [detection_from_dict(d) for d in items or []]

    return ScanResult(
        scan_id=row.scan_id,
        scan_type=ScanType(row.scan_type),
        started_at=row.started_at,
        completed_at=row.completed_at,
        total_laws_scanned=row.total_laws_scanned,
        new_laws=detections(row.new_laws),
        revised_laws=detections(row.revised_laws),
        abolished_laws=detections(row.abolished_laws),
        metadata_changes=detections(row.metadata_changes),
        errors=list(row.errors or []),
        is_baseline=bool(row.is_baseline),
    )

# ======================== MONITORING ========================

def settings_to_dict(monitoring_settings: MonitoringSettings) -> Dict[str, Any]:
    preferences = monitoring_settings.notification_settings
    return {
        "target_categories": list(monitoring_settings.target_categories),
        "change_types": [t.value for t in monitoring_settings.change_types],
        "notification_settings": {
            "email": preferences.email,
            "email_address": preferences.email_address,
            "immediate_notify": preferences.immediate_notify,
            "daily_summary": preferences.daily_summary,
            "weekly_summary": preferences.weekly_summary,
            "threshold": {
                "min_new_laws": preferences.threshold.min_new_laws,
                "min_modified_laws": preferences.threshold.min_modified_laws,
                "min_removed_laws": preferences.threshold.min_removed_laws,
            },
        },
        "check_interval": monitoring_settings.check_interval.value,
    }


def settings_from_dict(data: Dict[str, Any]) -> MonitoringSettings:
    preferences = dict(data.get("notification_settings") or {})
    threshold = NotificationThreshold(**preferences.pop("threshold", {}))
    return MonitoringSettings(
        target_categories=list(data.get("target_categories", [])),
        change_types=[ChangeType(t) for t in data.get("change_types", [])],
        notification_settings=NotificationPreferences(threshold=threshold, **preferences),
        check_interval=CheckInterval(data.get("check_interval", CheckInterval.DAILY.value)),
    )


def monitoring_to_orm(monitoring: MonitoringConfiguration) -> MonitoringConfigurationRecord:
    return MonitoringConfigurationRecord(
        id=monitoring.id,
        user_id=monitoring.user_id,
        name=monitoring.name,
        settings=settings_to_dict(monitoring.settings),
        is_active=monitoring.is_active,
        created_at=monitoring.created_at,
        updated_at=monitoring.updated_at,
        last_check_at=monitoring.last_check_at,
    )


def monitoring_to_domain(row: MonitoringConfigurationRecord) -> MonitoringConfiguration:
    return MonitoringConfiguration(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        settings=settings_from_dict(row.settings or {}),
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_check_at=row.last_check_at,
    )


def notification_to_orm(notification: Notification) -> NotificationRecord:
    return NotificationRecord(
        id=notification.id,
        monitoring_id=notification.monitoring_id,
        user_id=notification.user_id,
        title=notification.title,
        summary=notification.summary,
        diff=diff_to_dict(notification.diff),
        notification_type=notification.notification_type.value,
        is_read=notification.is_read,
        read_at=notification.read_at,
        created_at=notification.created_at,
    )


def notification_to_domain(row: NotificationRecord) -> Notification:
    return Notification(
        id=row.id,
        monitoring_id=row.monitoring_id,
        user_id=row.user_id,
        title=row.title,
        summary=row.summary,
        diff=diff_from_dict(row.diff),
        notification_type=NotificationType(row.notification_type),
        is_read=bool(row.is_read),
        read_at=row.read_at,
        created_at=row.created_at,
    )
