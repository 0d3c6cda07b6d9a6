"""
Database Models - Pure SQLAlchemy ORM

These models contain ONLY:
- Table definitions
- Column mappings
- Database constraints

NO business logic.
Domain logic belongs in domain entities and services.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Boolean, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

# ======================== SNAPSHOT TABLES ========================

class LawSnapshot(Base):
    """Per-instrument snapshot; the newest row per ``law_id`` is the latest state."""
    __tablename__ = "law_snapshots"

    id = Column(String(255), primary_key=True)
    law_id = Column(String(100), nullable=False, index=True)

    law_name = Column(String(1000), nullable=False)
    law_number = Column(String(500), nullable=False, default="")
    promulgation_date = Column(String(20), nullable=False, default="")
    last_revision_date = Column(String(20))
    category = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False)

    content_hash = Column(String(64))
    metadata_hash = Column(String(64), nullable=False)
    version = Column(String(20), nullable=False, default="1.0.0")
    removed_from_registry = Column(Boolean, nullable=False, default=False)

    captured_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index('idx_snapshot_law_captured', 'law_id', 'captured_at'),
    )


class RegistrySnapshotRecord(Base):
    """Whole-registry snapshot with its category summary stored as JSON."""
    __tablename__ = "registry_snapshots"

    id = Column(String(255), primary_key=True)
    snapshot_date = Column(DateTime(timezone=True), nullable=False)
    total_instrument_count = Column(Integer, nullable=False)
    checksum = Column(String(64), nullable=False, index=True)

    version = Column(String(50), nullable=False)
    last_update_date = Column(DateTime(timezone=True), nullable=False)
    source = Column(String(100), nullable=False)
    categories = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)


class RegistryDiffRecord(Base):
    """Persisted registry diff; entry buckets are stored as JSON."""
    __tablename__ = "registry_diffs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    previous_snapshot_id = Column(String(255), nullable=False)
    current_snapshot_id = Column(String(255), nullable=False, index=True)
    detected_at = Column(DateTime(timezone=True), nullable=False, index=True)

    new_laws = Column(JSON, default=list)
    modified_laws = Column(JSON, default=list)
    removed_laws = Column(JSON, default=list)
    summary = Column(JSON, nullable=False)

# ======================== SCAN TABLES ========================

class ScanResultRecord(Base):
    """Outcome of one scan cycle; detections are kept as JSON lists."""
    __tablename__ = "scan_results"

    scan_id = Column(String(255), primary_key=True)
    scan_type = Column(String(20), nullable=False, index=True)

    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False, index=True)
    total_laws_scanned = Column(Integer, nullable=False, default=0)

    new_laws = Column(JSON, default=list)
    revised_laws = Column(JSON, default=list)
    abolished_laws = Column(JSON, default=list)
    metadata_changes = Column(JSON, default=list)
    errors = Column(JSON, default=list)
    is_baseline = Column(Boolean, default=False, nullable=False)


class ChangeDetectionRecord(Base):
    """One classified instrument change."""
    __tablename__ = "change_detections"

    id = Column(String(255), primary_key=True)
    law_id = Column(String(100), nullable=False, index=True)
    law_name = Column(String(1000), nullable=False)
    law_number = Column(String(500), nullable=False, default="")
    category = Column(String(100), nullable=False, index=True)

    change_type = Column(String(30), nullable=False, index=True)
    changes = Column(JSON, default=list)

    previous_snapshot_id = Column(String(255))
    current_snapshot_id = Column(String(255))
    detected_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index('idx_change_type_time', 'change_type', 'detected_at'),
        Index('idx_change_law_time', 'law_id', 'detected_at'),
    )

# ======================== MONITORING TABLES ========================

class MonitoringConfigurationRecord(Base):
    """A user's monitoring configuration; settings are stored as JSON."""
    __tablename__ = "monitoring_configurations"

    id = Column(String(255), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(500), nullable=False)
    settings = Column(JSON, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    last_check_at = Column(DateTime(timezone=True))


class NotificationRecord(Base):
    """A notification produced for one monitoring configuration."""
    __tablename__ = "notifications"

    id = Column(String(255), primary_key=True)
    monitoring_id = Column(String(255), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)

    title = Column(String(500), nullable=False)
    summary = Column(Text, nullable=False)
    diff = Column(JSON, nullable=False)
    notification_type = Column(String(30), nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index('idx_notification_user_created', 'user_id', 'created_at'),
    )


__all__ = [
    'Base',
    'LawSnapshot',
    'RegistrySnapshotRecord',
    'RegistryDiffRecord',
    'ScanResultRecord',
    'ChangeDetectionRecord',
    'MonitoringConfigurationRecord',
    'NotificationRecord',
]
