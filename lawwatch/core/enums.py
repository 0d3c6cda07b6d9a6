"""
Centralized Enums for LawWatch

All change classification and monitoring enums in one place. Every enum is a
closed ``str, Enum`` so values serialize directly into JSON and database rows.
"""

from enum import Enum

# ======================== CHANGE DETECTION ENUMS ========================

class ChangeType(str, Enum):
    """Classification of a single instrument's observed change."""
    NEW = "NEW"
    REVISED = "REVISED"
    ABOLISHED = "ABOLISHED"
    METADATA_CHANGED = "METADATA_CHANGED"
    STATUS_CHANGED = "STATUS_CHANGED"
    CATEGORY_CHANGED = "CATEGORY_CHANGED"


class InstrumentStatus(str, Enum):
    """Lifecycle status values reported by the e-Gov registry."""
    IN_FORCE = "施行中"
    ABOLISHED = "廃止"
    NOT_YET_IN_FORCE = "未施行"

    @classmethod
    def from_effect(cls, effect: str) -> 'InstrumentStatus':
        """Map an upstream effect string onto a lifecycle status."""
        if "廃止" in effect:
            return cls.ABOLISHED
        if "未施行" in effect:
            return cls.NOT_YET_IN_FORCE
        return cls.IN_FORCE


class ScanType(str, Enum):
    """Kinds of registry scans."""
    FULL = "FULL"
    INCREMENTAL = "INCREMENTAL"
    CATEGORY = "CATEGORY"

# ======================== MONITORING ENUMS ========================

class NotificationType(str, Enum):
    """How a monitoring notification is delivered."""
    IMMEDIATE = "IMMEDIATE"
    DAILY_SUMMARY = "DAILY_SUMMARY"
    WEEKLY_SUMMARY = "WEEKLY_SUMMARY"


class CheckInterval(str, Enum):
    """How often a monitoring configuration expects to be checked."""
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MANUAL = "manual"


class NotificationChannel(str, Enum):
    """Notification delivery channels."""
    EMAIL = "EMAIL"
    LOG = "LOG"
