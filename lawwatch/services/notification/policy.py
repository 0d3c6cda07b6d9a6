"""
Notification Policy Evaluator

Decides, per active monitoring configuration, whether an observed diff is
worth a notification, then records and dispatches it.
"""

from datetime import datetime
from typing import List, Optional

from lawwatch.core.domain.entities import (
    RegistryDiff, MonitoringSettings, MonitoringConfiguration, Notification,
    create_registry_diff, create_notification, utc_now
)
from lawwatch.core.domain.repositories import LawWatchStore
from lawwatch.core.enums import ChangeType
from lawwatch.core.logging_config import get_logger
from lawwatch.core.result import Result, Ok, Err
from lawwatch.services.notification.service import NotificationDispatcher

NOTIFICATION_TITLE_PREFIX = "【全法令監視】"
NO_CHANGES_TEXT = "変更なし"

# ======================== POLICY FUNCTIONS ========================

def should_notify(diff: RegistryDiff, settings: MonitoringSettings) -> bool:
    """Any single bucket reaching its threshold is enough."""
    threshold = settings.notification_settings.threshold
    return (
        diff.summary.total_new >= threshold.min_new_laws
        or diff.summary.total_modified >= threshold.min_modified_laws
        or diff.summary.total_removed >= threshold.min_removed_laws
    )


def filter_by_category(diff: RegistryDiff, categories: List[str]) -> RegistryDiff:
    """Narrow every bucket to ``categories``; an empty list means all categories."""
    if not categories:
        return diff

    wanted = set(categories)
    return create_registry_diff(
        previous_snapshot_id=diff.previous_snapshot_id,
        current_snapshot_id=diff.current_snapshot_id,
        new_laws=[e for e in diff.new_laws if e.category in wanted],
        modified_laws=[e for e in diff.modified_laws if e.category in wanted],
        removed_laws=[e for e in diff.removed_laws if e.category in wanted],
        detected_at=diff.detected_at,
    )


def filter_by_change_types(diff: RegistryDiff, change_types: List[ChangeType]) -> RegistryDiff:
    """Keep only entries whose change type the monitoring asked for; an empty list keeps all."""
    if not change_types:
        return diff

    wanted = set(change_types)
    return create_registry_diff(
        previous_snapshot_id=diff.previous_snapshot_id,
        current_snapshot_id=diff.current_snapshot_id,
        new_laws=[e for e in diff.new_laws if e.change_type in wanted],
        modified_laws=[e for e in diff.modified_laws if e.change_type in wanted],
        removed_laws=[e for e in diff.removed_laws if e.change_type in wanted],
        detected_at=diff.detected_at,
    )


def has_significant_changes(diff: RegistryDiff) -> bool:
    return diff.has_significant_changes


def get_change_summary_text(diff: RegistryDiff) -> str:
    parts = []
    if diff.summary.total_new > 0:
        parts.append(f"新規法令: {diff.summary.total_new}件")
    if diff.summary.total_modified > 0:
        parts.append(f"変更法令: {diff.summary.total_modified}件")
    if diff.summary.total_removed > 0:
        parts.append(f"廃止法令: {diff.summary.total_removed}件")
    return ", ".join(parts) if parts else NO_CHANGES_TEXT


def create_notification_summary(diff: RegistryDiff) -> str:
    """Multi-line body listing the entries of every nonzero bucket."""
    parts = []
    buckets = (
        ("新規法令", diff.new_laws),
        ("変更法令", diff.modified_laws),
        ("廃止法令", diff.removed_laws),
    )
    for label, entries in buckets:
        if not entries:
            continue
        parts.append(f"{label}: {len(entries)}件")
        parts.extend(f"  - {entry.name} ({entry.category})" for entry in entries)
    return "\n".join(parts)

# ======================== EVALUATOR ========================

class NotificationPolicyEvaluator:
    """
    Applies monitoring policies to a diff.

    For every active configuration: filter by category and by the change
    types it subscribes to, apply the threshold, require significance, then
    persist the notification, update the configuration's ``last_check_at``
    and attempt delivery once.
    """

    def __init__(self, store: LawWatchStore, dispatcher: Optional[NotificationDispatcher] = None):
        self.store = store
        self.dispatcher = dispatcher
        self.logger = get_logger(__name__)

    async def evaluate(self, diff: RegistryDiff, checked_at: Optional[datetime] = None) -> Result[List[Notification]]:
        """
        Emit notifications for ``diff``.

        Returns:
            Ok with the notifications created. Err only when the active
            configurations could not be loaded; callers treat that as
            non-fatal.
        """
        active_result = await self.store.monitorings.get_active()
        if isinstance(active_result, Err):
            self.logger.error(
                f"Failed to load active monitoring configurations: {active_result.error}",
                extra={"diff_current_snapshot_id": diff.current_snapshot_id}
            )
            return active_result

        checked_at = checked_at or utc_now()
        notifications: List[Notification] = []

        for monitoring in active_result.value:
            filtered = filter_by_category(diff, monitoring.settings.target_categories)
            filtered = filter_by_change_types(filtered, monitoring.settings.change_types)

            if not should_notify(filtered, monitoring.settings):
                continue
            if not has_significant_changes(filtered):
                continue

            notification = await self._record_notification(monitoring, filtered, checked_at)
            if notification is None:
                continue
            notifications.append(notification)

            if self.dispatcher is not None:
                dispatch_result = await self.dispatcher.dispatch(
                    notification, monitoring.settings.notification_settings
                )
                if isinstance(dispatch_result, Err):
                    self.logger.warning(
                        f"Notification dispatch failed: {dispatch_result.error}",
                        extra={"notification_id": notification.id, "monitoring_id": monitoring.id}
                    )

        self.logger.info(
            f"Notification evaluation complete: {len(notifications)} of "
            f"{len(active_result.value)} configurations notified",
            extra={"diff_current_snapshot_id": diff.current_snapshot_id}
        )
        return Ok(notifications)

    async def _record_notification(
        self,
        monitoring: MonitoringConfiguration,
        diff: RegistryDiff,
        checked_at: datetime
    ) -> Optional[Notification]:
        notification = create_notification(
            monitoring,
            title=f"{NOTIFICATION_TITLE_PREFIX}{get_change_summary_text(diff)}",
            summary=create_notification_summary(diff),
            diff=diff,
        )

        save_result = await self.store.notifications.save(notification)
        if isinstance(save_result, Err):
            self.logger.error(
                f"Failed to save notification: {save_result.error}",
                extra={"monitoring_id": monitoring.id}
            )
            return None

        monitoring.mark_checked(checked_at)
        update_result = await self.store.monitorings.update(monitoring)
        if isinstance(update_result, Err):
            self.logger.error(
                f"Failed to update monitoring last check: {update_result.error}",
                extra={"monitoring_id": monitoring.id}
            )

        return notification
