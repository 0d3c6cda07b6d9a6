"""
Notification policy and dispatch tests.
"""

import smtplib
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from lawwatch.core.config import NotificationSettings
from lawwatch.core.domain.entities import (
    DiffEntry, NotificationPreferences, create_notification, create_registry_diff
)
from lawwatch.core.enums import ChangeType
from lawwatch.core.exceptions import ErrorCode
from lawwatch.core.result import Ok, Err
from lawwatch.services.notification.policy import (
    NotificationPolicyEvaluator, should_notify, filter_by_category, filter_by_change_types,
    get_change_summary_text, create_notification_summary
)
from lawwatch.services.notification.service import NotificationDispatcher, is_valid_email

DETECTED_AT = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)

# ======================== FIXTURES ========================

def entry(law_id, change_type=ChangeType.NEW, category='憲法・法律'):
    return DiffEntry(
        law_id=law_id,
        name=f"法律{law_id}",
        number=f"令和六年法律第{law_id}号",
        category=category,
        change_type=change_type,
        detected_at=DETECTED_AT,
    )


def make_diff(new=(), modified=(), removed=()):
    return create_registry_diff(
        previous_snapshot_id='scan-1',
        current_snapshot_id='scan-2',
        new_laws=list(new),
        modified_laws=list(modified),
        removed_laws=list(removed),
        detected_at=DETECTED_AT,
    )


@pytest.fixture
def mixed_diff():
    return make_diff(
        new=[entry('1'), entry('2', category='政令')],
        modified=[entry('3', ChangeType.REVISED)],
        removed=[entry('4', ChangeType.ABOLISHED, category='政令')],
    )

# ======================== POLICY FUNCTIONS ========================

class TestShouldNotify:

    def test_any_bucket_reaching_threshold_is_enough(self, monitoring_factory):
        settings = monitoring_factory(min_new=5, min_modified=5, min_removed=1).settings
        assert should_notify(make_diff(removed=[entry('1', ChangeType.ABOLISHED)]), settings)

    def test_below_every_threshold(self, monitoring_factory):
        settings = monitoring_factory(min_new=2, min_modified=2, min_removed=2).settings
        diff = make_diff(new=[entry('1')], modified=[entry('2', ChangeType.REVISED)])
        assert not should_notify(diff, settings)


class TestFilterByCategory:

    def test_narrows_every_bucket(self, mixed_diff):
        filtered = filter_by_category(mixed_diff, ['政令'])

        assert [e.law_id for e in filtered.new_laws] == ['2']
        assert filtered.modified_laws == []
        assert [e.law_id for e in filtered.removed_laws] == ['4']
        assert filtered.summary.total_new == 1
        assert filtered.summary.affected_categories == ['政令']
        assert filtered.detected_at == mixed_diff.detected_at

    def test_empty_list_keeps_everything(self, mixed_diff):
        assert filter_by_category(mixed_diff, []) is mixed_diff


class TestFilterByChangeTypes:

    def test_drops_unsubscribed_types(self, mixed_diff):
        filtered = filter_by_change_types(mixed_diff, [ChangeType.REVISED, ChangeType.ABOLISHED])

        assert filtered.new_laws == []
        assert [e.law_id for e in filtered.modified_laws] == ['3']
        assert [e.law_id for e in filtered.removed_laws] == ['4']
        assert filtered.summary.total_new == 0

    def test_empty_list_keeps_everything(self, mixed_diff):
        assert filter_by_change_types(mixed_diff, []) is mixed_diff


class TestSummaryText:

    def test_lists_nonzero_buckets(self):
        diff = make_diff(new=[entry('1'), entry('2')], removed=[entry('3', ChangeType.ABOLISHED)])
        assert get_change_summary_text(diff) == "新規法令: 2件, 廃止法令: 1件"

    def test_no_changes(self):
        assert get_change_summary_text(make_diff()) == "変更なし"

    def test_notification_body_names_entries(self):
        body = create_notification_summary(make_diff(modified=[entry('9', ChangeType.REVISED)]))
        assert body.splitlines() == ["変更法令: 1件", "  - 法律9 (憲法・法律)"]

# ======================== EVALUATOR ========================

class TestNotificationPolicyEvaluator:

    @pytest.fixture
    def dispatcher(self):
        dispatcher = AsyncMock(spec=NotificationDispatcher)
        dispatcher.dispatch.return_value = Ok({"LOG": "sent"})
        return dispatcher

    @pytest.fixture
    def evaluator(self, store, dispatcher):
        return NotificationPolicyEvaluator(store, dispatcher)

    @pytest.mark.asyncio
    async def test_records_and_dispatches(self, evaluator, store, dispatcher, monitoring_factory, mixed_diff):
        monitoring = monitoring_factory()
        await store.monitorings.save(monitoring)

        result = await evaluator.evaluate(mixed_diff, checked_at=DETECTED_AT)

        assert isinstance(result, Ok)
        [notification] = result.value
        assert notification.title == "【全法令監視】新規法令: 2件, 変更法令: 1件, 廃止法令: 1件"
        assert notification.monitoring_id == monitoring.id
        assert store.notifications.notifications[notification.id] is notification
        assert store.monitorings.monitorings[monitoring.id].last_check_at == DETECTED_AT
        dispatcher.dispatch.assert_awaited_once_with(notification, monitoring.settings.notification_settings)

    @pytest.mark.asyncio
    async def test_category_filter_applied_before_threshold(self, evaluator, store, monitoring_factory):
        await store.monitorings.save(monitoring_factory(categories=['条約']))

        result = await evaluator.evaluate(make_diff(new=[entry('1')]))

        assert result.value == []
        assert store.notifications.notifications == {}

    @pytest.mark.asyncio
    async def test_unsubscribed_change_types_not_notified(self, evaluator, store, dispatcher, monitoring_factory):
        await store.monitorings.save(monitoring_factory(change_types=[ChangeType.REVISED, ChangeType.ABOLISHED]))

        result = await evaluator.evaluate(make_diff(new=[entry('1')]))

        assert result.value == []
        dispatcher.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_threshold_not_met(self, evaluator, store, monitoring_factory):
        monitoring = monitoring_factory(min_new=3, min_modified=3, min_removed=3)
        await store.monitorings.save(monitoring)

        result = await evaluator.evaluate(make_diff(new=[entry('1')]))

        assert result.value == []
        assert store.monitorings.monitorings[monitoring.id].last_check_at is None

    @pytest.mark.asyncio
    async def test_zero_thresholds_still_require_changes(self, evaluator, store, monitoring_factory):
        await store.monitorings.save(monitoring_factory(min_new=0, min_modified=0, min_removed=0))
        result = await evaluator.evaluate(make_diff())
        assert result.value == []

    @pytest.mark.asyncio
    async def test_inactive_configurations_skipped(self, evaluator, store, monitoring_factory, mixed_diff):
        monitoring = monitoring_factory()
        monitoring.deactivate()
        await store.monitorings.save(monitoring)

        result = await evaluator.evaluate(mixed_diff)

        assert result.value == []

    @pytest.mark.asyncio
    async def test_one_notification_per_configuration(self, evaluator, store, monitoring_factory, mixed_diff):
        await store.monitorings.save(monitoring_factory(user_id='user-1'))
        await store.monitorings.save(monitoring_factory(user_id='user-2', categories=['政令']))

        result = await evaluator.evaluate(mixed_diff)

        assert sorted(n.user_id for n in result.value) == ['user-1', 'user-2']
        by_user = {n.user_id: n for n in result.value}
        assert by_user['user-2'].diff.summary.total_new == 1

    @pytest.mark.asyncio
    async def test_dispatch_failure_keeps_notification(self, evaluator, store, dispatcher, monitoring_factory, mixed_diff):
        dispatcher.dispatch.return_value = Err("EMAIL: refused", ErrorCode.NOTIFICATION_ERROR)
        await store.monitorings.save(monitoring_factory())

        result = await evaluator.evaluate(mixed_diff)

        assert len(result.value) == 1
        assert len(store.notifications.notifications) == 1

    @pytest.mark.asyncio
    async def test_save_failure_skips_configuration(self, evaluator, store, dispatcher, monitoring_factory, mixed_diff):
        await store.monitorings.save(monitoring_factory())
        store.notifications.fail("save")

        result = await evaluator.evaluate(mixed_diff)

        assert result.value == []
        dispatcher.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_active_load_failure(self, evaluator, store, mixed_diff):
        store.monitorings.fail("get_active", "db offline")

        result = await evaluator.evaluate(mixed_diff)

        assert isinstance(result, Err)
        assert result.error == "db offline"

# ======================== DISPATCHER ========================

class TestNotificationDispatcher:

    @pytest.fixture
    def notification(self, monitoring_factory, mixed_diff):
        return create_notification(monitoring_factory(), title="【全法令監視】新規法令: 2件", summary="本文", diff=mixed_diff)

    @pytest.mark.parametrize('address,expected', [
        ('user@example.jp', True),
        ('user@localhost', False),
        ('', False),
        (None, False),
    ])
    def test_email_validation(self, address, expected):
        assert is_valid_email(address) is expected

    @pytest.mark.asyncio
    async def test_log_channel(self, notification):
        dispatcher = NotificationDispatcher(NotificationSettings(enabled_channels=["LOG"]))

        result = await dispatcher.dispatch(notification)

        assert result == Ok({"LOG": "sent"})

    @pytest.mark.asyncio
    async def test_email_without_recipient_fails(self, notification):
        dispatcher = NotificationDispatcher(NotificationSettings(enabled_channels=["LOG", "EMAIL"]))

        result = await dispatcher.dispatch(notification)

        assert isinstance(result, Err)
        assert result.code is ErrorCode.NOTIFICATION_ERROR
        assert "EMAIL: No valid email address for user user-1" in result.error

    @pytest.mark.asyncio
    async def test_email_delivered_over_smtp(self, notification):
        dispatcher = NotificationDispatcher(
            NotificationSettings(enabled_channels=["email"]),
            recipient_resolver=lambda user_id: f"{user_id}@example.jp"
        )

        with patch.object(dispatcher, '_deliver_smtp') as deliver:
            result = await dispatcher.dispatch(notification)

        assert result == Ok({"EMAIL": "sent"})
        message = deliver.call_args.args[0]
        assert message['To'] == "user-1@example.jp"
        assert message['Subject'] == "[LawWatch] 【全法令監視】新規法令: 2件"

    @pytest.mark.asyncio
    async def test_smtp_error_reported(self, notification):
        dispatcher = NotificationDispatcher(
            NotificationSettings(enabled_channels=["EMAIL"]),
            recipient_resolver=lambda user_id: "user@example.jp"
        )

        with patch.object(dispatcher, '_deliver_smtp', side_effect=smtplib.SMTPException("relay denied")):
            result = await dispatcher.dispatch(notification)

        assert isinstance(result, Err)
        assert "relay denied" in result.error

    @pytest.mark.asyncio
    async def test_monitoring_address_preferred(self, notification):
        dispatcher = NotificationDispatcher(
            NotificationSettings(enabled_channels=["EMAIL"]),
            recipient_resolver=lambda user_id: "fallback@example.jp"
        )
        preferences = NotificationPreferences(email_address="legal-team@example.jp")

        with patch.object(dispatcher, '_deliver_smtp') as deliver:
            result = await dispatcher.dispatch(notification, preferences)

        assert result == Ok({"EMAIL": "sent"})
        assert deliver.call_args.args[0]['To'] == "legal-team@example.jp"

    @pytest.mark.asyncio
    async def test_email_opt_out_skips_channel(self, notification):
        dispatcher = NotificationDispatcher(NotificationSettings(enabled_channels=["LOG", "EMAIL"]))
        preferences = NotificationPreferences(email=False, email_address="legal-team@example.jp")

        with patch.object(dispatcher, '_deliver_smtp') as deliver:
            result = await dispatcher.dispatch(notification, preferences)

        assert result == Ok({"LOG": "sent", "EMAIL": "skipped"})
        deliver.assert_not_called()
