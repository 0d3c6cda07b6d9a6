"""
Monitoring registration and notification access tests.
"""

import pytest

from lawwatch.core.domain.entities import create_notification, create_registry_diff
from lawwatch.core.enums import ChangeType, CheckInterval
from lawwatch.core.exceptions import ErrorCode
from lawwatch.core.result import Ok, Err
from lawwatch.services.monitoring_service import MonitoringService


@pytest.fixture
def service(store):
    return MonitoringService(store)


class TestCreateMonitoring:

    @pytest.mark.asyncio
    async def test_defaults(self, service, store):
        result = await service.create_comprehensive_monitoring('user-1', ' 全法令 ')

        monitoring = result.value
        assert monitoring.name == '全法令'
        assert monitoring.is_active
        assert monitoring.settings.check_interval is CheckInterval.DAILY
        assert monitoring.settings.target_categories == []
        assert monitoring.settings.change_types == [
            ChangeType.NEW, ChangeType.REVISED, ChangeType.METADATA_CHANGED, ChangeType.ABOLISHED
        ]
        assert store.monitorings.monitorings[monitoring.id] is monitoring

    @pytest.mark.asyncio
    async def test_change_type_flags(self, service):
        result = await service.create_comprehensive_monitoring(
            'user-1', '新規のみ', target_categories=['政令'],
            notify_on_modified=False, notify_on_removed=False
        )
        assert result.value.settings.change_types == [ChangeType.NEW]
        assert result.value.settings.target_categories == ['政令']

    @pytest.mark.asyncio
    async def test_every_change_type_disabled_rejected(self, service, store):
        result = await service.create_comprehensive_monitoring(
            'user-1', '監視', notify_on_new=False, notify_on_modified=False, notify_on_removed=False
        )
        assert result == Err("At least one change type must be monitored", ErrorCode.VALIDATION_ERROR)
        assert store.monitorings.monitorings == {}

    @pytest.mark.asyncio
    async def test_email_address_enables_email(self, service):
        without = (await service.create_comprehensive_monitoring('user-1', '監視')).value
        with_address = (await service.create_comprehensive_monitoring(
            'user-1', '監視', email_address='legal@example.jp'
        )).value

        assert without.settings.notification_settings.email is False
        assert with_address.settings.notification_settings.email is True
        assert with_address.settings.notification_settings.email_address == 'legal@example.jp'

    @pytest.mark.asyncio
    async def test_invalid_email_address_rejected(self, service):
        result = await service.create_comprehensive_monitoring('user-1', '監視', email_address='legal')
        assert result == Err("Invalid email address: legal", ErrorCode.VALIDATION_ERROR)

    @pytest.mark.asyncio
    @pytest.mark.parametrize('user_id,name', [('', '監視'), ('user-1', ''), ('user-1', '   ')])
    async def test_rejects_missing_fields(self, service, user_id, name):
        result = await service.create_comprehensive_monitoring(user_id, name)
        assert isinstance(result, Err)
        assert result.code is ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_store_failure(self, service, store):
        store.monitorings.fail("save", "db offline")

        result = await service.create_comprehensive_monitoring('user-1', '監視')

        assert result == Err("Failed to create monitoring: db offline", ErrorCode.STORE_ERROR)


class TestDeactivate:

    @pytest.mark.asyncio
    async def test_owner_can_deactivate(self, service, store):
        monitoring = (await service.create_comprehensive_monitoring('user-1', '監視')).value

        result = await service.deactivate_monitoring(monitoring.id, 'user-1')

        assert isinstance(result, Ok)
        assert not store.monitorings.monitorings[monitoring.id].is_active
        assert (await store.monitorings.get_active()).value == []

    @pytest.mark.asyncio
    async def test_other_user_sees_not_found(self, service):
        monitoring = (await service.create_comprehensive_monitoring('user-1', '監視')).value

        result = await service.deactivate_monitoring(monitoring.id, 'user-2')

        assert result.code is ErrorCode.ENTITY_NOT_FOUND
        assert monitoring.is_active

    @pytest.mark.asyncio
    async def test_unknown_monitoring(self, service):
        result = await service.deactivate_monitoring('monitoring-missing', 'user-1')
        assert result.code is ErrorCode.ENTITY_NOT_FOUND


class TestDelete:

    @pytest.mark.asyncio
    async def test_owner_can_delete(self, service, store):
        monitoring = (await service.create_comprehensive_monitoring('user-1', '監視')).value

        result = await service.delete_monitoring(monitoring.id, 'user-1')

        assert result == Ok(None)
        assert store.monitorings.monitorings == {}

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(self, service, store):
        monitoring = (await service.create_comprehensive_monitoring('user-1', '監視')).value

        result = await service.delete_monitoring(monitoring.id, 'user-2')

        assert result.code is ErrorCode.ENTITY_NOT_FOUND
        assert monitoring.id in store.monitorings.monitorings

    @pytest.mark.asyncio
    async def test_store_failure(self, service, store):
        monitoring = (await service.create_comprehensive_monitoring('user-1', '監視')).value
        store.monitorings.fail("delete", "db offline")

        result = await service.delete_monitoring(monitoring.id, 'user-1')

        assert result == Err("Failed to delete monitoring: db offline", ErrorCode.STORE_ERROR)


class TestNotifications:

    @pytest.mark.asyncio
    async def test_list_and_mark_read(self, service, store):
        monitoring = (await service.create_comprehensive_monitoring('user-1', '監視')).value
        diff = create_registry_diff('scan-1', 'scan-2', [], [], [])
        notification = create_notification(monitoring, title="t", summary="s", diff=diff)
        await store.notifications.save(notification)

        listed = (await service.get_user_notifications('user-1')).value
        assert listed == [notification]
        assert (await service.get_user_notifications('user-2')).value == []

        assert await service.mark_notification_read(notification.id) == Ok(None)
        first_read_at = notification.read_at
        assert notification.is_read

        assert await service.mark_notification_read(notification.id) == Ok(None)
        assert notification.read_at == first_read_at

    @pytest.mark.asyncio
    async def test_mark_unknown_notification(self, service):
        result = await service.mark_notification_read('notification-missing')
        assert result.code is ErrorCode.ENTITY_NOT_FOUND

    @pytest.mark.asyncio
    async def test_user_monitorings(self, service):
        await service.create_comprehensive_monitoring('user-1', 'A')
        await service.create_comprehensive_monitoring('user-2', 'B')

        result = await service.get_user_monitorings('user-1')

        assert [m.name for m in result.value] == ['A']
