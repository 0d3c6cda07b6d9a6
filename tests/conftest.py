"""
Shared fixtures.
"""

import pytest

from lawwatch.core.domain.entities import (
    MonitoringSettings, NotificationPreferences, NotificationThreshold,
    create_monitoring_configuration
)
from lawwatch.core.enums import ChangeType
from tests.fakes import FakeRegistryClient, FakeStore, make_instrument

ALL_CHANGE_TYPES = [ChangeType.NEW, ChangeType.REVISED, ChangeType.METADATA_CHANGED, ChangeType.ABOLISHED]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def instruments():
    return [make_instrument("A"), make_instrument("B")]


@pytest.fixture
def client(instruments):
    return FakeRegistryClient(instruments)


@pytest.fixture
def monitoring_factory():
    """Build monitoring configurations with custom categories and thresholds."""
    def factory(user_id="user-1", categories=None, min_new=1, min_modified=1, min_removed=1,
                change_types=None, email_address=None):
        return create_monitoring_configuration(
            user_id=user_id,
            name="全法令監視",
            settings=MonitoringSettings(
                target_categories=list(categories or []),
                change_types=list(change_types if change_types is not None else ALL_CHANGE_TYPES),
                notification_settings=NotificationPreferences(
                    email_address=email_address,
                    threshold=NotificationThreshold(
                        min_new_laws=min_new,
                        min_modified_laws=min_modified,
                        min_removed_laws=min_removed,
                    )
                ),
            ),
        )
    return factory
