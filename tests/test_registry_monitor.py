"""
Registry checksum monitor tests.
"""

from unittest.mock import AsyncMock

import pytest

from lawwatch.core.exceptions import ErrorCode
from lawwatch.core.result import Ok, Err
from lawwatch.services.notification.policy import NotificationPolicyEvaluator
from lawwatch.services.registry_monitor import RegistryMonitor
from tests.fakes import make_instrument


@pytest.fixture
def evaluator():
    return AsyncMock(spec=NotificationPolicyEvaluator)


@pytest.fixture
def monitor(client, store, evaluator):
    return RegistryMonitor(client, store, evaluator=evaluator)


class TestCheckForUpdates:

    @pytest.mark.asyncio
    async def test_first_run_records_baseline(self, monitor, store, evaluator):
        result = await monitor.check_for_updates()

        assert result == Ok(None)
        assert len(store.registry_snapshots.snapshots) == 1
        assert store.registry_snapshots.snapshots[0].total_instrument_count == 2
        evaluator.evaluate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unchanged_checksum(self, monitor, store):
        await monitor.check_for_updates()
        result = await monitor.check_for_updates()

        assert result == Ok(None)
        assert store.registry_diffs.diffs == []
        assert len(store.registry_snapshots.snapshots) == 2

    @pytest.mark.asyncio
    async def test_added_instrument_recorded_and_evaluated(self, monitor, client, store, evaluator):
        await monitor.check_for_updates()
        client.instruments.append(make_instrument('C'))

        result = await monitor.check_for_updates()

        assert isinstance(result, Ok)
        diff = result.value
        assert diff.summary.total_new == 1
        assert diff.summary.total_removed == 0
        assert store.registry_diffs.diffs == [diff]
        assert diff.previous_snapshot_id == store.registry_snapshots.snapshots[0].id
        assert diff.current_snapshot_id == store.registry_snapshots.snapshots[1].id
        evaluator.evaluate.assert_awaited_once_with(diff)

    @pytest.mark.asyncio
    async def test_removed_instrument(self, monitor, client):
        await monitor.check_for_updates()
        client.instruments.pop()

        diff = (await monitor.check_for_updates()).value

        assert diff.summary.total_removed == 1

    @pytest.mark.asyncio
    async def test_evaluator_failure_is_not_fatal(self, monitor, client, evaluator):
        evaluator.evaluate.side_effect = RuntimeError("smtp down")
        await monitor.check_for_updates()
        client.instruments.append(make_instrument('C'))

        result = await monitor.check_for_updates()

        assert isinstance(result, Ok)

    @pytest.mark.asyncio
    async def test_fetch_failure(self, monitor, client, store):
        client.error = "timeout"

        result = await monitor.check_for_updates()

        assert result == Err("Failed to fetch all laws: timeout", ErrorCode.UPSTREAM_FETCH_ERROR)
        assert store.registry_snapshots.snapshots == []

    @pytest.mark.asyncio
    async def test_snapshot_save_failure(self, monitor, store):
        store.registry_snapshots.fail("save", "disk full")

        result = await monitor.check_for_updates()

        assert isinstance(result, Err)
        assert result.error == "Failed to save registry snapshot: disk full"


class TestQueries:

    @pytest.mark.asyncio
    async def test_recent_diffs_newest_first(self, monitor, client):
        await monitor.check_for_updates()
        client.instruments.append(make_instrument('C'))
        first = (await monitor.check_for_updates()).value
        client.instruments.append(make_instrument('D'))
        second = (await monitor.check_for_updates()).value

        assert await monitor.get_recent_diffs() == Ok([second, first])
        assert await monitor.get_recent_diffs(limit=1) == Ok([second])

    @pytest.mark.asyncio
    async def test_recent_diffs_rejects_non_positive_limit(self, monitor):
        result = await monitor.get_recent_diffs(limit=0)
        assert result.code is ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_recent_diffs_store_failure(self, monitor, store):
        store.registry_diffs.fail("get_recent", "db offline")

        result = await monitor.get_recent_diffs()

        assert result == Err("Failed to get registry diffs: db offline", ErrorCode.STORE_ERROR)

    @pytest.mark.asyncio
    async def test_get_snapshot(self, monitor, store):
        await monitor.check_for_updates()
        snapshot = store.registry_snapshots.snapshots[0]

        assert await monitor.get_snapshot(snapshot.id) == Ok(snapshot)

    @pytest.mark.asyncio
    async def test_unknown_snapshot(self, monitor):
        result = await monitor.get_snapshot('registry-missing')
        assert result == Err("Registry snapshot 'registry-missing' not found", ErrorCode.ENTITY_NOT_FOUND)

    @pytest.mark.asyncio
    async def test_snapshot_store_failure(self, monitor, store):
        store.registry_snapshots.fail("get_by_id", "db offline")

        result = await monitor.get_snapshot('registry-1')

        assert result == Err("Failed to get registry snapshot: db offline", ErrorCode.STORE_ERROR)
