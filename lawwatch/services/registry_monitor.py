"""
Registry Monitor

Whole-registry checksum monitoring. Cheaper than a full scan but coarser:
a changed checksum is only reconciled in aggregate (see
``RegistryDiffer.diff_registry``).
"""

import time
from typing import List, Optional

from lawwatch.core.domain.entities import RegistryDiff, RegistrySnapshot
from lawwatch.core.domain.repositories import LawWatchStore, UpstreamRegistryClient
from lawwatch.core.exceptions import ErrorCode
from lawwatch.core.logging_config import get_logger, log_exception, log_performance
from lawwatch.core.result import Result, Ok, Err
from lawwatch.services.notification.policy import NotificationPolicyEvaluator
from lawwatch.services.registry_differ import RegistryDiffer
from lawwatch.services.snapshot_builder import SnapshotBuilder


class RegistryMonitor:
    """Compares the current registry checksum with the last stored registry snapshot."""

    def __init__(
        self,
        client: UpstreamRegistryClient,
        store: LawWatchStore,
        evaluator: Optional[NotificationPolicyEvaluator] = None,
        snapshot_builder: Optional[SnapshotBuilder] = None,
        differ: Optional[RegistryDiffer] = None
    ):
        self.client = client
        self.store = store
        self.evaluator = evaluator
        self.snapshot_builder = snapshot_builder or SnapshotBuilder()
        self.differ = differ or RegistryDiffer(self.snapshot_builder)
        self.logger = get_logger(__name__)

    async def check_for_updates(self) -> Result[Optional[RegistryDiff]]:
        """
        Run one registry check.

        Returns:
            Ok(None) on the first run or when nothing changed, Ok(diff) when a
            significant diff was recorded, Err on fetch or store failure
        """
        start = time.perf_counter()
        try:
            result = await self._check()
        except Exception as e:
            log_exception(self.logger, e, {"operation": "check_for_updates"})
            result = Err(f"Registry check failed: {e}", ErrorCode.SCAN_ERROR)

        log_performance(
            self.logger, "registry_check", (time.perf_counter() - start) * 1000,
            success=isinstance(result, Ok)
        )
        return result

    async def _check(self) -> Result[Optional[RegistryDiff]]:
        fetch_result = await self.client.fetch_all()
        if isinstance(fetch_result, Err):
            return Err(f"Failed to fetch all laws: {fetch_result.error}", ErrorCode.UPSTREAM_FETCH_ERROR)

        current = self.snapshot_builder.build_registry_snapshot(fetch_result.value)

        previous_result = await self.store.registry_snapshots.get_latest()
        if isinstance(previous_result, Err):
            return Err(f"Failed to get latest registry snapshot: {previous_result.error}", previous_result.code)

        # The current snapshot is stored before diffing so it becomes the next baseline
        saved = await self.store.registry_snapshots.save(current)
        if isinstance(saved, Err):
            return Err(f"Failed to save registry snapshot: {saved.error}", saved.code)

        previous = previous_result.value
        if previous is None:
            self.logger.info(
                "First registry snapshot recorded as baseline",
                extra={"snapshot_id": current.id, "total_laws": current.total_instrument_count}
            )
            return Ok(None)

        diff = self.differ.diff_registry(previous, current)
        if diff is None or not diff.has_significant_changes:
            self.logger.info("Registry unchanged", extra={"checksum": current.checksum})
            return Ok(None)

        saved = await self.store.registry_diffs.save(diff)
        if isinstance(saved, Err):
            return Err(f"Failed to save registry diff: {saved.error}", saved.code)

        if self.evaluator is not None:
            try:
                await self.evaluator.evaluate(diff)
            except Exception as e:
                log_exception(self.logger, e, {"operation": "notify", "snapshot_id": current.id})

        return Ok(diff)

    # ======================== QUERY OPERATIONS ========================

    async def get_recent_diffs(self, limit: int = 10) -> Result[List[RegistryDiff]]:
        """Recorded registry diffs, newest first."""
        if limit <= 0:
            return Err("limit must be a positive integer", ErrorCode.VALIDATION_ERROR)

        result = await self.store.registry_diffs.get_recent(limit)
        if isinstance(result, Err):
            return Err(f"Failed to get registry diffs: {result.error}", result.code)
        return result

    async def get_snapshot(self, snapshot_id: str) -> Result[RegistrySnapshot]:
        result = await self.store.registry_snapshots.get_by_id(snapshot_id)
        if isinstance(result, Err):
            return Err(f"Failed to get registry snapshot: {result.error}", result.code)
        if result.value is None:
            return Err(f"Registry snapshot '{snapshot_id}' not found", ErrorCode.ENTITY_NOT_FOUND)
        return result
