"""
Instrument Tracker

Hash-based change tracking for a single instrument, optionally including
its full text.
"""

from typing import Optional

from lawwatch.core.domain.entities import ChangeDetection
from lawwatch.core.domain.repositories import LawWatchStore, UpstreamRegistryClient
from lawwatch.core.exceptions import ErrorCode
from lawwatch.core.logging_config import get_logger, log_exception
from lawwatch.core.result import Result, Ok, Err
from lawwatch.services.registry_differ import RegistryDiffer


class InstrumentTracker:
    """Detects changes to one instrument between calls."""

    def __init__(
        self,
        client: UpstreamRegistryClient,
        store: LawWatchStore,
        differ: Optional[RegistryDiffer] = None
    ):
        self.client = client
        self.store = store
        self.differ = differ or RegistryDiffer()
        self.logger = get_logger(__name__)

    async def track(self, law_id: str, full_text: Optional[str] = None) -> Result[Optional[ChangeDetection]]:
        """
        Fetch ``law_id`` and compare it with its latest snapshot.

        The first call records a 1.0.0 baseline and returns Ok(None). Later
        calls return Ok(None) when unchanged, or persist the detection and a
        new snapshot with the patch version bumped.
        """
        if not law_id:
            return Err("law_id is required", ErrorCode.VALIDATION_ERROR)

        try:
            return await self._track(law_id, full_text)
        except Exception as e:
            log_exception(self.logger, e, {"operation": "track", "law_id": law_id})
            return Err(f"Change tracking failed for {law_id}: {e}", ErrorCode.SCAN_ERROR)

    async def _track(self, law_id: str, full_text: Optional[str]) -> Result[Optional[ChangeDetection]]:
        detail = await self.client.fetch_detail(law_id)
        if isinstance(detail, Err):
            return Err(f"Failed to fetch law {law_id}: {detail.error}", detail.code)

        latest = await self.store.snapshots.get_latest(law_id)
        if isinstance(latest, Err):
            return Err(f"Failed to get latest snapshot for {law_id}: {latest.error}", latest.code)

        builder = self.differ.snapshot_builder
        previous = latest.value

        if previous is None:
            baseline = builder.build_instrument_snapshot(detail.value, full_text=full_text)
            saved = await self.store.snapshots.save(baseline)
            if isinstance(saved, Err):
                return Err(f"Failed to save snapshot for {law_id}: {saved.error}", saved.code)
            self.logger.info(
                f"Baseline snapshot recorded for {law_id}",
                extra={"law_id": law_id, "snapshot_version": baseline.version}
            )
            return Ok(None)

        current = builder.build_instrument_snapshot(detail.value, full_text=full_text, previous=previous)
        detection = self.differ.diff_snapshot(previous, current)
        if detection is None:
            # First body hash for a law so far tracked by metadata only
            if previous.content_hash is None and current.content_hash is not None:
                saved = await self.store.snapshots.save(current)
                if isinstance(saved, Err):
                    return Err(f"Failed to save snapshot for {law_id}: {saved.error}", saved.code)
            return Ok(None)

        saved = await self.store.snapshots.save(current)
        if isinstance(saved, Err):
            return Err(f"Failed to save snapshot for {law_id}: {saved.error}", saved.code)

        saved = await self.store.change_detections.save(detection)
        if isinstance(saved, Err):
            return Err(f"Failed to save change detection for {law_id}: {saved.error}", saved.code)

        self.logger.info(
            f"Change detected for {law_id}: {detection.change_type.value}",
            extra={
                "law_id": law_id,
                "change_type": detection.change_type.value,
                "changed_fields": detection.changed_fields,
                "snapshot_version": current.version
            }
        )
        return Ok(detection)
