"""
Scan Orchestrator

Coordinates one scan cycle: fetch the registry through the rate-limited
client, load the latest stored snapshots, classify changes, persist
snapshots, detections and the scan result, then hand the diff to the
notification policy evaluator.

Writes are persisted one at a time in fetch order and are not rolled back
when a later step fails. Concurrent scans against the same store are not
serialized here; triggers must not overlap.
"""

import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, List, Optional

from lawwatch.core.domain.entities import (
    ChangeDetection, InstrumentSnapshot, RegistryFetch, ScanResult,
    create_scan_id, utc_now
)
from lawwatch.core.domain.repositories import LawWatchStore, UpstreamRegistryClient
from lawwatch.core.enums import ScanType
from lawwatch.core.exceptions import ErrorCode
from lawwatch.core.logging_config import (
    get_logger, log_exception, log_performance, LoggingContext
)
from lawwatch.core.result import Result, Ok, Err, combine
from lawwatch.services.notification.policy import NotificationPolicyEvaluator
from lawwatch.services.registry_differ import InstrumentDiff, RegistryDiffer

# ======================== DATA MODELS ========================

@dataclass(frozen=True)
class ScanStatistics:
    last_scan_at: Optional[datetime]
    total_laws: int
    last_week_changes: int
    last_month_changes: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "last_scan_at": self.last_scan_at.isoformat() if self.last_scan_at else None,
            "total_laws": self.total_laws,
            "last_week_changes": self.last_week_changes,
            "last_month_changes": self.last_month_changes,
        }


def narrow_to_categories(scan: ScanResult, categories: List[str]) -> ScanResult:
    """Copy of ``scan`` listing only detections in ``categories``."""
    wanted = set(categories)

    def narrow(detections: List[ChangeDetection]) -> List[ChangeDetection]:
        return [d for d in detections if d.category in wanted]

    return replace(
        scan,
        new_laws=narrow(scan.new_laws),
        revised_laws=narrow(scan.revised_laws),
        abolished_laws=narrow(scan.abolished_laws),
        metadata_changes=narrow(scan.metadata_changes),
    )

# ======================== SCAN ORCHESTRATOR ========================

class ScanOrchestrator:
    """
    Scan cycle coordination.

    Every public operation returns a ``Result``; unexpected exceptions are
    caught and reported as scan-level failures.
    """

    def __init__(
        self,
        client: UpstreamRegistryClient,
        store: LawWatchStore,
        differ: Optional[RegistryDiffer] = None,
        evaluator: Optional[NotificationPolicyEvaluator] = None
    ):
        self.client = client
        self.store = store
        self.differ = differ or RegistryDiffer()
        self.evaluator = evaluator
        self.logger = get_logger(__name__)

    # ======================== SCAN OPERATIONS ========================

    async def perform_full_scan(self) -> Result[ScanResult]:
        return await self._scan(ScanType.FULL)

    async def perform_incremental_scan(self) -> Result[ScanResult]:
        """
        Scan for changes since the previous scan.

        Without a prior scan this is a full scan. With one it currently
        covers the whole registry as well; only the recorded scan type
        differs.
        """
        try:
            latest_result = await self.store.scan_results.get_latest()
        except Exception as e:
            log_exception(self.logger, e, {"operation": "perform_incremental_scan"})
            return Err(f"Scan failed: {e}", ErrorCode.SCAN_ERROR)

        if isinstance(latest_result, Err):
            return Err(f"Failed to get latest scan result: {latest_result.error}", latest_result.code)

        if latest_result.value is None:
            self.logger.info("No previous scan result, running full scan instead of incremental")
            return await self._scan(ScanType.FULL)

        return await self._scan(ScanType.INCREMENTAL)

    async def perform_category_scan(self, categories: List[str]) -> Result[ScanResult]:
        """
        Scan and record changes for ``categories`` only.

        Every instrument is still fetched and re-snapshotted, and every
        detection is stored, so the snapshot state stays complete. The saved
        and returned scan result list only the detections in ``categories``;
        notification still sees the whole diff because monitorings apply
        their own category filters. An empty list records everything.
        """
        return await self._scan(ScanType.CATEGORY, categories)

    # ======================== QUERY OPERATIONS ========================

    async def get_recent_changes(self, days: int = 7) -> Result[List[ChangeDetection]]:
        if days <= 0:
            return Err("days must be a positive integer", ErrorCode.VALIDATION_ERROR)

        try:
            result = await self.store.change_detections.get_recent(days)
        except Exception as e:
            log_exception(self.logger, e, {"operation": "get_recent_changes", "days": days})
            return Err(f"Failed to get recent changes: {e}", ErrorCode.STORE_ERROR)

        if isinstance(result, Err):
            return Err(f"Failed to get recent changes: {result.error}", result.code)
        return result

    async def get_scan_statistics(self) -> Result[ScanStatistics]:
        """Latest scan time and size plus 7-day and 30-day change counts; all three reads must succeed."""
        try:
            reads = combine([
                await self.store.scan_results.get_latest(),
                await self.store.change_detections.get_recent(7),
                await self.store.change_detections.get_recent(30),
            ])
        except Exception as e:
            log_exception(self.logger, e, {"operation": "get_scan_statistics"})
            return Err(f"Failed to get scan statistics: {e}", ErrorCode.STORE_ERROR)

        if isinstance(reads, Err):
            return Err(f"Failed to get scan statistics: {reads.error}", reads.code)

        latest, last_week, last_month = reads.value
        return Ok(ScanStatistics(
            last_scan_at=latest.completed_at if latest else None,
            total_laws=latest.total_laws_scanned if latest else 0,
            last_week_changes=len(last_week),
            last_month_changes=len(last_month),
        ))

    # ======================== SCAN CYCLE ========================

    async def _scan(self, scan_type: ScanType, categories: Optional[List[str]] = None) -> Result[ScanResult]:
        started_at = utc_now()
        scan_id = create_scan_id(started_at)
        start = time.perf_counter()

        with LoggingContext(scan_id=scan_id):
            self.logger.info(f"Starting {scan_type.value.lower()} scan", extra={"scan_type": scan_type.value})
            try:
                result = await self._run_scan(scan_id, scan_type, started_at, categories)
            except Exception as e:
                log_exception(self.logger, e, {"operation": "scan", "scan_type": scan_type.value})
                result = Err(f"Scan failed: {e}", ErrorCode.SCAN_ERROR)

            duration_ms = (time.perf_counter() - start) * 1000
            if isinstance(result, Ok):
                log_performance(
                    self.logger, "registry_scan", duration_ms, success=True,
                    scan_type=scan_type.value,
                    laws_scanned=result.value.total_laws_scanned,
                    changes_detected=result.value.total_changes
                )
            else:
                self.logger.error(f"Scan failed: {result.error}", extra={"error_code": result.code.value})
                log_performance(self.logger, "registry_scan", duration_ms, success=False, scan_type=scan_type.value)

        return result

    async def _run_scan(
        self,
        scan_id: str,
        scan_type: ScanType,
        started_at: datetime,
        categories: Optional[List[str]] = None
    ) -> Result[ScanResult]:
        fetch_result = await self.client.fetch_all()
        if isinstance(fetch_result, Err):
            return Err(f"Failed to fetch all laws: {fetch_result.error}", ErrorCode.UPSTREAM_FETCH_ERROR)
        fetch: RegistryFetch = fetch_result.value

        existing_result = await self.store.snapshots.get_all_latest()
        if isinstance(existing_result, Err):
            return Err(f"Failed to get existing snapshots: {existing_result.error}", existing_result.code)
        existing: List[InstrumentSnapshot] = existing_result.value

        if not existing:
            return await self._record_baseline(scan_id, scan_type, started_at, fetch)

        previous_scan_id = await self._previous_scan_id()
        diff = self.differ.diff_instruments(existing, fetch.instruments, detected_at=started_at)

        persisted = await self._persist_diff(diff)
        if isinstance(persisted, Err):
            return persisted

        scan_result = ScanResult(
            scan_id=scan_id,
            scan_type=scan_type,
            started_at=started_at,
            completed_at=utc_now(),
            total_laws_scanned=len(fetch.instruments),
            new_laws=diff.new_laws,
            revised_laws=diff.revised_laws,
            abolished_laws=diff.abolished_laws,
            metadata_changes=diff.metadata_changes,
        )
        if categories:
            scan_result = narrow_to_categories(scan_result, categories)

        save_result = await self.store.scan_results.save(scan_result)
        if isinstance(save_result, Err):
            return Err(f"Failed to save scan result: {save_result.error}", save_result.code)

        await self._notify(diff, previous_scan_id, scan_id)
        return Ok(scan_result)

    async def _record_baseline(
        self,
        scan_id: str,
        scan_type: ScanType,
        started_at: datetime,
        fetch: RegistryFetch
    ) -> Result[ScanResult]:
        """First scan against an empty store: snapshot everything, report no changes."""
        self.logger.info(
            f"No existing snapshots, recording baseline of {len(fetch.instruments)} laws",
            extra={"total_laws": len(fetch.instruments)}
        )

        for instrument in fetch.instruments:
            snapshot = self.differ.snapshot_builder.build_instrument_snapshot(instrument, captured_at=started_at)
            saved = await self.store.snapshots.save(snapshot)
            if isinstance(saved, Err):
                return Err(f"Failed to save snapshot for {instrument.id}: {saved.error}", saved.code)

        scan_result = ScanResult(
            scan_id=scan_id,
            scan_type=scan_type,
            started_at=started_at,
            completed_at=utc_now(),
            total_laws_scanned=len(fetch.instruments),
            is_baseline=True,
        )

        save_result = await self.store.scan_results.save(scan_result)
        if isinstance(save_result, Err):
            return Err(f"Failed to save scan result: {save_result.error}", save_result.code)
        return Ok(scan_result)

    async def _persist_diff(self, diff: InstrumentDiff) -> Result[None]:
        for snapshot in (*diff.current_snapshots, *diff.abolished_snapshots):
            saved = await self.store.snapshots.save(snapshot)
            if isinstance(saved, Err):
                return Err(f"Failed to save snapshot for {snapshot.law_id}: {saved.error}", saved.code)

            detection = diff.detections_by_snapshot.get(snapshot.id)
            if detection is None:
                continue
            saved = await self.store.change_detections.save(detection)
            if isinstance(saved, Err):
                return Err(f"Failed to save change detection for {detection.law_id}: {saved.error}", saved.code)

        return Ok(None)

    async def _previous_scan_id(self) -> str:
        latest = await self.store.scan_results.get_latest()
        if isinstance(latest, Ok) and latest.value is not None:
            return latest.value.scan_id
        return "latest-snapshots"

    async def _notify(self, diff: InstrumentDiff, previous_scan_id: str, scan_id: str) -> None:
        """Hand significant changes to the evaluator; failures never fail the scan."""
        if self.evaluator is None or diff.total_changes == 0:
            return

        registry_diff = diff.to_registry_diff(previous_scan_id, scan_id)
        try:
            await self.evaluator.evaluate(registry_diff)
        except Exception as e:
            log_exception(self.logger, e, {"operation": "notify", "scan_id": scan_id})
