"""
Celery tasks for registry scans.

Each task runs one async scan under ``asyncio.run`` with its own database
manager, so connection pools never outlive the event loop they were
created on.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from celery import shared_task, Task
from celery.utils.log import get_task_logger

from lawwatch.bootstrap import build_registry_monitor, build_scan_orchestrator, build_store
from lawwatch.core.domain.entities import RegistryDiff, ScanResult
from lawwatch.core.exceptions import ErrorCode, ScanError
from lawwatch.core.result import Err, Result
from lawwatch.infrastructure.database.connection import DatabaseManager
from lawwatch.infrastructure.database.store import SQLAlchemyLawWatchStore

logger = get_task_logger(__name__)

# Upstream outages are worth retrying; store and validation failures are not
RETRYABLE_CODES = {ErrorCode.UPSTREAM_FETCH_ERROR, ErrorCode.RATE_LIMIT_ERROR}


class ScanTask(Task):
    """Base class for scan tasks with retry logic."""

    autoretry_for = (ScanError,)
    retry_kwargs = {'max_retries': 3, 'countdown': 300}
    retry_jitter = True

    def before_start(self, task_id, args, kwargs):
        logger.info(f"Starting scan task {task_id} ({self.name})")

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(
            f"Retrying scan task {task_id} due to {exc}. "
            f"Retry {self.request.retries}/{self.max_retries}"
        )

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Scan task {task_id} failed after {self.request.retries} retries: {exc}")


async def _with_store(work: Callable[[SQLAlchemyLawWatchStore], Awaitable[Result[Any]]]) -> Result[Any]:
    db = DatabaseManager()
    try:
        await db.create_tables()
        return await work(build_store(db))
    finally:
        await db.close()


def scan_result_summary(scan: ScanResult) -> Dict[str, Any]:
    return {
        'scan_id': scan.scan_id,
        'scan_type': scan.scan_type.value,
        'status': 'SUCCESS',
        'is_baseline': scan.is_baseline,
        'total_laws_scanned': scan.total_laws_scanned,
        'new_laws': len(scan.new_laws),
        'revised_laws': len(scan.revised_laws),
        'abolished_laws': len(scan.abolished_laws),
        'metadata_changes': len(scan.metadata_changes),
        'duration_seconds': scan.duration_seconds,
    }


def _unwrap(result: Result[Any], operation: str) -> Any:
    """Value of an ``Ok``; retryable failures raise, others are returned as a failed summary."""
    if isinstance(result, Err):
        if result.code in RETRYABLE_CODES:
            raise ScanError(f"{operation} failed: {result.error}", error_code=result.code)
        logger.error(f"{operation} failed: {result.error}")
        return None
    return result.value


def _failure(operation: str, result: Err) -> Dict[str, Any]:
    return {'status': 'FAILED', 'operation': operation, 'error': result.error, 'error_code': result.code.value}


def _run_scan(operation: str, scan: Callable[[SQLAlchemyLawWatchStore], Awaitable[Result[ScanResult]]]) -> Dict[str, Any]:
    result = asyncio.run(_with_store(scan))
    value = _unwrap(result, operation)
    if value is None:
        return _failure(operation, result)

    summary = scan_result_summary(value)
    logger.info(f"{operation} completed", extra=summary)
    return summary

# ======================== SCAN TASKS ========================

@shared_task(bind=True, base=ScanTask, name='lawwatch.tasks.scan_tasks.run_full_scan_task')
def run_full_scan_task(self) -> Dict[str, Any]:
    """Scheduled daily full scan."""
    return _run_scan(
        'Full scan',
        lambda store: build_scan_orchestrator(store).perform_full_scan()
    )


@shared_task(bind=True, base=ScanTask, name='lawwatch.tasks.scan_tasks.run_incremental_scan_task')
def run_incremental_scan_task(self) -> Dict[str, Any]:
    return _run_scan(
        'Incremental scan',
        lambda store: build_scan_orchestrator(store).perform_incremental_scan()
    )


@shared_task(bind=True, base=ScanTask, name='lawwatch.tasks.scan_tasks.run_category_scan_task')
def run_category_scan_task(self, categories: Optional[List[str]] = None) -> Dict[str, Any]:
    return _run_scan(
        'Category scan',
        lambda store: build_scan_orchestrator(store).perform_category_scan(categories or [])
    )


@shared_task(bind=True, base=ScanTask, name='lawwatch.tasks.scan_tasks.check_registry_task')
def check_registry_task(self) -> Dict[str, Any]:
    """Registry checksum check; reports whether a significant diff was recorded."""
    result = asyncio.run(_with_store(lambda store: build_registry_monitor(store).check_for_updates()))
    if isinstance(result, Err):
        _unwrap(result, 'Registry check')
        return _failure('Registry check', result)

    diff: Optional[RegistryDiff] = result.value
    if diff is None:
        return {'status': 'SUCCESS', 'changed': False}

    return {
        'status': 'SUCCESS',
        'changed': True,
        'current_snapshot_id': diff.current_snapshot_id,
        'total_new': diff.summary.total_new,
        'total_modified': diff.summary.total_modified,
        'total_removed': diff.summary.total_removed,
    }
