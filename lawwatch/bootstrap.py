"""
Service wiring shared by the API and the Celery workers.
"""

from functools import lru_cache
from typing import Optional

from lawwatch.core.domain.repositories import LawWatchStore, UpstreamRegistryClient
from lawwatch.infrastructure.database.connection import DatabaseManager
from lawwatch.infrastructure.database.store import SQLAlchemyLawWatchStore
from lawwatch.infrastructure.egov.client import EGovClient
from lawwatch.services.monitoring_service import MonitoringService
from lawwatch.services.notification.policy import NotificationPolicyEvaluator
from lawwatch.services.notification.service import NotificationDispatcher
from lawwatch.services.registry_monitor import RegistryMonitor
from lawwatch.services.scan_orchestrator import ScanOrchestrator


@lru_cache(maxsize=1)
def get_db_manager() -> DatabaseManager:
    """Process-wide database manager for the API event loop."""
    return DatabaseManager()


@lru_cache(maxsize=1)
def get_registry_client() -> EGovClient:
    """One client per process so every caller shares the same rate limit window."""
    return EGovClient()


def build_store(db: Optional[DatabaseManager] = None) -> SQLAlchemyLawWatchStore:
    return SQLAlchemyLawWatchStore(db or get_db_manager())


def build_scan_orchestrator(
    store: LawWatchStore,
    client: Optional[UpstreamRegistryClient] = None
) -> ScanOrchestrator:
    return ScanOrchestrator(
        client=client or get_registry_client(),
        store=store,
        evaluator=NotificationPolicyEvaluator(store, NotificationDispatcher()),
    )


def build_registry_monitor(
    store: LawWatchStore,
    client: Optional[UpstreamRegistryClient] = None
) -> RegistryMonitor:
    return RegistryMonitor(
        client=client or get_registry_client(),
        store=store,
        evaluator=NotificationPolicyEvaluator(store, NotificationDispatcher()),
    )


def build_monitoring_service(store: LawWatchStore) -> MonitoringService:
    return MonitoringService(store)
