"""
Dependency Injection - Async Only
"""
from fastapi import Depends

from lawwatch.bootstrap import (
    build_monitoring_service, build_registry_monitor, build_scan_orchestrator, build_store,
    get_registry_client
)
from lawwatch.core.domain.repositories import LawWatchStore, UpstreamRegistryClient
from lawwatch.services.monitoring_service import MonitoringService
from lawwatch.services.registry_monitor import RegistryMonitor
from lawwatch.services.scan_orchestrator import ScanOrchestrator


def get_store() -> LawWatchStore:
    """Repository bundle over the process-wide database manager."""
    return build_store()


def get_upstream_client() -> UpstreamRegistryClient:
    return get_registry_client()


def get_scan_orchestrator(
    store: LawWatchStore = Depends(get_store),
    client: UpstreamRegistryClient = Depends(get_upstream_client)
) -> ScanOrchestrator:
    return build_scan_orchestrator(store, client)


def get_registry_monitor(
    store: LawWatchStore = Depends(get_store),
    client: UpstreamRegistryClient = Depends(get_upstream_client)
) -> RegistryMonitor:
    return build_registry_monitor(store, client)


def get_monitoring_service(store: LawWatchStore = Depends(get_store)) -> MonitoringService:
    return build_monitoring_service(store)


__all__ = [
    'get_store',
    'get_upstream_client',
    'get_scan_orchestrator',
    'get_registry_monitor',
    'get_monitoring_service',
]
