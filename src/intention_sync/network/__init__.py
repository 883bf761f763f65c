"""Reachability monitoring and sync status."""

from .reachability import ReachabilityMonitor, tcp_probe
from .status import DEFAULT_SETTLE_SECONDS, Scheduler, SyncStatus, SyncStatusCoordinator

__all__ = [
    "DEFAULT_SETTLE_SECONDS",
    "ReachabilityMonitor",
    "Scheduler",
    "SyncStatus",
    "SyncStatusCoordinator",
    "tcp_probe",
]
