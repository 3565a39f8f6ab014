"""Sync package: queue draining and snapshot reconciliation."""

from tripledger.sync.coordinator import SyncCoordinator, SyncState
from tripledger.sync.reconciler import ReconciliationController

__all__ = [
    "ReconciliationController",
    "SyncCoordinator",
    "SyncState",
]
