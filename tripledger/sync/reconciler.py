"""
Reconciliation Controller

Pulls the remote snapshot and merges it with local state.

Policy:
1. The remote snapshot replaces itinerary, budget, checklist,
   transactions and participants wholesale.
2. Commands still waiting in the mutation queue are re-applied on top
   of the fetched snapshot, in queue order, so unsent local changes are
   not lost until the queue drains.
3. Balances are always recomputed locally from the merged transaction
   list; anything precomputed by the remote is ignored.

A refresh requested while a drain is in flight is deferred, because
the command being sent at that moment may or may not already be part
of the remote's answer. Entries removed from the queue while the fetch
itself is in flight are still replayed: they were sent after the fetch
was issued.
"""

from typing import Optional

from tripledger.audit import AuditLogger
from tripledger.ledger.mutations import CommandApplicationError, apply_command
from tripledger.ledger.queue import MutationQueue
from tripledger.ledger.store import LedgerStore
from tripledger.models.commands import QueuedMutation
from tripledger.models.snapshot import LedgerSnapshot
from tripledger.services.remote import RemoteAuthorityInterface, RemoteError
from tripledger.sync.coordinator import SyncCoordinator


class ReconciliationController:
    """Fetches, merges and commits remote snapshots."""

    def __init__(
        self,
        ledger: LedgerStore,
        queue: MutationQueue,
        remote: RemoteAuthorityInterface,
        coordinator: Optional[SyncCoordinator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._queue = queue
        self._remote = remote
        self._coordinator = coordinator
        self._audit_logger = audit_logger

    async def refresh(self) -> bool:
        """
        Fetch the remote snapshot and make it current.

        Returns:
            True if local state was replaced; False if the refresh was
            deferred or the remote was unavailable (local state kept)

        Raises:
            StorageError: The merged snapshot could not be persisted
        """
        if self._coordinator is not None and self._coordinator.is_draining:
            if self._audit_logger:
                self._audit_logger.log_snapshot_refresh_deferred(len(self._queue))
            return False

        pending_at_fetch = self._queue.entries

        try:
            remote_snapshot = await self._remote.fetch_snapshot()
        except RemoteError as e:
            if self._audit_logger:
                self._audit_logger.log_snapshot_fetch_failed(str(e))
            return False

        if self._audit_logger:
            self._audit_logger.log_snapshot_fetched(self._remote.last_skipped_rows)

        replay = self._entries_to_replay(pending_at_fetch)
        merged = self.merge(remote_snapshot, replay)
        self._ledger.commit(merged)

        if self._audit_logger:
            self._audit_logger.log_snapshot_applied(
                transactions=len(merged.transactions),
                replayed=len(replay),
            )
        return True

    def _entries_to_replay(
        self,
        pending_at_fetch: list[QueuedMutation],
    ) -> list[QueuedMutation]:
        """Entries pending when the fetch started plus any queued since."""
        entries = list(pending_at_fetch)
        seen = {entry.entry_id for entry in entries}
        for entry in self._queue.entries:
            if entry.entry_id not in seen:
                entries.append(entry)
                seen.add(entry.entry_id)
        return entries

    def merge(
        self,
        remote_snapshot: LedgerSnapshot,
        pending: Optional[list[QueuedMutation]] = None,
    ) -> LedgerSnapshot:
        """
        Re-apply pending commands on top of a remote snapshot.

        Commands that no longer fit (e.g. an itinerary index the remote
        itinerary doesn't have) stay queued for the remote but are
        skipped locally.
        """
        entries = self._queue.entries if pending is None else pending
        merged = remote_snapshot
        for entry in entries:
            try:
                merged = apply_command(merged, entry.command)
            except CommandApplicationError as e:
                if self._audit_logger:
                    self._audit_logger.log_replay_skipped(entry.entry_id, entry.action, str(e))
        return merged
