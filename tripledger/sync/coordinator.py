"""
Sync Coordinator

Drains the mutation queue against the remote authority.

States:
    IDLE      nothing in flight
    DRAINING  a drain pass is running (only one at a time)
    PAUSED    the last send failed; last_error says why

Transitions:
    IDLE/PAUSED -> DRAINING  connectivity regained with a non-empty queue,
                             or a command was enqueued while online
    DRAINING -> IDLE         queue empty, or connectivity lost between sends
    DRAINING -> PAUSED       a send failed (the command stays at the head),
                             or a removal could not be persisted

Connectivity changes are edge-triggered signals from the host. There is
no cancellation of an in-flight send: going offline stops the loop
after the current attempt.
"""

from enum import Enum
from typing import Optional
from uuid import UUID

from tripledger.audit import AuditLogger
from tripledger.ledger.queue import MutationQueue
from tripledger.services.remote import RemoteAuthorityInterface, RemoteError
from tripledger.services.storage import StorageError


class SyncState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"
    PAUSED = "paused"


class SyncCoordinator:
    """Single-flight drain loop over the mutation queue."""

    def __init__(
        self,
        queue: MutationQueue,
        remote: RemoteAuthorityInterface,
        audit_logger: Optional[AuditLogger] = None,
        online: bool = False,
    ):
        self._queue = queue
        self._remote = remote
        self._audit_logger = audit_logger
        self._online = online
        self._state = SyncState.IDLE
        self._last_error: Optional[str] = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def is_draining(self) -> bool:
        return self._state == SyncState.DRAINING

    @property
    def pending(self) -> int:
        return len(self._queue)

    def status_text(self) -> str:
        """Short status line for a sync badge."""
        pending = len(self._queue)
        if self._state == SyncState.DRAINING:
            return f"Syncing {pending}..."
        if not self._online:
            return f"{pending} changes pending" if pending else "Ready"
        if self._state == SyncState.PAUSED:
            return f"Sync paused ({pending} pending)"
        return f"{pending} changes pending" if pending else "All synced"

    async def connectivity_changed(self, online: bool) -> int:
        """
        Handle a connectivity edge from the host.

        Regaining connectivity always re-attempts a drain.

        Returns:
            Number of commands sent by the triggered drain
        """
        was_online = self._online
        self._online = online

        if online:
            if not was_online and self._audit_logger:
                self._audit_logger.log_connectivity_changed(True, len(self._queue))
            return await self.drain()

        if was_online and self._audit_logger:
            self._audit_logger.log_connectivity_changed(False, len(self._queue))
        return 0

    async def notify_enqueued(self) -> int:
        """Called after a command was queued; drains when online."""
        if not self._online:
            return 0
        return await self.drain()

    def _pause(self, entry_id: Optional[UUID], reason: str) -> None:
        self._state = SyncState.PAUSED
        self._last_error = reason
        if self._audit_logger:
            self._audit_logger.log_sync_paused(entry_id, reason, len(self._queue))

    async def drain(self) -> int:
        """
        Send queued commands, head first, until empty, offline or failing.

        A call while a drain is already running returns 0 immediately.

        Returns:
            Number of commands confirmed sent by this pass
        """
        if self._state == SyncState.DRAINING:
            return 0
        if not self._online or not self._queue:
            return 0

        self._state = SyncState.DRAINING
        self._last_error = None
        if self._audit_logger:
            self._audit_logger.log_sync_started(len(self._queue))

        try:
            sent = await self._drain_pass()
        finally:
            if self._state == SyncState.DRAINING:
                self._state = SyncState.IDLE

        if sent and not self._queue and self._audit_logger:
            self._audit_logger.log_sync_completed(sent)
        return sent

    async def _drain_pass(self) -> int:
        sent = 0
        while self._queue and self._online:
            entry = self._queue.peek_head()

            try:
                delivered = await self._remote.push_mutation(entry.command)
            except RemoteError as e:
                self._pause(entry.entry_id, str(e))
                return sent

            if not delivered:
                self._pause(entry.entry_id, f"Could not send {entry.action}")
                return sent

            try:
                self._queue.remove_head(entry.entry_id)
            except StorageError as e:
                # Sent but not durably removed: it will be sent again
                if self._audit_logger:
                    self._audit_logger.log_persistence_failed(
                        self._queue.key, "remove_head", str(e)
                    )
                self._pause(entry.entry_id, f"Could not persist queue: {e}")
                return sent

            sent += 1
            if self._audit_logger:
                self._audit_logger.log_mutation_sent(
                    entry.entry_id, entry.action, len(self._queue)
                )
        return sent
