"""
Main Orchestrator for Trip Ledger

This module ties the components together and defines the end-to-end
flows:
1. Submit (intent -> validate -> queue -> apply locally -> drain)
2. Connectivity (edge from the host -> drain)
3. Refresh (fetch -> merge with pending -> commit -> recompute)

DESIGN DECISION: Every local change is durable before it is visible.
A command is queued (persisted) first, then the updated snapshot is
committed (persisted). If the snapshot write fails the queue entry is
rolled back, so a command is never sent to the remote without having
taken effect locally.

Presentation layers read state through the properties here and
subscribe to two streams:
- on_change: new snapshot and balances after every commit
- notifications: audit events (warnings are the toasts)
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Optional

import structlog
from pydantic import ValidationError

from tripledger.audit import AuditListener, AuditLogger
from tripledger.config import Settings, get_settings
from tripledger.ledger import (
    CommandApplicationError,
    GroupBalance,
    LedgerListener,
    LedgerStore,
    MutationQueue,
    PairwisePosition,
    TripSummary,
    apply_command,
    group_balances,
    pairwise_positions,
    trip_summary,
)
from tripledger.models.commands import (
    AddTransactionCommand,
    Command,
    CommandRejectedError,
    QueuedMutation,
    TogglePackCommand,
    ToggleVisitCommand,
    TransactionInput,
    ValidationIssue,
    ValidationResult,
)
from tripledger.models.ledger import Balance, DebtMatrix, LedgerDiagnostic
from tripledger.models.snapshot import LedgerSnapshot
from tripledger.queries import TransactionQuery, TransactionQueryResult, filter_transactions
from tripledger.services.remote import AppsScriptClient, RemoteAuthorityInterface
from tripledger.services.storage import JsonFileStore, KeyValueStoreInterface, StorageError
from tripledger.sync import ReconciliationController, SyncCoordinator, SyncState
from tripledger.validation import CommandValidator


logger = structlog.get_logger(__name__)


class TripLedger:
    """
    The running application core.

    Owns the ledger store, the mutation queue and, when a remote is
    configured, the sync coordinator and reconciliation controller.
    Without a remote everything works locally and changes stay queued.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        queue: MutationQueue,
        remote: Optional[RemoteAuthorityInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[CommandValidator] = None,
        refresh_interval_seconds: float = 300.0,
    ):
        self._ledger = ledger
        self._queue = queue
        self._remote = remote
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or CommandValidator()
        self._refresh_interval = refresh_interval_seconds

        self._coordinator: Optional[SyncCoordinator] = None
        self._reconciler: Optional[ReconciliationController] = None
        if remote is not None:
            self._coordinator = SyncCoordinator(
                queue=queue,
                remote=remote,
                audit_logger=self._audit_logger,
            )
            self._reconciler = ReconciliationController(
                ledger=ledger,
                queue=queue,
                remote=remote,
                coordinator=self._coordinator,
                audit_logger=self._audit_logger,
            )

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._ledger.snapshot

    @property
    def balances(self) -> list[Balance]:
        return self._ledger.balances

    @property
    def matrix(self) -> DebtMatrix:
        return self._ledger.matrix

    @property
    def diagnostics(self) -> list[LedgerDiagnostic]:
        return self._ledger.diagnostics

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> list[QueuedMutation]:
        return self._queue.entries

    @property
    def sync_state(self) -> SyncState:
        if self._coordinator is None:
            return SyncState.IDLE
        return self._coordinator.state

    @property
    def is_online(self) -> bool:
        return self._coordinator is not None and self._coordinator.is_online

    def sync_status_text(self) -> str:
        if self._coordinator is None:
            pending = len(self._queue)
            return f"{pending} changes pending" if pending else "Ready"
        return self._coordinator.status_text()

    def summary(self) -> TripSummary:
        return trip_summary(self._ledger.snapshot, len(self._ledger.result.participants))

    def group_balances(self) -> list[GroupBalance]:
        return group_balances(
            self._ledger.balances,
            threshold=self._ledger.settle_threshold,
            currency=self._ledger.currency,
        )

    def pairwise(self, name: str, include_settled: bool = False) -> list[PairwisePosition]:
        return pairwise_positions(
            self._ledger.matrix,
            name,
            threshold=self._ledger.settle_threshold,
            currency=self._ledger.currency,
            include_settled=include_settled,
        )

    def find_transactions(
        self,
        query: Optional[TransactionQuery] = None,
    ) -> TransactionQueryResult:
        return filter_transactions(self._ledger.snapshot.transactions, query)

    def on_change(self, listener: LedgerListener) -> Callable[[], None]:
        """Subscribe to snapshot/balance changes. Returns an unsubscribe callable."""
        return self._ledger.subscribe(listener)

    def notifications(self, listener: AuditListener) -> Callable[[], None]:
        """Subscribe to audit events. Returns an unsubscribe callable."""
        return self._audit_logger.subscribe(listener)

    # -------------------------------------------------------------------------
    # Write side
    # -------------------------------------------------------------------------

    def _reject(self, result: ValidationResult) -> CommandRejectedError:
        self._audit_logger.log_command_rejected(
            result.action,
            [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
                if i.severity == "error"
            ],
        )
        return CommandRejectedError(result)

    def apply_locally(self, command: Command) -> tuple[QueuedMutation, ValidationResult]:
        """
        Validate, queue and apply a command without waiting for a drain.

        Raises:
            CommandRejectedError: Validation failed; nothing changed
            StorageError: The queue or snapshot could not be persisted;
                nothing changed
        """
        result = self._validator.validate(command, self._ledger.snapshot)
        if result.has_errors:
            raise self._reject(result)

        try:
            updated = apply_command(self._ledger.snapshot, command)
        except CommandApplicationError as e:
            result.issues.append(ValidationIssue(
                field="action",
                issue_type="not_applicable",
                message=str(e),
                severity="error",
            ))
            raise self._reject(result)

        try:
            entry = self._queue.enqueue(command)
        except StorageError as e:
            self._audit_logger.log_persistence_failed(self._queue.key, "enqueue", str(e))
            raise

        try:
            self._ledger.commit(updated)
        except StorageError:
            try:
                self._queue.discard_tail(entry.entry_id)
            except StorageError as rollback_error:
                # The command stays queued and is re-applied on the next refresh
                self._audit_logger.log_persistence_failed(
                    self._queue.key, "rollback", str(rollback_error)
                )
            raise

        self._audit_logger.log_command_accepted(entry.entry_id, command.action, result.warnings)
        return entry, result

    async def submit(self, command: Command) -> QueuedMutation:
        """
        Accept a user command.

        The command takes effect locally before this coroutine first
        suspends; the drain that follows (when online) is awaited.

        Raises:
            CommandRejectedError: Validation failed; nothing changed
            StorageError: Local persistence failed; nothing changed
        """
        entry, _ = self.apply_locally(command)
        if self._coordinator is not None:
            await self._coordinator.notify_enqueued()
        return entry

    async def toggle_visit(self, index: int, status: bool) -> QueuedMutation:
        return await self.submit(ToggleVisitCommand(index=index, status=status))

    async def toggle_pack(self, item: str, status: bool) -> QueuedMutation:
        return await self.submit(TogglePackCommand(item=item, status=status))

    async def add_transaction(self, data: TransactionInput) -> QueuedMutation:
        return await self.submit(AddTransactionCommand(data=data))

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------

    async def set_online(self, online: bool) -> int:
        """
        Forward a connectivity edge from the host.

        Returns:
            Number of queued commands sent as a result
        """
        if self._coordinator is None:
            return 0
        return await self._coordinator.connectivity_changed(online)

    async def sync(self) -> int:
        """Drain the queue now (e.g. a manual retry after a pause)."""
        if self._coordinator is None:
            return 0
        return await self._coordinator.drain()

    async def refresh(self) -> bool:
        """
        Pull the remote snapshot and merge it with pending local changes.

        Returns:
            True if the local state was replaced

        Raises:
            StorageError: The merged snapshot could not be persisted
        """
        if self._reconciler is None or not self.is_online:
            return False
        return await self._reconciler.refresh()

    async def refresh_periodically(self, interval_seconds: Optional[float] = None) -> None:
        """
        Refresh on a fixed interval until the task is cancelled.

        A refresh whose commit fails is already audited; the loop keeps
        going so the next tick can try again.
        """
        interval = interval_seconds or self._refresh_interval
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except StorageError as e:
                logger.warning("periodic_refresh_failed", error=str(e))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, online: bool = True) -> None:
        """
        Bring the core up after construction.

        Persisted state is already restored at this point. When online,
        pending commands are sent first and the remote snapshot is pulled
        afterwards.
        """
        logger.info(
            "trip_ledger_starting",
            online=online,
            pending=len(self._queue),
            transactions=len(self._ledger.snapshot.transactions),
        )
        if self._coordinator is None:
            return
        await self._coordinator.connectivity_changed(online)
        if online:
            await self.refresh()

    async def shutdown(self) -> None:
        """Persist the snapshot one last time and release the remote client."""
        try:
            self._ledger.persist()
        except StorageError as e:
            self._audit_logger.log_persistence_failed(self._ledger.key, "shutdown", str(e))
            raise
        finally:
            if self._remote is not None:
                await self._remote.aclose()
        logger.info("trip_ledger_stopped", pending=len(self._queue))


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStoreInterface] = None,
    remote: Optional[RemoteAuthorityInterface] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> TripLedger:
    """
    Factory function to create the application core.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Local store (defaults to a JsonFileStore in the data dir)
        remote: Remote authority (defaults to the configured Apps Script
            web app; if that isn't configured the core runs local-only)
        audit_logger: Audit logger (a fresh one by default)

    Returns:
        A TripLedger with persisted state restored; call start() next
    """
    settings = settings or get_settings()
    store_settings = settings.store
    app_settings = settings.app
    audit_logger = audit_logger or AuditLogger()
    logging.getLogger("tripledger").setLevel(
        logging.DEBUG if app_settings.debug_mode else logging.INFO
    )

    store = store or JsonFileStore(store_settings.data_dir)

    if remote is None:
        try:
            remote = AppsScriptClient(settings.remote)
        except ValidationError as e:
            logger.warning("remote_not_configured", error=str(e))
            remote = None

    ledger = LedgerStore(
        store,
        key=store_settings.snapshot_key,
        audit_logger=audit_logger,
        settle_threshold=app_settings.settle_threshold,
        currency=app_settings.currency_symbol,
    )
    queue = MutationQueue(store, key=store_settings.queue_key)

    return TripLedger(
        ledger=ledger,
        queue=queue,
        remote=remote,
        audit_logger=audit_logger,
        refresh_interval_seconds=app_settings.refresh_interval_seconds,
    )
