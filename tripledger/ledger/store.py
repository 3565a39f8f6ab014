"""
Ledger Store

The single owner of the trip's in-memory state: the current snapshot
and the LedgerResult derived from it. Constructed at process start from
the persisted snapshot; torn down with a final persist().

Writers (the orchestrator and the reconciliation controller) hand it a
complete new snapshot through commit(). The snapshot is persisted
first; only when the write succeeds does the in-memory state change,
balances get recomputed and subscribers are notified. Readers can call
the properties at any time or subscribe to changes.
"""

from collections.abc import Callable
from typing import Optional

import structlog
from pydantic import ValidationError

from tripledger.audit import AuditLogger
from tripledger.ledger.engine import SETTLE_THRESHOLD, compute
from tripledger.models.ledger import Balance, DebtMatrix, LedgerDiagnostic, LedgerResult
from tripledger.models.snapshot import LedgerSnapshot
from tripledger.services.storage import (
    CorruptDocumentError,
    KeyValueStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

DEFAULT_SNAPSHOT_KEY = "tripData"

LedgerListener = Callable[[LedgerSnapshot, LedgerResult], None]


class LedgerStore:
    """Owned ledger state with persistence and change notification."""

    def __init__(
        self,
        store: KeyValueStoreInterface,
        key: str = DEFAULT_SNAPSHOT_KEY,
        audit_logger: Optional[AuditLogger] = None,
        settle_threshold: float = SETTLE_THRESHOLD,
        currency: str = "",
    ):
        self._store = store
        self._key = key
        self._audit_logger = audit_logger
        self._threshold = settle_threshold
        self._currency = currency
        self._listeners: list[LedgerListener] = []

        self._snapshot = self._restore()
        self._result = self._recompute(self._snapshot)
        self._report(self._snapshot, self._result)

    def _restore(self) -> LedgerSnapshot:
        """
        Load the persisted snapshot.

        A damaged snapshot is not fatal: the remote authority can supply
        a fresh one, so we start empty and report it.
        """
        try:
            document = self._store.load(self._key)
        except CorruptDocumentError as e:
            if self._audit_logger:
                self._audit_logger.log_persistence_failed(self._key, "restore", str(e))
            return LedgerSnapshot()

        snapshot = LedgerSnapshot.from_document(document)
        if self._audit_logger and document is not None:
            self._audit_logger.log_state_restored(self._key, len(snapshot.transactions))
        return snapshot

    def _recompute(self, snapshot: LedgerSnapshot) -> LedgerResult:
        return compute(
            snapshot.participants,
            snapshot.transactions,
            threshold=self._threshold,
            currency=self._currency,
        )

    def _report(self, snapshot: LedgerSnapshot, result: LedgerResult) -> None:
        """Audit the recompute and its diagnostics. Never fails the caller."""
        if not self._audit_logger:
            return
        try:
            self._audit_logger.log_ledger_recomputed(
                participants=len(result.participants),
                transactions=len(snapshot.transactions),
            )
            for diagnostic in result.diagnostics:
                self._audit_logger.log_reference_unresolved(
                    transaction_index=diagnostic.transaction_index,
                    field=diagnostic.field,
                    value=diagnostic.value,
                    message=diagnostic.message,
                )
        except ValidationError as e:
            logger.warning("ledger_diagnostics_not_audited", error=str(e))

    # -------------------------------------------------------------------------
    # Readers
    # -------------------------------------------------------------------------

    @property
    def key(self) -> str:
        return self._key

    @property
    def snapshot(self) -> LedgerSnapshot:
        """The current snapshot. Treat as read-only; use commit() to change it."""
        return self._snapshot

    @property
    def result(self) -> LedgerResult:
        return self._result

    @property
    def balances(self) -> list[Balance]:
        return self._result.balances

    @property
    def matrix(self) -> DebtMatrix:
        return self._result.matrix

    @property
    def diagnostics(self) -> list[LedgerDiagnostic]:
        return self._result.diagnostics

    @property
    def settle_threshold(self) -> float:
        return self._threshold

    @property
    def currency(self) -> str:
        return self._currency

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """
        Call listener(snapshot, result) after every commit.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Writers
    # -------------------------------------------------------------------------

    def commit(self, snapshot: LedgerSnapshot) -> LedgerResult:
        """
        Persist a new snapshot, then make it current and recompute.

        Raises:
            StorageError: The snapshot could not be persisted; the current
                state is unchanged
        """
        try:
            self._store.save(self._key, snapshot.to_document())
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_persistence_failed(self._key, "commit", str(e))
            raise

        self._snapshot = snapshot
        self._result = self._recompute(snapshot)
        self._report(snapshot, self._result)
        self._notify()
        return self._result

    def persist(self) -> None:
        """Write the current snapshot again (clean shutdown)."""
        self._store.save(self._key, self._snapshot.to_document())

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._snapshot, self._result)
            except Exception as e:
                if self._audit_logger:
                    self._audit_logger.log_error(
                        error_type="ledger_listener_failed",
                        error_message=str(e),
                    )
