"""
Audit Logger

Every significant action in the core is logged. The audit logger:
- Writes a structured local log entry for each event
- Fans each event out to subscribed listeners (the notification
  channel presentation layers use for toasts and status badges)
- Never lets a failing listener break the calling flow
"""

from typing import Callable, Optional
from uuid import UUID

import structlog

from tripledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


AuditListener = Callable[[AuditEvent], None]


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Subscribed listeners (for user-visible notifications)
    """

    def __init__(self, listeners: Optional[list[AuditListener]] = None):
        self._listeners: list[AuditListener] = list(listeners or [])
        self._logger = structlog.get_logger("tripledger.audit")

    def subscribe(self, listener: AuditListener) -> Callable[[], None]:
        """
        Register a listener for every future event.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def log(self, event: AuditEvent) -> AuditEvent:
        """Log an audit event locally and notify listeners."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_listener_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )

        return event

    def log_command_accepted(
        self,
        entry_id: UUID,
        action: str,
        warnings: Optional[list[str]] = None,
    ) -> None:
        self.log(AuditEventBuilder.command_accepted(entry_id, action, warnings))

    def log_command_rejected(self, action: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.command_rejected(action, issues))

    def log_sync_started(self, pending: int) -> None:
        self.log(AuditEventBuilder.sync_started(pending))

    def log_mutation_sent(self, entry_id: UUID, action: str, remaining: int) -> None:
        self.log(AuditEventBuilder.mutation_sent(entry_id, action, remaining))

    def log_sync_completed(self, sent: int) -> None:
        self.log(AuditEventBuilder.sync_completed(sent))

    def log_sync_paused(
        self,
        entry_id: Optional[UUID],
        reason: str,
        remaining: int,
    ) -> None:
        self.log(AuditEventBuilder.sync_paused(entry_id, reason, remaining))

    def log_connectivity_changed(self, online: bool, pending: int) -> None:
        self.log(AuditEventBuilder.connectivity_changed(online, pending))

    def log_snapshot_fetch_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.snapshot_fetch_failed(error_message))

    def log_snapshot_fetched(self, skipped_rows: list[str]) -> None:
        self.log(AuditEventBuilder.snapshot_fetched(skipped_rows))

    def log_snapshot_applied(self, transactions: int, replayed: int) -> None:
        self.log(AuditEventBuilder.snapshot_applied(transactions, replayed))

    def log_snapshot_refresh_deferred(self, pending: int) -> None:
        self.log(AuditEventBuilder.snapshot_refresh_deferred(pending))

    def log_replay_skipped(self, entry_id: UUID, action: str, reason: str) -> None:
        self.log(AuditEventBuilder.replay_skipped(entry_id, action, reason))

    def log_ledger_recomputed(self, participants: int, transactions: int) -> None:
        self.log(AuditEventBuilder.ledger_recomputed(participants, transactions))

    def log_reference_unresolved(
        self,
        transaction_index: int,
        field: str,
        value: str,
        message: str,
    ) -> None:
        self.log(AuditEventBuilder.reference_unresolved(
            transaction_index=transaction_index,
            field=field,
            value=value,
            message=message,
        ))

    def log_state_restored(self, document: str, entries: int) -> None:
        self.log(AuditEventBuilder.state_restored(document, entries))

    def log_persistence_failed(
        self,
        document: str,
        operation: str,
        error_message: str,
    ) -> None:
        self.log(AuditEventBuilder.persistence_failed(document, operation, error_message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(error_type, error_message, details))
