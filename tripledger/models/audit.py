"""
Audit Models for Trip Ledger

Every significant action in the core is recorded as an AuditEvent:
commands accepted or rejected, mutations sent, sync pauses, snapshot
refreshes, unresolved references and persistence failures.

Audit events double as the notification stream that presentation
layers subscribe to (see AuditLogger.subscribe).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Commands
    COMMAND_ACCEPTED = "command_accepted"
    COMMAND_REJECTED = "command_rejected"

    # Sync
    SYNC_STARTED = "sync_started"
    MUTATION_SENT = "mutation_sent"
    SYNC_COMPLETED = "sync_completed"
    SYNC_PAUSED = "sync_paused"
    CONNECTIVITY_LOST = "connectivity_lost"
    CONNECTIVITY_REGAINED = "connectivity_regained"

    # Reconciliation
    SNAPSHOT_FETCHED = "snapshot_fetched"
    SNAPSHOT_FETCH_FAILED = "snapshot_fetch_failed"
    SNAPSHOT_APPLIED = "snapshot_applied"
    SNAPSHOT_REFRESH_DEFERRED = "snapshot_refresh_deferred"
    REPLAY_SKIPPED = "replay_skipped"

    # Ledger
    LEDGER_RECOMPUTED = "ledger_recomputed"
    REFERENCE_UNRESOLVED = "reference_unresolved"

    # Persistence
    STATE_RESTORED = "state_restored"
    PERSISTENCE_FAILED = "persistence_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    WARNING and ERROR events are the recoverable notifications surfaced
    to consumers; nothing in the core treats them as fatal.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'mutation', 'snapshot', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    @property
    def is_notification(self) -> bool:
        """Should consumers show this to the user?"""
        return self.severity in (
            AuditSeverity.WARNING,
            AuditSeverity.ERROR,
            AuditSeverity.CRITICAL,
        )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.command_accepted(entry_id, "togglePack")
        event = AuditEventBuilder.sync_paused(entry_id, "timeout", remaining=3)
    """

    @staticmethod
    def command_accepted(
        entry_id: UUID,
        action: str,
        warnings: Optional[list[str]] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_ACCEPTED,
            entity_type="mutation",
            entity_id=str(entry_id),
            description=f"Command accepted: {action}",
            details={
                "action": action,
                "warnings": warnings or [],
            },
            is_user_action=True,
        )

    @staticmethod
    def command_rejected(
        action: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="command",
            description=f"Command rejected: {action} ({len(issues)} issues)",
            details={
                "action": action,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def sync_started(pending: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_STARTED,
            entity_type="queue",
            description=f"Syncing {pending} pending changes",
            details={"pending": pending},
        )

    @staticmethod
    def mutation_sent(entry_id: UUID, action: str, remaining: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_SENT,
            entity_type="mutation",
            entity_id=str(entry_id),
            description=f"Sent {action}, {remaining} remaining",
            details={
                "action": action,
                "remaining": remaining,
            },
        )

    @staticmethod
    def sync_completed(sent: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_COMPLETED,
            entity_type="queue",
            description=f"Synced {sent} updates to the remote",
            details={"sent": sent},
        )

    @staticmethod
    def sync_paused(
        entry_id: Optional[UUID],
        reason: str,
        remaining: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_PAUSED,
            severity=AuditSeverity.WARNING,
            entity_type="mutation",
            entity_id=str(entry_id) if entry_id else None,
            description="Sync paused",
            error_message=reason,
            details={"remaining": remaining},
        )

    @staticmethod
    def connectivity_changed(online: bool, pending: int) -> AuditEvent:
        if online:
            return AuditEvent(
                event_type=AuditEventType.CONNECTIVITY_REGAINED,
                description="Back online",
                details={"pending": pending},
            )
        return AuditEvent(
            event_type=AuditEventType.CONNECTIVITY_LOST,
            severity=AuditSeverity.WARNING,
            description="Offline mode",
            details={"pending": pending},
        )

    @staticmethod
    def snapshot_fetch_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_FETCH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            description="Snapshot fetch failed, using local data",
            error_message=error_message,
        )

    @staticmethod
    def snapshot_fetched(skipped_rows: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_FETCHED,
            severity=AuditSeverity.WARNING if skipped_rows else AuditSeverity.INFO,
            entity_type="snapshot",
            description=(
                f"Snapshot fetched, {len(skipped_rows)} malformed rows skipped"
                if skipped_rows
                else "Snapshot fetched"
            ),
            details={"skipped_rows": skipped_rows},
        )

    @staticmethod
    def snapshot_applied(
        transactions: int,
        replayed: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_APPLIED,
            entity_type="snapshot",
            description="Data refreshed from the remote",
            details={
                "transactions": transactions,
                "replayed_commands": replayed,
            },
        )

    @staticmethod
    def snapshot_refresh_deferred(pending: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REFRESH_DEFERRED,
            entity_type="snapshot",
            description="Refresh deferred while a sync is in flight",
            details={"pending": pending},
        )

    @staticmethod
    def replay_skipped(entry_id: UUID, action: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPLAY_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="mutation",
            entity_id=str(entry_id),
            description=f"Queued {action} could not be re-applied locally",
            error_message=reason,
        )

    @staticmethod
    def ledger_recomputed(participants: int, transactions: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RECOMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="ledger",
            description="Balances recomputed",
            details={
                "participants": participants,
                "transactions": transactions,
            },
        )

    @staticmethod
    def reference_unresolved(
        transaction_index: int,
        field: str,
        value: str,
        message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFERENCE_UNRESOLVED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=str(transaction_index),
            description=f"Transaction excluded: unresolved {field}",
            details={
                "field": field,
                "value": value,
                "message": message,
            },
        )

    @staticmethod
    def state_restored(document: str, entries: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_RESTORED,
            entity_type="store",
            entity_id=document,
            description=f"Restored {document} ({entries} entries)",
            details={"entries": entries},
        )

    @staticmethod
    def persistence_failed(
        document: str,
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="store",
            entity_id=document,
            description=f"Could not persist {document} during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
