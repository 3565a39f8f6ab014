"""
Data Models Package

This package contains all Pydantic models used in Trip Ledger.
All data flowing through the core must conform to these schemas.
"""

from tripledger.models.ledger import (
    ALL_PARTICIPANTS,
    DEFAULT_GROUP,
    Balance,
    BudgetItem,
    ChecklistItem,
    DebtMatrix,
    EqualSplit,
    IndividualSplit,
    ItineraryEntry,
    LedgerDiagnostic,
    LedgerResult,
    PairwiseDebt,
    Participant,
    SettlementAction,
    Split,
    SplitKind,
    Transaction,
)
from tripledger.models.snapshot import LedgerSnapshot
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
    command_adapter,
    command_to_payload,
)
from tripledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ALL_PARTICIPANTS",
    "DEFAULT_GROUP",
    "Balance",
    "BudgetItem",
    "ChecklistItem",
    "DebtMatrix",
    "EqualSplit",
    "IndividualSplit",
    "ItineraryEntry",
    "LedgerDiagnostic",
    "LedgerResult",
    "PairwiseDebt",
    "Participant",
    "SettlementAction",
    "Split",
    "SplitKind",
    "Transaction",
    "LedgerSnapshot",
    # Commands
    "AddTransactionCommand",
    "Command",
    "CommandRejectedError",
    "QueuedMutation",
    "TogglePackCommand",
    "ToggleVisitCommand",
    "TransactionInput",
    "ValidationIssue",
    "ValidationResult",
    "command_adapter",
    "command_to_payload",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
