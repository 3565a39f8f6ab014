"""Ledger package: settlement engine, mutation queue and owned ledger state."""

from tripledger.ledger.engine import (
    SETTLE_THRESHOLD,
    action_label,
    classify,
    compute,
    is_conserved,
    resolve_participants,
    round_half_up,
)
from tripledger.ledger.mutations import CommandApplicationError, apply_command
from tripledger.ledger.queue import MutationQueue, QueueOrderError
from tripledger.ledger.settlement import (
    GroupBalance,
    PairwisePosition,
    group_balances,
    outstanding_balances,
    pairwise_positions,
)
from tripledger.ledger.store import LedgerListener, LedgerStore
from tripledger.ledger.summary import TripSummary, trip_summary

__all__ = [
    "SETTLE_THRESHOLD",
    "CommandApplicationError",
    "GroupBalance",
    "LedgerListener",
    "LedgerStore",
    "MutationQueue",
    "PairwisePosition",
    "QueueOrderError",
    "TripSummary",
    "action_label",
    "apply_command",
    "classify",
    "compute",
    "group_balances",
    "is_conserved",
    "outstanding_balances",
    "pairwise_positions",
    "resolve_participants",
    "round_half_up",
    "trip_summary",
]
