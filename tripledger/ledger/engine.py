"""
Ledger Engine

Pure computation: (participant metadata, transactions) -> balances,
pairwise debt matrix and diagnostics. No I/O, no hidden state; the same
input always produces the same output.

Algorithm:
1. Participants come from the metadata, or when there is none, from
   the distinct payers seen in the transactions (group "Individual").
2. For each transaction:
   - unknown payer: excluded entirely
   - equal split: amount / N is added to every participant's share,
     payer included, and to matrix[payer][c] for every c != payer
   - individual split: the full amount goes to the beneficiary's share
     and to matrix[payer][beneficiary] unless the beneficiary is the
     payer. An unknown beneficiary, or the ALL sentinel, excludes the
     transaction entirely.
3. net = paid - share, labelled Get/Pay outside a +/- threshold
   (default 1) and Settled inside it.

Excluding a transaction entirely (paid side included) keeps the sum of
nets at zero for any input. Every exclusion is reported as a
LedgerDiagnostic.
"""

import math
from collections.abc import Sequence
from typing import Optional

from tripledger.models.ledger import (
    ALL_PARTICIPANTS,
    DEFAULT_GROUP,
    Balance,
    DebtMatrix,
    EqualSplit,
    LedgerDiagnostic,
    LedgerResult,
    Participant,
    SettlementAction,
    Transaction,
)


SETTLE_THRESHOLD = 1.0

# Tolerance used when checking that nets sum to zero
CONSERVATION_TOLERANCE = 1e-6


def round_half_up(value: float) -> int:
    """Round to the nearest whole display unit, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def classify(
    net: float,
    threshold: float = SETTLE_THRESHOLD,
) -> SettlementAction:
    if net > threshold:
        return SettlementAction.GET
    if net < -threshold:
        return SettlementAction.PAY
    return SettlementAction.SETTLED


def action_label(
    net: float,
    threshold: float = SETTLE_THRESHOLD,
    currency: str = "",
) -> str:
    """
    Human-readable settlement label.

    >>> action_label(200.4)
    'Get 200'
    >>> action_label(-99.5, currency="₹")
    'Pay ₹100'
    >>> action_label(0.7)
    'Settled'
    """
    action = classify(net, threshold)
    if action == SettlementAction.GET:
        return f"Get {currency}{round_half_up(net)}"
    if action == SettlementAction.PAY:
        return f"Pay {currency}{round_half_up(abs(net))}"
    return "Settled"


def resolve_participants(
    metadata: Sequence[Participant],
    transactions: Sequence[Transaction],
) -> list[Participant]:
    """
    The participant set, in order.

    Metadata wins when present. Otherwise every distinct non-blank payer
    becomes a participant in the group "Individual", in order of first
    appearance. Duplicate names keep their first occurrence.
    """
    resolved: list[Participant] = []
    seen: set[str] = set()

    if metadata:
        for participant in metadata:
            if participant.name not in seen:
                seen.add(participant.name)
                resolved.append(participant)
        return resolved

    for txn in transactions:
        if txn.payer and txn.payer not in seen:
            seen.add(txn.payer)
            resolved.append(Participant(name=txn.payer, group=DEFAULT_GROUP))
    return resolved


def compute(
    participants: Sequence[Participant],
    transactions: Sequence[Transaction],
    threshold: float = SETTLE_THRESHOLD,
    currency: str = "",
) -> LedgerResult:
    """
    Compute balances, the pairwise debt matrix and diagnostics.

    Args:
        participants: Participant metadata (may be empty)
        transactions: All recorded transactions, in any order
        threshold: Dead-zone for the Settled label
        currency: Prefix for amounts in the Get/Pay labels

    Returns:
        LedgerResult with balances in participant order and a full grid
    """
    people = resolve_participants(participants, transactions)
    if not people:
        return LedgerResult()

    names = [p.name for p in people]
    known = set(names)
    count = len(names)

    paid = {name: 0.0 for name in names}
    share = {name: 0.0 for name in names}
    grid = {payer: {consumer: 0.0 for consumer in names} for payer in names}
    diagnostics: list[LedgerDiagnostic] = []

    for index, txn in enumerate(transactions):
        amount = float(txn.amount)
        payer = txn.payer

        if payer not in known:
            diagnostics.append(LedgerDiagnostic(
                transaction_index=index,
                field="payer",
                value=payer,
                message="Unknown payer; transaction excluded",
            ))
            continue

        if isinstance(txn.split, EqualSplit):
            portion = amount / count
            paid[payer] += amount
            for consumer in names:
                share[consumer] += portion
                if consumer != payer:
                    grid[payer][consumer] += portion
            continue

        consumer = txn.split.beneficiary
        # Earlier versions credited paid before this check. Nets only sum to
        # zero when the whole transaction is dropped, so paid is not credited.
        if consumer == ALL_PARTICIPANTS or consumer not in known:
            diagnostics.append(LedgerDiagnostic(
                transaction_index=index,
                field="beneficiary",
                value=consumer,
                message="Unresolved beneficiary; transaction excluded",
            ))
            continue

        paid[payer] += amount
        share[consumer] += amount
        if consumer != payer:
            grid[payer][consumer] += amount

    balances = []
    for person in people:
        net = paid[person.name] - share[person.name]
        balances.append(Balance(
            name=person.name,
            group=person.group,
            total_paid=paid[person.name],
            share_of_expenses=share[person.name],
            net=net,
            action=classify(net, threshold),
            action_label=action_label(net, threshold, currency),
        ))

    return LedgerResult(
        participants=people,
        balances=balances,
        matrix=DebtMatrix(participants=names, grid=grid),
        diagnostics=diagnostics,
    )


def is_conserved(
    result: LedgerResult,
    tolerance: Optional[float] = None,
) -> bool:
    """True when the nets sum to zero within tolerance."""
    limit = CONSERVATION_TOLERANCE if tolerance is None else tolerance
    return abs(result.total_net) <= limit
