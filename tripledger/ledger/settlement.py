"""
Settlement Views

Read-only projections of a LedgerResult that presentation layers ask
for: per-group totals (families settling as one unit) and one person's
position against everyone else.
"""

from collections.abc import Sequence

from pydantic import BaseModel, Field

from tripledger.ledger.engine import SETTLE_THRESHOLD, action_label, classify
from tripledger.models.ledger import Balance, DebtMatrix, SettlementAction


class GroupBalance(BaseModel):
    """Combined net of every member of a group."""

    group: str
    net: float
    members: list[str] = Field(default_factory=list)
    action: SettlementAction
    action_label: str


class PairwisePosition(BaseModel):
    """Where one person stands against one counterparty."""

    counterparty: str
    paid_for_them: float = Field(..., description="What I put toward their share")
    paid_for_me: float = Field(..., description="What they put toward my share")
    net: float = Field(..., description="Positive: they owe me")
    action: SettlementAction
    action_label: str


def group_balances(
    balances: Sequence[Balance],
    threshold: float = SETTLE_THRESHOLD,
    currency: str = "",
) -> list[GroupBalance]:
    """Sum balances per group, groups in order of first appearance."""
    totals: dict[str, float] = {}
    members: dict[str, list[str]] = {}

    for balance in balances:
        if balance.group not in totals:
            totals[balance.group] = 0.0
            members[balance.group] = []
        totals[balance.group] += balance.net
        members[balance.group].append(balance.name)

    return [
        GroupBalance(
            group=group,
            net=net,
            members=members[group],
            action=classify(net, threshold),
            action_label=action_label(net, threshold, currency),
        )
        for group, net in totals.items()
    ]


def outstanding_balances(
    balances: Sequence[Balance],
    threshold: float = SETTLE_THRESHOLD,
) -> list[Balance]:
    """Balances that still need settling."""
    return [b for b in balances if abs(b.net) >= threshold]


def pairwise_positions(
    matrix: DebtMatrix,
    name: str,
    threshold: float = SETTLE_THRESHOLD,
    currency: str = "",
    include_settled: bool = False,
) -> list[PairwisePosition]:
    """
    One person's net against every other participant.

    net = matrix[name][other] - matrix[other][name]. Pairs inside the
    settle threshold are left out unless include_settled is set.
    """
    if name not in matrix.participants:
        return []

    positions = []
    for other in matrix.participants:
        if other == name:
            continue
        paid_for_them = matrix.get(name, other)
        paid_for_me = matrix.get(other, name)
        net = paid_for_them - paid_for_me
        if abs(net) <= threshold and not include_settled:
            continue
        positions.append(PairwisePosition(
            counterparty=other,
            paid_for_them=paid_for_them,
            paid_for_me=paid_for_me,
            net=net,
            action=classify(net, threshold),
            action_label=action_label(net, threshold, currency),
        ))
    return positions
