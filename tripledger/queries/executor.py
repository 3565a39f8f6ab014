"""
Transaction Queries

Deterministic filtering over the recorded transactions, for the
transaction log and its filter bar. Every filter is optional and all
given filters must match:

- date_contains / description_contains / beneficiary_contains are
  case-insensitive substring matches
- min_amount keeps amounts at or above it
- payer and split_kind are exact matches

Equal splits have no named beneficiary; for matching they count as
"All".
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tripledger.models.ledger import IndividualSplit, SplitKind, Transaction


EQUAL_SPLIT_BENEFICIARY = "All"


class TransactionQuery(BaseModel):
    """Filters for the transaction log."""
    model_config = ConfigDict(str_strip_whitespace=True)

    date_contains: str = ""
    description_contains: str = ""
    min_amount: Decimal = Field(default=Decimal("0"), ge=0)
    payer: Optional[str] = None
    split_kind: Optional[SplitKind] = None
    beneficiary_contains: str = ""

    def describe(self) -> str:
        parts = []
        if self.date_contains:
            parts.append(f"date: {self.date_contains}")
        if self.description_contains:
            parts.append(f"description: {self.description_contains}")
        if self.min_amount:
            parts.append(f"amount >= {self.min_amount}")
        if self.payer:
            parts.append(f"payer: {self.payer}")
        if self.split_kind:
            parts.append(f"split: {self.split_kind.value}")
        if self.beneficiary_contains:
            parts.append(f"for: {self.beneficiary_contains}")
        return " | ".join(parts) if parts else "All transactions"


class TransactionQueryResult(BaseModel):
    """Matching transactions with their total."""

    query_description: str
    transactions: list[Transaction] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")

    @property
    def result_count(self) -> int:
        return len(self.transactions)

    @property
    def data_found(self) -> bool:
        return bool(self.transactions)


def _beneficiary_label(txn: Transaction) -> str:
    if isinstance(txn.split, IndividualSplit):
        return txn.split.beneficiary
    return EQUAL_SPLIT_BENEFICIARY


def matches(txn: Transaction, query: TransactionQuery) -> bool:
    if query.date_contains.lower() not in txn.date.lower():
        return False
    if query.description_contains.lower() not in txn.description.lower():
        return False
    if txn.amount < query.min_amount:
        return False
    if query.payer and txn.payer != query.payer:
        return False
    if query.split_kind and txn.split_kind != query.split_kind:
        return False
    if query.beneficiary_contains.lower() not in _beneficiary_label(txn).lower():
        return False
    return True


def filter_transactions(
    transactions: Sequence[Transaction],
    query: Optional[TransactionQuery] = None,
) -> TransactionQueryResult:
    """
    Apply a query to a transaction list, keeping the input order.

    With no query every transaction matches.
    """
    query = query or TransactionQuery()
    found = [txn for txn in transactions if matches(txn, query)]
    return TransactionQueryResult(
        query_description=query.describe(),
        transactions=found,
        total_amount=sum((txn.amount for txn in found), Decimal("0")),
    )
