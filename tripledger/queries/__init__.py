"""Transaction query package."""

from tripledger.queries.executor import (
    TransactionQuery,
    TransactionQueryResult,
    filter_transactions,
)

__all__ = ["TransactionQuery", "TransactionQueryResult", "filter_transactions"]
