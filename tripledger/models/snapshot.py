"""
Ledger Snapshot Model

The snapshot is the whole trip state: itinerary, budget, packing
checklist, transactions and participant metadata. It is both the
locally persisted document and what the remote authority returns.
"""

from typing import Any, Optional, TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError

from tripledger.models.ledger import (
    BudgetItem,
    ChecklistItem,
    ItineraryEntry,
    Participant,
    Transaction,
)


REMOTE_SUCCESS_STATUS = "success"

_logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse_rows(
    rows: Any,
    model: type[ModelT],
    section: str,
    skipped: Optional[list[str]] = None,
) -> list[ModelT]:
    """
    Parse a list of rows, skipping the ones that do not validate.

    Anything that isn't a list counts as an empty section.
    """
    if not isinstance(rows, list):
        return []

    parsed = []
    for index, row in enumerate(rows):
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            _logger.warning(
                "snapshot_row_skipped",
                section=section,
                index=index,
                error=str(e),
            )
            if skipped is not None:
                skipped.append(f"{section}[{index}]")
    return parsed


class LedgerSnapshot(BaseModel):
    """Canonical trip state."""

    itinerary: list[ItineraryEntry] = Field(default_factory=list)
    budget: list[BudgetItem] = Field(default_factory=list)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    participants: list[Participant] = Field(default_factory=list)

    @classmethod
    def from_remote(
        cls,
        document: dict[str, Any],
        skipped: Optional[list[str]] = None,
    ) -> "LedgerSnapshot":
        """
        Build a snapshot from the remote fetch document.

        Missing or malformed sections default to empty lists, and rows that
        fail validation are skipped. The remote's packing list becomes the
        checklist and meta.friends becomes the participant metadata.
        Any precomputed settlement the remote sends is ignored.
        """
        meta = document.get("meta")
        friends = meta.get("friends") if isinstance(meta, dict) else None

        return cls(
            itinerary=_parse_rows(document.get("itinerary"), ItineraryEntry, "itinerary", skipped),
            budget=_parse_rows(document.get("budget"), BudgetItem, "budget", skipped),
            checklist=_parse_rows(document.get("packing"), ChecklistItem, "packing", skipped),
            transactions=_parse_rows(document.get("transactions"), Transaction, "transactions", skipped),
            participants=_parse_rows(friends, Participant, "meta.friends", skipped),
        )

    @classmethod
    def from_document(cls, document: Any) -> "LedgerSnapshot":
        """Restore a locally persisted snapshot, tolerating damaged rows."""
        if not isinstance(document, dict):
            return cls()
        return cls(
            itinerary=_parse_rows(document.get("itinerary"), ItineraryEntry, "itinerary"),
            budget=_parse_rows(document.get("budget"), BudgetItem, "budget"),
            checklist=_parse_rows(document.get("checklist"), ChecklistItem, "checklist"),
            transactions=_parse_rows(document.get("transactions"), Transaction, "transactions"),
            participants=_parse_rows(document.get("participants"), Participant, "participants"),
        )

    def to_document(self) -> dict[str, Any]:
        """Serialize for the local store."""
        return self.model_dump(mode="json", by_alias=True)

    def find_budget_item(self, category: Optional[str]) -> Optional[BudgetItem]:
        if not category:
            return None
        for item in self.budget:
            if item.category == category:
                return item
        return None

    def find_checklist_item(self, name: str) -> Optional[ChecklistItem]:
        for item in self.checklist:
            if item.item == name:
                return item
        return None

    def participant_names(self) -> list[str]:
        return [p.name for p in self.participants]
