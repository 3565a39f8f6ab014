"""
Core Ledger Models for Trip Ledger

These models define the schemas for participants, transactions and the
derived settlement data (balances, debt matrix, diagnostics).

DESIGN DECISION: The split of a transaction is a closed tagged union,
EqualSplit | IndividualSplit, decided once when a row is ingested.
The sheet's loose encodings (type true/"Equal"/"Individual", bene
"All"/"ALL") are normalised in a single before-validator and never
re-interpreted downstream.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Beneficiary sentinel meaning "every participant"
ALL_PARTICIPANTS = "ALL"

DEFAULT_GROUP = "Individual"


# =============================================================================
# ENUMS
# =============================================================================

class SplitKind(str, Enum):
    """How a transaction's amount is shared."""
    EQUAL = "equal"
    INDIVIDUAL = "individual"


class SettlementAction(str, Enum):
    """What a participant has to do to settle up."""
    GET = "get"
    PAY = "pay"
    SETTLED = "settled"


# =============================================================================
# PARTICIPANTS & TRANSACTIONS
# =============================================================================

class Participant(BaseModel):
    """A person sharing the trip's expenses."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(
        ...,
        min_length=1,
        description="Unique participant name"
    )
    group: str = Field(
        default=DEFAULT_GROUP,
        description="Classification label, e.g. a family name"
    )

    @field_validator("group", mode="before")
    @classmethod
    def default_blank_group(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_GROUP
        return v


class EqualSplit(BaseModel):
    """Amount divided evenly across all participants, payer included."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["equal"] = "equal"


class IndividualSplit(BaseModel):
    """Amount attributed entirely to one beneficiary."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    kind: Literal["individual"] = "individual"
    beneficiary: str = ""

    @field_validator("beneficiary", mode="before")
    @classmethod
    def normalise_all_sentinel(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, str) and v.strip().upper() == ALL_PARTICIPANTS:
            return ALL_PARTICIPANTS
        return v


Split = Annotated[Union[EqualSplit, IndividualSplit], Field(discriminator="kind")]


def _is_equal_type(value: Any) -> bool:
    """Sheet rows mark equal splits as type=true or type="Equal"."""
    if value is True:
        return True
    return isinstance(value, str) and value.strip().lower() == "equal"


class Transaction(BaseModel):
    """
    A recorded shared expense.

    Transactions are immutable once recorded. Rows coming from the sheet
    use short keys (desc, cat, type, bene); these are accepted and mapped
    onto the canonical fields.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    date: str = Field(default="", description="Date as recorded (ISO or sheet format)")
    description: str = Field(default="", description="What the money was spent on")
    category: Optional[str] = Field(default=None, description="Budget category")
    amount: Decimal = Field(default=Decimal("0"), ge=0, description="Amount spent")
    payer: str = Field(default="", description="Participant who paid")
    split: Split = Field(default_factory=EqualSplit)

    @model_validator(mode="before")
    @classmethod
    def normalise_sheet_row(cls, data: Any) -> Any:
        """Map a loosely typed sheet row onto the canonical shape."""
        if not isinstance(data, dict):
            return data

        row = dict(data)
        if "desc" in row and "description" not in row:
            row["description"] = row.pop("desc")
        if "cat" in row and "category" not in row:
            row["category"] = row.pop("cat")

        if "split" not in row and ("type" in row or "bene" in row):
            split_type = row.pop("type", None)
            beneficiary = row.pop("bene", None)
            if _is_equal_type(split_type):
                row["split"] = {"kind": "equal"}
            else:
                row["split"] = {"kind": "individual", "beneficiary": beneficiary}

        for key in ("date", "description", "payer"):
            if key in row and row[key] is not None and not isinstance(row[key], str):
                row[key] = str(row[key])
            elif key in row and row[key] is None:
                row[key] = ""
        return row

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Any:
        """Unparseable amounts count as zero, like the sheet does."""
        if v is None or v == "":
            return Decimal("0")
        if isinstance(v, bool):
            return Decimal("0")
        try:
            return Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            return Decimal("0")

    @property
    def split_kind(self) -> SplitKind:
        return SplitKind(self.split.kind)

    @property
    def beneficiary(self) -> str:
        """Beneficiary name, or ALL for equal splits."""
        if isinstance(self.split, IndividualSplit):
            return self.split.beneficiary
        return ALL_PARTICIPANTS


# =============================================================================
# DERIVED SETTLEMENT DATA
# =============================================================================

class Balance(BaseModel):
    """A participant's net position. Always derived, never edited."""

    name: str
    group: str = DEFAULT_GROUP
    total_paid: float = Field(..., description="Sum of amounts this participant paid")
    share_of_expenses: float = Field(..., description="Sum of amounts this participant consumed")
    net: float = Field(..., description="total_paid - share_of_expenses")
    action: SettlementAction
    action_label: str = Field(..., description="e.g. 'Get ₹200', 'Pay ₹100', 'Settled'")


class PairwiseDebt(BaseModel):
    """Cumulative amount a payer contributed toward a consumer's share."""

    payer: str
    consumer: str
    amount: float


class DebtMatrix(BaseModel):
    """
    Square payer x consumer grid.

    Every ordered pair of participants is present; the diagonal is zero.
    """

    participants: list[str] = Field(default_factory=list)
    grid: dict[str, dict[str, float]] = Field(default_factory=dict)

    def get(self, payer: str, consumer: str) -> float:
        """Amount payer put toward consumer's share (0.0 for unknown names)."""
        return self.grid.get(payer, {}).get(consumer, 0.0)

    def row(self, payer: str) -> dict[str, float]:
        return dict(self.grid.get(payer, {}))

    def as_debts(self, include_zero: bool = False) -> list[PairwiseDebt]:
        """Flatten to PairwiseDebt records in participant order."""
        debts = []
        for payer in self.participants:
            for consumer in self.participants:
                if payer == consumer:
                    continue
                amount = self.get(payer, consumer)
                if amount or include_zero:
                    debts.append(PairwiseDebt(payer=payer, consumer=consumer, amount=amount))
        return debts


class LedgerDiagnostic(BaseModel):
    """A transaction excluded from aggregation, and why."""

    transaction_index: int = Field(..., ge=0, description="Position in the input list")
    field: str = Field(..., pattern="^(payer|beneficiary)$")
    value: str = Field(..., description="The reference that could not be resolved")
    message: str


class LedgerResult(BaseModel):
    """Output of one ledger computation."""

    participants: list[Participant] = Field(default_factory=list)
    balances: list[Balance] = Field(default_factory=list)
    matrix: DebtMatrix = Field(default_factory=DebtMatrix)
    diagnostics: list[LedgerDiagnostic] = Field(default_factory=list)

    def balance_for(self, name: str) -> Optional[Balance]:
        for balance in self.balances:
            if balance.name == name:
                return balance
        return None

    @property
    def total_net(self) -> float:
        return sum(balance.net for balance in self.balances)


# =============================================================================
# TRIP COMPANION DATA (itinerary, budget, packing)
# =============================================================================

def _coerce_float(v: Any) -> float:
    if v is None or v == "" or isinstance(v, bool):
        return 0.0
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


class ItineraryEntry(BaseModel):
    """
    One scheduled activity.

    Unknown sheet columns are kept so presentation layers can use them.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    date: str = ""
    depart_place: str = Field(default="", alias="departPlace")
    depart_time: str = Field(default="", alias="departTime")
    status: bool = False

    @field_validator("date", "depart_place", "depart_time", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("status", mode="before")
    @classmethod
    def truthy_status(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return bool(v)


class BudgetItem(BaseModel):
    """Planned versus actual spend for one category."""
    model_config = ConfigDict(extra="allow")

    category: str = ""
    planned: float = 0.0
    actual: float = 0.0

    @field_validator("planned", "actual", mode="before")
    @classmethod
    def parse_number(cls, v: Any) -> float:
        return _coerce_float(v)

    @field_validator("category", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return "" if v is None else str(v)


class ChecklistItem(BaseModel):
    """One packing-list item."""
    model_config = ConfigDict(extra="allow")

    item: str = ""
    packed: bool = False

    @field_validator("item", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("packed", mode="before")
    @classmethod
    def truthy_packed(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return bool(v)
