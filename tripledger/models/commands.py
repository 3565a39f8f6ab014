"""
Command Models

Commands are the user intents forwarded by presentation layers.
They are applied locally, queued, and replayed to the remote authority
with exactly this JSON shape:

    {"action": "toggleVisit", "index": 3, "status": true}
    {"action": "togglePack", "item": "Charger", "status": true}
    {"action": "addTransaction", "data": {"date": ..., "cat": ..., "desc": ...,
        "amount": ..., "payer": ..., "isIndividual": ..., "beneficiary": ...}}
"""

from datetime import date as date_type, datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer

from tripledger.models.ledger import (
    ALL_PARTICIPANTS,
    EqualSplit,
    IndividualSplit,
    Transaction,
)


class TransactionInput(BaseModel):
    """Payload of an addTransaction command."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    date: str = Field(
        default_factory=lambda: date_type.today().isoformat(),
        description="Date of the expense, defaults to today"
    )
    category: str = Field(default="", alias="cat")
    description: str = Field(default="", alias="desc")
    amount: Decimal = Field(..., ge=0)
    payer: str = ""
    is_individual: bool = Field(default=False, alias="isIndividual")
    beneficiary: str = Field(
        default=ALL_PARTICIPANTS,
        description="Beneficiary name for individual splits, ALL otherwise"
    )

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> Union[int, float]:
        # The sheet expects a JSON number
        return int(amount) if amount == amount.to_integral_value() else float(amount)

    def to_transaction(self) -> Transaction:
        """The ledger record this input produces."""
        if self.is_individual:
            split = IndividualSplit(beneficiary=self.beneficiary)
        else:
            split = EqualSplit()
        return Transaction(
            date=self.date,
            description=self.description,
            category=self.category or None,
            amount=self.amount,
            payer=self.payer,
            split=split,
        )


class ToggleVisitCommand(BaseModel):
    """Mark an itinerary entry as visited or not."""

    action: Literal["toggleVisit"] = "toggleVisit"
    index: int = Field(..., ge=0)
    status: bool


class TogglePackCommand(BaseModel):
    """Mark a checklist item as packed or not."""

    action: Literal["togglePack"] = "togglePack"
    item: str = Field(..., min_length=1)
    status: bool


class AddTransactionCommand(BaseModel):
    """Record a new shared expense."""

    action: Literal["addTransaction"] = "addTransaction"
    data: TransactionInput


Command = Annotated[
    Union[ToggleVisitCommand, TogglePackCommand, AddTransactionCommand],
    Field(discriminator="action"),
]

command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def command_to_payload(command: Command) -> dict[str, Any]:
    """The JSON body sent to the remote authority."""
    return command.model_dump(mode="json", by_alias=True)


class QueuedMutation(BaseModel):
    """
    One entry of the durable mutation queue.

    The entry id and timestamp are local bookkeeping; only the command
    payload is transmitted.
    """

    entry_id: UUID = Field(default_factory=uuid4)
    enqueued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    command: Command

    @property
    def action(self) -> str:
        return self.command.action

    def payload(self) -> dict[str, Any]:
        return command_to_payload(self.command)


queue_adapter: TypeAdapter[list[QueuedMutation]] = TypeAdapter(list[QueuedMutation])


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in a command."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g. 'missing', 'invalid_value', 'unknown_reference')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
    severity: str = Field(..., pattern="^(error|warning|info)$")
    suggested_fix: Optional[str] = Field(default=None, description="What the user can do about it")


class ValidationResult(BaseModel):
    """Outcome of validating one command against the current snapshot."""

    action: str
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


class CommandRejectedError(Exception):
    """A command failed validation and was not queued."""

    def __init__(self, result: ValidationResult, message: Optional[str] = None):
        self.result = result
        errors = "; ".join(i.message for i in result.issues if i.severity == "error")
        super().__init__(message or f"{result.action} rejected: {errors}")
