"""
Command Validation

Commands are checked against the current snapshot before they are
queued. Two kinds of findings:

ERRORS (the command is rejected, nothing is queued):
- addTransaction without a description, payer or positive amount
- individual split without a named beneficiary
- toggleVisit for an itinerary entry that doesn't exist

WARNINGS (the command goes through, the user is told):
- payer or beneficiary not among the known participants; the ledger
  will leave such a transaction out of the balances until the name
  is known
- amount that looks absurd for a trip expense
- togglePack for an item that isn't on the local checklist; the
  remote may still know it

Validation never fixes a command. It only reports.
"""

from decimal import Decimal
from typing import Optional

from tripledger.ledger.engine import resolve_participants
from tripledger.models.commands import (
    AddTransactionCommand,
    Command,
    TogglePackCommand,
    ToggleVisitCommand,
    ValidationIssue,
    ValidationResult,
)
from tripledger.models.ledger import ALL_PARTICIPANTS
from tripledger.models.snapshot import LedgerSnapshot


# Above this an amount is probably a typo (an extra zero)
SUSPICIOUS_AMOUNT = Decimal("1000000")


class CommandValidator:
    """Checks commands against a snapshot before they are accepted."""

    def __init__(self, suspicious_amount: Decimal = SUSPICIOUS_AMOUNT):
        self._suspicious_amount = suspicious_amount

    def validate(
        self,
        command: Command,
        snapshot: Optional[LedgerSnapshot] = None,
    ) -> ValidationResult:
        """
        Validate one command.

        Args:
            command: The command to check
            snapshot: Current local state; reference checks are skipped
                without one

        Returns:
            ValidationResult listing every issue found
        """
        snapshot = snapshot or LedgerSnapshot()

        if isinstance(command, AddTransactionCommand):
            issues = self._validate_transaction(command, snapshot)
        elif isinstance(command, ToggleVisitCommand):
            issues = self._validate_visit(command, snapshot)
        elif isinstance(command, TogglePackCommand):
            issues = self._validate_pack(command, snapshot)
        else:
            issues = [ValidationIssue(
                field="action",
                issue_type="unsupported",
                message=f"Unsupported command: {command!r}",
                severity="error",
            )]

        return ValidationResult(action=command.action, issues=issues)

    def _validate_transaction(
        self,
        command: AddTransactionCommand,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        data = command.data
        issues = []

        if not data.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Say what the money was spent on",
            ))

        if data.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))
        elif data.amount > self._suspicious_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({data.amount:,}) seems unusually high",
                severity="warning",
                suggested_fix="Check for an extra zero",
            ))

        if not data.payer:
            issues.append(ValidationIssue(
                field="payer",
                issue_type="missing",
                message="Payer is required",
                severity="error",
            ))

        if data.is_individual and (
            not data.beneficiary or data.beneficiary.upper() == ALL_PARTICIPANTS
        ):
            issues.append(ValidationIssue(
                field="beneficiary",
                issue_type="missing",
                message="An individual expense needs a beneficiary",
                severity="error",
                suggested_fix="Pick who the expense was for, or split it equally",
            ))

        # Reference checks only make sense once the participants are known
        known = {
            p.name for p in resolve_participants(snapshot.participants, snapshot.transactions)
        }
        if not known:
            return issues

        if data.payer and data.payer not in known:
            issues.append(ValidationIssue(
                field="payer",
                issue_type="unknown_reference",
                message=f"{data.payer} is not a known participant",
                severity="warning",
                suggested_fix="The expense will not count toward balances until the name is known",
            ))

        if (
            data.is_individual
            and data.beneficiary
            and data.beneficiary.upper() != ALL_PARTICIPANTS
            and data.beneficiary not in known
        ):
            issues.append(ValidationIssue(
                field="beneficiary",
                issue_type="unknown_reference",
                message=f"{data.beneficiary} is not a known participant",
                severity="warning",
                suggested_fix="The expense will not count toward balances until the name is known",
            ))

        return issues

    def _validate_visit(
        self,
        command: ToggleVisitCommand,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        if command.index < len(snapshot.itinerary):
            return []
        return [ValidationIssue(
            field="index",
            issue_type="out_of_range",
            message=(
                f"Itinerary has no entry {command.index} "
                f"({len(snapshot.itinerary)} entries)"
            ),
            severity="error",
            suggested_fix="Refresh the itinerary and try again",
        )]

    def _validate_pack(
        self,
        command: TogglePackCommand,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        if snapshot.find_checklist_item(command.item) is not None:
            return []
        return [ValidationIssue(
            field="item",
            issue_type="unknown_reference",
            message=f"{command.item} is not on the packing list",
            severity="warning",
        )]

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One short paragraph for a toast or form error."""
        if not result.issues:
            return "All checks passed."

        lines = []
        errors = [i for i in result.issues if i.severity == "error"]
        if errors:
            lines.append("Can't save this yet:")
            for issue in errors:
                lines.append(f"  - {issue.message}")

        warnings = [i for i in result.issues if i.severity == "warning"]
        if warnings:
            lines.append("Please check:")
            for issue in warnings:
                fix = f" ({issue.suggested_fix})" if issue.suggested_fix else ""
                lines.append(f"  - {issue.message}{fix}")

        return "\n".join(lines)
