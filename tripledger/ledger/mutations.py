"""
Local Command Application

apply_command() returns a new snapshot with one command applied; the
input snapshot is left untouched. This is how a command takes effect
locally before the remote has seen it, and how queued commands are
re-applied on top of a freshly fetched snapshot.
"""

from tripledger.models.commands import (
    AddTransactionCommand,
    Command,
    TogglePackCommand,
    ToggleVisitCommand,
)
from tripledger.models.snapshot import LedgerSnapshot


class CommandApplicationError(ValueError):
    """The command cannot be applied to this snapshot."""
    pass


def apply_command(snapshot: LedgerSnapshot, command: Command) -> LedgerSnapshot:
    """
    Apply one command to a copy of the snapshot.

    - toggleVisit sets itinerary[index].status
    - togglePack sets packed on the matching checklist item; an unknown
      item leaves the snapshot unchanged
    - addTransaction puts the new transaction first and adds its amount
      to the budget line of the same category, if there is one

    Raises:
        CommandApplicationError: toggleVisit index outside the itinerary
    """
    updated = snapshot.model_copy(deep=True)

    if isinstance(command, ToggleVisitCommand):
        if command.index >= len(updated.itinerary):
            raise CommandApplicationError(
                f"Itinerary has no entry {command.index} "
                f"({len(updated.itinerary)} entries)"
            )
        updated.itinerary[command.index].status = command.status

    elif isinstance(command, TogglePackCommand):
        item = updated.find_checklist_item(command.item)
        if item is not None:
            item.packed = command.status

    elif isinstance(command, AddTransactionCommand):
        txn = command.data.to_transaction()
        updated.transactions.insert(0, txn)
        budget_item = updated.find_budget_item(txn.category)
        if budget_item is not None:
            budget_item.actual += float(txn.amount)

    else:
        raise CommandApplicationError(f"Unsupported command: {command!r}")

    return updated
