"""Tests for trip summary figures and local command application."""

from decimal import Decimal

import pytest

from tripledger.ledger import CommandApplicationError, apply_command, trip_summary
from tripledger.ledger.summary import next_entry
from tripledger.models import (
    AddTransactionCommand,
    BudgetItem,
    ChecklistItem,
    ItineraryEntry,
    LedgerSnapshot,
    TogglePackCommand,
    ToggleVisitCommand,
    TransactionInput,
)


@pytest.fixture
def snapshot():
    return LedgerSnapshot(
        itinerary=[
            ItineraryEntry(date="d1", depart_place="Hotel Breakfast", status=True),
            ItineraryEntry(date="d1", depart_place="Old Fort", status=True),
            ItineraryEntry(date="d1", depart_place="Lunch at beach shack"),
            ItineraryEntry(date="d2", depart_place="Museum"),
            ItineraryEntry(date="d2", depart_place=""),
        ],
        budget=[
            BudgetItem(category="Food", planned=1000, actual=250),
            BudgetItem(category="Travel", planned=3000, actual=0),
        ],
        checklist=[
            ChecklistItem(item="Charger", packed=True),
            ChecklistItem(item="Sunscreen"),
            ChecklistItem(item="Passport"),
        ],
    )


class TestTripSummary:

    def test_budget(self, snapshot):
        summary = trip_summary(snapshot)

        assert summary.budget.planned == 4000
        assert summary.budget.spent == 250
        assert summary.budget.remaining == 3750
        assert summary.budget.percent_used == pytest.approx(6.25)

    def test_meals_are_not_places(self, snapshot):
        places = trip_summary(snapshot).places
        assert (places.done, places.total) == (1, 2)
        assert places.percent == 50

    def test_packing_progress(self, snapshot):
        packing = trip_summary(snapshot).packing
        assert (packing.done, packing.total, packing.percent) == (1, 3, 33)

    def test_next_entry_follows_last_visited(self, snapshot):
        assert next_entry(snapshot).depart_place == "Lunch at beach shack"

    def test_empty_snapshot(self):
        summary = trip_summary(LedgerSnapshot(), participant_count=0)

        assert summary.budget.percent_used == 0
        assert summary.packing.percent == 0
        assert summary.next_entry is None


class TestApplyCommand:

    def test_toggle_visit(self, snapshot):
        updated = apply_command(snapshot, ToggleVisitCommand(index=3, status=True))

        assert updated.itinerary[3].status is True
        assert snapshot.itinerary[3].status is False

    def test_toggle_visit_out_of_range(self, snapshot):
        with pytest.raises(CommandApplicationError):
            apply_command(snapshot, ToggleVisitCommand(index=5, status=True))

    def test_toggle_pack(self, snapshot):
        updated = apply_command(snapshot, TogglePackCommand(item="Passport", status=True))
        assert updated.find_checklist_item("Passport").packed is True

    def test_toggle_unknown_item_changes_nothing(self, snapshot):
        updated = apply_command(snapshot, TogglePackCommand(item="Umbrella", status=True))
        assert updated == snapshot

    def test_add_transaction_prepends_and_updates_budget(self, snapshot):
        command = AddTransactionCommand(data=TransactionInput(
            category="Food", description="Thali", amount=Decimal("150"), payer="Alice",
        ))
        updated = apply_command(snapshot, command)

        assert updated.transactions[0].description == "Thali"
        assert updated.find_budget_item("Food").actual == 400
        assert snapshot.find_budget_item("Food").actual == 250

    def test_add_transaction_unknown_category(self, snapshot):
        command = AddTransactionCommand(data=TransactionInput(
            category="Shopping", description="Scarf", amount=Decimal("90"), payer="Bob",
        ))
        updated = apply_command(snapshot, command)

        assert len(updated.transactions) == 1
        assert updated.budget == snapshot.budget
