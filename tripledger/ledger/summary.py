"""
Trip Summary

Dashboard figures derived from a snapshot: budget usage, packing
progress and itinerary progress.
"""

from typing import Optional

from pydantic import BaseModel

from tripledger.ledger.engine import round_half_up
from tripledger.models.ledger import ItineraryEntry
from tripledger.models.snapshot import LedgerSnapshot


# Itinerary entries for meals are not counted as places to visit
MEAL_KEYWORDS = ("breakfast", "lunch", "dinner", "snacks")


class BudgetSummary(BaseModel):
    planned: float
    spent: float
    remaining: float
    percent_used: float


class Progress(BaseModel):
    done: int
    total: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return round_half_up(self.done * 100 / self.total)


class TripSummary(BaseModel):
    budget: BudgetSummary
    packing: Progress
    places: Progress
    next_entry: Optional[ItineraryEntry] = None
    participant_count: int = 0


def budget_summary(snapshot: LedgerSnapshot) -> BudgetSummary:
    planned = sum(item.planned for item in snapshot.budget)
    spent = sum(item.actual for item in snapshot.budget)
    return BudgetSummary(
        planned=planned,
        spent=spent,
        remaining=planned - spent,
        percent_used=(spent / planned) * 100 if planned > 0 else 0.0,
    )


def packing_progress(snapshot: LedgerSnapshot) -> Progress:
    return Progress(
        done=sum(1 for item in snapshot.checklist if item.packed),
        total=len(snapshot.checklist),
    )


def is_place(entry: ItineraryEntry) -> bool:
    place = entry.depart_place.lower()
    return bool(place) and not any(meal in place for meal in MEAL_KEYWORDS)


def places_progress(snapshot: LedgerSnapshot) -> Progress:
    places = [entry for entry in snapshot.itinerary if is_place(entry)]
    return Progress(
        done=sum(1 for entry in places if entry.status),
        total=len(places),
    )


def next_entry(snapshot: LedgerSnapshot) -> Optional[ItineraryEntry]:
    """The entry after the last visited one (the first if none visited)."""
    itinerary = snapshot.itinerary
    if not itinerary:
        return None

    last_visited = -1
    for index, entry in enumerate(itinerary):
        if entry.status:
            last_visited = index

    next_index = last_visited + 1
    if next_index < len(itinerary):
        return itinerary[next_index]
    return itinerary[-1]


def trip_summary(snapshot: LedgerSnapshot, participant_count: int = 0) -> TripSummary:
    return TripSummary(
        budget=budget_summary(snapshot),
        packing=packing_progress(snapshot),
        places=places_progress(snapshot),
        next_entry=next_entry(snapshot),
        participant_count=participant_count,
    )
