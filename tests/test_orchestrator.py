"""
Flow tests for the TripLedger core.

Submit, offline/online transitions, refresh and lifecycle, with an
in-memory store and the fake remote.
"""

import asyncio
import logging
from decimal import Decimal

import pytest

from tripledger.audit import AuditLogger
from tripledger.config import get_settings, validate_all_settings
from tripledger.ledger import LedgerStore, MutationQueue
from tripledger.models import (
    AddTransactionCommand,
    CommandRejectedError,
    TransactionInput,
)
from tripledger.orchestrator import TripLedger, create_app_components
from tripledger.services.storage import InMemoryStore, StorageError
from tripledger.sync import SyncState

from conftest import FakeRemote, remote_document


DOCUMENT = remote_document(
    itinerary=[
        {"date": "d1", "departPlace": "Amber Fort", "status": False},
        {"date": "d1", "departPlace": "Lunch", "status": False},
    ],
    budget=[{"category": "Food", "planned": 2000, "actual": 0}],
    packing=[{"item": "Charger", "packed": False}],
    transactions=[{"desc": "Hotel", "cat": "Stay", "amount": 300, "payer": "Alice", "type": True}],
    meta={"friends": [
        {"name": "Alice", "group": "Sharma"},
        {"name": "Bob", "group": "Verma"},
        {"name": "Carol", "group": "Verma"},
    ]},
)


def lunch(amount=90, payer="Bob"):
    return TransactionInput(
        category="Food", description="Lunch", amount=Decimal(str(amount)), payer=payer,
    )


@pytest.fixture
def remote():
    return FakeRemote(DOCUMENT)


@pytest.fixture
def app(store, remote, audit_logger):
    return TripLedger(
        ledger=LedgerStore(store, audit_logger=audit_logger, currency="₹"),
        queue=MutationQueue(store),
        remote=remote,
        audit_logger=audit_logger,
    )


@pytest.fixture
def started(app):
    asyncio.run(app.start(online=True))
    return app


class TestStart:

    def test_start_online_pulls_snapshot(self, started):
        assert started.sync_state == SyncState.IDLE
        assert started.balances[0].action_label == "Get ₹200"
        assert started.summary().participant_count == 3

    def test_start_offline_uses_local_state(self, app, remote):
        asyncio.run(app.start(online=False))

        assert remote.fetch_count == 0
        assert app.balances == []
        assert app.sync_status_text() == "Ready"

    def test_start_sends_pending_before_refresh(self, store, remote, audit_logger):
        queue = MutationQueue(store)
        queue.enqueue(AddTransactionCommand(data=lunch()))
        app = TripLedger(LedgerStore(store), queue, remote, audit_logger)

        order = []

        async def on_push(command):
            order.append("push")

        async def on_fetch():
            order.append("fetch")

        remote.on_push = on_push
        remote.on_fetch = on_fetch

        asyncio.run(app.start(online=True))
        assert order == ["push", "fetch"]
        assert app.pending_count == 0


class TestSubmit:

    def test_offline_expense_applied_and_queued(self, started):
        asyncio.run(started.set_online(False))

        entry = asyncio.run(started.add_transaction(lunch()))

        assert started.pending_count == 1
        assert started.pending[0].entry_id == entry.entry_id
        assert started.snapshot.transactions[0].description == "Lunch"
        assert started.snapshot.find_budget_item("Food").actual == 90
        bob = next(b for b in started.balances if b.name == "Bob")
        assert bob.net == pytest.approx(-100 + 60)
        assert started.sync_status_text() == "1 changes pending"

    def test_online_submit_drains(self, started, remote):
        asyncio.run(started.toggle_visit(0, True))

        assert started.pending_count == 0
        assert remote.pushed[-1] == {"action": "toggleVisit", "index": 0, "status": True}
        assert started.snapshot.itinerary[0].status is True

    def test_rejected_command_changes_nothing(self, started, store, events):
        saves = store.save_count

        with pytest.raises(CommandRejectedError) as exc_info:
            asyncio.run(started.toggle_visit(7, True))

        assert exc_info.value.result.error_count == 1
        assert store.save_count == saves
        assert started.pending_count == 0
        assert "command_rejected" in events.types()

    def test_warnings_reported_on_accept(self, started, events):
        asyncio.run(started.set_online(False))
        asyncio.run(started.toggle_pack("Umbrella", True))

        accepted = [e for e in events.events if e.event_type.value == "command_accepted"]
        assert accepted[-1].details["warnings"] == ["Umbrella is not on the packing list"]
        assert started.pending_count == 1

    def test_queue_write_failure(self, started, store):
        asyncio.run(started.set_online(False))
        store.fail_keys.add("syncQueue")
        before = started.snapshot

        with pytest.raises(StorageError):
            asyncio.run(started.add_transaction(lunch()))

        assert started.snapshot is before
        assert started.pending_count == 0

    def test_snapshot_write_failure_rolls_back_queue(self, started, store, events):
        asyncio.run(started.set_online(False))
        store.fail_keys.add("tripData")

        with pytest.raises(StorageError):
            asyncio.run(started.add_transaction(lunch()))

        assert started.pending_count == 0
        assert "persistence_failed" in events.types()

    def test_change_listener_notified(self, started):
        seen = []
        unsubscribe = started.on_change(lambda snapshot, result: seen.append(len(snapshot.transactions)))

        asyncio.run(started.add_transaction(lunch()))
        unsubscribe()
        asyncio.run(started.add_transaction(lunch(20, "Carol")))

        assert seen == [2]


class TestUnresolvedReferences:

    LONG = "x" * 600

    def test_submit_with_unknown_payer_and_long_description(self, started, events):
        asyncio.run(started.set_online(False))
        seen = []
        started.on_change(lambda snapshot, result: seen.append(len(result.diagnostics)))

        asyncio.run(started.add_transaction(TransactionInput(
            description=self.LONG, amount=Decimal("10"), payer="Dave",
        )))

        assert started.pending_count == 1
        assert seen == [1]
        assert started.diagnostics[0].value == "Dave"
        unresolved = [e for e in events.events if e.event_type.value == "reference_unresolved"]
        assert unresolved[-1].description == "Transaction excluded: unresolved payer"
        assert unresolved[-1].details["value"] == "Dave"

    def test_refresh_with_unknown_payer_and_long_description(self, started, remote):
        remote.document = remote_document(
            transactions=[
                {"desc": self.LONG, "cat": "Food", "amount": 5, "payer": "Zed", "type": True},
            ] + DOCUMENT["transactions"],
            meta=DOCUMENT["meta"],
        )

        assert asyncio.run(started.refresh()) is True

        assert len(started.snapshot.transactions) == 2
        assert started.diagnostics[0].value == "Zed"
        assert started.balances[0].action_label == "Get ₹200"

    def test_restart_with_unknown_payer_and_long_description(self, store, remote, events):
        first = TripLedger(LedgerStore(store), MutationQueue(store), remote)
        asyncio.run(first.start(online=True))
        asyncio.run(first.set_online(False))
        asyncio.run(first.add_transaction(TransactionInput(
            description=self.LONG, amount=Decimal("10"), payer="Dave",
        )))
        asyncio.run(first.shutdown())

        ledger = LedgerStore(store, audit_logger=AuditLogger([events]))

        assert len(ledger.snapshot.transactions) == 2
        assert ledger.diagnostics[0].value == "Dave"
        assert "reference_unresolved" in events.types()


class TestOfflineRoundTrip:

    def test_reconnect_drains_then_refresh_keeps_nothing_twice(self, started, remote):
        asyncio.run(started.set_online(False))
        asyncio.run(started.add_transaction(lunch()))
        asyncio.run(started.toggle_pack("Charger", True))

        sent = asyncio.run(started.set_online(True))
        assert sent == 2
        assert [p["action"] for p in remote.pushed] == ["addTransaction", "togglePack"]

        # The remote now includes the expense
        remote.document = remote_document(
            itinerary=DOCUMENT["itinerary"],
            budget=[{"category": "Food", "planned": 2000, "actual": 90}],
            packing=[{"item": "Charger", "packed": True}],
            transactions=[
                {"desc": "Lunch", "cat": "Food", "amount": 90, "payer": "Bob", "type": "Equal"},
            ] + DOCUMENT["transactions"],
            meta=DOCUMENT["meta"],
        )
        assert asyncio.run(started.refresh()) is True

        assert [t.description for t in started.snapshot.transactions] == ["Lunch", "Hotel"]
        assert started.snapshot.find_budget_item("Food").actual == 90

    def test_failed_push_notifies(self, started, remote, events):
        remote.push_results = [False]

        asyncio.run(started.toggle_pack("Charger", True))

        assert started.sync_state == SyncState.PAUSED
        assert started.pending_count == 1
        assert any(e.is_notification and e.event_type.value == "sync_paused" for e in events.events)

        assert asyncio.run(started.sync()) == 1
        assert started.sync_state == SyncState.IDLE

    def test_periodic_refresh(self, started, remote):
        fetches = remote.fetch_count

        async def scenario():
            task = asyncio.create_task(started.refresh_periodically(0.01))
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert remote.fetch_count > fetches

    def test_refresh_offline_is_noop(self, started, remote):
        asyncio.run(started.set_online(False))
        fetches = remote.fetch_count

        assert asyncio.run(started.refresh()) is False
        assert remote.fetch_count == fetches


class TestReadSide:

    def test_group_and_pairwise_views(self, started):
        groups = {g.group: g for g in started.group_balances()}
        assert groups["Sharma"].action_label == "Get ₹200"
        assert groups["Verma"].action_label == "Pay ₹200"

        positions = started.pairwise("Bob")
        assert [(p.counterparty, p.action_label) for p in positions] == [("Alice", "Pay ₹100")]

    def test_find_transactions(self, started):
        assert started.find_transactions().result_count == 1

    def test_notifications_unsubscribe(self, started):
        seen = []
        unsubscribe = started.notifications(seen.append)
        asyncio.run(started.set_online(False))
        unsubscribe()
        asyncio.run(started.set_online(True))

        assert [e.event_type.value for e in seen] == ["connectivity_lost"]


class TestLifecycle:

    def test_state_restored_after_restart(self, store, remote):
        first = TripLedger(LedgerStore(store), MutationQueue(store), remote)
        asyncio.run(first.start(online=True))
        asyncio.run(first.set_online(False))
        asyncio.run(first.add_transaction(lunch()))
        asyncio.run(first.shutdown())

        second = TripLedger(LedgerStore(store), MutationQueue(store), FakeRemote(DOCUMENT))
        assert second.pending_count == 1
        assert [t.description for t in second.snapshot.transactions] == ["Lunch", "Hotel"]
        assert remote.closed

    def test_corrupt_snapshot_starts_empty(self, events):
        store = InMemoryStore()
        store.put_raw("tripData", "{oops")

        app = TripLedger(LedgerStore(store, audit_logger=AuditLogger([events])), MutationQueue(store))

        assert app.snapshot.transactions == []
        assert "persistence_failed" in events.types()

    def test_local_only_without_remote(self):
        app = TripLedger(LedgerStore(InMemoryStore()), MutationQueue(InMemoryStore()))

        asyncio.run(app.start(online=True))
        asyncio.run(app.toggle_pack("Hat", True))

        assert app.pending_count == 1
        assert asyncio.run(app.refresh()) is False
        assert app.sync_status_text() == "1 changes pending"


class TestFactory:

    def test_create_app_components(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TRIPLEDGER_STORE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("TRIPLEDGER_REMOTE_SCRIPT_URL", "https://script.example.com/exec")
        get_settings.cache_clear()

        remote = FakeRemote(DOCUMENT)
        app = create_app_components(remote=remote)
        asyncio.run(app.start(online=True))
        asyncio.run(app.shutdown())

        assert (tmp_path / "tripData.json").exists()
        assert app.balances[0].action_label.startswith("Get ")
        get_settings.cache_clear()

    def test_factory_without_remote_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TRIPLEDGER_STORE_DATA_DIR", str(tmp_path))
        monkeypatch.delenv("TRIPLEDGER_REMOTE_SCRIPT_URL", raising=False)
        get_settings.cache_clear()

        app = create_app_components(store=InMemoryStore())

        assert app.sync_state == SyncState.IDLE
        assert asyncio.run(app.refresh()) is False
        get_settings.cache_clear()

    def test_debug_mode_sets_log_level(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TRIPLEDGER_STORE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("DEBUG_MODE", "true")
        get_settings.cache_clear()

        create_app_components(store=InMemoryStore(), remote=FakeRemote(DOCUMENT))

        assert logging.getLogger("tripledger").level == logging.DEBUG
        logging.getLogger("tripledger").setLevel(logging.NOTSET)
        get_settings.cache_clear()

    def test_validate_all_settings(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TRIPLEDGER_STORE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("TRIPLEDGER_REMOTE_SCRIPT_URL", "ftp://sheet")
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["store"] is True
        assert results["app"] is True
        assert results["remote"] is False
        assert "script_url" in results["remote_error"]
        get_settings.cache_clear()
