"""
Shared fixtures for Trip Ledger tests.

No real network or disk access outside tmp_path: the remote authority
is replaced by FakeRemote and the store by InMemoryStore.
"""

import copy
from typing import Any, Optional

import pytest

from tripledger.audit import AuditLogger
from tripledger.models import AuditEvent, LedgerSnapshot
from tripledger.models.commands import Command, command_to_payload
from tripledger.services.remote import RemoteAuthorityInterface, RemoteUnavailableError
from tripledger.services.storage import InMemoryStore, StorageError


def remote_document(**sections: Any) -> dict[str, Any]:
    """A fetch document in the shape the sheet web app returns."""
    document = {
        "status": "success",
        "itinerary": [],
        "budget": [],
        "packing": [],
        "transactions": [],
        "meta": {"friends": []},
    }
    document.update(sections)
    return document


class FakeRemote(RemoteAuthorityInterface):
    """
    Scriptable remote authority.

    push_results is consumed one value per push (True/False, or an
    exception instance to raise); when it runs out pushes succeed.
    """

    def __init__(self, document: Optional[dict[str, Any]] = None):
        self.document = document or remote_document()
        self.fetch_error: Optional[Exception] = None
        self.push_results: list[Any] = []
        self.pushed: list[dict[str, Any]] = []
        self.fetch_count = 0
        self.closed = False
        self.on_fetch = None
        self.on_push = None

    async def fetch_snapshot(self) -> LedgerSnapshot:
        self.fetch_count += 1
        if self.on_fetch is not None:
            await self.on_fetch()
        if self.fetch_error is not None:
            raise self.fetch_error
        return LedgerSnapshot.from_remote(copy.deepcopy(self.document))

    async def push_mutation(self, command: Command) -> bool:
        if self.on_push is not None:
            await self.on_push(command)
        if self.push_results:
            result = self.push_results.pop(0)
            if isinstance(result, Exception):
                raise result
            if not result:
                return False
        self.pushed.append(command_to_payload(command))
        return True

    async def aclose(self) -> None:
        self.closed = True


class FailingStore(InMemoryStore):
    """InMemoryStore whose writes to chosen keys fail on demand."""

    def __init__(self, documents: Optional[dict[str, Any]] = None):
        super().__init__(documents)
        self.fail_keys: set[str] = set()

    def save(self, key: str, document: Any) -> None:
        if key in self.fail_keys:
            raise StorageError(f"Disk full while saving {key}")
        super().save(key, document)


class RecordingListener:
    """Collects audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def __call__(self, event: AuditEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [event.event_type.value for event in self.events]


@pytest.fixture
def store():
    return FailingStore()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def events():
    return RecordingListener()


@pytest.fixture
def audit_logger(events):
    return AuditLogger(listeners=[events])


@pytest.fixture
def offline_error():
    return RemoteUnavailableError("Network is unreachable")
