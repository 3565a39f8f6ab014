"""
Remote Authority Interface

The remote authority holds the canonical copy of the trip (itinerary,
budget, packing list, transactions, participants) and accepts user
commands one at a time.

Error contract:
- fetch_snapshot() raises only RemoteError subclasses. These are
  NON-FATAL by contract; callers fall back to local state.
- push_mutation() never raises for transport problems. It returns
  False when the request could not be sent and True once it was sent.
  The authority's response body is not inspected.
"""

from abc import ABC, abstractmethod

from tripledger.models.commands import Command
from tripledger.models.snapshot import LedgerSnapshot


class RemoteAuthorityInterface(ABC):
    """Abstract interface for the remote authority."""

    @abstractmethod
    async def fetch_snapshot(self) -> LedgerSnapshot:
        """
        Fetch the canonical trip state.

        Returns:
            The remote snapshot (only produced for a "success" document)

        Raises:
            RemoteUnavailableError: Transport failure or non-2xx response
            SnapshotRejectedError: The document's status was not "success"
        """
        pass

    @abstractmethod
    async def push_mutation(self, command: Command) -> bool:
        """
        Send one command.

        Returns:
            True if the request was sent, False if it failed to send
        """
        pass

    @property
    def last_skipped_rows(self) -> list[str]:
        """Rows dropped as malformed from the most recent snapshot."""
        return []

    async def aclose(self) -> None:
        """Release network resources."""
        return None


class RemoteError(Exception):
    """Base exception for remote authority failures (always recoverable)."""
    pass


class RemoteUnavailableError(RemoteError):
    """The remote could not be reached or answered with an error status."""
    pass


class SnapshotRejectedError(RemoteError):
    """The remote answered, but not with a usable success document."""

    def __init__(self, status: object, message: str):
        self.status = status
        super().__init__(message)
