"""
Mutation Queue

Durable FIFO buffer of commands that have been applied locally but not
yet confirmed sent to the remote authority.

Contract:
- enqueue() persists the whole queue before returning; the in-memory
  queue only changes once the write succeeded
- remove_head() persists after every single removal, never batched
- entries are never reordered
- no deduplication: a crash between a successful send and the removal
  write means the command is sent again after restart (at-least-once)
"""

from collections.abc import Iterator
from typing import Optional
from uuid import UUID

from pydantic import ValidationError

from tripledger.models.commands import Command, QueuedMutation, queue_adapter
from tripledger.services.storage import (
    CorruptDocumentError,
    KeyValueStoreInterface,
)


DEFAULT_QUEUE_KEY = "syncQueue"


class QueueOrderError(RuntimeError):
    """Tried to remove an entry that is not where the caller expected."""
    pass


class MutationQueue:
    """
    Ordered, durable buffer of pending commands.

    Restored from the store at construction. A damaged queue document is
    an error: silently starting empty would drop the user's changes.
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        key: str = DEFAULT_QUEUE_KEY,
    ):
        self._store = store
        self._key = key
        self._entries: list[QueuedMutation] = self._restore()

    @property
    def key(self) -> str:
        return self._key

    def _restore(self) -> list[QueuedMutation]:
        document = self._store.load(self._key)
        if document is None:
            return []
        try:
            return queue_adapter.validate_python(document)
        except ValidationError as e:
            raise CorruptDocumentError(self._key, f"Queue document is invalid: {e}")

    def _persist(self, entries: list[QueuedMutation]) -> None:
        self._store.save(self._key, queue_adapter.dump_python(entries, mode="json", by_alias=True))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[QueuedMutation]:
        return iter(list(self._entries))

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def entries(self) -> list[QueuedMutation]:
        """Snapshot copy of the pending entries, head first."""
        return list(self._entries)

    def enqueue(self, command: Command) -> QueuedMutation:
        """
        Append a command and persist.

        Raises:
            StorageError: The queue could not be persisted; nothing changed
        """
        entry = QueuedMutation(command=command)
        updated = self._entries + [entry]
        self._persist(updated)
        self._entries = updated
        return entry

    def peek_head(self) -> Optional[QueuedMutation]:
        return self._entries[0] if self._entries else None

    def remove_head(self, entry_id: UUID) -> QueuedMutation:
        """
        Remove the head after it was confirmed sent, and persist.

        Args:
            entry_id: The entry the caller sent; must still be the head

        Raises:
            QueueOrderError: The head is not the expected entry
            StorageError: The removal could not be persisted; nothing changed
        """
        head = self.peek_head()
        if head is None or head.entry_id != entry_id:
            raise QueueOrderError(f"Entry {entry_id} is not at the head of the queue")
        updated = self._entries[1:]
        self._persist(updated)
        self._entries = updated
        return head

    def discard_tail(self, entry_id: UUID) -> QueuedMutation:
        """
        Roll back the most recent enqueue.

        Only used when the local snapshot write that accompanies an
        enqueue fails.

        Raises:
            QueueOrderError: The tail is not the expected entry
            StorageError: The rollback could not be persisted
        """
        if not self._entries or self._entries[-1].entry_id != entry_id:
            raise QueueOrderError(f"Entry {entry_id} is not at the tail of the queue")
        tail = self._entries[-1]
        updated = self._entries[:-1]
        self._persist(updated)
        self._entries = updated
        return tail
