"""Local note collection persisted to a durable blob on every mutation."""

import asyncio
import logging
from typing import Any, Callable, Iterable

from ..errors import MalformedNotesError, StorageError
from ..storage import BlobStore
from .note import Note, decode_notes, dedupe_notes, encode_notes

logger = logging.getLogger(__name__)

DEFAULT_NOTES_NAME = "notes.json"

Snapshot = tuple[Note, ...]
SnapshotCallback = Callable[[Snapshot], None]


class Subscription:
    """Handle returned by ``NoteStore.subscribe``."""

    def __init__(self, store: "NoteStore", callback: SnapshotCallback):
        self._store = store
        self.callback = callback

    @property
    def active(self) -> bool:
        return self in self._store._subscribers

    def unsubscribe(self) -> None:
        """Stop receiving snapshots. Safe to call more than once."""
        if self.active:
            self._store._subscribers.remove(self)


class NoteStore:
    """Owns the in-process note collection.

    Every mutation is written to the blob before it becomes visible in
    memory, so a failed write leaves the previous state in place and raises
    ``StorageError``. Reads of the blob never raise: missing or corrupt data
    loads as an empty collection.

    Observers registered with ``subscribe`` receive the full collection after
    each change, and the current collection immediately on subscription.
    """

    def __init__(self, blob_store: BlobStore, notes_name: str = DEFAULT_NOTES_NAME):
        """Initialize the store.

        Args:
            blob_store: Durable storage for the collection.
            notes_name: Blob name the collection is stored under.
        """
        self._blobs = blob_store
        self.notes_name = notes_name
        self._notes: list[Note] = []
        self._subscribers: list[Subscription] = []
        self._lock = asyncio.Lock()

    # ==================== Persistence ====================

    async def load(self) -> None:
        """Replace the in-memory collection with the persisted one."""
        async with self._lock:
            try:
                content = await self._blobs.read(self.notes_name)
            except StorageError as e:
                logger.warning(f"Could not read {self.notes_name}, starting empty: {e}")
                content = None

            notes: list[Note] = []
            if content is not None and content.strip():
                try:
                    notes = dedupe_notes(decode_notes(content))
                except MalformedNotesError as e:
                    logger.warning(f"Ignoring malformed {self.notes_name}: {e}")

            self._commit(notes)
            logger.info(f"Loaded {len(notes)} notes from {self.notes_name}")

    async def _persist(self, notes: list[Note]) -> None:
        await self._blobs.write(self.notes_name, encode_notes(notes))

    def _commit(self, notes: list[Note]) -> None:
        self._notes = notes
        self._notify()

    # ==================== Mutations ====================

    async def create(self, title: str, content: str) -> Note:
        """Create, persist and return a new note."""
        async with self._lock:
            note = Note.create(title, content)
            notes = [*self._notes, note]
            await self._persist(notes)
            self._commit(notes)

        logger.debug(f"Created note {note.id}")
        return note

    async def update(self, note_id: str, title: str, content: str) -> bool:
        """Replace a note's title and content.

        Returns:
            False if no note has this id, True once the edit is persisted.
        """
        async with self._lock:
            index = self._index_of(note_id)
            if index is None:
                return False

            notes = list(self._notes)
            notes[index] = notes[index].updated(title, content)
            await self._persist(notes)
            self._commit(notes)

        logger.debug(f"Updated note {note_id}")
        return True

    async def delete(self, note_id: str) -> bool:
        """Remove a note.

        Returns:
            False if no note has this id, True once the removal is persisted.
        """
        async with self._lock:
            if self._index_of(note_id) is None:
                return False

            notes = [n for n in self._notes if n.id != note_id]
            await self._persist(notes)
            self._commit(notes)

        logger.debug(f"Deleted note {note_id}")
        return True

    async def replace_all(self, notes: Iterable[Note]) -> None:
        """Swap in an entire collection, e.g. a reconciliation result."""
        async with self._lock:
            new_notes = dedupe_notes(notes)
            await self._persist(new_notes)
            self._commit(new_notes)

        logger.debug(f"Replaced collection with {len(new_notes)} notes")

    # ==================== Reads ====================

    def _index_of(self, note_id: str) -> int | None:
        for i, note in enumerate(self._notes):
            if note.id == note_id:
                return i
        return None

    def get_by_id(self, note_id: str) -> Note | None:
        index = self._index_of(note_id)
        return self._notes[index] if index is not None else None

    def get_all(self) -> list[Note]:
        return list(self._notes)

    @property
    def count(self) -> int:
        return len(self._notes)

    def get_stats(self) -> dict[str, Any]:
        """Summary of the collection for status output."""
        return {
            "notes_name": self.notes_name,
            "note_count": len(self._notes),
            "last_updated_at": max((n.updated_at for n in self._notes), default=None),
        }

    # ==================== Observation ====================

    def subscribe(self, callback: SnapshotCallback) -> Subscription:
        """Register an observer; it is called with the current snapshot right away."""
        subscription = Subscription(self, callback)
        self._subscribers.append(subscription)
        self._deliver(subscription, tuple(self._notes))
        return subscription

    def _notify(self) -> None:
        snapshot = tuple(self._notes)
        for subscription in list(self._subscribers):
            self._deliver(subscription, snapshot)

    def _deliver(self, subscription: Subscription, snapshot: Snapshot) -> None:
        try:
            subscription.callback(snapshot)
        except Exception as e:
            logger.error(f"Snapshot observer failed: {e}", exc_info=True)
