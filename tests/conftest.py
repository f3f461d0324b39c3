"""Shared fixtures for notesync tests."""

import pytest

from notesync.errors import RemoteUnavailable
from notesync.notes import Note, NoteStore
from notesync.storage import MemoryBlobStore
from notesync.sync import RemoteEndpoint, SyncEngine


class FakeRemote(RemoteEndpoint):
    """Scriptable remote.

    ``notes`` is what fetch_all returns. Pushes are recorded in ``pushed``
    and only overwrite ``notes`` when ``echo_pushes`` is set, which lets a
    test model another writer landing between a push and the next fetch.
    """

    def __init__(self, notes: list[Note] | None = None, echo_pushes: bool = True):
        self.notes = list(notes or [])
        self.echo_pushes = echo_pushes
        self.online = True
        self.pushed: list[list[Note]] = []
        self.fetch_count = 0

    def describe(self) -> str:
        return "fake"

    async def fetch_all(self) -> list[Note]:
        if not self.online:
            raise RemoteUnavailable("network down")
        self.fetch_count += 1
        return list(self.notes)

    async def replace_all(self, notes: list[Note]) -> None:
        if not self.online:
            raise RemoteUnavailable("network down")
        self.pushed.append(list(notes))
        if self.echo_pushes:
            self.notes = list(notes)

    async def health_check(self) -> bool:
        return self.online


@pytest.fixture
def blobs():
    """In-memory blob store shared by store and engine."""
    return MemoryBlobStore()


@pytest.fixture
def store(blobs):
    """NoteStore over the shared blobs."""
    return NoteStore(blobs)


@pytest.fixture
def remote():
    """Fake remote that reflects pushes."""
    return FakeRemote()


@pytest.fixture
def engine(store, remote, blobs):
    """SyncEngine wired to the fake remote."""
    return SyncEngine(store, remote, blobs)
