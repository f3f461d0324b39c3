"""Offline-first note synchronization with Last-Write-Wins reconciliation."""

from .errors import MalformedNotesError, NotesyncError, RemoteUnavailable, StorageError
from .notes import Note, NoteStore
from .sync import SyncEngine, SyncResult, SyncStatus, merge_notes

__version__ = "0.1.0"

__all__ = [
    "MalformedNotesError",
    "Note",
    "NoteStore",
    "NotesyncError",
    "RemoteUnavailable",
    "StorageError",
    "SyncEngine",
    "SyncResult",
    "SyncStatus",
    "merge_notes",
]
