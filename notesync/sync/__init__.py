"""Synchronization of the local note store with a remote endpoint.

Push sends the whole local collection, pull installs the remote collection,
and sync merges both sides by Last-Write-Wins. An unreachable remote falls
back to a locally stored snapshot of the last known server state.
"""

from .engine import SyncEngine, SyncResult, SyncStatus, merge_notes
from .refresher import BackgroundSync
from .remote import DEFAULT_SNAPSHOT_NAME, BlobRemote, HttpRemote, RemoteEndpoint

__all__ = [
    "DEFAULT_SNAPSHOT_NAME",
    "BackgroundSync",
    "BlobRemote",
    "HttpRemote",
    "RemoteEndpoint",
    "SyncEngine",
    "SyncResult",
    "SyncStatus",
    "merge_notes",
]
