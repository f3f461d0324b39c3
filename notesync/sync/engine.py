"""Sync engine reconciling the local note store with a remote endpoint.

Three operations, each safe to repeat:

- push: send the full local collection to the remote.
- pull: install the remote collection locally (the remote is authoritative,
  local-only notes are dropped).
- sync: push, then merge local and remote by Last-Write-Wins so offline edits
  are never lost.

When the remote is unreachable the engine degrades to a local snapshot blob
that records the last known server state. Only local storage failures make an
operation fail.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from ..errors import RemoteUnavailable, StorageError
from ..notes import Note, NoteStore, encode_notes, parse_notes_or_empty
from ..storage import BlobStore
from .remote import DEFAULT_SNAPSHOT_NAME, RemoteEndpoint

logger = logging.getLogger(__name__)


class SyncStatus(Enum):
    """Status of a sync operation."""

    SUCCESS = "success"
    OFFLINE = "offline"  # Remote unavailable, local snapshot used
    FAILED = "failed"


@dataclass
class SyncResult:
    """Result of a sync operation."""

    status: SyncStatus
    notes_pushed: int = 0
    notes_pulled: int = 0
    error: str | None = None
    timestamp: datetime | None = None

    @property
    def ok(self) -> bool:
        """True unless the operation failed; offline fallback counts as success."""
        return self.status != SyncStatus.FAILED


def merge_notes(local: Iterable[Note], remote: Iterable[Note]) -> list[Note]:
    """Merge two collections by id with Last-Write-Wins.

    Ids present on one side only are kept as-is. For ids on both sides the
    note with the strictly greater ``updated_at`` wins; equal timestamps keep
    the remote note. Remote notes come first in remote order, followed by
    local-only notes in local order.
    """
    merged: dict[str, Note] = {}
    for note in remote:
        merged[note.id] = note

    for note in local:
        current = merged.get(note.id)
        if current is None or note.updated_at > current.updated_at:
            merged[note.id] = note

    return list(merged.values())


class SyncEngine:
    """Reconciles a ``NoteStore`` against a ``RemoteEndpoint``."""

    def __init__(
        self,
        store: NoteStore,
        remote: RemoteEndpoint,
        blob_store: BlobStore,
        snapshot_name: str = DEFAULT_SNAPSHOT_NAME,
    ):
        """Initialize the sync engine.

        Args:
            store: Local note collection.
            remote: The other side of the synchronization.
            blob_store: Local storage holding the last-known server snapshot.
            snapshot_name: Blob name of that snapshot.
        """
        self.store = store
        self.remote = remote
        self._blobs = blob_store
        self.snapshot_name = snapshot_name
        self._last_sync: datetime | None = None
        self._last_status: SyncStatus | None = None
        self._consecutive_offline = 0

    # ==================== Snapshot helpers ====================

    async def _write_snapshot(self, payload: str) -> None:
        await self._blobs.write(self.snapshot_name, payload)

    async def _read_snapshot(self) -> list[Note]:
        content = await self._blobs.read(self.snapshot_name)
        return parse_notes_or_empty(content)

    async def _fetch_remote(self) -> tuple[list[Note], bool]:
        """Fetch the remote collection, falling back to the snapshot.

        Returns:
            Tuple of (notes, online).

        Raises:
            StorageError: If the remote is down and the snapshot is unreadable.
        """
        try:
            notes = await self.remote.fetch_all()
        except RemoteUnavailable as e:
            logger.warning(f"Remote {self.remote.describe()} unavailable, using local snapshot: {e}")
            return await self._read_snapshot(), False

        return notes, True

    def _finish(self, result: SyncResult) -> SyncResult:
        result.timestamp = datetime.now()
        self._last_status = result.status
        if result.status == SyncStatus.OFFLINE:
            self._consecutive_offline += 1
        elif result.status == SyncStatus.SUCCESS:
            self._consecutive_offline = 0
        if result.ok:
            self._last_sync = result.timestamp
        return result

    def _failed(self, operation: str, error: Exception) -> SyncResult:
        logger.error(f"{operation} failed: {error}")
        return self._finish(SyncResult(status=SyncStatus.FAILED, error=str(error)))

    # ==================== Operations ====================

    async def push(self) -> SyncResult:
        """Send the full local collection to the remote.

        Falls back to writing the local snapshot when the remote is down.
        """
        return self._finish(await self._push_once())

    async def _push_once(self) -> SyncResult:
        notes = self.store.get_all()
        payload = encode_notes(notes)
        logger.debug(f"Pushing {len(notes)} notes ({len(payload)} chars)")

        try:
            try:
                await self.remote.replace_all(notes)
            except RemoteUnavailable as e:
                logger.warning(f"Push to {self.remote.describe()} failed, saving snapshot locally: {e}")
                await self._write_snapshot(payload)
                return SyncResult(status=SyncStatus.OFFLINE, notes_pushed=len(notes), error=str(e))

            try:
                await self._write_snapshot(payload)
            except StorageError as e:
                logger.warning(f"Pushed to remote but could not refresh snapshot: {e}")

            return SyncResult(status=SyncStatus.SUCCESS, notes_pushed=len(notes))

        except Exception as e:
            logger.error(f"Push failed: {e}")
            return SyncResult(status=SyncStatus.FAILED, error=str(e))

    async def pull(self) -> SyncResult:
        """Replace the local collection with the remote one."""
        try:
            notes, online = await self._fetch_remote()
            if online:
                await self._refresh_snapshot(notes)

            await self.store.replace_all(notes)

        except Exception as e:
            return self._failed("Pull", e)

        logger.debug(f"Pulled {len(notes)} notes ({'online' if online else 'offline'})")
        return self._finish(
            SyncResult(
                status=SyncStatus.SUCCESS if online else SyncStatus.OFFLINE,
                notes_pulled=len(notes),
            )
        )

    async def sync(self) -> SyncResult:
        """Push, then merge remote and local by Last-Write-Wins."""
        push_result = await self._push_once()
        if not push_result.ok:
            return self._finish(push_result)

        try:
            remote_notes, online = await self._fetch_remote()
            if online:
                await self._refresh_snapshot(remote_notes)

            merged = merge_notes(self.store.get_all(), remote_notes)
            await self.store.replace_all(merged)

        except Exception as e:
            return self._failed("Sync", e)

        status = (
            SyncStatus.SUCCESS
            if online and push_result.status == SyncStatus.SUCCESS
            else SyncStatus.OFFLINE
        )
        logger.info(
            f"Sync: {status.value}, pushed={push_result.notes_pushed}, "
            f"remote={len(remote_notes)}, merged={len(merged)}"
        )
        return self._finish(
            SyncResult(
                status=status,
                notes_pushed=push_result.notes_pushed,
                notes_pulled=len(remote_notes),
            )
        )

    async def _refresh_snapshot(self, notes: list[Note]) -> None:
        """Record a freshly fetched server state; failures are only logged."""
        try:
            await self._write_snapshot(encode_notes(notes))
        except StorageError as e:
            logger.warning(f"Could not refresh local snapshot: {e}")

    # ==================== Status ====================

    @property
    def last_sync(self) -> datetime | None:
        """Timestamp of the last operation that did not fail."""
        return self._last_sync

    def get_sync_status(self) -> dict[str, Any]:
        """Get current sync status.

        Returns:
            Dictionary with sync statistics.
        """
        return {
            "remote": self.remote.describe(),
            "snapshot_name": self.snapshot_name,
            "last_sync": self._last_sync.isoformat() if self._last_sync else None,
            "last_status": self._last_status.value if self._last_status else None,
            "consecutive_offline": self._consecutive_offline,
            "local_notes": self.store.count,
        }
