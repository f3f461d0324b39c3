"""Durable blob storage: whole-content read/write keyed by name."""

import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from ..errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_ROOT = "~/.note-app"

# Returns the directory blobs live in
StorageRootResolver = Callable[[], Path]


def static_root(path: str | Path = DEFAULT_STORAGE_ROOT) -> StorageRootResolver:
    """Build a resolver for a fixed directory (``~`` is expanded)."""

    def resolve() -> Path:
        return Path(path).expanduser()

    return resolve


class BlobStore(ABC):
    """Abstract durable store of named text blobs."""

    @abstractmethod
    async def read(self, name: str) -> str | None:
        """Read a blob.

        Returns:
            The blob content, or None if it does not exist.

        Raises:
            StorageError: If the blob exists but cannot be read.
        """
        pass

    @abstractmethod
    async def write(self, name: str, content: str) -> None:
        """Replace a blob's content.

        Raises:
            StorageError: If the content could not be stored.
        """
        pass

    @abstractmethod
    async def exists(self, name: str) -> bool:
        """Check whether a blob exists."""
        pass


class FileBlobStore(BlobStore):
    """Blob store backed by one UTF-8 file per name in a single directory."""

    def __init__(self, root_resolver: StorageRootResolver | None = None):
        """Initialize the store and create its directory.

        Args:
            root_resolver: Returns the storage directory. Defaults to
                ``~/.note-app``.

        Raises:
            StorageError: If the storage directory cannot be created.
        """
        resolver = root_resolver or static_root()
        self.root = resolver()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage root {self.root}: {e}") from e

        logger.debug(f"FileBlobStore rooted at {self.root}")

    def _path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise StorageError(f"Invalid blob name: {name!r}")
        return self.root / name

    def _read_sync(self, name: str) -> str | None:
        path = self._path(name)
        try:
            # undecodable bytes become U+FFFD and then fail JSON parsing
            return path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def _write_sync(self, name: str, content: str) -> None:
        path = self._path(name)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    async def read(self, name: str) -> str | None:
        return await asyncio.to_thread(self._read_sync, name)

    async def write(self, name: str, content: str) -> None:
        await asyncio.to_thread(self._write_sync, name, content)
        logger.debug(f"Wrote {len(content)} chars to {name}")

    async def exists(self, name: str) -> bool:
        path = self._path(name)
        return await asyncio.to_thread(path.exists)


class MemoryBlobStore(BlobStore):
    """In-process blob store, with switches for simulating storage failures."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.blobs: dict[str, str] = dict(initial or {})
        self.fail_reads = False
        self.fail_writes = False

    async def read(self, name: str) -> str | None:
        if self.fail_reads:
            raise StorageError(f"Simulated read failure for {name}")
        return self.blobs.get(name)

    async def write(self, name: str, content: str) -> None:
        if self.fail_writes:
            raise StorageError(f"Simulated write failure for {name}")
        self.blobs[name] = content

    async def exists(self, name: str) -> bool:
        return name in self.blobs
