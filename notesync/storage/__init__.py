"""Durable blob storage used for the local collection and the remote snapshot."""

from .blob import (
    DEFAULT_STORAGE_ROOT,
    BlobStore,
    FileBlobStore,
    MemoryBlobStore,
    StorageRootResolver,
    static_root,
)

__all__ = [
    "DEFAULT_STORAGE_ROOT",
    "BlobStore",
    "FileBlobStore",
    "MemoryBlobStore",
    "StorageRootResolver",
    "static_root",
]
