"""FastAPI application serving the shared note collection."""

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import StorageError
from ..notes import Note, encode_notes, parse_notes_or_empty
from ..storage import BlobStore
from ..sync.remote import DEFAULT_SNAPSHOT_NAME

logger = logging.getLogger(__name__)


class NotePayload(BaseModel):
    """A note as it appears on the wire."""

    id: str
    title: str
    content: str
    createdAt: int
    updatedAt: int

    def to_note(self) -> Note:
        return Note(
            id=self.id,
            title=self.title,
            content=self.content,
            created_at=self.createdAt,
            updated_at=self.updatedAt,
        )


def create_app(
    blob_store: BlobStore,
    snapshot_name: str = DEFAULT_SNAPSHOT_NAME,
) -> FastAPI:
    """Create the sync server application.

    The server keeps no state of its own: every request reads or replaces
    the snapshot blob, and the last POST wins.

    Args:
        blob_store: Storage holding the server's collection.
        snapshot_name: Blob name of the collection.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="notesync server",
        description="Whole-collection note storage for notesync clients",
        version="0.1.0",
    )

    app.state.blob_store = blob_store
    app.state.snapshot_name = snapshot_name

    @app.get("/notes")
    async def get_notes() -> list[dict[str, Any]]:
        """Return the full collection."""
        try:
            content = await blob_store.read(snapshot_name)
        except StorageError as e:
            logger.error(f"Failed to read {snapshot_name}: {e}")
            content = None

        notes = parse_notes_or_empty(content)
        return [n.to_dict() for n in notes]

    @app.post("/notes")
    async def post_notes(payload: list[NotePayload]):
        """Replace the full collection."""
        notes = [p.to_note() for p in payload]
        try:
            await blob_store.write(snapshot_name, encode_notes(notes))
        except StorageError as e:
            logger.error(f"Failed to store {len(notes)} notes: {e}")
            return JSONResponse(status_code=500, content={"success": False})

        logger.info(f"Stored {len(notes)} notes")
        return {"success": True}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness check."""
        return {"status": "ok"}

    return app
