"""HTTP server exposing a note collection to notesync clients.

Requires the ``server`` extra (FastAPI and uvicorn).
"""

from .app import create_app

__all__ = ["create_app"]
