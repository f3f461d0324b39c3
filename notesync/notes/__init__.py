"""Note records and the local note collection."""

from .note import (
    Note,
    decode_notes,
    dedupe_notes,
    encode_notes,
    new_note_id,
    notes_from_list,
    now_ms,
    parse_notes_or_empty,
)
from .store import NoteStore, Subscription

__all__ = [
    "Note",
    "NoteStore",
    "Subscription",
    "decode_notes",
    "dedupe_notes",
    "encode_notes",
    "new_note_id",
    "notes_from_list",
    "now_ms",
    "parse_notes_or_empty",
]
