"""Note record and its JSON codec.

Notes are immutable: edits produce a new copy with a fresh ``updated_at``,
which doubles as the logical clock for Last-Write-Wins reconciliation.
"""

import json
import time
import uuid
from dataclasses import dataclass, replace
from typing import Any, Iterable

from ..errors import MalformedNotesError


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def new_note_id() -> str:
    """Generate a 128-bit random note identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Note:
    """A single note."""

    id: str
    title: str
    content: str
    created_at: int  # ms since epoch
    updated_at: int  # ms since epoch

    @classmethod
    def create(cls, title: str, content: str) -> "Note":
        """Create a new note stamped with the current time."""
        now = now_ms()
        return cls(
            id=new_note_id(),
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
        )

    def updated(self, title: str, content: str) -> "Note":
        """Return an edited copy with a strictly newer ``updated_at``.

        The clock is bumped by one millisecond when the wall clock has not
        moved past the previous stamp, so back-to-back edits stay ordered.
        """
        stamp = max(now_ms(), self.updated_at + 1)
        return replace(self, title=title, content=content, updated_at=stamp)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire/disk representation."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Note":
        """Create from the wire/disk representation.

        Unknown keys are ignored.

        Raises:
            MalformedNotesError: If a required field is missing or mistyped, or if
                updatedAt is earlier than createdAt.
        """
        try:
            note = cls(
                id=data["id"],
                title=data["title"],
                content=data["content"],
                created_at=data["createdAt"],
                updated_at=data["updatedAt"],
            )
        except (KeyError, TypeError) as e:
            raise MalformedNotesError(f"Invalid note object: {e}") from e

        if not isinstance(note.id, str) or not note.id:
            raise MalformedNotesError("Note id must be a non-empty string")
        if not isinstance(note.title, str) or not isinstance(note.content, str):
            raise MalformedNotesError(f"Note {note.id}: title/content must be strings")
        for stamp in (note.created_at, note.updated_at):
            # bool is an int subclass; reject it explicitly
            if isinstance(stamp, bool) or not isinstance(stamp, int):
                raise MalformedNotesError(f"Note {note.id}: timestamps must be integers")
        if note.updated_at < note.created_at:
            raise MalformedNotesError(f"Note {note.id}: updatedAt is before createdAt")

        return note


def encode_notes(notes: Iterable[Note]) -> str:
    """Serialize notes as a pretty-printed JSON array."""
    return json.dumps([n.to_dict() for n in notes], indent=2, ensure_ascii=False)


def decode_notes(text: str) -> list[Note]:
    """Parse a JSON array of notes.

    Raises:
        MalformedNotesError: If the text is not a JSON array of notes.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedNotesError(f"Invalid JSON: {e}") from e

    return notes_from_list(data)


def notes_from_list(data: Any) -> list[Note]:
    """Build notes from already-decoded JSON data."""
    if not isinstance(data, list):
        raise MalformedNotesError(f"Expected a JSON array, got {type(data).__name__}")

    notes = []
    for item in data:
        if not isinstance(item, dict):
            raise MalformedNotesError(f"Expected a JSON object, got {type(item).__name__}")
        notes.append(Note.from_dict(item))
    return notes


def parse_notes_or_empty(text: str | None) -> list[Note]:
    """Parse stored notes, treating absent, blank or malformed content as empty."""
    if text is None or not text.strip():
        return []
    try:
        return decode_notes(text)
    except MalformedNotesError:
        return []


def dedupe_notes(notes: Iterable[Note]) -> list[Note]:
    """Collapse duplicate ids, keeping the newest copy.

    Equal timestamps keep the later entry. First-seen position is preserved.
    """
    by_id: dict[str, Note] = {}
    for note in notes:
        current = by_id.get(note.id)
        if current is None or note.updated_at >= current.updated_at:
            by_id[note.id] = note
    return list(by_id.values())
