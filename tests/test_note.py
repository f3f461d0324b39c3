"""Tests for the Note record and its codec."""

import json
import pytest
from unittest.mock import patch

from notesync.errors import MalformedNotesError
from notesync.notes import (
    Note,
    decode_notes,
    dedupe_notes,
    encode_notes,
    parse_notes_or_empty,
)


def make_note(note_id: str = "n1", updated_at: int = 100, title: str = "t") -> Note:
    return Note(id=note_id, title=title, content="c", created_at=50, updated_at=updated_at)


class TestNoteCreate:
    """Tests for creating notes."""

    def test_create_sets_equal_timestamps(self):
        """Test a fresh note has updated_at == created_at."""
        note = Note.create("Title", "Content")

        assert note.title == "Title"
        assert note.content == "Content"
        assert note.created_at == note.updated_at
        assert note.id

    def test_create_generates_unique_ids(self):
        """Test every created note gets its own id."""
        ids = {Note.create("t", "c").id for _ in range(1000)}
        assert len(ids) == 1000

    def test_id_is_128_bit_hex(self):
        """Test ids are 32 hex characters."""
        note = Note.create("t", "c")
        assert len(note.id) == 32
        int(note.id, 16)

    def test_note_is_immutable(self):
        """Test fields cannot be reassigned."""
        note = Note.create("t", "c")
        with pytest.raises(AttributeError):
            note.title = "other"


class TestNoteUpdate:
    """Tests for editing notes."""

    def test_updated_keeps_identity(self):
        """Test id and created_at survive an edit."""
        original = Note.create("Original", "Body")
        edited = original.updated("New", "New body")

        assert edited.id == original.id
        assert edited.created_at == original.created_at
        assert edited.title == "New"
        assert edited.content == "New body"

    def test_updated_strictly_increases_clock(self):
        """Test updated_at moves forward even within the same millisecond."""
        original = Note.create("t", "c")

        with patch("notesync.notes.note.now_ms", return_value=original.updated_at):
            edited = original.updated("t2", "c2")

        assert edited.updated_at > original.updated_at

    def test_updated_uses_wall_clock_when_ahead(self):
        """Test updated_at follows the wall clock when it has advanced."""
        original = make_note(updated_at=100)

        with patch("notesync.notes.note.now_ms", return_value=5000):
            edited = original.updated("t2", "c2")

        assert edited.updated_at == 5000

    def test_original_unchanged(self):
        """Test editing returns a copy."""
        original = make_note()
        original.updated("other", "other")
        assert original.title == "t"


class TestNoteCodec:
    """Tests for JSON encoding and decoding."""

    def test_to_dict_uses_wire_names(self):
        """Test the wire format uses camelCase timestamps."""
        d = make_note().to_dict()

        assert d == {
            "id": "n1",
            "title": "t",
            "content": "c",
            "createdAt": 50,
            "updatedAt": 100,
        }

    def test_from_dict_ignores_unknown_keys(self):
        """Test extra fields are ignored."""
        data = make_note().to_dict()
        data["color"] = "red"

        assert Note.from_dict(data) == make_note()

    def test_from_dict_missing_field(self):
        """Test a missing field is reported as malformed."""
        data = make_note().to_dict()
        del data["updatedAt"]

        with pytest.raises(MalformedNotesError):
            Note.from_dict(data)

    def test_from_dict_rejects_string_timestamp(self):
        """Test timestamps must be integers."""
        data = make_note().to_dict()
        data["createdAt"] = "50"

        with pytest.raises(MalformedNotesError):
            Note.from_dict(data)

    def test_from_dict_rejects_backwards_timestamps(self):
        """Test updatedAt earlier than createdAt is malformed."""
        data = make_note().to_dict()
        data["updatedAt"] = 49

        with pytest.raises(MalformedNotesError):
            Note.from_dict(data)

    def test_encode_decode(self):
        """Test a collection survives encoding."""
        notes = [make_note("a", 60), make_note("b", 70, title="제목")]

        text = encode_notes(notes)

        assert json.loads(text)[1]["title"] == "제목"
        assert decode_notes(text) == notes

    def test_decode_empty_array(self):
        """Test '[]' decodes to an empty list."""
        assert decode_notes("[]") == []

    @pytest.mark.parametrize("text", ["{not json", '{"id": "x"}', "[1, 2]", '[{"id": "x"}]'])
    def test_decode_malformed(self, text):
        """Test malformed content raises MalformedNotesError."""
        with pytest.raises(MalformedNotesError):
            decode_notes(text)

    @pytest.mark.parametrize("text", [None, "", "   \n", "garbage", '{"a": 1}'])
    def test_parse_or_empty(self, text):
        """Test absent, blank and malformed content all read as empty."""
        assert parse_notes_or_empty(text) == []


class TestDedupe:
    """Tests for collapsing duplicate ids."""

    def test_keeps_newest(self):
        """Test the newest copy of an id wins."""
        old = make_note("x", 100, title="old")
        new = make_note("x", 200, title="new")

        assert dedupe_notes([new, old]) == [new]
        assert dedupe_notes([old, new]) == [new]

    def test_tie_keeps_later_entry(self):
        """Test equal timestamps keep the later entry."""
        first = make_note("x", 100, title="first")
        second = make_note("x", 100, title="second")

        assert dedupe_notes([first, second]) == [second]

    def test_preserves_first_position(self):
        """Test order follows first appearance."""
        a = make_note("a")
        b = make_note("b")
        a2 = make_note("a", 300)

        assert [n.id for n in dedupe_notes([a, b, a2])] == ["a", "b"]
