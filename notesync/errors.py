"""Exception hierarchy for notesync."""


class NotesyncError(Exception):
    """Base class for all notesync errors."""


class StorageError(NotesyncError):
    """The local durable store could not be read or written."""


class RemoteUnavailable(NotesyncError):
    """The remote endpoint could not be reached or answered with an error."""


class MalformedNotesError(NotesyncError):
    """Stored or received content is not a valid list of notes."""
