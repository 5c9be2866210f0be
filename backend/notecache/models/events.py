"""Lifecycle events carried by the notification bus."""

from pydantic import BaseModel
from typing import Optional

from notecache.models.domain.note import Note


class Event(BaseModel):
    """Base class for every bus event."""

    model_config = {"frozen": True}

    @property
    def kind(self) -> str:
        return type(self).__name__


class NoteEvent(Event):
    """An event about one note, carrying its current representation when known."""
    note_id: str
    note: Optional[Note] = None


class NoteCreated(NoteEvent):
    pass


class NoteUpdated(NoteEvent):
    pass


class NoteTrashed(NoteEvent):
    pass


class NoteRestored(NoteEvent):
    pass


class NotePermanentlyDeleted(NoteEvent):
    pass


class TagsChanged(Event):
    """Pure invalidation signal: tag names or note-tag links changed."""
    pass
