"""Note domain models."""

from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime

from notecache.models.domain.tag import Tag
from notecache.models.enums import NoteState


class NoteCreate(BaseModel):
    """Payload for creating a note. Omitted fields take backend defaults."""
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[list[str]] = None


class NoteSave(BaseModel):
    """Payload for saving a note's title and content."""
    id: str
    title: str
    content: str


class NoteUpdate(BaseModel):
    """Body for the save route; the id comes from the path."""
    title: str
    content: str


class SearchRequest(BaseModel):
    """Full-text note search, optionally restricted to one tag name."""
    query: str
    tag_filter: Optional[str] = None


class Note(BaseModel):
    """A note record. ``content`` is absent in list views and loaded lazily."""
    id: str
    title: str = ""
    content: Optional[str] = None
    created_at: datetime
    modified_at: datetime
    is_favorite: bool = False
    is_trashed: bool = False
    is_deleted: bool = False
    tag_ids: set[str] = Field(default_factory=set)

    @model_validator(mode="after")
    def deleted_implies_trashed(self):
        if self.is_deleted and not self.is_trashed:
            raise ValueError("a deleted note must also be trashed")
        return self

    @property
    def state(self) -> NoteState:
        if self.is_deleted:
            return NoteState.DELETED
        if self.is_trashed:
            return NoteState.TRASHED
        return NoteState.ACTIVE


class NoteContent(Note):
    """A fully loaded note with its resolved tags; the open-note shape."""
    content: str = ""
    tags: list[Tag] = Field(default_factory=list)

    @model_validator(mode="after")
    def sync_tag_ids(self):
        if self.tags and not self.tag_ids:
            self.tag_ids = {t.id for t in self.tags}
        return self

    def to_list_item(self) -> "NoteWithTags":
        note = Note(
            **self.model_dump(exclude={"tags", "tag_ids"}),
            tag_ids={t.id for t in self.tags},
        )
        return NoteWithTags(note=note, tags=list(self.tags))


class NoteWithTags(BaseModel):
    """A list-view note joined with its tags."""
    note: Note
    tags: list[Tag] = Field(default_factory=list)

    @property
    def id(self) -> str:
        return self.note.id

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags]
