"""Domain models: notes and tags."""

from notecache.models.domain.tag import (
    Tag, TagCreate, TagRename, TagAssign, TagMerge, TagStatistics,
)
from notecache.models.domain.note import (
    Note, NoteContent, NoteWithTags, NoteCreate, NoteSave, NoteUpdate, SearchRequest,
)

__all__ = [
    "Tag", "TagCreate", "TagRename", "TagAssign", "TagMerge", "TagStatistics",
    "Note", "NoteContent", "NoteWithTags", "NoteCreate", "NoteSave", "NoteUpdate",
    "SearchRequest",
]
