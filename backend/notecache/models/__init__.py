"""
notecache models.

Usage:
    from notecache.models import Note, NoteContent, NoteWithTags, Tag
    from notecache.models import NoteState, SidebarView, normalize_tag_name
    from notecache.models import NoteCreated, TagsChanged
"""

# --- Enums & utilities ---
from notecache.models.enums import (
    NoteState,
    SidebarView,
    ALL_NOTES,
    normalize_tag_name,
    tag_key,
)

# --- Domain models ---
from notecache.models.domain import (
    Tag, TagCreate, TagRename, TagAssign, TagMerge, TagStatistics,
    Note, NoteContent, NoteWithTags, NoteCreate, NoteSave, NoteUpdate, SearchRequest,
)

# --- Events ---
from notecache.models.events import (
    Event, NoteEvent,
    NoteCreated, NoteUpdated, NoteTrashed, NoteRestored, NotePermanentlyDeleted,
    TagsChanged,
)

__all__ = [
    # Enums
    "NoteState", "SidebarView", "ALL_NOTES", "normalize_tag_name", "tag_key",
    # Domain
    "Tag", "TagCreate", "TagRename", "TagAssign", "TagMerge", "TagStatistics",
    "Note", "NoteContent", "NoteWithTags", "NoteCreate", "NoteSave", "NoteUpdate",
    "SearchRequest",
    # Events
    "Event", "NoteEvent",
    "NoteCreated", "NoteUpdated", "NoteTrashed", "NoteRestored", "NotePermanentlyDeleted",
    "TagsChanged",
]
