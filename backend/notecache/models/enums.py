"""
Enum definitions for notecache.
"""
from enum import Enum


class NoteState(str, Enum):
    """Lifecycle state of a note, derived from its trashed/deleted flags."""
    ACTIVE = "active"
    TRASHED = "trashed"
    DELETED = "deleted"


class SidebarView(str, Enum):
    """Which slice of the note list the sidebar has selected."""
    ALL = "all"
    FAVORITES = "favorites"
    TAGS = "tags"
    UNTAGGED = "untagged"
    TRASH = "trash"


# Pseudo tag selected when no tag filter is active.
ALL_NOTES = "All Notes"


def normalize_tag_name(name: str) -> str:
    """
    Clean a tag name for storage and display.

    Surrounding whitespace is dropped and inner runs of whitespace collapse to
    one space. Case is preserved.

    Examples:
        "  Home " -> "Home"
        "To   Read" -> "To Read"
    """
    return " ".join(name.split())


def tag_key(name: str) -> str:
    """Comparison key for tag names; uniqueness is case-insensitive."""
    return normalize_tag_name(name).casefold()
