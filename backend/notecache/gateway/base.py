from typing import Protocol

from notecache.models import (
    NoteContent,
    NoteCreate,
    NoteSave,
    NoteWithTags,
    SearchRequest,
    Tag,
    TagCreate,
    TagStatistics,
)


class BackendGateway(Protocol):
    """Async request/response boundary to the notes backend.

    Every method either returns its typed result or raises a
    ``notecache.errors.BackendError``. Implementations keep no local state,
    never retry and never cache.
    """

    async def list_notes(self, include_trash: bool = False) -> list[NoteWithTags]:
        """List notes, most recently modified first; trashed notes only when asked."""
        ...

    async def get_note_content(self, note_id: str) -> NoteContent:
        """Get a note with content and tags. Raises NotFound when absent."""
        ...

    async def create_note(self, data: NoteCreate) -> NoteContent:
        """Create a note; the backend assigns id and timestamps."""
        ...

    async def save_note(self, data: NoteSave) -> None:
        """Save title and content of an active note."""
        ...

    async def delete_note(self, note_id: str) -> None:
        """Move a note to the trash."""
        ...

    async def permanently_delete_note(self, note_id: str) -> None:
        """Remove a trashed note for good."""
        ...

    async def restore_note(self, note_id: str) -> None:
        """Move a trashed note back to the active set."""
        ...

    async def toggle_favorite(self, note_id: str) -> bool:
        """Flip the favorite flag and return the new value."""
        ...

    async def search_notes(self, data: SearchRequest) -> list[NoteWithTags]:
        """Search active notes by text, optionally limited to one tag name."""
        ...

    async def list_tags(self) -> list[Tag]:
        """List all tags with current note counts."""
        ...

    async def create_tag(self, data: TagCreate) -> Tag:
        """Create a tag, or return the existing one with the same name."""
        ...

    async def rename_tag(self, tag_id: str, name: str) -> Tag:
        """Rename a tag. Raises NotFound or ValidationFailed."""
        ...

    async def delete_tag(self, tag_id: str) -> bool:
        """Delete a tag and its note links."""
        ...

    async def add_tag_to_note(self, note_id: str, tag_name: str) -> Tag:
        """Attach a tag by name to a note, creating the tag when needed."""
        ...

    async def remove_tag_from_note(self, note_id: str, tag_id: str) -> bool:
        """Detach a tag from a note."""
        ...

    async def cleanup_unused_tags(self) -> int:
        """Delete tags with no active notes and return how many were removed."""
        ...

    async def search_tags(self, query: str) -> list[Tag]:
        """Find tags whose name contains the query, case-insensitively."""
        ...

    async def get_note_tags(self, note_id: str) -> list[Tag]:
        """Get the tags attached to one note."""
        ...

    async def merge_tags(self, source_id: str, target_id: str) -> Tag:
        """Move every note link from source to target, then delete source."""
        ...

    async def tag_statistics(self, limit: int = 5) -> TagStatistics:
        """Aggregate tag usage with the ``limit`` most used tags."""
        ...
