"""Tag domain model."""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone


class TagCreate(BaseModel):
    """Payload for creating a tag."""
    name: str
    color: Optional[str] = None


class TagRename(BaseModel):
    """Payload for renaming a tag."""
    name: str


class TagAssign(BaseModel):
    """Payload for attaching a tag (by name) to a note."""
    tag_name: str


class TagMerge(BaseModel):
    """Payload for merging one tag into another."""
    target_id: str


class Tag(BaseModel):
    """A tag. ``note_count`` is computed by the backend and never authoritative locally."""
    id: str
    name: str
    color: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    note_count: int = 0


class TagStatistics(BaseModel):
    """Aggregate tag usage as reported by the backend."""
    total_tags: int = 0
    tags_with_notes: int = 0
    unused_tags: int = 0
    most_used_tags: list[Tag] = Field(default_factory=list)
