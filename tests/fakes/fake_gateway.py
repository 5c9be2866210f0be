import asyncio
from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone
from typing import Deque, Dict, List, Optional

from notecache.errors import BackendError, NotFound, ValidationFailed
from notecache.models import (
    NoteContent,
    NoteCreate,
    NoteSave,
    NoteWithTags,
    SearchRequest,
    Tag,
    TagCreate,
    TagStatistics,
    normalize_tag_name,
    tag_key,
)


class Gate:
    """Holds one gateway call until the test releases it."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.released = asyncio.Event()

    def release(self) -> None:
        self.released.set()


class FakeGateway:
    """In-memory Backend Gateway for testing.

    ``fail(op, error)`` makes the next call to ``op`` raise. ``hold(op)`` queues
    a gate; the next call to ``op`` computes its response, then waits on the
    gate before returning it.
    """

    def __init__(self) -> None:
        self.notes: Dict[str, NoteContent] = {}
        self.tags: Dict[str, Tag] = {}
        self.links: set[tuple[str, str]] = set()
        self.calls: List[str] = []
        self._failures: Dict[str, BackendError] = {}
        self._gates: Dict[str, Deque[Gate]] = defaultdict(deque)
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._ids = 0

    # ── Test controls ──

    def fail(self, op: str, error: BackendError) -> None:
        self._failures[op] = error

    def hold(self, op: str) -> Gate:
        gate = Gate()
        self._gates[op].append(gate)
        return gate

    def count(self, op: str) -> int:
        return self.calls.count(op)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _next_id(self, prefix: str) -> str:
        self._ids += 1
        return f"{prefix}-{self._ids}"

    def _record(self, op: str) -> None:
        self.calls.append(op)
        error = self._failures.pop(op, None)
        if error is not None:
            raise error

    async def _wait(self, op: str) -> None:
        if self._gates[op]:
            gate = self._gates[op].popleft()
            gate.entered.set()
            await gate.released.wait()

    def _note(self, note_id: str) -> NoteContent:
        if note_id not in self.notes:
            raise NotFound("Note", note_id)
        return self.notes[note_id]

    def _counted(self, tag: Tag) -> Tag:
        count = sum(
            1 for note_id, tag_id in self.links
            if tag_id == tag.id and not self.notes[note_id].is_trashed
        )
        return tag.model_copy(update={"note_count": count})

    def _tags_of(self, note_id: str) -> List[Tag]:
        tags = [self._counted(self.tags[t]) for n, t in self.links if n == note_id]
        return sorted(tags, key=lambda t: tag_key(t.name))

    def _content(self, note_id: str) -> NoteContent:
        tags = self._tags_of(note_id)
        return self._note(note_id).model_copy(
            update={"tags": tags, "tag_ids": {t.id for t in tags}}
        )

    def _item(self, note_id: str) -> NoteWithTags:
        return self._content(note_id).to_list_item()

    def _find_or_create_tag(self, name: str, color: Optional[str] = None) -> Tag:
        clean = normalize_tag_name(name)
        if not clean:
            raise ValidationFailed("Tag name must not be empty")
        for tag in self.tags.values():
            if tag_key(tag.name) == tag_key(clean):
                return tag
        tag = Tag(id=self._next_id("tag"), name=clean, color=color, created_at=self._tick())
        self.tags[tag.id] = tag
        return tag

    # ── Notes ──

    async def list_notes(self, include_trash: bool = False) -> List[NoteWithTags]:
        self._record("list_notes")
        items = [
            self._item(n.id) for n in self.notes.values()
            if include_trash or not n.is_trashed
        ]
        items.sort(key=lambda i: i.note.modified_at, reverse=True)
        await self._wait("list_notes")
        return items

    async def get_note_content(self, note_id: str) -> NoteContent:
        self._record("get_note_content")
        content = self._content(note_id)
        await self._wait("get_note_content")
        return content

    async def create_note(self, data: NoteCreate) -> NoteContent:
        self._record("create_note")
        now = self._tick()
        note = NoteContent(
            id=self._next_id("note"),
            title=(data.title or "").strip() or "Untitled",
            content=data.content or "",
            created_at=now,
            modified_at=now,
        )
        self.notes[note.id] = note
        for name in data.tags or []:
            self.links.add((note.id, self._find_or_create_tag(name).id))
        await self._wait("create_note")
        return self._content(note.id)

    async def save_note(self, data: NoteSave) -> None:
        self._record("save_note")
        note = self._note(data.id)
        if note.is_trashed:
            raise ValidationFailed("note is in the trash")
        self.notes[data.id] = note.model_copy(
            update={"title": data.title, "content": data.content, "modified_at": self._tick()}
        )
        await self._wait("save_note")

    async def delete_note(self, note_id: str) -> None:
        self._record("delete_note")
        note = self._note(note_id)
        self.notes[note_id] = note.model_copy(update={"is_trashed": True, "modified_at": self._tick()})
        await self._wait("delete_note")

    async def permanently_delete_note(self, note_id: str) -> None:
        self._record("permanently_delete_note")
        if not self._note(note_id).is_trashed:
            raise ValidationFailed("note must be trashed first")
        del self.notes[note_id]
        self.links = {(n, t) for n, t in self.links if n != note_id}
        await self._wait("permanently_delete_note")

    async def restore_note(self, note_id: str) -> None:
        self._record("restore_note")
        note = self._note(note_id)
        self.notes[note_id] = note.model_copy(update={"is_trashed": False, "modified_at": self._tick()})
        await self._wait("restore_note")

    async def toggle_favorite(self, note_id: str) -> bool:
        self._record("toggle_favorite")
        note = self._note(note_id)
        self.notes[note_id] = note.model_copy(update={"is_favorite": not note.is_favorite})
        await self._wait("toggle_favorite")
        return not note.is_favorite

    async def search_notes(self, data: SearchRequest) -> List[NoteWithTags]:
        self._record("search_notes")
        needle = data.query.strip().lower()
        results = []
        for note in self.notes.values():
            if note.is_trashed:
                continue
            if needle and needle not in note.title.lower() and needle not in note.content.lower():
                continue
            if data.tag_filter and tag_key(data.tag_filter) not in {
                tag_key(t.name) for t in self._tags_of(note.id)
            }:
                continue
            results.append(self._item(note.id))
        await self._wait("search_notes")
        return results

    # ── Tags ──

    async def list_tags(self) -> List[Tag]:
        self._record("list_tags")
        tags = sorted((self._counted(t) for t in self.tags.values()), key=lambda t: tag_key(t.name))
        await self._wait("list_tags")
        return tags

    async def create_tag(self, data: TagCreate) -> Tag:
        self._record("create_tag")
        return self._counted(self._find_or_create_tag(data.name, data.color))

    async def rename_tag(self, tag_id: str, name: str) -> Tag:
        self._record("rename_tag")
        if tag_id not in self.tags:
            raise NotFound("Tag", tag_id)
        clean = normalize_tag_name(name)
        for other in self.tags.values():
            if other.id != tag_id and tag_key(other.name) == tag_key(clean):
                raise ValidationFailed(f"Tag with name '{clean}' already exists")
        self.tags[tag_id] = self.tags[tag_id].model_copy(update={"name": clean})
        return self._counted(self.tags[tag_id])

    async def delete_tag(self, tag_id: str) -> bool:
        self._record("delete_tag")
        if self.tags.pop(tag_id, None) is None:
            return False
        self.links = {(n, t) for n, t in self.links if t != tag_id}
        return True

    async def add_tag_to_note(self, note_id: str, tag_name: str) -> Tag:
        self._record("add_tag_to_note")
        self._note(note_id)
        tag = self._find_or_create_tag(tag_name)
        self.links.add((note_id, tag.id))
        return self._counted(tag)

    async def remove_tag_from_note(self, note_id: str, tag_id: str) -> bool:
        self._record("remove_tag_from_note")
        if (note_id, tag_id) not in self.links:
            return False
        self.links.discard((note_id, tag_id))
        return True

    async def cleanup_unused_tags(self) -> int:
        self._record("cleanup_unused_tags")
        unused = [t.id for t in self.tags.values() if self._counted(t).note_count == 0]
        for tag_id in unused:
            del self.tags[tag_id]
        self.links = {(n, t) for n, t in self.links if t in self.tags}
        return len(unused)

    async def search_tags(self, query: str) -> List[Tag]:
        self._record("search_tags")
        key = tag_key(query)
        return [self._counted(t) for t in self.tags.values() if key in tag_key(t.name)]

    async def get_note_tags(self, note_id: str) -> List[Tag]:
        self._record("get_note_tags")
        self._note(note_id)
        return self._tags_of(note_id)

    async def merge_tags(self, source_id: str, target_id: str) -> Tag:
        self._record("merge_tags")
        for tag_id in (source_id, target_id):
            if tag_id not in self.tags:
                raise NotFound("Tag", tag_id)
        self.links = {(n, target_id if t == source_id else t) for n, t in self.links}
        del self.tags[source_id]
        return self._counted(self.tags[target_id])

    async def tag_statistics(self, limit: int = 5) -> TagStatistics:
        self._record("tag_statistics")
        tags = [self._counted(t) for t in self.tags.values()]
        used = [t for t in tags if t.note_count > 0]
        return TagStatistics(
            total_tags=len(tags),
            tags_with_notes=len(used),
            unused_tags=len(tags) - len(used),
            most_used_tags=sorted(used, key=lambda t: (-t.note_count, tag_key(t.name)))[:limit],
        )
