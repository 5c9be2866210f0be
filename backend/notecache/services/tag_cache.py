"""Tag cache: known tags, their backend-computed counts, and the selected tag."""

from typing import Iterable, Optional

from notecache.errors import BackendError
from notecache.gateway.base import BackendGateway
from notecache.logging import get_logger
from notecache.models import (
    ALL_NOTES,
    NoteCreated,
    NoteEvent,
    NotePermanentlyDeleted,
    NoteRestored,
    NoteTrashed,
    Tag,
    TagCreate,
    TagStatistics,
    TagsChanged,
    tag_key,
)
from notecache.services.base import CacheBase
from notecache.services.bus import NotificationBus

logger = get_logger('services.tag_cache')


class TagCache(CacheBase):
    """Owns the tag records.

    Counts are never adjusted locally: every operation that can move a count
    is followed by a full ``load_all``. Operations that change tag names or
    note-tag links then announce ``TagsChanged`` so the note list picks up
    the new tag set.
    """

    def __init__(self, gateway: BackendGateway, bus: NotificationBus):
        super().__init__(gateway, bus, logger)
        self.tags: list[Tag] = []
        self.selected_tag: str = ALL_NOTES
        self._announcing = False
        bus.subscribe(TagsChanged, self._on_tags_changed)
        for event_type in (NoteCreated, NoteTrashed, NoteRestored, NotePermanentlyDeleted):
            bus.subscribe(event_type, self._on_note_event)

    # ── Local lookups ──

    def find_by_name(self, name: str) -> Optional[Tag]:
        key = tag_key(name)
        return next((t for t in self.tags if tag_key(t.name) == key), None)

    def get(self, tag_id: str) -> Optional[Tag]:
        return next((t for t in self.tags if t.id == tag_id), None)

    def resolve(self, tag_ids: Iterable[str]) -> list[Tag]:
        """Map ids to loaded tags, skipping ids not loaded yet."""
        by_id = {t.id: t for t in self.tags}
        return [by_id[i] for i in tag_ids if i in by_id]

    def set_selected_tag(self, name: str) -> None:
        self.selected_tag = name

    # ── Reads ──

    async def load_all(self) -> None:
        seq = self._begin_load()
        try:
            tags = await self.gateway.list_tags()
        except BackendError as e:
            if self._is_latest(seq):
                self._fail("load tags", e)
            return
        finally:
            self._finish_load()
        if self._is_latest(seq):
            self.tags = tags
            logger.debug(f"Loaded {len(tags)} tags")

    async def search(self, query: str) -> list[Tag]:
        self.dismiss_error()
        try:
            return await self.gateway.search_tags(query)
        except BackendError as e:
            self._fail("search tags", e)
            return []

    async def get_note_tags(self, note_id: str) -> list[Tag]:
        self.dismiss_error()
        try:
            return await self.gateway.get_note_tags(note_id)
        except BackendError as e:
            self._fail("get note tags", e)
            return []

    async def statistics(self, limit: int = 5) -> TagStatistics:
        self.dismiss_error()
        try:
            return await self.gateway.tag_statistics(limit)
        except BackendError as e:
            self._fail("load tag statistics", e)
            return TagStatistics()

    # ── Mutations ──

    async def create(self, name: str, color: Optional[str] = None) -> Tag:
        self.dismiss_error()
        try:
            tag = await self.gateway.create_tag(TagCreate(name=name, color=color))
        except BackendError as e:
            self._fail("create tag", e)
            raise
        await self.load_all()
        logger.info(f"Created tag {tag.name} ({tag.id[:8]})")
        return tag

    async def rename(self, tag_id: str, name: str) -> Tag:
        self.dismiss_error()
        previous = self.get(tag_id)
        try:
            tag = await self.gateway.rename_tag(tag_id, name)
        except BackendError as e:
            self._fail("rename tag", e)
            raise
        if previous and tag_key(previous.name) == tag_key(self.selected_tag):
            self.selected_tag = tag.name
        await self.load_all()
        self._announce()
        return tag

    async def delete(self, tag_id: str) -> bool:
        self.dismiss_error()
        previous = self.get(tag_id)
        try:
            deleted = await self.gateway.delete_tag(tag_id)
        except BackendError as e:
            self._fail("delete tag", e)
            raise
        if deleted:
            if previous and tag_key(previous.name) == tag_key(self.selected_tag):
                self.selected_tag = ALL_NOTES
            await self.load_all()
            self._announce()
        return deleted

    async def add_to_note(self, note_id: str, tag_name: str) -> Tag:
        self.dismiss_error()
        try:
            tag = await self.gateway.add_tag_to_note(note_id, tag_name)
        except BackendError as e:
            self._fail("add tag to note", e)
            raise
        await self.load_all()
        self._announce()
        return tag

    async def remove_from_note(self, note_id: str, tag_id: str) -> bool:
        self.dismiss_error()
        try:
            removed = await self.gateway.remove_tag_from_note(note_id, tag_id)
        except BackendError as e:
            self._fail("remove tag from note", e)
            raise
        if removed:
            await self.load_all()
            self._announce()
        return removed

    async def cleanup_unused(self) -> int:
        self.dismiss_error()
        try:
            removed = await self.gateway.cleanup_unused_tags()
        except BackendError as e:
            self._fail("cleanup unused tags", e)
            raise
        await self.load_all()
        if removed:
            if self.selected_tag != ALL_NOTES and self.find_by_name(self.selected_tag) is None:
                self.selected_tag = ALL_NOTES
            self._announce()
        return removed

    async def merge(self, source_id: str, target_id: str) -> Tag:
        self.dismiss_error()
        source = self.get(source_id)
        try:
            tag = await self.gateway.merge_tags(source_id, target_id)
        except BackendError as e:
            self._fail("merge tags", e)
            raise
        if source and tag_key(source.name) == tag_key(self.selected_tag):
            self.selected_tag = tag.name
        await self.load_all()
        self._announce()
        logger.info(f"Merged tag {source_id[:8]} into {tag.name}")
        return tag

    # ── Bus ──

    def _announce(self) -> None:
        self._announcing = True
        try:
            self.bus.publish(TagsChanged())
        finally:
            self._announcing = False

    def _on_tags_changed(self, event: TagsChanged) -> None:
        if self._announcing:
            return
        self._schedule(self.load_all, event.kind)

    def _on_note_event(self, event: NoteEvent) -> None:
        self._schedule(self.load_all, f"{event.kind} {event.note_id[:8]}")
