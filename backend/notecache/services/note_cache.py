"""Note cache: the list view, the open note, and note lifecycle transitions."""

from datetime import datetime, timezone
from typing import Optional

from notecache.errors import BackendError
from notecache.gateway.base import BackendGateway
from notecache.logging import get_logger
from notecache.models import (
    Note,
    NoteContent,
    NoteCreate,
    NoteCreated,
    NotePermanentlyDeleted,
    NoteRestored,
    NoteSave,
    NoteTrashed,
    NoteUpdated,
    NoteWithTags,
    SearchRequest,
    TagsChanged,
)
from notecache.services.base import CacheBase
from notecache.services.bus import NotificationBus

logger = get_logger('services.note_cache')


class NoteCache(CacheBase):
    """Owns the note list and the open-note slot.

    Every mutation goes to the gateway first. On success the cache patches
    local state (open note, list entry), then reloads the list from the
    backend and finally publishes the matching lifecycle event. Event payloads
    come from the patched record, so they hold even when a newer load
    supersedes the reload.
    User-intent operations re-raise backend errors after recording them;
    ``load_all`` and ``search`` only record them.
    """

    def __init__(self, gateway: BackendGateway, bus: NotificationBus):
        super().__init__(gateway, bus, logger)
        self.notes: list[NoteWithTags] = []
        self.current_note: Optional[NoteContent] = None
        self.include_trash = False
        # Permanently deleted ids; never allowed back into any view.
        self._gone: set[str] = set()
        bus.subscribe(TagsChanged, self._on_tags_changed)

    @property
    def sorted_notes(self) -> list[NoteWithTags]:
        return sorted(self.notes, key=lambda n: n.note.modified_at, reverse=True)

    def get(self, note_id: str) -> Optional[NoteWithTags]:
        index = self._index(note_id)
        return self.notes[index] if index is not None else None

    def set_current_note(self, note: Optional[NoteContent]) -> None:
        self.current_note = note

    def close_note(self) -> None:
        self.current_note = None

    # ── Reads ──

    async def load_all(self, include_trash: bool = False) -> None:
        """Replace the list with backend truth.

        Only the most recently issued load may write the list; a response
        that arrives after a newer load was started is dropped.
        """
        self.include_trash = include_trash
        seq = self._begin_load()
        try:
            notes = await self.gateway.list_notes(include_trash)
        except BackendError as e:
            if self._is_latest(seq):
                self._fail("load notes", e)
            return
        finally:
            self._finish_load()
        if self._is_latest(seq):
            self.notes = self._without_gone(notes)
            logger.debug(f"Loaded {len(self.notes)} notes (include_trash={include_trash})")

    async def load_content(self, note_id: str) -> NoteContent:
        try:
            note = await self.gateway.get_note_content(note_id)
        except BackendError as e:
            self._fail("load note", e)
            raise
        self.current_note = note
        return note

    async def search(self, query: str, tag_filter: Optional[str] = None) -> list[NoteWithTags]:
        """Search without touching the cached list."""
        self.dismiss_error()
        try:
            results = await self.gateway.search_notes(
                SearchRequest(query=query, tag_filter=tag_filter)
            )
        except BackendError as e:
            self._fail("search notes", e)
            return []
        return self._without_gone(results)

    # ── Mutations ──

    async def create(
        self,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> NoteContent:
        try:
            note = await self.gateway.create_note(
                NoteCreate(title=title, content=content, tags=tags)
            )
        except BackendError as e:
            self._fail("create note", e)
            raise
        self.current_note = note
        self._upsert(note.to_list_item())
        await self.load_all(self.include_trash)
        self.bus.publish(NoteCreated(note_id=note.id, note=note))
        logger.info(f"Created note {note.id[:8]}: {note.title}")
        return note

    async def save(self, note_id: str, title: str, content: str) -> None:
        try:
            await self.gateway.save_note(NoteSave(id=note_id, title=title, content=content))
        except BackendError as e:
            self._fail("save note", e)
            raise
        now = datetime.now(timezone.utc)
        if self._is_open(note_id):
            self.current_note = self.current_note.model_copy(
                update={"title": title, "content": content, "modified_at": now}
            )
        self._patch(note_id, title=title, modified_at=now)
        note = self._snapshot(note_id)
        await self.load_all(self.include_trash)
        self.bus.publish(NoteUpdated(note_id=note_id, note=note))

    async def delete(self, note_id: str) -> None:
        """Move a note to the trash."""
        before = self._snapshot(note_id)
        try:
            await self.gateway.delete_note(note_id)
        except BackendError as e:
            self._fail("delete note", e)
            raise
        if self._is_open(note_id):
            self.current_note = None
        note = before.model_copy(update={"is_trashed": True}) if before else None
        if self.include_trash:
            self._patch(note_id, is_trashed=True)
        else:
            self._remove(note_id)
        await self.load_all(self.include_trash)
        self.bus.publish(NoteTrashed(note_id=note_id, note=note))
        logger.info(f"Moved note {note_id[:8]} to trash")

    async def permanently_delete(self, note_id: str) -> None:
        before = self._snapshot(note_id)
        try:
            await self.gateway.permanently_delete_note(note_id)
        except BackendError as e:
            self._fail("permanently delete note", e)
            raise
        if self._is_open(note_id):
            self.current_note = None
        self._gone.add(note_id)
        self.notes = self._without_gone(self.notes)
        await self.load_all(self.include_trash)
        note = None
        if before is not None:
            note = before.model_copy(update={"is_trashed": True, "is_deleted": True})
        self.bus.publish(NotePermanentlyDeleted(note_id=note_id, note=note))
        logger.info(f"Permanently deleted note {note_id[:8]}")

    async def restore(self, note_id: str) -> NoteContent:
        before = self._snapshot(note_id)
        try:
            await self.gateway.restore_note(note_id)
        except BackendError as e:
            self._fail("restore note", e)
            raise
        self._patch(note_id, is_trashed=False)
        try:
            note = await self.gateway.get_note_content(note_id)
        except BackendError as e:
            # The restore landed; resync and announce before surfacing the fetch error.
            await self.load_all(self.include_trash)
            known = self._snapshot(note_id)
            if known is None and before is not None:
                known = before.model_copy(update={"is_trashed": False})
            self.bus.publish(NoteRestored(note_id=note_id, note=known))
            self._fail("load restored note", e)
            raise
        self._upsert(note.to_list_item())
        await self.load_all(self.include_trash)
        self.bus.publish(NoteRestored(note_id=note_id, note=note))
        logger.info(f"Restored note {note_id[:8]}")
        return note

    async def toggle_favorite(self, note_id: str) -> bool:
        try:
            favorite = await self.gateway.toggle_favorite(note_id)
        except BackendError as e:
            self._fail("toggle favorite", e)
            raise
        if self._is_open(note_id):
            self.current_note = self.current_note.model_copy(update={"is_favorite": favorite})
        self._patch(note_id, is_favorite=favorite)
        note = self._snapshot(note_id)
        await self.load_all(self.include_trash)
        self.bus.publish(NoteUpdated(note_id=note_id, note=note))
        return favorite

    # ── Helpers ──

    def _on_tags_changed(self, event: TagsChanged) -> None:
        self._schedule(lambda: self.load_all(self.include_trash), event.kind)

    def _index(self, note_id: str) -> Optional[int]:
        for i, item in enumerate(self.notes):
            if item.id == note_id:
                return i
        return None

    def _is_open(self, note_id: str) -> bool:
        return self.current_note is not None and self.current_note.id == note_id

    def _patch(self, note_id: str, **fields) -> None:
        index = self._index(note_id)
        if index is None:
            return
        item = self.notes[index]
        self.notes[index] = NoteWithTags(note=item.note.model_copy(update=fields), tags=item.tags)

    def _upsert(self, item: NoteWithTags) -> None:
        """Replace the entry in place, or prepend it when absent."""
        index = self._index(item.id)
        if index is None:
            self.notes.insert(0, item)
        else:
            self.notes[index] = item

    def _remove(self, note_id: str) -> None:
        self.notes = [n for n in self.notes if n.id != note_id]

    def _snapshot(self, note_id: str) -> Optional[Note]:
        if self._is_open(note_id):
            return self.current_note
        item = self.get(note_id)
        return item.note if item else None

    def _without_gone(self, notes: list[NoteWithTags]) -> list[NoteWithTags]:
        return [n for n in notes if n.id not in self._gone]
