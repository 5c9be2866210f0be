"""Filtered and sorted note views derived from the note and tag caches."""

from typing import Callable, Iterable, Optional

from notecache.models import ALL_NOTES, NoteWithTags, SidebarView, tag_key
from notecache.services.note_cache import NoteCache
from notecache.services.tag_cache import TagCache

Predicate = Callable[[NoteWithTags], bool]


def _newest_first(items: Iterable[NoteWithTags]) -> list[NoteWithTags]:
    return sorted(items, key=lambda n: n.note.modified_at, reverse=True)


class ViewProjection:
    """Read-only views over the caches.

    Nothing is stored except filter state; every method recomputes from the
    current cache contents, so a view can never go stale.
    """

    def __init__(self, notes: NoteCache, tags: TagCache):
        self.notes = notes
        self.tags = tags
        self.query = ""
        self.view = SidebarView.ALL

    def set_query(self, query: str) -> None:
        self.query = query

    def set_view(self, view: SidebarView) -> None:
        self.view = view

    @property
    def selected_tag(self) -> Optional[str]:
        selected = self.tags.selected_tag
        return None if not selected or selected == ALL_NOTES else selected

    # ── Single filters ──

    def favorites(self) -> list[NoteWithTags]:
        return self._select(self._is_active, lambda n: n.note.is_favorite)

    def untagged(self) -> list[NoteWithTags]:
        return self._select(self._is_active, lambda n: not self._tag_names(n))

    def trashed(self) -> list[NoteWithTags]:
        return self._select(lambda n: n.note.is_trashed)

    def text_filtered(self, query: Optional[str] = None) -> list[NoteWithTags]:
        return self._select(self._matches_text(self.query if query is None else query))

    def tag_filtered(self, tag_name: Optional[str] = None) -> list[NoteWithTags]:
        name = tag_name if tag_name is not None else self.selected_tag
        if not name:
            return self._select()
        return self._select(self._has_tag(name))

    # ── Combined listing ──

    def visible(
        self,
        view: Optional[SidebarView] = None,
        query: Optional[str] = None,
        tag_name: Optional[str] = None,
    ) -> list[NoteWithTags]:
        """The sidebar view narrowed by both text and tag filter, newest first.

        Arguments override the stored filter state for this call only;
        ``ALL_NOTES`` or an empty tag name means no tag filter.
        """
        view = self.view if view is None else view
        query = self.query if query is None else query
        tag = self.selected_tag if tag_name is None else tag_name
        predicates = [self._view_predicate(view)]
        if query.strip():
            predicates.append(self._matches_text(query))
        if tag and tag != ALL_NOTES:
            predicates.append(self._has_tag(tag))
        return self._select(*predicates)

    def counts(self) -> dict[str, int]:
        return {
            view.value: len(self._select(self._view_predicate(view)))
            for view in SidebarView
        }

    # ── Predicates ──

    def _view_predicate(self, view: SidebarView) -> Predicate:
        if view == SidebarView.FAVORITES:
            return lambda n: self._is_active(n) and n.note.is_favorite
        if view == SidebarView.UNTAGGED:
            return lambda n: self._is_active(n) and not self._tag_names(n)
        if view == SidebarView.TRASH:
            return lambda n: n.note.is_trashed
        return self._is_active

    @staticmethod
    def _is_active(item: NoteWithTags) -> bool:
        return not item.note.is_trashed

    def _matches_text(self, query: str) -> Predicate:
        needle = query.strip().casefold()
        if not needle:
            return lambda n: True
        return lambda n: (
            needle in n.note.title.casefold()
            or any(needle in name.casefold() for name in self._tag_names(n))
        )

    def _has_tag(self, name: str) -> Predicate:
        key = tag_key(name)
        return lambda n: any(tag_key(t) == key for t in self._tag_names(n))

    def _tag_names(self, item: NoteWithTags) -> list[str]:
        if item.tags:
            return item.tag_names
        # Notes listed before their tags were joined fall back to the tag cache.
        return [t.name for t in self.tags.resolve(item.note.tag_ids)]

    def _select(self, *predicates: Predicate) -> list[NoteWithTags]:
        return _newest_first(
            n for n in self.notes.notes if all(p(n) for p in predicates)
        )
