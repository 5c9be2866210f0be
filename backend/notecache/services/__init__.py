from notecache.services.bus import NotificationBus
from notecache.services.context import RootContext, build_context
from notecache.services.note_cache import NoteCache
from notecache.services.projection import ViewProjection
from notecache.services.tag_cache import TagCache

__all__ = [
    "NotificationBus", "RootContext", "build_context",
    "NoteCache", "TagCache", "ViewProjection",
]
