"""Composition root: one gateway, one bus, and the caches wired to them."""

from dataclasses import dataclass
from typing import Optional

from notecache.gateway.base import BackendGateway
from notecache.logging import get_logger
from notecache.services.bus import NotificationBus
from notecache.services.note_cache import NoteCache
from notecache.services.projection import ViewProjection
from notecache.services.tag_cache import TagCache

logger = get_logger('services.context')


@dataclass
class RootContext:
    gateway: BackendGateway
    bus: NotificationBus
    notes: NoteCache
    tags: TagCache
    projection: ViewProjection

    async def load(self, include_trash: bool = False) -> None:
        """Initial population of both caches."""
        await self.tags.load_all()
        await self.notes.load_all(include_trash)

    async def wait_idle(self) -> None:
        """Wait until every reload scheduled by bus handlers has finished."""
        while self.notes.has_pending_reloads or self.tags.has_pending_reloads:
            await self.tags.wait_idle()
            await self.notes.wait_idle()


def build_context(
    gateway: BackendGateway, bus: Optional[NotificationBus] = None
) -> RootContext:
    """
    Compose the caches around a gateway.

    The tag cache subscribes before the note cache, so it is notified first
    about every event.

    :param gateway: Backend Gateway every cache talks to
    :type gateway: BackendGateway
    :param bus: Bus to share; a fresh one is created when omitted
    :type bus: NotificationBus | None
    :return: The wired context
    :rtype: RootContext
    """
    bus = bus or NotificationBus()
    tags = TagCache(gateway, bus)
    notes = NoteCache(gateway, bus)
    projection = ViewProjection(notes, tags)
    logger.info("Root context composed")
    return RootContext(gateway=gateway, bus=bus, notes=notes, tags=tags, projection=projection)
