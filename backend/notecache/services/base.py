"""Plumbing shared by the note and tag caches: error slot, load sequencing, reload tasks."""

import asyncio
import logging
from typing import Awaitable, Callable

from notecache.errors import BackendError
from notecache.gateway.base import BackendGateway
from notecache.services.bus import NotificationBus


class CacheBase:
    """Base for caches that front a Backend Gateway.

    Holds the single error slot (last error wins), a monotonic counter used
    to discard responses from superseded loads, and the set of reload tasks
    scheduled by bus handlers.
    """

    def __init__(self, gateway: BackendGateway, bus: NotificationBus, logger: logging.Logger):
        self.gateway = gateway
        self.bus = bus
        self.logger = logger
        self.error: str | None = None
        self.last_failure: BackendError | None = None
        self._load_seq = 0
        self._loads_in_flight = 0
        self._pending: set[asyncio.Task] = set()

    @property
    def loading(self) -> bool:
        return self._loads_in_flight > 0

    @property
    def has_pending_reloads(self) -> bool:
        return bool(self._pending)

    def dismiss_error(self) -> None:
        self.error = None
        self.last_failure = None

    def _fail(self, action: str, error: BackendError) -> None:
        self.error = f"Failed to {action}: {error}"
        self.last_failure = error
        self.logger.warning(f"{self.error} [{error.code.value}]")

    def _begin_load(self) -> int:
        self._load_seq += 1
        self._loads_in_flight += 1
        self.dismiss_error()
        return self._load_seq

    def _finish_load(self) -> None:
        self._loads_in_flight -= 1

    def _is_latest(self, seq: int) -> bool:
        if seq != self._load_seq:
            self.logger.debug(f"Discarding stale response (request {seq}, latest {self._load_seq})")
            return False
        return True

    def _schedule(self, reload: Callable[[], Awaitable[None]], reason: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug(f"No running event loop; skipped reload after {reason}")
            return
        task = loop.create_task(reload())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        self.logger.debug(f"Scheduled reload after {reason}")

    async def wait_idle(self) -> None:
        """Wait for every reload scheduled by event handlers to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
