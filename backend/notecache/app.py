"""
notecache - FastAPI surface over the note and tag caches.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import socketio

from notecache.config import settings
from notecache.database.db import init_db
from notecache.gateway.base import BackendGateway
from notecache.gateway.sqlite import SqliteGateway
from notecache.logging import setup_logging, get_logger
from notecache.models import Event, NoteEvent
from notecache.routers import notes, tags, views
from notecache.services.bus import NotificationBus
from notecache.services.context import build_context

logger = get_logger('main')

# Socket.IO server pushing cache events to connected views
sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins='*'
)


def event_payload(event: Event) -> dict:
    payload = {"type": event.kind, "note_id": None, "note": None}
    if isinstance(event, NoteEvent):
        payload["note_id"] = event.note_id
        payload["note"] = event.note.model_dump(mode="json") if event.note else None
    return payload


class EventForwarder:
    """Bus subscriber that relays every event to socket.io clients."""

    def __init__(self, server: socketio.AsyncServer):
        self.server = server
        self._tasks: set[asyncio.Task] = set()

    def __call__(self, event: Event) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.server.emit("note_event", event_payload(event)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def create_app(gateway: Optional[BackendGateway] = None) -> FastAPI:
    """
    Build the application.

    :param gateway: Backend Gateway to use; defaults to the SQLite file at
        ``settings.DATABASE_PATH``
    :type gateway: BackendGateway | None
    :return: Configured FastAPI application
    :rtype: FastAPI
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        logger.info("Starting notecache API")

        backend = gateway
        if backend is None:
            await init_db(settings.DATABASE_PATH)
            backend = SqliteGateway(settings.DATABASE_PATH)

        bus = NotificationBus()
        bus.subscribe_all(EventForwarder(sio))
        context = build_context(backend, bus)
        await context.load(settings.DEFAULT_INCLUDE_TRASH)
        app.state.context = context
        logger.info("Caches initialized")

        yield

        await context.wait_idle()
        logger.info("Shutting down application")

    app = FastAPI(
        title="notecache API",
        description="Client-side note and tag cache with lifecycle events",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(notes.router, prefix="/api", tags=["Notes"])
    app.include_router(tags.router, prefix="/api", tags=["Tags"])
    app.include_router(views.router, prefix="/api", tags=["Views"])

    @sio.event
    async def connect(sid, environ):
        logger.debug(f"Client {sid[:8]}... connected")

    @sio.event
    async def disconnect(sid):
        logger.debug(f"Client {sid[:8]}... disconnected")

    @app.get("/health")
    async def health_check():
        context = getattr(app.state, "context", None)
        return {
            "status": "healthy",
            "service": "notecache",
            "notes_loaded": len(context.notes.notes) if context else 0,
            "tags_loaded": len(context.tags.tags) if context else 0,
        }

    return app


def create_asgi_app(gateway: Optional[BackendGateway] = None) -> socketio.ASGIApp:
    """FastAPI app wrapped with the socket.io endpoint."""
    return socketio.ASGIApp(sio, other_asgi_app=create_app(gateway))
