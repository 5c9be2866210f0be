"""
Dependency injection for FastAPI routes.

Provides typed cache dependencies backed by the root context on ``app.state``.
"""

from typing import Annotated
from fastapi import Request, Depends, HTTPException

from notecache.errors import (
    BackendError,
    BackendUnreachable,
    NotFound,
    ValidationFailed,
)
from notecache.services.note_cache import NoteCache
from notecache.services.projection import ViewProjection
from notecache.services.tag_cache import TagCache


def get_note_cache(request: Request) -> NoteCache:
    return request.app.state.context.notes


def get_tag_cache(request: Request) -> TagCache:
    return request.app.state.context.tags


def get_projection(request: Request) -> ViewProjection:
    return request.app.state.context.projection


NoteCacheDep = Annotated[NoteCache, Depends(get_note_cache)]
TagCacheDep = Annotated[TagCache, Depends(get_tag_cache)]
ProjectionDep = Annotated[ViewProjection, Depends(get_projection)]


def http_error(exc: BackendError) -> HTTPException:
    """Map a backend failure onto the matching HTTP status."""
    if isinstance(exc, NotFound):
        return HTTPException(404, str(exc))
    if isinstance(exc, ValidationFailed):
        return HTTPException(400, str(exc))
    if isinstance(exc, BackendUnreachable):
        return HTTPException(503, str(exc))
    return HTTPException(500, str(exc))
