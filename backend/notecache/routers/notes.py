"""Note routes."""

from fastapi import APIRouter

from notecache.config import settings
from notecache.dependencies import NoteCacheDep, http_error
from notecache.errors import BackendError
from notecache.models import NoteContent, NoteCreate, NoteUpdate, NoteWithTags, SearchRequest

router = APIRouter()


@router.get("/notes", response_model=list[NoteWithTags])
async def list_notes(cache: NoteCacheDep, include_trash: bool = settings.DEFAULT_INCLUDE_TRASH):
    await cache.load_all(include_trash)
    if cache.last_failure:
        raise http_error(cache.last_failure)
    return cache.sorted_notes


@router.post("/notes", response_model=NoteContent, status_code=201)
async def create_note(body: NoteCreate, cache: NoteCacheDep):
    try:
        return await cache.create(title=body.title, content=body.content, tags=body.tags)
    except BackendError as exc:
        raise http_error(exc) from exc


@router.get("/notes/current", response_model=NoteContent | None)
async def current_note(cache: NoteCacheDep):
    return cache.current_note


@router.post("/notes/search", response_model=list[NoteWithTags])
async def search_notes(body: SearchRequest, cache: NoteCacheDep):
    return await cache.search(body.query, body.tag_filter)


@router.get("/notes/{note_id}", response_model=NoteContent)
async def get_note(note_id: str, cache: NoteCacheDep):
    try:
        return await cache.load_content(note_id)
    except BackendError as exc:
        raise http_error(exc) from exc


@router.put("/notes/{note_id}", response_model=NoteContent | None)
async def save_note(note_id: str, body: NoteUpdate, cache: NoteCacheDep):
    try:
        await cache.save(note_id, body.title, body.content)
    except BackendError as exc:
        raise http_error(exc) from exc
    return cache.current_note if cache.current_note and cache.current_note.id == note_id else None


@router.delete("/notes/{note_id}")
async def delete_note(note_id: str, cache: NoteCacheDep):
    try:
        await cache.delete(note_id)
    except BackendError as exc:
        raise http_error(exc) from exc
    return {"status": "trashed", "id": note_id}


@router.delete("/notes/{note_id}/permanent")
async def permanently_delete_note(note_id: str, cache: NoteCacheDep):
    try:
        await cache.permanently_delete(note_id)
    except BackendError as exc:
        raise http_error(exc) from exc
    return {"status": "deleted", "id": note_id}


@router.post("/notes/{note_id}/restore", response_model=NoteContent)
async def restore_note(note_id: str, cache: NoteCacheDep):
    try:
        return await cache.restore(note_id)
    except BackendError as exc:
        raise http_error(exc) from exc


@router.post("/notes/{note_id}/favorite")
async def toggle_favorite(note_id: str, cache: NoteCacheDep):
    try:
        favorite = await cache.toggle_favorite(note_id)
    except BackendError as exc:
        raise http_error(exc) from exc
    return {"id": note_id, "is_favorite": favorite}
