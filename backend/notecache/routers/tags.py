"""Tag routes."""

from fastapi import APIRouter, Query

from notecache.config import settings
from notecache.dependencies import TagCacheDep, http_error
from notecache.errors import BackendError
from notecache.models import Tag, TagAssign, TagCreate, TagMerge, TagRename, TagStatistics

router = APIRouter()


@router.get("/tags", response_model=list[Tag])
async def list_tags(cache: TagCacheDep):
    await cache.load_all()
    if cache.last_failure:
        raise http_error(cache.last_failure)
    return cache.tags


@router.post("/tags", response_model=Tag, status_code=201)
async def create_tag(body: TagCreate, cache: TagCacheDep):
    try:
        return await cache.create(body.name, body.color)
    except BackendError as exc:
        raise http_error(exc) from exc


@router.get("/tags/search", response_model=list[Tag])
async def search_tags(cache: TagCacheDep, q: str = Query(default="")):
    return await cache.search(q)


@router.get("/tags/statistics", response_model=TagStatistics)
async def tag_statistics(cache: TagCacheDep, limit: int = settings.MOST_USED_TAGS_LIMIT):
    return await cache.statistics(limit)


@router.post("/tags/cleanup")
async def cleanup_unused_tags(cache: TagCacheDep):
    try:
        removed = await cache.cleanup_unused()
    except BackendError as exc:
        raise http_error(exc) from exc
    return {"removed": removed}


@router.put("/tags/{tag_id}", response_model=Tag)
async def rename_tag(tag_id: str, body: TagRename, cache: TagCacheDep):
    try:
        return await cache.rename(tag_id, body.name)
    except BackendError as exc:
        raise http_error(exc) from exc


@router.delete("/tags/{tag_id}")
async def delete_tag(tag_id: str, cache: TagCacheDep):
    try:
        deleted = await cache.delete(tag_id)
    except BackendError as exc:
        raise http_error(exc) from exc
    return {"deleted": deleted, "id": tag_id}


@router.post("/tags/{tag_id}/merge", response_model=Tag)
async def merge_tags(tag_id: str, body: TagMerge, cache: TagCacheDep):
    try:
        return await cache.merge(tag_id, body.target_id)
    except BackendError as exc:
        raise http_error(exc) from exc


@router.get("/notes/{note_id}/tags", response_model=list[Tag])
async def get_note_tags(note_id: str, cache: TagCacheDep):
    return await cache.get_note_tags(note_id)


@router.post("/notes/{note_id}/tags", response_model=Tag, status_code=201)
async def add_tag_to_note(note_id: str, body: TagAssign, cache: TagCacheDep):
    try:
        return await cache.add_to_note(note_id, body.tag_name)
    except BackendError as exc:
        raise http_error(exc) from exc


@router.delete("/notes/{note_id}/tags/{tag_id}")
async def remove_tag_from_note(note_id: str, tag_id: str, cache: TagCacheDep):
    try:
        removed = await cache.remove_from_note(note_id, tag_id)
    except BackendError as exc:
        raise http_error(exc) from exc
    return {"removed": removed}
