"""Projection routes: the filtered listings a sidebar and search box drive."""

from typing import Optional

from fastapi import APIRouter

from notecache.dependencies import ProjectionDep
from notecache.models import ALL_NOTES, NoteWithTags, SidebarView

router = APIRouter()


@router.get("/views", response_model=list[NoteWithTags])
async def visible_notes(
    projection: ProjectionDep,
    view: SidebarView = SidebarView.ALL,
    query: str = "",
    tag: Optional[str] = None,
):
    return projection.visible(view=view, query=query, tag_name=tag or ALL_NOTES)


@router.get("/views/counts")
async def view_counts(projection: ProjectionDep):
    return projection.counts()
