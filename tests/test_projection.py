"""Tests for the filtered note views."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from notecache.models import ALL_NOTES, Note, NoteCreate, NoteWithTags, SidebarView, Tag


@pytest_asyncio.fixture
async def seeded(gateway, context):
    groceries = await gateway.create_note(NoteCreate(title="Groceries", tags=["home"]))
    await gateway.create_note(NoteCreate(title="Ideas", tags=["work"]))
    await gateway.create_note(NoteCreate(title="Loose ends"))
    old = await gateway.create_note(NoteCreate(title="Old chores", tags=["Home"]))
    await gateway.toggle_favorite(groceries.id)
    await gateway.delete_note(old.id)
    await context.load(include_trash=True)
    return context.projection


def _titles(items):
    return [i.note.title for i in items]


@pytest.mark.asyncio
async def test_single_filters(seeded):
    projection = seeded

    assert _titles(projection.favorites()) == ["Groceries"]
    assert _titles(projection.untagged()) == ["Loose ends"]
    assert _titles(projection.trashed()) == ["Old chores"]


@pytest.mark.asyncio
async def test_text_filter_matches_title_or_tag_name(seeded):
    projection = seeded

    assert _titles(projection.text_filtered("IDEA")) == ["Ideas"]
    assert _titles(projection.text_filtered("wor")) == ["Ideas"]
    assert len(projection.text_filtered("")) == 4


@pytest.mark.asyncio
async def test_tag_filter_is_case_insensitive(seeded):
    projection = seeded

    assert _titles(projection.tag_filtered("HOME")) == ["Old chores", "Groceries"]


@pytest.mark.asyncio
async def test_tag_filter_defaults_to_selected_tag(seeded):
    projection = seeded

    projection.tags.set_selected_tag(ALL_NOTES)
    assert projection.selected_tag is None
    assert len(projection.tag_filtered()) == 4

    projection.tags.set_selected_tag("work")
    assert _titles(projection.tag_filtered()) == ["Ideas"]


@pytest.mark.asyncio
async def test_visible_intersects_view_text_and_tag(seeded):
    projection = seeded

    assert _titles(projection.visible()) == ["Loose ends", "Ideas", "Groceries"]

    projection.set_query("o")
    projection.tags.set_selected_tag("home")
    assert _titles(projection.visible()) == ["Groceries"]

    projection.set_view(SidebarView.TRASH)
    assert _titles(projection.visible()) == ["Old chores"]

    projection.set_view(SidebarView.FAVORITES)
    projection.set_query("ideas")
    assert projection.visible() == []


@pytest.mark.asyncio
async def test_visible_overrides_do_not_touch_filter_state(seeded):
    projection = seeded
    projection.set_query("o")
    projection.tags.set_selected_tag("home")

    assert _titles(projection.visible(view=SidebarView.ALL, query="", tag_name="work")) == ["Ideas"]
    assert len(projection.visible(query="", tag_name=ALL_NOTES)) == 3
    assert _titles(projection.visible(view=SidebarView.TRASH)) == ["Old chores"]

    assert projection.query == "o"
    assert projection.view == SidebarView.ALL
    assert projection.selected_tag == "home"
    assert _titles(projection.visible()) == ["Groceries"]


@pytest.mark.asyncio
async def test_counts_per_view(seeded):
    projection = seeded

    assert projection.counts() == {
        "all": 3,
        "favorites": 1,
        "tags": 3,
        "untagged": 1,
        "trash": 1,
    }


@pytest.mark.asyncio
async def test_views_follow_cache_changes(seeded):
    projection = seeded
    loose = next(n for n in projection.notes.notes if n.note.title == "Loose ends")

    await projection.tags.add_to_note(loose.id, "misc")
    await projection.notes.load_all(include_trash=True)

    assert projection.untagged() == []


def test_tag_names_fall_back_to_tag_cache(context):
    now = datetime.now(timezone.utc)
    context.tags.tags = [Tag(id="t1", name="home")]
    context.notes.notes = [
        NoteWithTags(note=Note(id="n1", title="Bare", created_at=now, modified_at=now, tag_ids={"t1"}))
    ]

    assert _titles(context.projection.tag_filtered("Home")) == ["Bare"]
    assert _titles(context.projection.text_filtered("hom")) == ["Bare"]
    assert context.projection.untagged() == []
