"""
Local SQLite implementation of the Backend Gateway.

Each call opens its own aiosqlite connection, so the gateway holds no state
beyond the database path. Storage failures are translated into the
``notecache.errors`` taxonomy before they leave this module.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator
from uuid import uuid4

import aiosqlite

from notecache.database.db import connect
from notecache.errors import (
    BackendError,
    BackendUnreachable,
    NotFound,
    UnknownBackendError,
    ValidationFailed,
)
from notecache.logging import get_logger
from notecache.models import (
    Note,
    NoteContent,
    NoteCreate,
    NoteSave,
    NoteWithTags,
    SearchRequest,
    Tag,
    TagCreate,
    TagStatistics,
    normalize_tag_name,
    tag_key,
)

logger = get_logger('gateway.sqlite')

DEFAULT_TITLE = "Untitled"

_TAG_SELECT = """
    SELECT t.id, t.name, t.color, t.created_at, COUNT(n.id) AS note_count
    FROM tags t
    LEFT JOIN note_tags nt ON nt.tag_id = t.id
    LEFT JOIN notes n ON n.id = nt.note_id AND n.is_trashed = 0
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_tag(row: dict) -> Tag:
    return Tag(
        id=row["id"],
        name=row["name"],
        color=row.get("color"),
        created_at=row["created_at"],
        note_count=row.get("note_count", 0),
    )


def _row_to_note(row: dict, tag_ids: set[str]) -> Note:
    return Note(
        id=row["id"],
        title=row["title"],
        created_at=row["created_at"],
        modified_at=row["modified_at"],
        is_favorite=bool(row["is_favorite"]),
        is_trashed=bool(row["is_trashed"]),
        tag_ids=tag_ids,
    )


class SqliteGateway:
    """Backend Gateway backed by a local SQLite file."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            db = await connect(self.db_path)
        except aiosqlite.Error as e:
            raise BackendUnreachable(f"Cannot open database for {operation}: {e}") from e
        try:
            yield db
        except BackendError:
            raise
        except aiosqlite.IntegrityError as e:
            raise ValidationFailed(f"{operation} rejected: {e}") from e
        except aiosqlite.OperationalError as e:
            logger.error(f"Database unavailable during {operation}: {e}")
            raise BackendUnreachable(f"{operation} failed: {e}") from e
        except aiosqlite.Error as e:
            logger.error(f"Database error during {operation}: {e}")
            raise UnknownBackendError(f"{operation} failed: {e}") from e
        finally:
            await db.close()

    # ── Shared lookups ──

    async def _tag_index(self, db: aiosqlite.Connection) -> dict[str, Tag]:
        cursor = await db.execute(_TAG_SELECT + " GROUP BY t.id")
        rows = await cursor.fetchall()
        return {r["id"]: _row_to_tag(dict(r)) for r in rows}

    async def _links(self, db: aiosqlite.Connection) -> dict[str, set[str]]:
        cursor = await db.execute("SELECT note_id, tag_id FROM note_tags")
        links: dict[str, set[str]] = {}
        for row in await cursor.fetchall():
            links.setdefault(row["note_id"], set()).add(row["tag_id"])
        return links

    async def _note_row(self, db: aiosqlite.Connection, note_id: str) -> dict:
        cursor = await db.execute("SELECT * FROM notes WHERE id = ?", (note_id,))
        row = await cursor.fetchone()
        if not row:
            raise NotFound("Note", note_id)
        return dict(row)

    async def _tag_by_key(self, db: aiosqlite.Connection, name: str) -> Tag | None:
        cursor = await db.execute(
            _TAG_SELECT + " WHERE t.name_key = ? GROUP BY t.id", (tag_key(name),)
        )
        row = await cursor.fetchone()
        return _row_to_tag(dict(row)) if row else None

    async def _tag_by_id(self, db: aiosqlite.Connection, tag_id: str) -> Tag | None:
        cursor = await db.execute(_TAG_SELECT + " WHERE t.id = ? GROUP BY t.id", (tag_id,))
        row = await cursor.fetchone()
        return _row_to_tag(dict(row)) if row else None

    async def _find_or_create_tag(
        self, db: aiosqlite.Connection, name: str, color: str | None = None
    ) -> Tag:
        clean = normalize_tag_name(name)
        if not clean:
            raise ValidationFailed("Tag name must not be empty")
        existing = await self._tag_by_key(db, clean)
        if existing:
            return existing
        tag = Tag(id=str(uuid4()), name=clean, color=color, created_at=_now())
        await db.execute(
            "INSERT INTO tags (id, name, name_key, color, created_at) VALUES (?, ?, ?, ?, ?)",
            (tag.id, tag.name, tag_key(clean), tag.color, tag.created_at.isoformat()),
        )
        return tag

    async def _notes_with_tags(
        self, db: aiosqlite.Connection, rows: list[dict]
    ) -> list[NoteWithTags]:
        index = await self._tag_index(db)
        links = await self._links(db)
        result = []
        for row in rows:
            tag_ids = links.get(row["id"], set())
            tags = sorted(
                (index[t] for t in tag_ids if t in index), key=lambda t: t.name.casefold()
            )
            result.append(NoteWithTags(note=_row_to_note(row, tag_ids), tags=tags))
        return result

    async def _content(self, db: aiosqlite.Connection, note_id: str) -> NoteContent:
        row = await self._note_row(db, note_id)
        tags = await self._note_tags(db, note_id)
        return NoteContent(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            created_at=row["created_at"],
            modified_at=row["modified_at"],
            is_favorite=bool(row["is_favorite"]),
            is_trashed=bool(row["is_trashed"]),
            tag_ids={t.id for t in tags},
            tags=tags,
        )

    async def _note_tags(self, db: aiosqlite.Connection, note_id: str) -> list[Tag]:
        cursor = await db.execute(
            _TAG_SELECT + """
            WHERE t.id IN (SELECT tag_id FROM note_tags WHERE note_id = ?)
            GROUP BY t.id
            ORDER BY t.name_key""",
            (note_id,),
        )
        return [_row_to_tag(dict(r)) for r in await cursor.fetchall()]

    # ── Notes ──

    async def list_notes(self, include_trash: bool = False) -> list[NoteWithTags]:
        query = "SELECT * FROM notes"
        if not include_trash:
            query += " WHERE is_trashed = 0"
        query += " ORDER BY modified_at DESC"
        async with self._session("list notes") as db:
            cursor = await db.execute(query)
            rows = [dict(r) for r in await cursor.fetchall()]
            return await self._notes_with_tags(db, rows)

    async def get_note_content(self, note_id: str) -> NoteContent:
        async with self._session("get note") as db:
            return await self._content(db, note_id)

    async def create_note(self, data: NoteCreate) -> NoteContent:
        title = (data.title or "").strip() or DEFAULT_TITLE
        now = _now()
        note_id = str(uuid4())
        async with self._session("create note") as db:
            await db.execute(
                """INSERT INTO notes (id, title, content, is_favorite, is_trashed, created_at, modified_at)
                   VALUES (?, ?, ?, 0, 0, ?, ?)""",
                (note_id, title, data.content or "", now, now),
            )
            for name in data.tags or []:
                tag = await self._find_or_create_tag(db, name)
                await db.execute(
                    "INSERT OR IGNORE INTO note_tags (note_id, tag_id, created_at) VALUES (?, ?, ?)",
                    (note_id, tag.id, now),
                )
            await db.commit()
            note = await self._content(db, note_id)
        logger.info(f"Created note: {note.title} ({note.id[:8]})")
        return note

    async def save_note(self, data: NoteSave) -> None:
        async with self._session("save note") as db:
            row = await self._note_row(db, data.id)
            if row["is_trashed"]:
                raise ValidationFailed(f"Note '{data.id}' is in the trash and cannot be edited")
            await db.execute(
                "UPDATE notes SET title = ?, content = ?, modified_at = ? WHERE id = ?",
                (data.title, data.content, _now(), data.id),
            )
            await db.commit()

    async def delete_note(self, note_id: str) -> None:
        async with self._session("delete note") as db:
            await self._note_row(db, note_id)
            await db.execute(
                "UPDATE notes SET is_trashed = 1, modified_at = ? WHERE id = ?",
                (_now(), note_id),
            )
            await db.commit()

    async def permanently_delete_note(self, note_id: str) -> None:
        async with self._session("permanently delete note") as db:
            row = await self._note_row(db, note_id)
            if not row["is_trashed"]:
                raise ValidationFailed(
                    f"Note '{note_id}' must be in the trash before it can be deleted permanently"
                )
            await db.execute("DELETE FROM notes WHERE id = ?", (note_id,))
            await db.commit()
        logger.info(f"Permanently deleted note {note_id[:8]}")

    async def restore_note(self, note_id: str) -> None:
        async with self._session("restore note") as db:
            await self._note_row(db, note_id)
            await db.execute(
                "UPDATE notes SET is_trashed = 0, modified_at = ? WHERE id = ?",
                (_now(), note_id),
            )
            await db.commit()

    async def toggle_favorite(self, note_id: str) -> bool:
        async with self._session("toggle favorite") as db:
            row = await self._note_row(db, note_id)
            if row["is_trashed"]:
                raise ValidationFailed(f"Note '{note_id}' is in the trash")
            favorite = not bool(row["is_favorite"])
            await db.execute(
                "UPDATE notes SET is_favorite = ? WHERE id = ?", (int(favorite), note_id)
            )
            await db.commit()
            return favorite

    async def search_notes(self, data: SearchRequest) -> list[NoteWithTags]:
        conditions = ["n.is_trashed = 0"]
        params: list[str] = []
        query = data.query.strip()
        if query:
            pattern = f"%{_escape_like(query.lower())}%"
            conditions.append(
                "(LOWER(n.title) LIKE ? ESCAPE '\\' OR LOWER(n.content) LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern])
        if data.tag_filter:
            conditions.append(
                """n.id IN (SELECT nt.note_id FROM note_tags nt
                            JOIN tags t ON t.id = nt.tag_id WHERE t.name_key = ?)"""
            )
            params.append(tag_key(data.tag_filter))
        sql = f"SELECT n.* FROM notes n WHERE {' AND '.join(conditions)} ORDER BY n.modified_at DESC"
        async with self._session("search notes") as db:
            cursor = await db.execute(sql, params)
            rows = [dict(r) for r in await cursor.fetchall()]
            return await self._notes_with_tags(db, rows)

    # ── Tags ──

    async def list_tags(self) -> list[Tag]:
        async with self._session("list tags") as db:
            cursor = await db.execute(_TAG_SELECT + " GROUP BY t.id ORDER BY t.name_key")
            return [_row_to_tag(dict(r)) for r in await cursor.fetchall()]

    async def create_tag(self, data: TagCreate) -> Tag:
        async with self._session("create tag") as db:
            tag = await self._find_or_create_tag(db, data.name, data.color)
            await db.commit()
            return tag

    async def rename_tag(self, tag_id: str, name: str) -> Tag:
        clean = normalize_tag_name(name)
        if not clean:
            raise ValidationFailed("Tag name must not be empty")
        async with self._session("rename tag") as db:
            if not await self._tag_by_id(db, tag_id):
                raise NotFound("Tag", tag_id)
            clash = await self._tag_by_key(db, clean)
            if clash and clash.id != tag_id:
                raise ValidationFailed(f"Tag with name '{clean}' already exists")
            await db.execute(
                "UPDATE tags SET name = ?, name_key = ? WHERE id = ?",
                (clean, tag_key(clean), tag_id),
            )
            await db.commit()
            return await self._tag_by_id(db, tag_id)

    async def delete_tag(self, tag_id: str) -> bool:
        async with self._session("delete tag") as db:
            cursor = await db.execute("DELETE FROM tags WHERE id = ?", (tag_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def add_tag_to_note(self, note_id: str, tag_name: str) -> Tag:
        async with self._session("add tag to note") as db:
            await self._note_row(db, note_id)
            tag = await self._find_or_create_tag(db, tag_name)
            await db.execute(
                "INSERT OR IGNORE INTO note_tags (note_id, tag_id, created_at) VALUES (?, ?, ?)",
                (note_id, tag.id, _now()),
            )
            await db.commit()
            return await self._tag_by_id(db, tag.id) or tag

    async def remove_tag_from_note(self, note_id: str, tag_id: str) -> bool:
        async with self._session("remove tag from note") as db:
            cursor = await db.execute(
                "DELETE FROM note_tags WHERE note_id = ? AND tag_id = ?", (note_id, tag_id)
            )
            await db.commit()
            return cursor.rowcount > 0

    async def cleanup_unused_tags(self) -> int:
        async with self._session("cleanup unused tags") as db:
            cursor = await db.execute(
                """DELETE FROM tags
                   WHERE id NOT IN (
                       SELECT DISTINCT nt.tag_id
                       FROM note_tags nt
                       JOIN notes n ON n.id = nt.note_id AND n.is_trashed = 0
                   )"""
            )
            await db.commit()
            removed = cursor.rowcount
        if removed:
            logger.info(f"Removed {removed} unused tag(s)")
        return removed

    async def search_tags(self, query: str) -> list[Tag]:
        pattern = f"%{_escape_like(tag_key(query))}%"
        async with self._session("search tags") as db:
            cursor = await db.execute(
                _TAG_SELECT + " WHERE t.name_key LIKE ? ESCAPE '\\' GROUP BY t.id ORDER BY t.name_key",
                (pattern,),
            )
            return [_row_to_tag(dict(r)) for r in await cursor.fetchall()]

    async def get_note_tags(self, note_id: str) -> list[Tag]:
        async with self._session("get note tags") as db:
            await self._note_row(db, note_id)
            return await self._note_tags(db, note_id)

    async def merge_tags(self, source_id: str, target_id: str) -> Tag:
        if source_id == target_id:
            raise ValidationFailed("Cannot merge a tag into itself")
        async with self._session("merge tags") as db:
            for tag_id in (source_id, target_id):
                if not await self._tag_by_id(db, tag_id):
                    raise NotFound("Tag", tag_id)
            await db.execute(
                """INSERT OR IGNORE INTO note_tags (note_id, tag_id, created_at)
                   SELECT note_id, ?, created_at FROM note_tags WHERE tag_id = ?""",
                (target_id, source_id),
            )
            await db.execute("DELETE FROM tags WHERE id = ?", (source_id,))
            await db.commit()
            return await self._tag_by_id(db, target_id)

    async def tag_statistics(self, limit: int = 5) -> TagStatistics:
        async with self._session("tag statistics") as db:
            index = await self._tag_index(db)
        tags = list(index.values())
        used = [t for t in tags if t.note_count > 0]
        most_used = sorted(used, key=lambda t: (-t.note_count, t.name.casefold()))[:limit]
        return TagStatistics(
            total_tags=len(tags),
            tags_with_notes=len(used),
            unused_tags=len(tags) - len(used),
            most_used_tags=most_used,
        )
