"""
Database connection and initialization.
"""

import aiosqlite
from pathlib import Path
from notecache.logging import get_logger

logger = get_logger('database')

SCHEMA_PATH = Path(__file__).parent / "init_db.sql"


async def _table_columns(db: aiosqlite.Connection, table_name: str) -> set[str]:
    cursor = await db.execute(f"PRAGMA table_info({table_name})")
    rows = await cursor.fetchall()
    return {row[1] for row in rows}


async def connect(db_path: str | Path) -> aiosqlite.Connection:
    """
    Open a connection with row access by name and foreign keys enforced.

    :param db_path: Path to the SQLite database file
    :type db_path: str | Path
    :return: Open database connection; the caller closes it
    :rtype: aiosqlite.Connection
    """
    db = await aiosqlite.connect(db_path)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA foreign_keys = ON")
    return db


async def init_db(db_path: str | Path) -> None:
    """
    Initialize database with schema.

    :param db_path: Path to the SQLite database file
    :type db_path: str | Path
    :return: None
    :rtype: None
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(path) as db:
        with open(SCHEMA_PATH) as f:
            await db.executescript(f.read())
        # Databases created without tags.color get the column added in place.
        tag_columns = await _table_columns(db, "tags")
        if "color" not in tag_columns:
            logger.info("Applying migration: add tags.color")
            await db.execute("ALTER TABLE tags ADD COLUMN color TEXT")
        await db.commit()
        logger.info(f"Database initialized at {path}")
