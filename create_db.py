# create_db.py
import logging

import aiosqlite

logger = logging.getLogger(__name__)

BUILDS_TABLE = """
    CREATE TABLE IF NOT EXISTS builds (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL CHECK (length(trim(name)) > 0),
        description TEXT,
        type TEXT NOT NULL CHECK (length(trim(type)) > 0),
        tier INTEGER,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
"""

BUILD_ITEMS_TABLE = """
    CREATE TABLE IF NOT EXISTS build_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        build_id INTEGER NOT NULL,
        slot TEXT NOT NULL CHECK (length(trim(slot)) > 0),
        item_name TEXT NOT NULL CHECK (length(trim(item_name)) > 0),
        item_description TEXT,
        item_image TEXT,
        is_alternative INTEGER NOT NULL DEFAULT 0 CHECK (is_alternative IN (0, 1)),
        FOREIGN KEY (build_id) REFERENCES builds (id)
    )
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_builds_type_tier ON builds (type, tier)",
    "CREATE INDEX IF NOT EXISTS idx_build_items_build_id ON build_items (build_id)",
    # One primary item per slot of a build
    """CREATE UNIQUE INDEX IF NOT EXISTS idx_build_items_primary
       ON build_items (build_id, slot) WHERE is_alternative = 0""",
]


async def _column_names(conn: aiosqlite.Connection, table: str) -> list[str]:
    async with conn.execute(f"PRAGMA table_info({table})") as cursor:
        rows = await cursor.fetchall()
    return [row[1] for row in rows]


async def create_schema(conn: aiosqlite.Connection):
    """
    Creates the builds/build_items tables and their indexes if they don't exist yet.
    Databases written before tiers existed get the tier column added in place.
    """
    await conn.execute(BUILDS_TABLE)
    await conn.execute(BUILD_ITEMS_TABLE)

    if "tier" not in await _column_names(conn, "builds"):
        logger.info("Legacy builds table without a tier column found. Adding it.")
        await conn.execute("ALTER TABLE builds ADD COLUMN tier INTEGER")

    for statement in INDEXES:
        await conn.execute(statement)
    await conn.commit()
    logger.info("Build tables and indexes are in place.")
