import logging
from collections.abc import Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

import aiosqlite

from config import DB_NAME, DB_TIMEOUT_SECONDS
from create_db import create_schema
from models import Build, BuildItem

logger = logging.getLogger(__name__)

ItemRow = Tuple[str, str, Optional[str], Optional[str], int]


class BuildStoreError(Exception):
    """Base class for everything the build store raises."""


class ValidationError(BuildStoreError):
    """Caller supplied a missing, empty or malformed value. Nothing was written."""


class NotFound(BuildStoreError):
    """The referenced build does not exist."""


class StorageError(BuildStoreError):
    """The database failed. Any transaction in progress was rolled back."""


def _require_id(build_id: Any) -> int:
    if isinstance(build_id, bool) or not isinstance(build_id, int):
        raise ValidationError(f"build_id must be an integer, got {type(build_id).__name__}")
    return build_id


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string")
    return value


def _optional_text(value: Any, field: str) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field} must be a string or empty")
    return value


def _optional_tier(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("tier must be an integer or empty")
    return value


def _validate_fields(fields: Any) -> Tuple[str, Optional[str], str, Optional[int]]:
    if not isinstance(fields, Mapping):
        raise ValidationError("build fields must be a mapping")
    return (
        _require_text(fields.get("name"), "name"),
        _optional_text(fields.get("description"), "description"),
        _require_text(fields.get("type"), "type"),
        _optional_tier(fields.get("tier")),
    )


def _prepare_item_rows(item_set: Any) -> List[ItemRow]:
    """
    Flattens {slot: [item, ...]} into insert rows (slot, name, description, image, is_alternative).

    Items without a name are skipped. The first item that is kept in a slot becomes
    the primary choice, every later one an alternative.
    """
    if not isinstance(item_set, Mapping):
        raise ValidationError("item set must be a mapping of slot to items")

    rows: List[ItemRow] = []
    for slot, slot_items in item_set.items():
        _require_text(slot, "slot")
        if isinstance(slot_items, (str, bytes)) or not isinstance(slot_items, Sequence):
            raise ValidationError(f"items for slot '{slot}' must be a list")

        kept = 0
        for index, item in enumerate(slot_items):
            if not isinstance(item, Mapping):
                raise ValidationError(f"item {index} in slot '{slot}' must be a mapping")
            item_name = _optional_text(item.get("item_name"), "item_name")
            item_description = _optional_text(item.get("item_description"), "item_description")
            item_image = _optional_text(item.get("item_image"), "item_image")

            if not item_name or not item_name.strip():
                # Sparse form rows are tolerated, see DESIGN.md
                logger.debug(f"Skipping unnamed item {index} in slot '{slot}'.")
                continue

            rows.append((slot, item_name, item_description, item_image, 1 if kept else 0))
            kept += 1
    return rows


def _group_items(rows) -> Dict[str, List[BuildItem]]:
    grouped: Dict[str, List[BuildItem]] = {}
    for row in rows:
        item = BuildItem(**dict(row))
        grouped.setdefault(item.slot, []).append(item)
    return grouped


class BuildStore:
    """
    SQLite-backed storage for builds and their per-slot items.

    Every call opens its own connection, so one store can be shared by the bot
    and the admin web app. Writes run inside BEGIN IMMEDIATE transactions, which
    makes concurrent writers queue on SQLite's lock instead of interleaving.
    """

    def __init__(self, db_path: str = DB_NAME, timeout: float = DB_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout = timeout

    @asynccontextmanager
    async def _connect(self):
        try:
            conn = await aiosqlite.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        except aiosqlite.Error as e:
            logger.error(f"Could not open build database {self.db_path}: {e}", exc_info=True)
            raise StorageError(f"Could not open build database: {e}") from e

        try:
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except aiosqlite.Error as e:
            logger.error(f"SQLite error in build store: {e}", exc_info=True)
            raise StorageError(str(e)) from e
        finally:
            await conn.close()

    @asynccontextmanager
    async def _transaction(self, conn: aiosqlite.Connection, mode: str = "DEFERRED"):
        """Runs the block in one transaction. Rolls back on any exception, cancellation included."""
        await conn.execute(f"BEGIN {mode}")
        try:
            yield conn
            await conn.commit()
        except BaseException:
            try:
                await conn.rollback()
            except aiosqlite.Error as rollback_error:
                # Closing the connection discards the transaction anyway
                logger.warning(f"Rollback failed, connection will be closed: {rollback_error}")
            raise

    async def initialize(self):
        async with self._connect() as conn:
            await create_schema(conn)

    async def _fetch_build(self, conn: aiosqlite.Connection, build_id: int) -> Build:
        async with conn.execute("SELECT * FROM builds WHERE id = ?", (build_id,)) as cursor:
            row = await cursor.fetchone()
        if row is None:
            raise NotFound(f"Build {build_id} not found")
        return Build(**dict(row))

    async def _fetch_items(self, conn: aiosqlite.Connection, build_id: int) -> Dict[str, List[BuildItem]]:
        async with conn.execute(
            "SELECT * FROM build_items WHERE build_id = ? ORDER BY is_alternative, id",
            (build_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return _group_items(rows)

    async def create_build(self, name: str, description: Optional[str] = None,
                           type: Optional[str] = None, tier: Optional[int] = None) -> int:
        name, description, type, tier = _validate_fields(
            {"name": name, "description": description, "type": type, "tier": tier}
        )
        async with self._connect() as conn:
            async with self._transaction(conn, "IMMEDIATE"):
                cursor = await conn.execute(
                    "INSERT INTO builds (name, description, type, tier) VALUES (?, ?, ?, ?)",
                    (name, description, type, tier),
                )
                build_id = cursor.lastrowid
        logger.info(f"Created build {build_id} '{name}' ({type}, tier {tier}).")
        return build_id

    async def get_build(self, build_id: int) -> Build:
        build_id = _require_id(build_id)
        async with self._connect() as conn:
            return await self._fetch_build(conn, build_id)

    async def list_builds(self, type: Optional[str] = None, tier: Optional[int] = None,
                          newest_first: bool = False) -> List[Build]:
        """
        Returns builds matching the type and tier filters. A missing filter matches everything,
        so tier=None also returns builds that have no tier.
        """
        if type is not None and not isinstance(type, str):
            raise ValidationError("type filter must be a string")
        tier = _optional_tier(tier)
        order = "created_at DESC, id DESC" if newest_first else "id"
        query = (
            "SELECT * FROM builds WHERE (? IS NULL OR type = ?) AND (? IS NULL OR tier = ?) "
            f"ORDER BY {order}"
        )
        async with self._connect() as conn:
            async with conn.execute(query, (type, type, tier, tier)) as cursor:
                rows = await cursor.fetchall()
        logger.debug(f"list_builds(type={type!r}, tier={tier!r}) returned {len(rows)} builds.")
        return [Build(**dict(row)) for row in rows]

    async def get_items(self, build_id: int) -> Dict[str, List[BuildItem]]:
        """Items grouped by slot, primary item first. Raises NotFound for unknown builds."""
        build_id = _require_id(build_id)
        async with self._connect() as conn:
            async with self._transaction(conn):
                await self._fetch_build(conn, build_id)
                return await self._fetch_items(conn, build_id)

    async def get_build_with_items(self, build_id: int) -> Tuple[Build, Dict[str, List[BuildItem]]]:
        """Reads a build and its items from the same snapshot."""
        build_id = _require_id(build_id)
        async with self._connect() as conn:
            async with self._transaction(conn):
                build = await self._fetch_build(conn, build_id)
                items = await self._fetch_items(conn, build_id)
        return build, items

    async def replace_build(self, build_id: int, fields: Mapping, item_set: Mapping):
        """
        Overwrites a build's fields and replaces its whole item set in one transaction.

        Either everything is written or nothing is. An unknown build raises NotFound before
        the fields and items are validated, both checks run before the first write and any
        failure after BEGIN rolls the transaction back.
        """
        build_id = _require_id(build_id)

        async with self._connect() as conn:
            async with self._transaction(conn, "IMMEDIATE"):
                await self._fetch_build(conn, build_id)
                name, description, type, tier = _validate_fields(fields)
                rows = _prepare_item_rows(item_set)

                await conn.execute(
                    "UPDATE builds SET name = ?, description = ?, type = ?, tier = ? WHERE id = ?",
                    (name, description, type, tier, build_id),
                )
                await conn.execute("DELETE FROM build_items WHERE build_id = ?", (build_id,))
                await conn.executemany(
                    "INSERT INTO build_items (build_id, slot, item_name, item_description, item_image, is_alternative) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    [(build_id, *row) for row in rows],
                )
        logger.info(f"Replaced build {build_id} '{name}' with {len(rows)} items.")
