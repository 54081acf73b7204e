"""aiosqlite connection helpers for the relational session stores."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

logger = logging.getLogger("agf.db")

BUSY_TIMEOUT_MS = 2000


@asynccontextmanager
async def open_readonly(db_path: Path) -> AsyncIterator[aiosqlite.Connection]:
    """Open a tool's database without ever taking a write lock."""
    uri = f"{db_path.resolve().as_uri()}?mode=ro"
    conn = await aiosqlite.connect(uri, uri=True)
    try:
        conn.row_factory = aiosqlite.Row
        await conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        yield conn
    finally:
        await conn.close()


async def delete_rows(db_path: Path, sql: str, params: tuple) -> int:
    """Run a single keyed ``DELETE``. A missing database means nothing to delete."""
    if not db_path.exists():
        return 0
    conn = await aiosqlite.connect(str(db_path))
    try:
        # Dependent rows are removed by the store's own cascades.
        await conn.execute("PRAGMA foreign_keys=ON")
        await conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        cursor = await conn.execute(sql, params)
        await conn.commit()
        deleted = cursor.rowcount if cursor.rowcount is not None else 0
    finally:
        await conn.close()
    logger.info("Deleted %d row(s) from %s", max(0, deleted), db_path)
    return max(0, deleted)
