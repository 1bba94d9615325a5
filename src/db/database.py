# manages connection to db, provides helper methods internal to db package
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row
from typing import AsyncIterator, Optional, Set

import aiosqlite

from utils.logger import get_logger

_logger = get_logger(__name__)

_HERE = os.path.dirname(os.path.abspath(__file__))

DB_PATH = "data/shop.sqlite"
DB_SCHEMA_SCRIPT = os.path.join(_HERE, "tables.sql")
DB_SEED_SCRIPT = os.path.join(_HERE, "seed-data.sql")

SEED_DEMO_DATA = True

_initialized: Set[str] = set()


async def _run_script(conn: aiosqlite.Connection, script: str) -> None:
    if not os.path.exists(script) or os.path.getsize(script) == 0:
        return
    _logger.info(f"Initializing database with script {os.path.basename(script)}...")
    with open(script, "r") as f:
        await conn.executescript(f.read())


async def _init_db(conn: aiosqlite.Connection, seed: bool) -> None:
    await _run_script(conn, DB_SCHEMA_SCRIPT)
    if seed:
        await _run_script(conn, DB_SEED_SCRIPT)
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect(db_path: Optional[str] = None) -> AsyncIterator[aiosqlite.Connection]:
    """Async context manager yielding an aiosqlite connection.

    Creates the schema (and the demo catalog, unless disabled) the first time a
    given database file is opened by this process.
    """
    path = db_path or DB_PATH
    parent = os.path.dirname(path)
    if parent and path != ":memory:":
        os.makedirs(parent, exist_ok=True)

    conn = await aiosqlite.connect(path)
    conn.row_factory = Row

    try:
        if path not in _initialized:
            if not await _table_exists(conn, "products"):
                _logger.info(f"Initializing database at {path}...")
                await _init_db(conn, SEED_DEMO_DATA)
            _initialized.add(path)
        yield conn
    finally:
        await conn.close()
