# This file is part of ASVAB Search.
# Licensed under the Business Source License 1.1 (BSL 1.1).
# See top-level LICENSE file for details.
# Change Date: 2030-01-01 (Transitions to Apache 2.0)

"""
ASVAB Search — Search Database Connections.

Opens the SQLite store the search subsystem reads, bootstraps its schema
and hands out a bounded number of aiosqlite connections tuned for a
read-heavy search workload (many concurrent SELECTs, a trickle of
history and feedback inserts).
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

from asvab_search.schema import ALL_SCHEMA

logger = logging.getLogger("asvab_search.pool")

# Applied to every connection. WAL lets the fan-out readers run while
# history/feedback writes land; temp B-trees for ORDER BY/GROUP BY stay in memory.
SEARCH_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
    "PRAGMA temp_store=MEMORY",
    "PRAGMA cache_size=-16000",
)

_CLOSE_ERRORS = (sqlite3.Error, ValueError)


class ConnectionPool:
    """Up to ``max_connections`` aiosqlite connections to one search database.

    ``open()`` creates the schema and keeps ``min_connections`` warm.
    Further connections are opened on demand and kept idle once released.
    A connection whose work raised is rolled back before reuse; if the
    rollback fails too it is closed instead.
    """

    def __init__(self, db_path: str, min_connections: int = 2, max_connections: int = 10):
        if not 0 < min_connections <= max_connections:
            raise ValueError("need 0 < min_connections <= max_connections")
        self.db_path = db_path
        self.min_connections = min_connections
        self.max_connections = max_connections
        self._idle: list[aiosqlite.Connection] = []
        self._open = 0
        self._slots = asyncio.Semaphore(max_connections)
        self._opening = asyncio.Lock()
        self._ready = False

    @property
    def active_count(self) -> int:
        """Connections currently open, idle or checked out."""
        return self._open

    async def open(self) -> None:
        """Bootstrap the schema and warm the pool. Safe to call twice."""
        async with self._opening:
            if self._ready:
                return
            first = await self._connect()
            try:
                for ddl in ALL_SCHEMA:
                    await first.executescript(ddl)
                await first.commit()
            except sqlite3.Error:
                logger.critical("Schema bootstrap failed for %s", self.db_path)
                await self._discard(first)
                raise
            self._idle.append(first)
            while self._open < self.min_connections:
                self._idle.append(await self._connect())
            self._ready = True
        logger.info(
            "Search database ready at %s (%d warm, max %d)",
            self.db_path, self._open, self.max_connections,
        )

    async def _connect(self) -> aiosqlite.Connection:
        try:
            conn = await aiosqlite.connect(self.db_path)
        except (sqlite3.Error, OSError) as e:
            logger.critical("Cannot open search database %s: %s", self.db_path, e)
            raise
        conn.row_factory = aiosqlite.Row
        for pragma in SEARCH_PRAGMAS:
            await conn.execute(pragma)
        self._open += 1
        return conn

    async def _discard(self, conn: aiosqlite.Connection) -> None:
        self._open -= 1
        try:
            await conn.close()
        except _CLOSE_ERRORS as e:
            logger.warning("Error closing connection: %s", e)

    async def _rolled_back(self, conn: aiosqlite.Connection) -> bool:
        try:
            await conn.rollback()
        except _CLOSE_ERRORS as e:
            logger.warning("Dropping connection after failed rollback: %s", e)
            return False
        return True

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        if not self._ready:
            await self.open()
        async with self._slots:
            conn = self._idle.pop() if self._idle else await self._connect()
            reusable = False
            try:
                yield conn
                reusable = True
            except Exception:
                reusable = await self._rolled_back(conn)
                raise
            finally:
                if reusable and self._ready:
                    self._idle.append(conn)
                else:
                    await self._discard(conn)

    async def close(self) -> None:
        """Close idle connections. Ones still checked out close on release."""
        self._ready = False
        idle, self._idle = self._idle, []
        for conn in idle:
            await self._discard(conn)
        logger.info("Search database %s closed", self.db_path)
