"""
Connection management for the Daybook store.

A ConnectionManager owns the single logical SQLite connection. The first
``open()`` creates the store file, runs the schema migrator and caches the
ready Connection; every later call returns the cached handle without touching
the schema again.

SQLite calls block, so they run in a worker thread via ``asyncio.to_thread``.
The handle is opened with ``check_same_thread=False`` and every transaction is
serialized by a per-connection lock, which keeps operations on the same
collection and key in commit order.
"""

import asyncio
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional, TypeVar

from daybook.config import DB_TIMEOUT, get_db_path
from daybook.exceptions import StoreConnectionError

from .schema import SchemaMigrator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Connection:
    """
    A ready, migrated store handle.

    The underlying sqlite3 connection runs in autocommit mode; transactions
    are opened explicitly by ``transaction()``.
    """

    def __init__(self, conn: sqlite3.Connection, db_path: Path, schema_version: int):
        self._conn = conn
        self.db_path = db_path
        self.schema_version = schema_version
        self._lock = asyncio.Lock()
        self._closed = False
        self._pending: set[asyncio.Task] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def transaction(self, write: bool = True):
        """
        Context manager for a single transaction with proper error handling.

        Commits when the block completes and rolls back on any error, so the
        block's work is applied completely or not at all.
        """
        conn = self._conn
        conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
        try:
            yield conn
            conn.execute("COMMIT")
        except sqlite3.OperationalError as e:
            logger.error(f"Database locked or operational error: {e}", exc_info=True)
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        except Exception as e:
            logger.error(f"Database error: {e}", exc_info=True)
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def _run_sync(self, fn: Callable[[sqlite3.Connection], T], write: bool) -> T:
        with self.transaction(write=write) as conn:
            return fn(conn)

    async def run(
        self, fn: Callable[[sqlite3.Connection], T], write: bool = True
    ) -> T:
        """
        Run ``fn`` inside one transaction and wait until it has committed.

        Raises whatever the engine raised; nothing is applied in that case.
        If the caller is cancelled, the transaction still runs to commit or
        rollback before the next operation may start.
        """
        task = asyncio.ensure_future(self._locked_run(fn, write))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return await asyncio.shield(task)

    async def _locked_run(self, fn: Callable[[sqlite3.Connection], T], write: bool) -> T:
        async with self._lock:
            if self._closed:
                raise sqlite3.ProgrammingError("Cannot operate on a closed store")
            return await asyncio.to_thread(self._run_sync, fn, write)

    async def close(self):
        async with self._lock:
            if not self._closed:
                await asyncio.to_thread(self._conn.close)
                self._closed = True
                logger.debug(f"Closed store {self.db_path}")


class ConnectionManager:
    """Lazily opens, migrates and caches the store connection."""

    def __init__(
        self,
        db_path: Optional[Path] = None,
        migrator: Optional[SchemaMigrator] = None,
        timeout: float = DB_TIMEOUT,
    ):
        """
        Initialize the connection manager.

        Args:
            db_path: Path to the SQLite store file. Defaults to config.get_db_path()
            migrator: Schema migrator run on the first open
            timeout: Seconds to wait on a locked store
        """
        self.db_path = Path(db_path) if db_path else get_db_path()
        self.migrator = migrator or SchemaMigrator()
        self.timeout = timeout
        self._connection: Optional[Connection] = None
        self._opening: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    async def open(self) -> Connection:
        """
        Return the ready connection, opening and migrating it on first use.

        Concurrent callers waiting on a cold open all receive the same
        connection.

        Raises:
            StoreConnectionError: If the engine refuses to open or upgrade the
                store; the message is the engine's own diagnostic.
        """
        if self._connection is not None:
            return self._connection

        # One open in flight at a time; cancelling a waiter does not abandon it
        if self._opening is None:
            self._opening = asyncio.ensure_future(self._open())
        return await asyncio.shield(self._opening)

    async def _open(self) -> Connection:
        try:
            connection = await asyncio.to_thread(self._open_sync)
        finally:
            self._opening = None
        self._connection = connection
        return connection

    def _open_sync(self) -> Connection:
        conn = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            version = self.migrator.migrate(conn)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to open store {self.db_path}: {e}", exc_info=True)
            if conn is not None:
                conn.close()
            raise StoreConnectionError(str(e)) from e

        logger.info(f"Opened store {self.db_path} at schema version {version}")
        return Connection(conn, self.db_path, version)

    async def close(self):
        """Close the cached connection; the next open() starts cold."""
        if self._opening is not None:
            await asyncio.wait({self._opening})
        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.close()
