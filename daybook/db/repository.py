"""
Generic record repository.

Keyed and indexed CRUD over any collection declared by the schema migrator.
Every operation runs in its own transaction scoped to one collection and
resolves only after that transaction has committed (writes) or its rows have
been fetched (reads).

Column and table names always come from the schema declaration, never from
caller input; values are always bound parameters.
"""

import logging
import sqlite3
from typing import Any, Callable, Optional, TypeVar

from daybook.exceptions import StorageError

from .connection import Connection
from .schema import GENERATED_KEY_FIELD, CollectionSchema, SchemaMigrator, quote

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordRepository:
    """Keyed CRUD over named collections."""

    def __init__(self, connection: Connection, migrator: Optional[SchemaMigrator] = None):
        """
        Initialize the repository.

        Args:
            connection: Open store connection from ConnectionManager.open()
            migrator: Source of collection declarations
        """
        self.connection = connection
        self.migrator = migrator or SchemaMigrator()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _schema(self, collection: str) -> CollectionSchema:
        schema = self.migrator.collection(collection)
        if schema is None:
            raise StorageError(f"Unknown collection: {collection}")
        return schema

    def _key_values(self, schema: CollectionSchema, key: Any) -> tuple:
        values = key if isinstance(key, (tuple, list)) else (key,)
        if len(values) != len(schema.key):
            raise StorageError(
                f"Key for {schema.name} must have {len(schema.key)} part(s), "
                f"got {len(values)}"
            )
        return tuple(values)

    def _key_clause(self, schema: CollectionSchema) -> str:
        return " AND ".join(f"{quote(name)} = ?" for name in schema.key)

    async def _execute(
        self,
        operation: str,
        collection: str,
        fn: Callable[[sqlite3.Connection], T],
        write: bool,
    ) -> T:
        try:
            return await self.connection.run(fn, write=write)
        except sqlite3.Error as e:
            logger.error(
                f"Error during {operation} on {collection}: {e}", exc_info=True
            )
            raise StorageError(str(e)) from e

    # =========================================================================
    # Writes
    # =========================================================================

    async def put(self, collection: str, record: dict) -> None:
        """
        Insert or replace a record keyed by the collection's primary key.

        Args:
            collection: Collection name
            record: Field values; must include every key field
        """
        schema = self._schema(collection)
        missing = [name for name in schema.key if record.get(name) is None]
        if missing:
            raise StorageError(f"Record for {collection} is missing key field(s): {missing}")

        columns = [name for name in schema.field_names if name in record]
        sql = (
            f"INSERT OR REPLACE INTO {quote(collection)} "
            f"({', '.join(quote(c) for c in columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        values = tuple(record[c] for c in columns)

        def _put(conn: sqlite3.Connection) -> None:
            conn.execute(sql, values)

        await self._execute("put", collection, _put, write=True)
        logger.debug(f"Put record into {collection}")

    async def add(self, collection: str, record: dict) -> int:
        """
        Insert a new record with a freshly generated primary key.

        Args:
            collection: Collection name; its key must be declared generated
            record: Field values; any supplied key value is ignored

        Returns:
            The generated key
        """
        schema = self._schema(collection)
        if not schema.generated_key:
            raise StorageError(f"Collection {collection} does not generate keys")

        columns = [
            name
            for name in schema.field_names
            if name != GENERATED_KEY_FIELD and name in record
        ]
        sql = (
            f"INSERT INTO {quote(collection)} "
            f"({', '.join(quote(c) for c in columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        values = tuple(record[c] for c in columns)

        def _add(conn: sqlite3.Connection) -> int:
            return conn.execute(sql, values).lastrowid

        new_id = await self._execute("add", collection, _add, write=True)
        logger.debug(f"Added record {new_id} to {collection}")
        return new_id

    async def delete_by_key(self, collection: str, key: Any) -> bool:
        """
        Delete the record with the given primary key.

        Returns:
            True if a record was deleted, False if none had that key
        """
        schema = self._schema(collection)
        values = self._key_values(schema, key)
        sql = f"DELETE FROM {quote(collection)} WHERE {self._key_clause(schema)}"

        def _delete(conn: sqlite3.Connection) -> bool:
            return conn.execute(sql, values).rowcount > 0

        deleted = await self._execute("delete", collection, _delete, write=True)
        if deleted:
            logger.info(f"Deleted record {key!r} from {collection}")
        else:
            logger.debug(f"No record {key!r} to delete in {collection}")
        return deleted

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_by_key(self, collection: str, key: Any) -> Optional[dict]:
        """Get a record by its primary key, or None."""
        schema = self._schema(collection)
        values = self._key_values(schema, key)
        sql = f"SELECT * FROM {quote(collection)} WHERE {self._key_clause(schema)}"

        def _get(conn: sqlite3.Connection) -> Optional[dict]:
            row = conn.execute(sql, values).fetchone()
            return dict(row) if row else None

        return await self._execute("get", collection, _get, write=False)

    async def get_all_by_index(
        self, collection: str, index_name: str, value: Any
    ) -> list[dict]:
        """
        Get every record whose indexed field equals ``value``.

        Order is unspecified. No match returns an empty list.
        """
        schema = self._schema(collection)
        index = schema.index(index_name)
        if index is None:
            raise StorageError(f"Collection {collection} has no index {index_name}")
        sql = f"SELECT * FROM {quote(collection)} WHERE {quote(index.field)} = ?"

        def _get_all(conn: sqlite3.Connection) -> list[dict]:
            return [dict(row) for row in conn.execute(sql, (value,)).fetchall()]

        rows = await self._execute("index lookup", collection, _get_all, write=False)
        logger.debug(f"Found {len(rows)} record(s) in {collection} where {index_name}={value!r}")
        return rows

    async def get_all(self, collection: str) -> list[dict]:
        """Full scan of a collection."""
        self._schema(collection)
        sql = f"SELECT * FROM {quote(collection)}"

        def _scan(conn: sqlite3.Connection) -> list[dict]:
            return [dict(row) for row in conn.execute(sql).fetchall()]

        return await self._execute("scan", collection, _scan, write=False)

    async def count(self, collection: str) -> int:
        """Count records in a collection."""
        self._schema(collection)
        sql = f"SELECT COUNT(*) FROM {quote(collection)}"

        def _count(conn: sqlite3.Connection) -> int:
            return conn.execute(sql).fetchone()[0]

        return await self._execute("count", collection, _count, write=False)
