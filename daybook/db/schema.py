"""
Versioned schema declarations and the schema migrator.

The store's schema is an explicit ordered list of migration steps. Each step
declares the collections (tables) it introduces together with their primary
key shape, secondary indices and default rows. The store's version lives in
SQLite's ``PRAGMA user_version``.

Migrations are additive only: a step creates whatever it declares that is
missing and never drops or rewrites an existing collection. All pending steps
run inside one ``BEGIN IMMEDIATE`` scope, so a failure leaves neither a
partial collection set nor an advanced version behind.
"""

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Optional

from daybook.config import DEFAULT_FINANCE_CATEGORIES

logger = logging.getLogger(__name__)

GENERATED_KEY_FIELD = "id"


def quote(identifier: str) -> str:
    """Quote an SQL identifier taken from a schema declaration."""
    return '"' + identifier.replace('"', '""') + '"'


@dataclass(frozen=True)
class IndexSchema:
    """A secondary index on a single field."""

    name: str
    field: str
    unique: bool = False

    def sql_name(self, collection: str) -> str:
        return f"idx_{collection}_{self.name}"


@dataclass(frozen=True)
class CollectionSchema:
    """
    Declaration of one collection.

    Attributes:
        name: Collection (table) name
        fields: (field name, column definition) pairs, excluding a generated key
        key: Primary key field names; more than one means a composite key
        generated_key: Whether the store assigns the key on insert
        indices: Secondary indices maintained on every write
        seed: Rows inserted only at the moment the collection is created
    """

    name: str
    fields: tuple[tuple[str, str], ...]
    key: tuple[str, ...] = (GENERATED_KEY_FIELD,)
    generated_key: bool = False
    indices: tuple[IndexSchema, ...] = ()
    seed: tuple[dict, ...] = ()

    @property
    def field_names(self) -> list[str]:
        names = [name for name, _ in self.fields]
        if self.generated_key:
            names.insert(0, GENERATED_KEY_FIELD)
        return names

    def index(self, name: str) -> Optional[IndexSchema]:
        for index in self.indices:
            if index.name == name:
                return index
        return None

    def create_table_sql(self) -> str:
        columns = []
        if self.generated_key:
            columns.append(
                f"{quote(GENERATED_KEY_FIELD)} INTEGER PRIMARY KEY AUTOINCREMENT"
            )
        columns.extend(f"{quote(name)} {definition}" for name, definition in self.fields)
        if not self.generated_key:
            key_columns = ", ".join(quote(name) for name in self.key)
            columns.append(f"PRIMARY KEY ({key_columns})")
        body = ",\n    ".join(columns)
        return f"CREATE TABLE {quote(self.name)} (\n    {body}\n)"

    def create_index_sql(self, index: IndexSchema) -> str:
        unique = "UNIQUE " if index.unique else ""
        return (
            f"CREATE {unique}INDEX {quote(index.sql_name(self.name))} "
            f"ON {quote(self.name)}({quote(index.field)})"
        )


@dataclass(frozen=True)
class Migration:
    """One versioned, additive schema step."""

    version: int
    collections: tuple[CollectionSchema, ...] = ()

    def apply(self, conn: sqlite3.Connection) -> list[str]:
        """
        Create every declared collection and index that does not exist yet.

        Must run inside an open transaction. Returns the names of the
        collections created by this call.
        """
        created = []
        for collection in self.collections:
            if not _table_exists(conn, collection.name):
                conn.execute(collection.create_table_sql())
                created.append(collection.name)
                logger.info(f"Created collection {collection.name} (v{self.version})")
                if collection.seed:
                    _seed(conn, collection)

            for index in collection.indices:
                if not _index_exists(conn, index.sql_name(collection.name)):
                    conn.execute(collection.create_index_sql(index))
                    logger.debug(
                        f"Created index {index.name} on {collection.name}.{index.field}"
                    )
        return created


def _table_exists(conn: sqlite3.Connection, name: str) -> bool:
    cursor = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    )
    return cursor.fetchone() is not None


def _index_exists(conn: sqlite3.Connection, name: str) -> bool:
    cursor = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = ?", (name,)
    )
    return cursor.fetchone() is not None


def _seed(conn: sqlite3.Connection, collection: CollectionSchema) -> None:
    for row in collection.seed:
        columns = ", ".join(quote(name) for name in row)
        placeholders = ", ".join("?" for _ in row)
        conn.execute(
            f"INSERT INTO {quote(collection.name)} ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )
    logger.info(f"Seeded {len(collection.seed)} default rows into {collection.name}")


def get_user_version(conn: sqlite3.Connection) -> int:
    """Read the store's schema version."""
    return conn.execute("PRAGMA user_version").fetchone()[0]


# =========================================================================
# Schema declaration
# =========================================================================

ENTRIES = CollectionSchema(
    name="entries",
    fields=(
        ("date", "TEXT NOT NULL"),
        ("category", "TEXT NOT NULL"),
        ("text", "TEXT NOT NULL"),
        ("timestamp", "TEXT NOT NULL"),
    ),
    key=("date", "category"),
    indices=(IndexSchema(name="date", field="date"),),
)

FINANCE_CATEGORIES = CollectionSchema(
    name="financeCategories",
    fields=(("name", "TEXT NOT NULL"),),
    generated_key=True,
    seed=tuple({"name": name} for name in DEFAULT_FINANCE_CATEGORIES),
)

FINANCE_RECORDS = CollectionSchema(
    name="financeRecords",
    fields=(
        ("date", "TEXT NOT NULL"),
        ("category", "TEXT NOT NULL"),
        ("amount", "REAL NOT NULL CHECK(amount >= 0)"),
        ("note", "TEXT NOT NULL DEFAULT ''"),
        ("timestamp", "TEXT NOT NULL"),
    ),
    generated_key=True,
    indices=(IndexSchema(name="date", field="date"),),
)

MIGRATIONS: tuple[Migration, ...] = (
    Migration(version=1, collections=(ENTRIES,)),
    Migration(version=2, collections=(FINANCE_CATEGORIES, FINANCE_RECORDS)),
)

SCHEMA_VERSION = MIGRATIONS[-1].version


class SchemaMigrator:
    """Applies the pending delta between a store's version and the target."""

    def __init__(self, migrations: Iterable[Migration] = MIGRATIONS):
        self.migrations = tuple(sorted(migrations, key=lambda m: m.version))
        self.target_version = self.migrations[-1].version if self.migrations else 0
        self._collections = {
            collection.name: collection
            for migration in self.migrations
            for collection in migration.collections
        }

    def collection(self, name: str) -> Optional[CollectionSchema]:
        """Look up a collection declared by any migration step."""
        return self._collections.get(name)

    def collections(self) -> list[CollectionSchema]:
        return list(self._collections.values())

    def pending(self, current_version: int) -> list[Migration]:
        return [
            m
            for m in self.migrations
            if current_version < m.version <= self.target_version
        ]

    @contextmanager
    def _upgrade_scope(self, conn: sqlite3.Connection):
        """All-or-nothing upgrade transaction."""
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield
            conn.execute("COMMIT")
        except Exception as e:
            logger.error(f"Schema upgrade failed, rolling back: {e}", exc_info=True)
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def migrate(self, conn: sqlite3.Connection) -> int:
        """
        Bring the store up to the target version.

        Args:
            conn: SQLite handle opened in autocommit mode (isolation_level=None)

        Returns:
            The store's schema version after migration
        """
        current = get_user_version(conn)
        if current > self.target_version:
            logger.warning(
                f"Store version {current} is newer than supported "
                f"version {self.target_version}; leaving schema untouched"
            )
            return current

        steps = self.pending(current)
        if not steps:
            logger.debug(f"Schema already at version {current}")
            return current

        with self._upgrade_scope(conn):
            for step in steps:
                step.apply(conn)
            # PRAGMA does not accept bound parameters; the value is an int.
            conn.execute(f"PRAGMA user_version = {int(self.target_version)}")

        logger.info(f"Migrated schema from v{current} to v{self.target_version}")
        return self.target_version
