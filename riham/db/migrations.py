"""
Versioned schema migrations for the SQLite store.

Each migration script runs at most once per database file. Applied versions
are recorded in the `_sqlx_migrations` ledger table (sqlx's column layout),
together with a SHA-384 checksum of the script that was run.
"""

import logging
import os
import sqlite3
import time
from datetime import datetime
from typing import Dict, Iterable, List

import aiosqlite

from .models import AppliedMigration, Migration, MigrationKind

logger = logging.getLogger(__name__)

LEDGER_TABLE = "_sqlx_migrations"
SUPPORTED_SCHEME = "sqlite"


class MigrationError(Exception):
    """Base exception for migration errors."""
    pass


class StoreUnreachable(MigrationError):
    """The database file cannot be created or opened."""
    pass


class MigrationFailure(MigrationError):
    """A migration script could not be executed in full."""

    def __init__(self, version: int, cause: Exception):
        super().__init__(f"Migration {version} failed: {cause}")
        self.version = version
        self.cause = cause


class MigrationModified(MigrationError):
    """An applied migration's script no longer matches the ledger checksum."""

    def __init__(self, version: int):
        super().__init__(f"Migration {version} was previously applied but has been modified")
        self.version = version


class VersionMissing(MigrationError):
    """The ledger holds a version that is not in the supplied migrations."""

    def __init__(self, version: int):
        super().__init__(f"Migration {version} was previously applied but is missing")
        self.version = version


def resolve_database_path(identifier: str, data_dir: str = ".") -> str:
    """
    Turn a `sqlite:<path>` identifier into a filesystem path.

    Relative paths are placed under `data_dir`. Both `sqlite:grad.db` and
    `sqlite://grad.db` are accepted.
    """
    scheme, sep, path = identifier.partition(":")
    if not sep or scheme.lower() != SUPPORTED_SCHEME:
        raise StoreUnreachable(f"Unsupported database identifier: {identifier!r}")

    if path.startswith("//"):
        path = path[2:]
    if not path:
        raise StoreUnreachable(f"No database path in identifier: {identifier!r}")

    if path == ":memory:" or os.path.isabs(path):
        return path
    return os.path.join(data_dir, path)


class Migrator:
    """
    Brings a database to the latest declared version.

    Usage:
        migrator = Migrator(MIGRATIONS, data_dir="./data")
        await migrator.reconcile("sqlite:grad.db")
    """

    def __init__(
        self,
        migrations: Iterable[Migration],
        data_dir: str = ".",
        ignore_missing: bool = False
    ):
        migrations = list(migrations)

        seen = set()
        for migration in migrations:
            key = (migration.version, migration.kind)
            if key in seen:
                raise ValueError(
                    f"Duplicate {migration.kind.value} migration for version {migration.version}"
                )
            seen.add(key)

        # Input order is irrelevant; versions always apply ascending
        self.migrations = sorted(migrations, key=lambda m: m.version)
        self.data_dir = data_dir
        self.ignore_missing = ignore_missing

    def _by_kind(self, kind: MigrationKind) -> Dict[int, Migration]:
        return {m.version: m for m in self.migrations if m.kind == kind}

    async def _connect(self, identifier: str) -> aiosqlite.Connection:
        """Open (or create) the store and make sure the ledger exists."""
        path = resolve_database_path(identifier, self.data_dir)

        try:
            if path != ":memory:":
                os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            # Transactions are managed explicitly per migration
            conn = await aiosqlite.connect(path, isolation_level=None)
        except (OSError, sqlite3.Error) as e:
            raise StoreUnreachable(f"Cannot open database '{path}': {e}") from e

        conn.row_factory = aiosqlite.Row

        try:
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
                    version BIGINT PRIMARY KEY,
                    description TEXT NOT NULL,
                    installed_on TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    success BOOLEAN NOT NULL,
                    checksum BLOB NOT NULL,
                    execution_time BIGINT NOT NULL
                )
            """)
        except sqlite3.Error as e:
            await conn.close()
            raise StoreUnreachable(f"Cannot prepare database '{path}': {e}") from e

        return conn

    async def _get_applied(self, conn: aiosqlite.Connection) -> Dict[int, AppliedMigration]:
        cursor = await conn.execute(
            f"SELECT * FROM {LEDGER_TABLE} ORDER BY version"
        )
        rows = await cursor.fetchall()
        return {row["version"]: self._row_to_applied(row) for row in rows}

    def _row_to_applied(self, row: aiosqlite.Row) -> AppliedMigration:
        """Convert a ledger row to an AppliedMigration model."""
        return AppliedMigration(
            version=row["version"],
            description=row["description"],
            installed_on=datetime.fromisoformat(row["installed_on"]),
            success=bool(row["success"]),
            checksum=bytes(row["checksum"]),
            execution_time=row["execution_time"]
        )

    async def _run(
        self,
        conn: aiosqlite.Connection,
        migration: Migration,
        ledger_sql: str,
        ledger_params
    ) -> None:
        """
        Run one script plus its ledger change as a single transaction.

        BEGIN is part of the script itself: executescript() commits any
        pending transaction before it starts.
        """
        start = time.perf_counter_ns()
        try:
            await conn.executescript(f"BEGIN;\n{migration.sql}")
            elapsed = time.perf_counter_ns() - start
            await conn.execute(ledger_sql, ledger_params(elapsed))
            await conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                await conn.rollback()
            logger.error(f"Migration {migration.version} ({migration.kind.value}) failed: {e}")
            raise MigrationFailure(migration.version, e) from e

    async def _apply(self, conn: aiosqlite.Connection, migration: Migration) -> None:
        logger.info(f"Applying migration {migration.version}: {migration.description}")
        await self._run(
            conn,
            migration,
            f"""
            INSERT INTO {LEDGER_TABLE} (version, description, success, checksum, execution_time)
            VALUES (?, ?, 1, ?, ?)
            """,
            lambda elapsed: (migration.version, migration.description, migration.checksum, elapsed)
        )

    async def _undo(self, conn: aiosqlite.Connection, migration: Migration) -> None:
        logger.info(f"Reverting migration {migration.version}: {migration.description}")
        await self._run(
            conn,
            migration,
            f"DELETE FROM {LEDGER_TABLE} WHERE version = ?",
            lambda elapsed: (migration.version,)
        )

    async def reconcile(self, identifier: str) -> List[int]:
        """
        Apply every pending up-migration in ascending version order.

        Stops at the first failure; versions applied before it stay applied.

        Returns:
            Versions applied by this call (empty when already up to date)
        """
        conn = await self._connect(identifier)
        try:
            applied = await self._get_applied(conn)
            ups = self._by_kind(MigrationKind.UP)

            if not self.ignore_missing:
                for version in applied:
                    if version not in ups:
                        raise VersionMissing(version)

            newly_applied = []
            for version, migration in ups.items():
                existing = applied.get(version)
                if existing is not None:
                    if existing.checksum != migration.checksum:
                        raise MigrationModified(version)
                    continue

                await self._apply(conn, migration)
                newly_applied.append(version)

            if newly_applied:
                logger.info(f"Database '{identifier}' migrated: applied {newly_applied}")
            else:
                logger.debug(f"Database '{identifier}' is up to date")

            return newly_applied
        finally:
            await conn.close()

    async def revert(self, identifier: str, target_version: int = 0) -> List[int]:
        """
        Undo applied migrations newer than `target_version`, newest first.

        Returns:
            Versions reverted by this call
        """
        conn = await self._connect(identifier)
        try:
            applied = await self._get_applied(conn)
            downs = self._by_kind(MigrationKind.DOWN)

            reverted = []
            for version in sorted(applied, reverse=True):
                if version <= target_version:
                    break

                migration = downs.get(version)
                if migration is None:
                    raise MigrationFailure(version, LookupError("no down migration declared"))

                await self._undo(conn, migration)
                reverted.append(version)

            return reverted
        finally:
            await conn.close()

    async def applied(self, identifier: str) -> List[AppliedMigration]:
        """List ledger entries, oldest version first."""
        conn = await self._connect(identifier)
        try:
            applied = await self._get_applied(conn)
            return list(applied.values())
        finally:
            await conn.close()


async def reconcile(
    database_identifier: str,
    migrations: Iterable[Migration],
    data_dir: str = ".",
    ignore_missing: bool = False
) -> List[int]:
    """Reconcile a database against `migrations`. See Migrator.reconcile."""
    migrator = Migrator(migrations, data_dir=data_dir, ignore_missing=ignore_missing)
    return await migrator.reconcile(database_identifier)
