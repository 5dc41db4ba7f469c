"""
Tests for the schema migration ledger.
"""

import logging
import os
import sqlite3

import pytest

from riham.db import (
    Migration, MigrationKind, Migrator, MIGRATIONS, MigrationFailure,
    MigrationModified, StoreUnreachable, VersionMissing, reconcile,
    resolve_database_path
)
from riham.db.migrations import LEDGER_TABLE
from riham.db.schema import CREATE_INITIAL_TABLES


def up(version, sql, description=None):
    return Migration(version=version, description=description or f"v{version}", sql=sql)


class TestFreshDatabase:
    """Reconciling a database that does not exist yet."""

    @pytest.mark.asyncio
    async def test_creates_declared_tables(self, db_target, table_names):
        applied = await reconcile(db_target, MIGRATIONS)

        assert applied == [2]
        assert table_names() == {"inventory", "sales", "users", LEDGER_TABLE}

    @pytest.mark.asyncio
    async def test_seeds_single_admin(self, db_target, sql):
        await reconcile(db_target, MIGRATIONS)

        assert sql("SELECT username, password FROM users") == [("admin", "admin")]

    @pytest.mark.asyncio
    async def test_ledger_records_version(self, db_target):
        migrator = Migrator(MIGRATIONS)
        await migrator.reconcile(db_target)

        entries = await migrator.applied(db_target)
        assert [e.version for e in entries] == [2]
        assert entries[0].description == "create_initial_tables"
        assert entries[0].success is True
        assert entries[0].checksum == MIGRATIONS[0].checksum
        assert entries[0].execution_time >= 0

    @pytest.mark.asyncio
    async def test_empty_file_example(self, db_path, db_target, table_names, sql):
        """An empty grad.db is treated as a new database."""
        open(db_path, "wb").close()

        await reconcile(db_target, MIGRATIONS)

        assert {"inventory", "sales", "users"} <= table_names()
        assert sql("SELECT password FROM users WHERE username = 'admin'") == [("admin",)]
        assert sql(f"SELECT version FROM {LEDGER_TABLE}") == [(2,)]

    @pytest.mark.asyncio
    async def test_relative_identifier_creates_data_dir(self, tmp_path):
        data_dir = tmp_path / "app" / "data"

        await reconcile("sqlite:grad.db", MIGRATIONS, data_dir=str(data_dir))

        assert (data_dir / "grad.db").exists()

    @pytest.mark.asyncio
    async def test_logs_applied_migration(self, db_target, caplog):
        with caplog.at_level(logging.INFO, logger="riham.db.migrations"):
            await reconcile(db_target, MIGRATIONS)

        assert "Applying migration 2: create_initial_tables" in caplog.text


class TestIdempotence:
    """Running reconcile on every startup."""

    @pytest.mark.asyncio
    async def test_second_run_applies_nothing(self, db_target, sql):
        await reconcile(db_target, MIGRATIONS)
        applied = await reconcile(db_target, MIGRATIONS)

        assert applied == []
        assert sql("SELECT COUNT(*) FROM users") == [(1,)]
        assert sql(f"SELECT COUNT(*) FROM {LEDGER_TABLE}") == [(1,)]

    @pytest.mark.asyncio
    async def test_existing_rows_survive(self, db_target, sql):
        await reconcile(db_target, MIGRATIONS)
        sql("INSERT INTO inventory (type, color, size, quantity, price) VALUES ('shirt', 'red', 42, 3, 250)")

        await reconcile(db_target, MIGRATIONS)

        assert sql("SELECT type, quantity FROM inventory") == [("shirt", 3)]

    @pytest.mark.asyncio
    async def test_changed_admin_password_kept_on_replay(self, db_target, sql):
        """The seed is guarded by existence, not by the ledger."""
        await reconcile(db_target, MIGRATIONS)
        sql("UPDATE users SET password = 'secret' WHERE username = 'admin'")
        # Forget the version so the script runs again
        sql(f"DELETE FROM {LEDGER_TABLE}")

        applied = await reconcile(db_target, MIGRATIONS)

        assert applied == [2]
        assert sql("SELECT username, password FROM users") == [("admin", "secret")]

    @pytest.mark.asyncio
    async def test_database_from_before_ledger(self, db_target, sql):
        """Tables created outside the ledger are tolerated."""
        sql("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL, "
            "username TEXT NOT NULL UNIQUE, password TEXT NOT NULL)")
        sql("INSERT INTO users (username, password) VALUES ('admin', 'changed')")

        await reconcile(db_target, MIGRATIONS)

        assert sql("SELECT password FROM users WHERE username = 'admin'") == [("changed",)]
        assert sql("SELECT COUNT(*) FROM users") == [(1,)]

    @pytest.mark.asyncio
    async def test_sales_phone_is_unique(self, db_target, sql):
        await reconcile(db_target, MIGRATIONS)
        insert = ("INSERT INTO sales (name, phone, address, type, color, size, quantity) "
                  "VALUES (?, '0790000000', 'Amman', 'shirt', 'red', '42', 1)")
        sql(insert, ("Sara",))

        with pytest.raises(sqlite3.IntegrityError):
            sql(insert, ("Omar",))


class TestOrdering:
    """Versions apply ascending regardless of input order."""

    @pytest.mark.asyncio
    async def test_out_of_order_input(self, db_target, sql):
        migrations = [
            up(3, "ALTER TABLE notes ADD COLUMN body TEXT;"),
            up(1, "CREATE TABLE notes (id INTEGER PRIMARY KEY);"),
        ]

        applied = await reconcile(db_target, migrations)

        assert applied == [1, 3]
        columns = [row[1] for row in sql("PRAGMA table_info(notes)")]
        assert columns == ["id", "body"]

    @pytest.mark.asyncio
    async def test_new_version_applied_incrementally(self, db_target, sql):
        await reconcile(db_target, MIGRATIONS)

        later = MIGRATIONS + [up(3, "ALTER TABLE inventory ADD COLUMN barcode TEXT;")]
        applied = await reconcile(db_target, later)

        assert applied == [3]
        assert sql(f"SELECT version FROM {LEDGER_TABLE} ORDER BY version") == [(2,), (3,)]

    def test_duplicate_versions_rejected(self):
        with pytest.raises(ValueError):
            Migrator([up(1, "SELECT 1;"), up(1, "SELECT 2;")])

    def test_up_and_down_may_share_version(self):
        migrator = Migrator(MIGRATIONS)
        assert [m.kind for m in migrator.migrations] == [MigrationKind.UP, MigrationKind.DOWN]


class TestFailures:
    """A failing script is all-or-nothing for its version."""

    BROKEN = "CREATE TABLE half_done (id INTEGER); CREATE TABL broken (id INTEGER);"

    @pytest.mark.asyncio
    async def test_failure_reports_version(self, db_target):
        with pytest.raises(MigrationFailure) as exc_info:
            await reconcile(db_target, [up(1, "CREATE TABLE a (id INTEGER);"), up(2, self.BROKEN)])

        assert exc_info.value.version == 2
        assert isinstance(exc_info.value.cause, sqlite3.Error)

    @pytest.mark.asyncio
    async def test_failed_version_leaves_nothing_behind(self, db_target, sql, table_names):
        migrations = [
            up(1, "CREATE TABLE a (id INTEGER);"),
            up(2, self.BROKEN),
            up(3, "CREATE TABLE c (id INTEGER);"),
        ]

        with pytest.raises(MigrationFailure):
            await reconcile(db_target, migrations)

        assert sql(f"SELECT version FROM {LEDGER_TABLE}") == [(1,)]
        assert "half_done" not in table_names()
        assert "c" not in table_names()

    @pytest.mark.asyncio
    async def test_failed_version_retried(self, db_target, sql):
        migrations = [up(1, "CREATE TABLE a (id INTEGER);"), up(2, self.BROKEN)]

        with pytest.raises(MigrationFailure):
            await reconcile(db_target, migrations)
        with pytest.raises(MigrationFailure) as exc_info:
            await reconcile(db_target, migrations)
        assert exc_info.value.version == 2

        fixed = [migrations[0], up(2, "CREATE TABLE b (id INTEGER);")]
        assert await reconcile(db_target, fixed) == [2]

    @pytest.mark.asyncio
    async def test_constraint_violation_in_script(self, db_target, sql):
        script = (
            "CREATE TABLE tags (name TEXT UNIQUE);"
            "INSERT INTO tags VALUES ('x');"
            "INSERT INTO tags VALUES ('x');"
        )

        with pytest.raises(MigrationFailure) as exc_info:
            await reconcile(db_target, [up(1, script)])

        assert isinstance(exc_info.value.cause, sqlite3.IntegrityError)
        assert sql(f"SELECT COUNT(*) FROM {LEDGER_TABLE}") == [(0,)]

    @pytest.mark.asyncio
    async def test_modified_script_detected(self, db_target):
        await reconcile(db_target, [up(1, "CREATE TABLE a (id INTEGER);")])

        with pytest.raises(MigrationModified) as exc_info:
            await reconcile(db_target, [up(1, "CREATE TABLE a (id INTEGER, name TEXT);")])

        assert exc_info.value.version == 1

    @pytest.mark.asyncio
    async def test_missing_version_detected(self, db_target):
        await reconcile(db_target, [up(1, "CREATE TABLE a (id INTEGER);")])

        with pytest.raises(VersionMissing):
            await reconcile(db_target, MIGRATIONS)

        assert await reconcile(db_target, MIGRATIONS, ignore_missing=True) == [2]


class TestStoreUnreachable:

    @pytest.mark.asyncio
    async def test_directory_instead_of_file(self, tmp_path):
        with pytest.raises(StoreUnreachable):
            await reconcile(f"sqlite:{tmp_path}", MIGRATIONS)

    @pytest.mark.asyncio
    async def test_corrupt_file(self, db_path, db_target):
        with open(db_path, "wb") as f:
            f.write(b"definitely not a database " * 64)

        with pytest.raises(StoreUnreachable):
            await reconcile(db_target, MIGRATIONS)

    @pytest.mark.asyncio
    async def test_unsupported_scheme(self):
        with pytest.raises(StoreUnreachable):
            await reconcile("postgres://localhost/grad", MIGRATIONS)


class TestRevert:

    @pytest.mark.asyncio
    async def test_reconcile_never_runs_down_scripts(self, db_target, table_names):
        await reconcile(db_target, MIGRATIONS)
        assert "inventory" in table_names()

    @pytest.mark.asyncio
    async def test_revert_and_reapply(self, db_target, sql, table_names):
        migrator = Migrator(MIGRATIONS)
        await migrator.reconcile(db_target)

        reverted = await migrator.revert(db_target)

        assert reverted == [2]
        assert table_names() == {LEDGER_TABLE}
        assert await migrator.applied(db_target) == []

        assert await migrator.reconcile(db_target) == [2]
        assert sql("SELECT username FROM users") == [("admin",)]

    @pytest.mark.asyncio
    async def test_revert_stops_at_target(self, db_target, table_names):
        migrator = Migrator([
            up(1, "CREATE TABLE a (id INTEGER);"),
            up(2, "CREATE TABLE b (id INTEGER);"),
            Migration(version=2, description="v2", sql="DROP TABLE b;", kind=MigrationKind.DOWN),
        ])
        await migrator.reconcile(db_target)

        assert await migrator.revert(db_target, target_version=1) == [2]
        assert "a" in table_names()
        assert "b" not in table_names()

    @pytest.mark.asyncio
    async def test_revert_without_down_script(self, db_target):
        migrator = Migrator([up(1, "CREATE TABLE a (id INTEGER);")])
        await migrator.reconcile(db_target)

        with pytest.raises(MigrationFailure) as exc_info:
            await migrator.revert(db_target)
        assert exc_info.value.version == 1


class TestResolveDatabasePath:

    def test_relative_path_under_data_dir(self):
        assert resolve_database_path("sqlite:grad.db", "/srv/data") == os.path.join("/srv/data", "grad.db")

    def test_double_slash_form(self):
        assert resolve_database_path("sqlite://grad.db", "data") == os.path.join("data", "grad.db")

    def test_absolute_path(self):
        assert resolve_database_path("sqlite:///var/lib/grad.db", "data") == "/var/lib/grad.db"

    def test_memory(self):
        assert resolve_database_path("sqlite::memory:") == ":memory:"

    def test_bad_identifiers(self):
        for identifier in ("grad.db", "mysql:grad.db", "sqlite:"):
            with pytest.raises(StoreUnreachable):
                resolve_database_path(identifier)


def test_checksum_is_sha384_of_script():
    import hashlib

    migration = up(2, CREATE_INITIAL_TABLES)
    assert migration.checksum == hashlib.sha384(CREATE_INITIAL_TABLES.encode()).digest()


class TestDesktopDatabase:
    """A grad.db created by the desktop build is accepted as up to date."""

    DESKTOP_CHECKSUM = (
        "9f935c18e78913bd69c28dd6e5701381a69b14a5a8aedbd04dffa379205fbda0"
        "7164ed8b45ada1c94e2e44644d48c7be"
    )

    def test_script_matches_desktop_checksum(self):
        import hashlib

        assert hashlib.sha384(CREATE_INITIAL_TABLES.encode()).hexdigest() == self.DESKTOP_CHECKSUM

    @pytest.mark.asyncio
    async def test_desktop_ledger_row_is_recognised(self, db_path, db_target, sql):
        conn = sqlite3.connect(db_path)
        try:
            conn.executescript(CREATE_INITIAL_TABLES)
            conn.execute(f"""
                CREATE TABLE {LEDGER_TABLE} (
                    version BIGINT PRIMARY KEY,
                    description TEXT NOT NULL,
                    installed_on TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    success BOOLEAN NOT NULL,
                    checksum BLOB NOT NULL,
                    execution_time BIGINT NOT NULL
                )
            """)
            conn.execute(
                f"INSERT INTO {LEDGER_TABLE} (version, description, success, checksum, execution_time) "
                "VALUES (2, 'create_initial_tables', 1, ?, 1250000)",
                (bytes.fromhex(self.DESKTOP_CHECKSUM),)
            )
            conn.commit()
        finally:
            conn.close()

        assert await reconcile(db_target, MIGRATIONS) == []
        assert sql(f"SELECT version FROM {LEDGER_TABLE}") == [(2,)]
