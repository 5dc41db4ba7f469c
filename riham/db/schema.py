"""
Declared schema: the ordered list of migrations for the application database.
"""

from .models import Migration, MigrationKind

DEFAULT_DATABASE = "sqlite:grad.db"

# Byte-identical to the desktop build's script: the ledger checksum covers
# whitespace, and blank lines there carry four spaces.
CREATE_INITIAL_TABLES = """
            CREATE TABLE IF NOT EXISTS inventory (
                id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
                type TEXT NOT NULL,
                color TEXT NOT NULL,
                size INTEGER NOT NULL,
                quantity INTEGER NOT NULL,
                price INTEGER NOT NULL
            );
\x20\x20\x20\x20
            CREATE TABLE IF NOT EXISTS sales (
                id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
                name TEXT NOT NULL,
                phone TEXT NOT NULL UNIQUE,
                address TEXT NOT NULL,
                type TEXT NOT NULL,
                color TEXT NOT NULL,
                size TEXT NOT NULL,
                quantity INTEGER NOT NULL
            );
\x20\x20\x20\x20
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
                username TEXT NOT NULL UNIQUE,
                password TEXT NOT NULL
            );
\x20\x20\x20\x20
            INSERT INTO users (username, password)
            SELECT 'admin', 'admin'
            WHERE NOT EXISTS (SELECT 1 FROM users WHERE username = 'admin');
            """

DROP_INITIAL_TABLES = """
DROP TABLE IF EXISTS users;
DROP TABLE IF EXISTS sales;
DROP TABLE IF EXISTS inventory;
"""

MIGRATIONS = [
    Migration(
        version=2,
        description="create_initial_tables",
        sql=CREATE_INITIAL_TABLES,
        kind=MigrationKind.UP
    ),
    Migration(
        version=2,
        description="create_initial_tables",
        sql=DROP_INITIAL_TABLES,
        kind=MigrationKind.DOWN
    ),
]
