"""
Database package - SQLite only.
"""

from .models import (
    Migration, MigrationKind, AppliedMigration, InventoryItem,
    InventoryItemCreate, InventoryItemUpdate, SaleRecord, SaleCreate,
    UserAccount, UserCreate, DashboardStats, SalesReport
)
from .migrations import (
    Migrator, MigrationError, StoreUnreachable, MigrationFailure,
    MigrationModified, VersionMissing, reconcile, resolve_database_path
)
from .schema import MIGRATIONS, DEFAULT_DATABASE
from .sqlite import SQLiteDatabase, ConstraintViolation, InsufficientStock

__all__ = [
    "SQLiteDatabase",
    "ConstraintViolation",
    "InsufficientStock",
    "Migration",
    "MigrationKind",
    "AppliedMigration",
    "Migrator",
    "MigrationError",
    "StoreUnreachable",
    "MigrationFailure",
    "MigrationModified",
    "VersionMissing",
    "reconcile",
    "resolve_database_path",
    "MIGRATIONS",
    "DEFAULT_DATABASE",
    "InventoryItem",
    "InventoryItemCreate",
    "InventoryItemUpdate",
    "SaleRecord",
    "SaleCreate",
    "UserAccount",
    "UserCreate",
    "DashboardStats",
    "SalesReport",
]
