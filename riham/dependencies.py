"""
FastAPI dependency injection.
Startup reconciles the schema before anything else touches the database.
"""

import logging
from typing import Optional
from fastapi import Request, HTTPException

from .config import settings
from .db import SQLiteDatabase, MIGRATIONS, reconcile, resolve_database_path
from .auth import SessionManager

logger = logging.getLogger(__name__)


# Global instances (initialized on startup)
_db: Optional[SQLiteDatabase] = None
_session_manager: Optional[SessionManager] = None


async def init_dependencies():
    """
    Initialize global dependencies. Called on app startup.

    Raises MigrationError if the database cannot be brought up to date;
    the application must not start in that case.
    """
    global _db, _session_manager

    applied = await reconcile(settings.database_url, MIGRATIONS, data_dir=settings.data_dir)
    if applied:
        logger.info(f"Applied migrations: {applied}")

    _db = SQLiteDatabase(resolve_database_path(settings.database_url, settings.data_dir))
    _session_manager = SessionManager(settings.session_secret)


async def close_dependencies():
    """Close global dependencies. Called on app shutdown."""
    global _db
    if _db:
        await _db.close()
        _db = None


def get_db() -> SQLiteDatabase:
    """Get the database instance."""
    if _db is None:
        raise RuntimeError("Database not initialized")
    return _db


def get_session_manager() -> SessionManager:
    """Get the session manager instance."""
    if _session_manager is None:
        raise RuntimeError("Session manager not initialized")
    return _session_manager


async def require_auth(request: Request):
    """Dependency that rejects requests without a valid session."""
    if not get_session_manager().is_authenticated(request):
        raise HTTPException(status_code=401, detail="Not authenticated")


def check_auth(request: Request) -> bool:
    """Check if user is authenticated (without raising exception)."""
    return get_session_manager().is_authenticated(request)
