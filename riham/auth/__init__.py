"""
Authentication module.
"""

from riham.auth.session import SessionManager, SESSION_COOKIE_NAME

__all__ = [
    "SessionManager",
    "SESSION_COOKIE_NAME",
]
