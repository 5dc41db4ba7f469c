"""
Signed-cookie sessions for logged-in users.
"""

from datetime import datetime
from typing import Optional

from fastapi import Request, Response
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired


# Session duration: 12 hours
SESSION_MAX_AGE = 12 * 60 * 60  # seconds
SESSION_COOKIE_NAME = "riham_session"


class SessionManager:
    """Manages signed cookie-based sessions."""

    def __init__(self, secret_key: str, max_age: int = SESSION_MAX_AGE):
        self._serializer = URLSafeTimedSerializer(secret_key, salt="riham-session")
        self._max_age = max_age

    def create_session(self, response: Response, username: str) -> None:
        """
        Sign the username into the session cookie.

        Args:
            response: FastAPI response object
            username: Account that just logged in
        """
        token = self._serializer.dumps({
            "username": username,
            "created_at": datetime.utcnow().isoformat(),
        })

        response.set_cookie(
            key=SESSION_COOKIE_NAME,
            value=token,
            max_age=self._max_age,
            httponly=True,
            samesite="strict",
        )

    def get_username(self, request: Request) -> Optional[str]:
        """Return the logged-in username, or None if the cookie is missing or invalid."""
        token = request.cookies.get(SESSION_COOKIE_NAME)
        if not token:
            return None

        try:
            data = self._serializer.loads(token, max_age=self._max_age)
        except (BadSignature, SignatureExpired):
            return None

        return data.get("username")

    def clear_session(self, response: Response) -> None:
        response.delete_cookie(
            key=SESSION_COOKIE_NAME,
            httponly=True,
            samesite="strict",
        )

    def is_authenticated(self, request: Request) -> bool:
        return self.get_username(request) is not None
