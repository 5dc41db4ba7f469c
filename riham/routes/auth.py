"""
Authentication routes - login/logout.
"""

import logging
from fastapi import APIRouter, Request, Form, HTTPException
from fastapi.responses import JSONResponse

from ..dependencies import get_db, get_session_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login")
async def login(username: str = Form(...), password: str = Form(...)):
    """Check credentials against the users table and start a session."""
    db = get_db()

    user = await db.authenticate(username, password)
    if user is None:
        logger.warning(f"Failed login for '{username}'")
        raise HTTPException(status_code=401, detail="Invalid username or password")

    response = JSONResponse({"username": user.username})
    get_session_manager().create_session(response, user.username)
    logger.info(f"User '{user.username}' logged in")
    return response


@router.get("/me")
async def current_user(request: Request):
    """Return the logged-in username."""
    username = get_session_manager().get_username(request)
    if username is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return {"username": username}


@router.post("/logout")
async def logout():
    """Handle logout."""
    response = JSONResponse({"logged_out": True})
    get_session_manager().clear_session(response)
    return response


@router.get("/logout")
async def logout_get():
    """Handle logout via GET."""
    return await logout()
