"""
User management routes.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_db, require_auth
from ..db import UserAccount, UserCreate, ConstraintViolation

router = APIRouter(prefix="/api/users", dependencies=[Depends(require_auth)])


@router.get("", response_model=List[UserAccount])
async def list_users():
    return await get_db().get_users()


@router.post("", response_model=UserAccount, status_code=201)
async def create_user(user: UserCreate):
    try:
        return await get_db().create_user(user)
    except ConstraintViolation as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{user_id}")
async def delete_user(user_id: int):
    if not await get_db().delete_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"deleted": user_id}
