"""
Desktop integration routes.
"""

from fastapi import APIRouter, Depends, HTTPException

from ..config import settings
from ..dependencies import require_auth
from ..opener import open_path, OpenError

router = APIRouter(prefix="/api/system", dependencies=[Depends(require_auth)])


@router.post("/open-data-dir")
async def open_data_dir():
    """Show the folder holding the database in the system file browser."""
    try:
        uri = open_path(settings.data_dir)
    except OpenError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"opened": uri}
