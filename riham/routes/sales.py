"""
Sales routes.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_db, require_auth
from ..db import SaleRecord, SaleCreate, ConstraintViolation, InsufficientStock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sales", dependencies=[Depends(require_auth)])


@router.get("", response_model=List[SaleRecord])
async def list_sales(name: Optional[str] = Query(None)):
    """List sales, optionally filtered by customer name."""
    return await get_db().get_sales(name_filter=name)


@router.post("", response_model=SaleRecord, status_code=201)
async def record_sale(sale: SaleCreate):
    """Record a sale and take it out of stock."""
    try:
        return await get_db().create_sale(sale)
    except InsufficientStock as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConstraintViolation as e:
        # phone is UNIQUE on the sales table
        logger.warning(f"Sale for phone {sale.phone} rejected: {e}")
        raise HTTPException(
            status_code=409,
            detail=f"A sale is already recorded for phone {sale.phone}"
        )
