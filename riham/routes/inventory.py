"""
Inventory management routes.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException

from ..config import settings
from ..dependencies import get_db, require_auth
from ..db import InventoryItem, InventoryItemCreate, InventoryItemUpdate
from ..db.models import LowStockItem

router = APIRouter(prefix="/api/inventory", dependencies=[Depends(require_auth)])


@router.get("", response_model=List[InventoryItem])
async def list_inventory():
    """List all stock lines."""
    return await get_db().get_inventory()


@router.post("", response_model=InventoryItem, status_code=201)
async def create_item(item: InventoryItemCreate):
    """Add a stock line."""
    return await get_db().create_inventory_item(item)


@router.get("/low-stock", response_model=List[LowStockItem])
async def low_stock():
    """Stock lines below the configured threshold."""
    return await get_db().get_low_stock(settings.low_stock_threshold)


@router.get("/{item_id}", response_model=InventoryItem)
async def get_item(item_id: int):
    item = await get_db().get_inventory_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.put("/{item_id}", response_model=InventoryItem)
async def update_item(item_id: int, update: InventoryItemUpdate):
    """Update a stock line. Omitted fields are left unchanged."""
    db = get_db()

    if not await db.get_inventory_item(item_id):
        raise HTTPException(status_code=404, detail="Item not found")

    return await db.update_inventory_item(item_id, **update.model_dump(exclude_none=True))


@router.delete("/{item_id}")
async def delete_item(item_id: int):
    """Delete a stock line."""
    if not await get_db().delete_inventory_item(item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return {"deleted": item_id}
