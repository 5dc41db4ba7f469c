"""
Pydantic models for database entities and schema migrations.
Passwords are stored as plain text, matching the existing database layout.
"""

import hashlib
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class MigrationKind(str, Enum):
    """Direction of a migration script."""
    UP = "up"
    DOWN = "down"


class Migration(BaseModel):
    """A versioned unit of schema/data change."""
    version: int
    description: str
    sql: str
    kind: MigrationKind = MigrationKind.UP

    @property
    def checksum(self) -> bytes:
        """SHA-384 digest of the script, stored in the ledger."""
        return hashlib.sha384(self.sql.encode("utf-8")).digest()


class AppliedMigration(BaseModel):
    """A row of the migration ledger."""
    version: int
    description: str
    installed_on: datetime
    success: bool
    checksum: bytes
    execution_time: int  # nanoseconds


class InventoryItem(BaseModel):
    """A stock line: one type/color/size combination."""
    id: int
    type: str
    color: str
    size: int
    quantity: int
    price: int  # smallest currency unit


class InventoryItemCreate(BaseModel):
    """Input for creating an inventory item."""
    type: str = Field(min_length=1)
    color: str = Field(min_length=1)
    size: int
    quantity: int = Field(ge=0)
    price: int = Field(ge=0)


class InventoryItemUpdate(BaseModel):
    """Input for updating an inventory item."""
    type: Optional[str] = Field(default=None, min_length=1)
    color: Optional[str] = Field(default=None, min_length=1)
    size: Optional[int] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[int] = Field(default=None, ge=0)


class SaleRecord(BaseModel):
    """A recorded sale. Item attributes are copied from inventory."""
    id: int
    name: str
    phone: str
    address: str
    type: str
    color: str
    size: str
    quantity: int


class SaleCreate(BaseModel):
    """Input for recording a sale."""
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    type: str = Field(min_length=1)
    color: str = Field(min_length=1)
    size: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class UserAccount(BaseModel):
    """An application login."""
    id: int
    username: str
    password: str


class UserCreate(BaseModel):
    """Input for creating a user."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LowStockItem(BaseModel):
    id: int
    type: str
    color: str
    size: int
    quantity: int


class RecentSale(BaseModel):
    id: int
    name: str
    type: str
    color: str
    size: str
    quantity: int
    price: int


class ColorRevenue(BaseModel):
    color: str
    total: int


class DashboardStats(BaseModel):
    """Headline figures for the dashboard."""
    total_sales: int = 0
    items_sold: int = 0
    total_revenue: int = 0
    total_customers: int = 0
    low_stock: List[LowStockItem] = Field(default_factory=list)
    recent_sales: List[RecentSale] = Field(default_factory=list)
    revenue_by_color: List[ColorRevenue] = Field(default_factory=list)


class SalesReport(BaseModel):
    """Sales listing with totals, optionally filtered by customer name."""
    sales: List[SaleRecord] = Field(default_factory=list)
    total_quantity: int = 0
    total_revenue: int = 0
    total_customers: int = 0
