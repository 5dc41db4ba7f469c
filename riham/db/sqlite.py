"""
SQLite database implementation.
Simple and direct - no abstraction layers.

The schema itself is owned by the migrations module; this class expects a
database that has already been reconciled.
"""

import asyncio
import logging
import sqlite3
from typing import List, Optional

import aiosqlite

from .models import (
    InventoryItem, InventoryItemCreate, SaleRecord, SaleCreate, UserAccount,
    UserCreate, DashboardStats, LowStockItem, RecentSale, ColorRevenue,
    SalesReport
)

logger = logging.getLogger(__name__)

# Revenue falls back to this unit price when a sale no longer matches stock
DEFAULT_UNIT_PRICE = 100

# One price per sale: the first stock line with the same type/color/size
SALE_PRICE = """
    COALESCE((
        SELECT i.price FROM inventory i
        WHERE i.type = s.type AND i.color = s.color AND i.size = s.size
        ORDER BY i.id LIMIT 1
    ), ?)
"""


class ConstraintViolation(Exception):
    """A write was rejected by a UNIQUE/NOT NULL constraint."""
    pass


class InsufficientStock(Exception):
    """The requested sale quantity is not available."""
    pass


class SQLiteDatabase:
    """SQLite database for all operations."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None
        # Serializes write transactions on the shared connection
        self._write_lock = asyncio.Lock()
        self._connect_lock = asyncio.Lock()

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        async with self._connect_lock:
            if self._connection is None:
                conn = await aiosqlite.connect(self.db_path)
                conn.row_factory = aiosqlite.Row
                self._connection = conn
        return self._connection

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    # ===== Helper Methods =====

    def _row_to_item(self, row: aiosqlite.Row) -> InventoryItem:
        return InventoryItem(**dict(row))

    def _row_to_sale(self, row: aiosqlite.Row) -> SaleRecord:
        return SaleRecord(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            address=row["address"],
            type=row["type"],
            color=row["color"],
            size=str(row["size"]),
            quantity=row["quantity"]
        )

    def _row_to_user(self, row: aiosqlite.Row) -> UserAccount:
        return UserAccount(**dict(row))

    # ===== Inventory Operations =====

    async def get_inventory(self) -> List[InventoryItem]:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM inventory ORDER BY id")
        rows = await cursor.fetchall()
        return [self._row_to_item(row) for row in rows]

    async def get_inventory_item(self, item_id: int) -> Optional[InventoryItem]:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT * FROM inventory WHERE id = ?", (item_id,))
        row = await cursor.fetchone()
        return self._row_to_item(row) if row else None

    async def create_inventory_item(self, item: InventoryItemCreate) -> InventoryItem:
        conn = await self._get_connection()
        async with self._write_lock:
            cursor = await conn.execute(
                "INSERT INTO inventory (type, color, size, quantity, price) VALUES (?, ?, ?, ?, ?)",
                (item.type, item.color, item.size, item.quantity, item.price)
            )
            await conn.commit()
        return InventoryItem(id=cursor.lastrowid, **item.model_dump())

    async def update_inventory_item(self, item_id: int, **kwargs) -> Optional[InventoryItem]:
        fields = {k: v for k, v in kwargs.items() if v is not None}
        if not fields:
            return await self.get_inventory_item(item_id)

        updates = []
        values = []

        for key in ("type", "color", "size", "quantity", "price"):
            if key in fields:
                updates.append(f"{key} = ?")
                values.append(fields[key])

        values.append(item_id)

        conn = await self._get_connection()
        async with self._write_lock:
            await conn.execute(f"UPDATE inventory SET {', '.join(updates)} WHERE id = ?", values)
            await conn.commit()

        return await self.get_inventory_item(item_id)

    async def delete_inventory_item(self, item_id: int) -> bool:
        conn = await self._get_connection()
        async with self._write_lock:
            cursor = await conn.execute("DELETE FROM inventory WHERE id = ?", (item_id,))
            await conn.commit()
        return cursor.rowcount > 0

    async def get_low_stock(self, threshold: int = 5) -> List[LowStockItem]:
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT id, type, color, size, quantity FROM inventory WHERE quantity < ? ORDER BY quantity",
            (threshold,)
        )
        rows = await cursor.fetchall()
        return [LowStockItem(**dict(row)) for row in rows]

    # ===== Sales Operations =====

    async def get_sales(self, name_filter: Optional[str] = None) -> List[SaleRecord]:
        conn = await self._get_connection()

        query = "SELECT * FROM sales"
        params = []

        if name_filter:
            query += " WHERE name LIKE ?"
            params.append(f"%{name_filter}%")

        query += " ORDER BY id"

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        return [self._row_to_sale(row) for row in rows]

    async def create_sale(self, sale: SaleCreate) -> SaleRecord:
        """
        Record a sale and take the sold quantity out of stock.

        Both writes happen in one transaction, and only one write
        transaction runs on the connection at a time. The stock line is the
        first matching type/color/size row that can cover the quantity.
        """
        conn = await self._get_connection()
        shortage = InsufficientStock(
            f"Not enough {sale.color} {sale.type} (size {sale.size}) in stock "
            f"for {sale.quantity} item(s)"
        )

        async with self._write_lock:
            try:
                cursor = await conn.execute(
                    """
                    SELECT id FROM inventory
                    WHERE type = ? AND color = ? AND size = ? AND quantity >= ?
                    ORDER BY id LIMIT 1
                    """,
                    (sale.type, sale.color, sale.size, sale.quantity)
                )
                stock = await cursor.fetchone()
                if stock is None:
                    raise shortage

                cursor = await conn.execute(
                    """
                    INSERT INTO sales (name, phone, address, type, color, size, quantity)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (sale.name, sale.phone, sale.address, sale.type, sale.color, sale.size, sale.quantity)
                )
                sale_id = cursor.lastrowid

                cursor = await conn.execute(
                    "UPDATE inventory SET quantity = quantity - ? WHERE id = ? AND quantity >= ?",
                    (sale.quantity, stock["id"], sale.quantity)
                )
                if cursor.rowcount != 1:
                    raise shortage

                await conn.commit()

            except sqlite3.IntegrityError as e:
                await conn.rollback()
                raise ConstraintViolation(f"Sale rejected: {e}") from e
            except Exception:
                await conn.rollback()
                raise

        logger.info(f"Recorded sale {sale_id}: {sale.quantity} x {sale.type}/{sale.color}/{sale.size}")
        return SaleRecord(id=sale_id, **sale.model_dump())

    # ===== User Operations =====

    async def get_users(self) -> List[UserAccount]:
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT id, username, password FROM users ORDER BY id")
        rows = await cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def get_user_by_username(self, username: str) -> Optional[UserAccount]:
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT id, username, password FROM users WHERE username = ?", (username,)
        )
        row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def create_user(self, user: UserCreate) -> UserAccount:
        conn = await self._get_connection()
        async with self._write_lock:
            try:
                cursor = await conn.execute(
                    "INSERT INTO users (username, password) VALUES (?, ?)",
                    (user.username, user.password)
                )
                await conn.commit()
            except sqlite3.IntegrityError as e:
                await conn.rollback()
                raise ConstraintViolation(f"User '{user.username}' already exists") from e

        return UserAccount(id=cursor.lastrowid, username=user.username, password=user.password)

    async def delete_user(self, user_id: int) -> bool:
        conn = await self._get_connection()
        async with self._write_lock:
            cursor = await conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            await conn.commit()
        return cursor.rowcount > 0

    async def authenticate(self, username: str, password: str) -> Optional[UserAccount]:
        """Plain-text credential check against the users table."""
        user = await self.get_user_by_username(username)
        if user is None or user.password != password:
            return None
        return user

    # ===== Reporting =====

    async def get_dashboard_stats(self, low_stock_threshold: int = 5) -> DashboardStats:
        conn = await self._get_connection()

        cursor = await conn.execute(
            "SELECT COUNT(*) AS total_sales, COALESCE(SUM(quantity), 0) AS items_sold, "
            "COUNT(DISTINCT name) AS total_customers FROM sales"
        )
        totals = await cursor.fetchone()

        cursor = await conn.execute(
            f"SELECT COALESCE(SUM(s.quantity * {SALE_PRICE}), 0) AS total FROM sales s",
            (DEFAULT_UNIT_PRICE,)
        )
        revenue = await cursor.fetchone()

        cursor = await conn.execute(
            f"""
            SELECT s.id, s.name, s.type, s.color, s.size, s.quantity,
                   {SALE_PRICE} AS price
            FROM sales s
            ORDER BY s.id DESC LIMIT 5
            """,
            (DEFAULT_UNIT_PRICE,)
        )
        recent = await cursor.fetchall()

        cursor = await conn.execute(
            f"""
            SELECT s.color, SUM(s.quantity * {SALE_PRICE}) AS total
            FROM sales s
            GROUP BY s.color
            ORDER BY total DESC
            LIMIT 6
            """,
            (DEFAULT_UNIT_PRICE,)
        )
        by_color = await cursor.fetchall()

        return DashboardStats(
            total_sales=totals["total_sales"],
            items_sold=totals["items_sold"],
            total_revenue=revenue["total"],
            total_customers=totals["total_customers"],
            low_stock=await self.get_low_stock(low_stock_threshold),
            recent_sales=[
                RecentSale(
                    id=row["id"],
                    name=row["name"],
                    type=row["type"],
                    color=row["color"],
                    size=str(row["size"]),
                    quantity=row["quantity"],
                    price=row["price"]
                )
                for row in recent
            ],
            revenue_by_color=[ColorRevenue(color=row["color"], total=row["total"]) for row in by_color]
        )

    async def get_sales_report(self, name_filter: Optional[str] = None) -> SalesReport:
        sales = await self.get_sales(name_filter)

        conn = await self._get_connection()
        query = f"SELECT COALESCE(SUM(s.quantity * {SALE_PRICE}), 0) AS total FROM sales s"
        params = [DEFAULT_UNIT_PRICE]
        if name_filter:
            query += " WHERE s.name LIKE ?"
            params.append(f"%{name_filter}%")

        cursor = await conn.execute(query, params)
        revenue = await cursor.fetchone()

        return SalesReport(
            sales=sales,
            total_quantity=sum(sale.quantity for sale in sales),
            total_revenue=revenue["total"],
            total_customers=len({sale.name for sale in sales})
        )
