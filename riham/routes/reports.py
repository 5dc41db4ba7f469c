"""
Dashboard and sales report routes.
"""

import csv
import io
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from ..config import settings
from ..dependencies import get_db, require_auth
from ..db import DashboardStats, SalesReport

router = APIRouter(prefix="/api", dependencies=[Depends(require_auth)])


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard():
    """Headline sales and stock figures."""
    return await get_db().get_dashboard_stats(settings.low_stock_threshold)


@router.get("/reports/sales", response_model=SalesReport)
async def sales_report(name: Optional[str] = Query(None)):
    """Sales with totals, filtered by customer name."""
    return await get_db().get_sales_report(name_filter=name)


@router.get("/reports/sales/download", response_class=PlainTextResponse)
async def download_sales_report(name: Optional[str] = Query(None)):
    """Download the sales report as CSV."""
    report = await get_db().get_sales_report(name_filter=name)

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["id", "name", "phone", "address", "type", "color", "size", "quantity"])
    for sale in report.sales:
        writer.writerow([
            sale.id, sale.name, sale.phone, sale.address,
            sale.type, sale.color, sale.size, sale.quantity
        ])
    writer.writerow([])
    writer.writerow(["total_quantity", report.total_quantity])
    writer.writerow(["total_revenue", report.total_revenue])
    writer.writerow(["total_customers", report.total_customers])

    filename = f"sales_report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"

    return PlainTextResponse(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
