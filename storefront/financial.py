"""
Financial report for the admin back office: revenue, order counts and product
sales over a calendar period.
"""

from __future__ import annotations

import time
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from storefront.db import OrderRecord, ProductRecord, UserRecord

PERIODS = ("all", "month", "quarter", "semester", "year")
REVENUE_STATUSES = ("delivered", "completed")
STORE_OPENED = datetime(2020, 1, 1, tzinfo=timezone.utc)
TOP_PRODUCTS_LIMIT = 10


def _month_start(year: int, month: int) -> datetime:
    """First instant of ``month`` (1-based, may overflow past December)."""
    index = year * 12 + (month - 1)
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc)


def period_bounds(
    period: str,
    *,
    year: int,
    month: int = 1,
    quarter: int = 1,
    semester: int = 1,
) -> tuple[datetime, Optional[datetime]]:
    """
    Half-open ``[start, end)`` range for a reporting period.

    ``all`` (and anything unrecognised) starts when the store opened and has
    no upper bound.
    """
    if period == "month":
        first, span = month, 1
    elif period == "quarter":
        first, span = (quarter - 1) * 3 + 1, 3
    elif period == "semester":
        first, span = (semester - 1) * 6 + 1, 6
    elif period == "year":
        first, span = 1, 12
    else:
        return STORE_OPENED, None
    return _month_start(year, first), _month_start(year, first + span)


def _in_range(order: OrderRecord, start: datetime, end: Optional[datetime]) -> bool:
    if order.created_at < start.timestamp():
        return False
    return end is None or order.created_at < end.timestamp()


def _product_sales(orders: list[OrderRecord]) -> dict:
    sales: dict = {}
    for order in orders:
        for item in order.items:
            product_id = item.get("productId")
            if product_id is None:
                continue
            entry = sales.setdefault(
                product_id, {"totalSold": 0, "totalRevenue": 0.0, "orders": set()}
            )
            quantity = item.get("quantity") or 0
            entry["totalSold"] += quantity
            entry["totalRevenue"] += quantity * (item.get("price") or 0)
            entry["orders"].add(order.id)
    return sales


def financial_report(
    rows: list[tuple[OrderRecord, Optional[UserRecord]]],
    products: list[ProductRecord],
    *,
    period: str = "month",
    year: Optional[int] = None,
    month: Optional[int] = None,
    quarter: int = 1,
    semester: int = 1,
    now: Optional[float] = None,
) -> dict:
    now = time.time() if now is None else now
    current = datetime.fromtimestamp(now, tz=timezone.utc)
    year = year or current.year
    month = month or current.month
    if period not in PERIODS:
        period = "all"

    start, end = period_bounds(
        period, year=year, month=month, quarter=quarter, semester=semester
    )
    selected = [(order, user) for order, user in rows if _in_range(order, start, end)]
    orders = [order for order, _ in selected]
    completed = [order for order in orders if order.status in REVENUE_STATUSES]

    sales = _product_sales(orders)
    performance = sorted(
        (
            {
                "id": product.id,
                "name": product.name,
                "price": product.price,
                "imageUrl": product.image_url,
                "stock": product.stock,
                "totalSold": sales.get(product.id, {}).get("totalSold", 0),
                "totalRevenue": sales.get(product.id, {}).get("totalRevenue", 0),
                "ordersCount": len(sales.get(product.id, {}).get("orders", ())),
            }
            for product in products
        ),
        key=lambda item: item["totalRevenue"],
        reverse=True,
    )

    return {
        "summary": {
            "totalRevenue": sum(order.total_amount for order in completed),
            "totalOrders": len(orders),
            "completedOrders": len(completed),
            "totalUnitsSold": sum(item["totalSold"] for item in performance),
            "period": {
                "type": period,
                "year": year,
                "month": month if period == "month" else None,
                "quarter": quarter if period == "quarter" else None,
                "semester": semester if period == "semester" else None,
                "start": start.isoformat(),
                "end": (end or current).isoformat(),
            },
        },
        "productPerformance": performance[:TOP_PRODUCTS_LIMIT],
        "statusDistribution": dict(Counter(order.status for order in orders)),
        "orders": [
            {
                "id": order.id,
                "orderNumber": order.order_number,
                "customerName": user.name if user else "Unknown",
                "total": order.total_amount,
                "status": order.status,
                "date": datetime.fromtimestamp(order.created_at, tz=timezone.utc)
                .date()
                .isoformat(),
            }
            for order, user in selected
        ],
    }
