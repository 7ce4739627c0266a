"""
Read-side aggregation over orders.

Grouping and summing happen in the database; the functions here shape the
resulting rows (objects or dicts) into buckets and apply the commission
rate. Only delivered orders count toward revenue and commission.
"""
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from food_delivery.core.config import COMMISSION_RATE
from food_delivery.core.errors import ValidationError
from food_delivery.models.order import OrderStatus
from food_delivery.utils import as_utc, money, now_utc

BUCKETS = ("day", "month", "quarter", "year")
RANGES = ("week", "month", "quarter", "year")


def _get(row: Any, name: str) -> Any:
    return row[name] if isinstance(row, dict) else getattr(row, name)


def bucket_key(moment: datetime, bucket: str) -> str:
    moment = as_utc(moment)
    if bucket == "day":
        return moment.strftime("%Y-%m-%d")
    if bucket == "month":
        return moment.strftime("%Y-%m")
    if bucket == "quarter":
        return f"{moment.year}-Q{(moment.month - 1) // 3 + 1}"
    if bucket == "year":
        return str(moment.year)
    raise ValidationError(f"bucket must be one of: {', '.join(BUCKETS)}")


def range_window(range_name: str, now: Optional[datetime] = None) -> Tuple[datetime, str]:
    """Start of the reporting window for `range_name` and the bucket it is charted by."""
    now = as_utc(now or now_utc())
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if range_name == "week":
        return now - timedelta(days=7), "day"
    if range_name == "month":
        return midnight.replace(day=1), "day"
    if range_name == "quarter":
        first_month = (now.month - 1) // 3 * 3 + 1
        return midnight.replace(month=first_month, day=1), "month"
    if range_name == "year":
        return midnight.replace(month=1, day=1), "month"
    raise ValidationError(f"range must be one of: {', '.join(RANGES)}")


def revenue_stats(status_rows: Iterable[Any]) -> Dict[str, Any]:
    """
    Order count and amount per status, plus revenue over delivered orders.

    `status_rows` are per-status aggregates exposing ``status``, ``count``
    and ``total``. ``average_order_value`` is total revenue divided by the
    number of delivered orders.
    """
    by_status: Dict[str, Dict[str, Any]] = {
        s.value: {"count": 0, "total_amount": Decimal("0.00")} for s in OrderStatus
    }
    for row in status_rows:
        entry = by_status[OrderStatus(_get(row, "status")).value]
        entry["count"] += int(_get(row, "count") or 0)
        entry["total_amount"] = money(entry["total_amount"] + money(_get(row, "total")))

    delivered = by_status[OrderStatus.DELIVERED.value]
    revenue = delivered["total_amount"]
    return {
        "total_orders": sum(entry["count"] for entry in by_status.values()),
        "delivered_orders": delivered["count"],
        "total_revenue": revenue,
        "average_order_value": money(revenue / delivered["count"]) if delivered["count"] else Decimal("0.00"),
        "by_status": by_status,
    }


def revenue_series(orders: Iterable[Any], bucket: str = "day") -> List[Dict[str, Any]]:
    """Revenue and order count per time bucket for delivered orders, oldest first."""
    series: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"revenue": Decimal("0.00"), "orders": 0})
    for row in orders:
        point = series[bucket_key(_get(row, "created_at"), bucket)]
        point["revenue"] += money(_get(row, "total_amount"))
        point["orders"] += 1
    return [
        {"period": key, "revenue": money(point["revenue"]), "orders": point["orders"]}
        for key, point in sorted(series.items())
    ]


def commission_split(
    orders: Iterable[Any],
    bucket: str = "day",
    rate: Decimal = COMMISSION_RATE,
) -> List[Dict[str, Any]]:
    """Per bucket: earnings, platform commission and the restaurant's net."""
    points = []
    for point in revenue_series(orders, bucket):
        earnings = point["revenue"]
        commission = money(earnings * rate)
        points.append({
            "period": point["period"],
            "earnings": earnings,
            "commission": commission,
            "net_earnings": money(earnings - commission),
            "orders": point["orders"],
        })
    return points


def top_dishes(rows: Iterable[Any]) -> List[Dict[str, Any]]:
    """Shapes ranked per-dish aggregates (``dish_id``, ``name``, ``qty``, ``revenue``)."""
    return [
        {
            "dish_id": str(_get(row, "dish_id")),
            "name": _get(row, "name"),
            "quantity": int(_get(row, "qty") or 0),
            "revenue": money(_get(row, "revenue")),
        }
        for row in rows
    ]
