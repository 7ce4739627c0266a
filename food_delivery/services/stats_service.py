from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from tortoise.functions import Count, Sum

from food_delivery.core.config import TOP_DISHES_LIMIT
from food_delivery.core.security import Actor, authorize, require_restaurant
from food_delivery.models.order import Order, OrderItem, OrderStatus
from food_delivery.models.restaurant import Restaurant
from food_delivery.models.user import Role
from food_delivery.services import reporting
from food_delivery.services.user_service import role_distribution
from food_delivery.utils import now_utc


async def _order_counts(restaurant_id: Optional[UUID] = None) -> Dict[str, int]:
    now = now_utc()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_week = start_of_day - timedelta(days=start_of_day.weekday())
    start_of_month = start_of_day.replace(day=1)

    query = Order.filter(restaurant_id=restaurant_id) if restaurant_id else Order.all()
    return {
        "today": await query.filter(created_at__gte=start_of_day).count(),
        "week": await query.filter(created_at__gte=start_of_week).count(),
        "month": await query.filter(created_at__gte=start_of_month).count(),
        "total": await query.count(),
        "pending": await query.filter(status=OrderStatus.PENDING).count(),
        "delivered": await query.filter(status=OrderStatus.DELIVERED).count(),
        "cancelled": await query.filter(status=OrderStatus.CANCELLED).count(),
    }


async def _status_totals(query) -> List[Dict[str, Any]]:
    return await query.annotate(count=Count("id"), total=Sum("total_amount")).group_by("status").values(
        "status", "count", "total"
    )


async def _delivered_rows(restaurant_id: UUID, start) -> List[Dict[str, Any]]:
    return await Order.filter(
        restaurant_id=restaurant_id, status=OrderStatus.DELIVERED, created_at__gte=start
    ).values("created_at", "total_amount")


async def restaurant_dashboard(actor: Actor) -> Dict[str, Any]:
    """Order counts and the revenue block for the actor's restaurant."""
    restaurant_id = require_restaurant(actor)
    return {
        "orders": await _order_counts(restaurant_id),
        "revenue": reporting.revenue_stats(await _status_totals(Order.filter(restaurant_id=restaurant_id))),
    }


async def revenue_report(actor: Actor, range_name: str = "month") -> Dict[str, Any]:
    restaurant_id = require_restaurant(actor)
    start, bucket = reporting.range_window(range_name)
    totals = await _status_totals(Order.filter(restaurant_id=restaurant_id, created_at__gte=start))
    return {
        "range": range_name,
        "bucket": bucket,
        "stats": reporting.revenue_stats(totals),
        "series": reporting.revenue_series(await _delivered_rows(restaurant_id, start), bucket),
    }


async def payouts_chart(actor: Actor, range_name: str = "month") -> List[Dict[str, Any]]:
    """Earnings, commission and net earnings per period for delivered orders."""
    restaurant_id = require_restaurant(actor)
    start, bucket = reporting.range_window(range_name)
    return reporting.commission_split(await _delivered_rows(restaurant_id, start), bucket)


async def restaurant_top_dishes(actor: Actor, limit: int = TOP_DISHES_LIMIT) -> List[Dict[str, Any]]:
    """Best sellers by quantity across delivered orders."""
    restaurant_id = require_restaurant(actor)
    rows = await (
        OrderItem.filter(order__restaurant_id=restaurant_id, order__status=OrderStatus.DELIVERED)
        .annotate(qty=Sum("quantity"), revenue=Sum("line_total"))
        .group_by("dish_id", "name")
        .order_by("-qty", "name")
        .limit(limit)
        .values("dish_id", "name", "qty", "revenue")
    )
    return reporting.top_dishes(rows)


async def platform_stats(actor: Actor) -> Dict[str, Any]:
    """Admin overview across every restaurant."""
    authorize(actor, Role.ADMIN)
    users_by_role = await role_distribution()

    return {
        "users": {"total": sum(users_by_role.values()), "by_role": users_by_role},
        "restaurants": {
            "total": await Restaurant.all().count(),
            "active": await Restaurant.filter(is_active=True).count(),
            "verified": await Restaurant.filter(is_verified=True).count(),
        },
        "orders": await _order_counts(),
        "revenue": reporting.revenue_stats(await _status_totals(Order.all())),
    }
