import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from tortoise.expressions import Q

from food_delivery.core.errors import NotFound, ValidationError
from food_delivery.core.security import Actor, authorize, ensure_owner, require_restaurant
from food_delivery.models.restaurant import MenuItem, Restaurant
from food_delivery.models.user import Role
from food_delivery.utils import money

log = logging.getLogger(__name__)

PROFILE_FIELDS = {
    "name", "description", "cuisine", "phone", "email", "address",
    "delivery_fee", "minimum_order", "operating_hours", "bank_details",
}
MENU_FIELDS = {"name", "description", "category", "price", "is_available", "preparation_time", "position"}


async def list_restaurants(
    search: Optional[str] = None,
    cuisine: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Restaurant], int]:
    """Active restaurants, optionally matched by name/description and cuisine."""
    query = Restaurant.filter(is_active=True)
    if search:
        term = search.strip()
        query = query.filter(Q(name__icontains=term) | Q(description__icontains=term))

    if cuisine:
        # cuisine is a JSON list: tags are matched here, paging stays in the query
        wanted = cuisine.strip().lower()
        candidates = await query.values_list("id", "cuisine")
        query = Restaurant.filter(
            id__in=[rid for rid, tags in candidates if wanted in (c.lower() for c in tags or [])]
        )

    total = await query.count()
    restaurants = await query.order_by("name").offset((page - 1) * limit).limit(limit)
    return restaurants, total


async def get_restaurant(restaurant_id: UUID) -> Tuple[Restaurant, List[MenuItem]]:
    """An active restaurant with the dishes currently on offer."""
    restaurant = await Restaurant.get_or_none(id=restaurant_id, is_active=True)
    if not restaurant:
        raise NotFound("Restaurant not found")
    menu = await MenuItem.filter(restaurant_id=restaurant.id, is_available=True)
    return restaurant, menu


async def get_own_restaurant(actor: Actor) -> Restaurant:
    restaurant = await Restaurant.get_or_none(id=require_restaurant(actor))
    if not restaurant:
        raise NotFound("Restaurant not found")
    return ensure_owner(actor, restaurant, allow_admin=False)


def _check_amounts(fields: Dict[str, Any]) -> None:
    for name in ("delivery_fee", "minimum_order", "price"):
        if name in fields and money(fields[name]) < 0:
            raise ValidationError(f"{name} cannot be negative")


async def update_profile(actor: Actor, **changes) -> Restaurant:
    restaurant = await get_own_restaurant(actor)
    changes = {k: v for k, v in changes.items() if k in PROFILE_FIELDS and v is not None}
    if "name" in changes and not changes["name"].strip():
        raise ValidationError("Restaurant name is required")
    _check_amounts(changes)

    restaurant.update_from_dict(changes)
    await restaurant.save()
    log.info(f"Restaurant {restaurant.id} profile updated: {sorted(changes)}")
    return restaurant


async def list_menu(actor: Actor) -> List[MenuItem]:
    """Owner view of the menu, unavailable dishes included."""
    return await MenuItem.filter(restaurant_id=require_restaurant(actor))


async def add_menu_item(actor: Actor, **fields) -> MenuItem:
    restaurant_id = require_restaurant(actor)
    fields = {k: v for k, v in fields.items() if k in MENU_FIELDS and v is not None}
    if not (fields.get("name") or "").strip():
        raise ValidationError("Dish name is required")
    if "price" not in fields or money(fields["price"]) <= 0:
        raise ValidationError("Dish price must be positive")
    _check_amounts(fields)
    fields.setdefault("position", await MenuItem.filter(restaurant_id=restaurant_id).count())

    item = await MenuItem.create(restaurant_id=restaurant_id, **fields)
    log.info(f"Menu item {item.id} added to restaurant {restaurant_id}")
    return item


async def _owned_item(actor: Actor, item_id: UUID) -> MenuItem:
    # Scoped by restaurant so a dish id alone never reaches another menu
    item = await MenuItem.get_or_none(id=item_id, restaurant_id=require_restaurant(actor))
    if not item:
        raise NotFound("Menu item not found")
    return item


async def update_menu_item(actor: Actor, item_id: UUID, **changes) -> MenuItem:
    item = await _owned_item(actor, item_id)
    changes = {k: v for k, v in changes.items() if k in MENU_FIELDS and v is not None}
    if "price" in changes and money(changes["price"]) <= 0:
        raise ValidationError("Dish price must be positive")

    item.update_from_dict(changes)
    await item.save()
    return item


async def remove_menu_item(actor: Actor, item_id: UUID) -> None:
    item = await _owned_item(actor, item_id)
    await item.delete()
    log.info(f"Menu item {item_id} removed")


async def set_restaurant_status(
    actor: Actor,
    restaurant_id: UUID,
    is_active: Optional[bool] = None,
    is_verified: Optional[bool] = None,
) -> Restaurant:
    authorize(actor, Role.ADMIN)
    restaurant = await Restaurant.get_or_none(id=restaurant_id)
    if not restaurant:
        raise NotFound("Restaurant not found")
    if is_active is not None:
        restaurant.is_active = is_active
    if is_verified is not None:
        restaurant.is_verified = is_verified
    await restaurant.save()
    log.info(f"Restaurant {restaurant_id} status set: active={restaurant.is_active} verified={restaurant.is_verified}")
    return restaurant
