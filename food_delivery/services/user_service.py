import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from tortoise.expressions import Q
from tortoise.functions import Count

from food_delivery.core.errors import Conflict, Forbidden, NotFound, ValidationError
from food_delivery.core.security import Actor, authorize
from food_delivery.models.order import Order
from food_delivery.models.restaurant import Restaurant
from food_delivery.models.user import ADMIN_ROLES, Role, User

log = logging.getLogger(__name__)


def parse_role(value: Any) -> Role:
    try:
        return Role(value)
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError(f"Invalid role {value!r}; must be one of: {allowed}")


async def role_distribution() -> Dict[str, int]:
    rows = await User.annotate(count=Count("id")).group_by("role").values("role", "count")
    distribution = {r.value: 0 for r in Role}
    for row in rows:
        distribution[Role(row["role"]).value] = row["count"]
    return distribution


async def list_users(
    actor: Actor,
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[User], int, Dict[str, int]]:
    authorize(actor, Role.ADMIN)
    query = User.all()
    if role:
        query = query.filter(role=parse_role(role))
    if search:
        term = search.strip()
        query = query.filter(Q(full_name__icontains=term) | Q(email__icontains=term))

    total = await query.count()
    users = await query.order_by("-created_at").offset((page - 1) * limit).limit(limit)
    return users, total, await role_distribution()


async def _target(user_id: UUID) -> User:
    user = await User.get_or_none(id=user_id)
    if not user:
        raise NotFound("User not found")
    return user


async def change_role(actor: Actor, user_id: UUID, new_role: Any) -> User:
    """
    Sets a user's role.

    Only a super admin may grant or revoke the admin roles, and nobody
    changes their own role.
    """
    authorize(actor, Role.ADMIN)
    role = parse_role(new_role)
    user = await _target(user_id)
    if str(user.id) == str(actor.id):
        raise Forbidden("You cannot change your own role")
    if (role in ADMIN_ROLES or user.role in ADMIN_ROLES) and actor.role != Role.SUPER_ADMIN:
        raise Forbidden("Only a super admin can grant or revoke admin roles")

    previous = user.role
    user.role = role
    await user.save(update_fields=["role", "updated_at"])
    log.info(f"User {user.id} role changed from {Role(previous).value} to {role.value} by {actor.id}")
    return user


async def set_user_active(actor: Actor, user_id: UUID, is_active: bool) -> User:
    authorize(actor, Role.ADMIN)
    user = await _target(user_id)
    if user.role in ADMIN_ROLES and actor.role != Role.SUPER_ADMIN:
        raise Forbidden("Only a super admin can change an admin account's status")

    user.is_active = is_active
    await user.save(update_fields=["is_active", "updated_at"])
    log.info(f"User {user.id} {'activated' if is_active else 'deactivated'} by {actor.id}")
    return user


async def delete_user(actor: Actor, user_id: UUID) -> None:
    """
    Removes an account that has no trading history.

    Customers with orders and restaurant owners are refused; deactivate
    them instead.
    """
    authorize(actor, Role.ADMIN)
    user = await _target(user_id)
    if user.role in ADMIN_ROLES:
        raise Forbidden("Admin accounts cannot be deleted")
    if await Order.filter(customer_id=user.id).exists():
        raise Conflict("User has order history; deactivate the account instead")
    if await Restaurant.filter(owner_id=user.id).exists():
        raise Conflict("User owns a restaurant; deactivate the account instead")
    await user.delete()
    log.info(f"User {user_id} deleted by {actor.id}")


async def toggle_favorite(actor: Actor, restaurant_id: UUID) -> bool:
    """Adds or removes a favorite restaurant; returns whether it is now a favorite."""
    authorize(actor, Role.USER)
    restaurant = await Restaurant.get_or_none(id=restaurant_id)
    if not restaurant:
        raise NotFound("Restaurant not found")

    user = await _target(actor.id)
    if await user.favorites.filter(id=restaurant.id).exists():
        await user.favorites.remove(restaurant)
        return False
    await user.favorites.add(restaurant)
    return True


async def list_favorites(actor: Actor) -> List[Restaurant]:
    authorize(actor, Role.USER)
    user = await _target(actor.id)
    return await user.favorites.filter(is_active=True)
