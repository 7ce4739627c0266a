"""
Access control gate.

The upstream auth layer authenticates the caller and forwards the user id in
the ``X-User-Id`` header; this module never parses tokens. ``get_current_actor``
turns that id into an :class:`Actor`, and the core services call
:func:`authorize` / :func:`ensure_owner` before changing any state.
"""
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from fastapi import Header, HTTPException, status

from food_delivery.core.errors import Forbidden
from food_delivery.models.restaurant import Restaurant
from food_delivery.models.user import ADMIN_ROLES, Role, User


@dataclass(frozen=True)
class Actor:
    id: UUID
    role: Role
    restaurant_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def authorize(actor: Actor, *roles: Role) -> Actor:
    """Fails with Forbidden unless the actor holds one of `roles`.

    SUPER_ADMIN satisfies any ADMIN requirement.
    """
    permitted = set(roles)
    if Role.ADMIN in permitted:
        permitted.add(Role.SUPER_ADMIN)
    if actor.role not in permitted:
        allowed = ", ".join(sorted(r.value for r in permitted))
        raise Forbidden(f"Access denied. Requires one of: {allowed}.")
    return actor


def owns(actor: Actor, record: Any) -> bool:
    """True when `actor` owns a Restaurant, Order, Notification, Discount, Cart, Review or User record."""
    uid = str(actor.id)
    rid = str(actor.restaurant_id) if actor.restaurant_id else None
    name = type(record).__name__

    if name == "User":
        return str(record.id) == uid
    if name == "Restaurant":
        return str(record.owner_id) == uid
    if name == "Order":
        return str(record.customer_id) == uid or (rid is not None and str(record.restaurant_id) == rid)
    if name in ("Notification", "Cart", "Review"):
        return str(record.user_id) == uid
    if name in ("Discount", "MenuItem"):
        return rid is not None and str(record.restaurant_id) == rid
    return False


def ensure_owner(actor: Actor, record: Any, allow_admin: bool = True) -> Any:
    if allow_admin and actor.is_admin:
        return record
    if not owns(actor, record):
        raise Forbidden(f"Access denied. You do not own this {type(record).__name__.lower()}.")
    return record


def require_restaurant(actor: Actor) -> UUID:
    """Restaurant-role actors must own a restaurant to use the owner area."""
    authorize(actor, Role.RESTAURANT)
    if actor.restaurant_id is None:
        raise Forbidden("No restaurant is registered for this account.")
    return actor.restaurant_id


async def get_current_actor(x_user_id: Optional[str] = Header(default=None)) -> Actor:
    """FastAPI dependency: resolves the forwarded user id to an Actor."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user id")

    user = await User.get_or_none(id=user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")

    restaurant = await Restaurant.get_or_none(owner_id=user.id)
    return Actor(
        id=user.id,
        role=Role(user.role),
        restaurant_id=restaurant.id if restaurant else None,
    )
