import copy
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from tortoise.exceptions import IntegrityError

from food_delivery.core.config import CART_WRITE_RETRIES, MAX_QUANTITY_PER_LINE
from food_delivery.core.errors import Conflict, NotFound, ValidationError
from food_delivery.core.security import Actor, authorize
from food_delivery.models.cart import Cart
from food_delivery.models.discount import Discount
from food_delivery.models.restaurant import MenuItem, Restaurant
from food_delivery.models.user import Role
from food_delivery.services.pricing import compute_cart, evaluate_coupon, subtotal_of
from food_delivery.utils import money, now_utc

log = logging.getLogger(__name__)


async def get_or_create_cart(user_id: UUID) -> Cart:
    cart = await Cart.get_or_none(user_id=user_id)
    if cart:
        return cart
    try:
        return await Cart.create(user_id=user_id)
    except IntegrityError:
        # Another request created it first
        return await Cart.get(user_id=user_id)


async def load_coupon(restaurant_id: Optional[Any], code: Optional[str]) -> Optional[Discount]:
    if not restaurant_id or not code:
        return None
    return await Discount.get_or_none(restaurant_id=restaurant_id, code=code.upper())


async def check_availability(cart: Cart) -> List[Dict[str, Any]]:
    """Lines whose dish was removed from the menu or marked unavailable."""
    if not cart.items or not cart.restaurant_id:
        return []
    dish_ids = [line["dish_id"] for line in cart.items]
    dishes = await MenuItem.filter(restaurant_id=cart.restaurant_id, id__in=dish_ids)
    dish_map = {str(d.id): d for d in dishes}

    unavailable = []
    for line in cart.items:
        dish = dish_map.get(str(line["dish_id"]))
        if not dish or not dish.is_available:
            unavailable.append({
                "line_id": line["line_id"],
                "name": line["name"],
                "reason": "Item no longer available" if not dish else "Item temporarily unavailable",
            })
    return unavailable


async def build_cart_view(cart: Cart, coupon_dropped_reason: Optional[str] = None) -> Dict[str, Any]:
    """Recomputes totals for `cart`; nothing is written."""
    restaurant = await Restaurant.get_or_none(id=cart.restaurant_id) if cart.restaurant_id else None
    coupon = await load_coupon(cart.restaurant_id, cart.coupon_code)
    totals = compute_cart(
        cart.items,
        coupon=coupon,
        delivery_fee=restaurant.delivery_fee if restaurant else 0,
    )
    if cart.coupon_code and coupon is None:
        totals.coupon_dropped = True
        totals.coupon_error = f"Coupon {cart.coupon_code} no longer exists"
    if coupon_dropped_reason:
        totals.coupon_dropped = True
        totals.coupon_error = coupon_dropped_reason

    unavailable = await check_availability(cart)
    summary = totals.to_dict()
    summary["minimum_order"] = money(restaurant.minimum_order) if restaurant else money(0)
    summary["meets_minimum_order"] = restaurant is None or totals.subtotal >= money(restaurant.minimum_order)
    return {
        "cart": {
            "id": cart.id,
            "restaurant_id": cart.restaurant_id,
            "restaurant_name": restaurant.name if restaurant else None,
            "coupon_code": cart.coupon_code,
            "items": summary.pop("lines"),
            "version": cart.version,
        },
        "summary": summary,
        "validation": {"is_valid": not unavailable, "unavailable_items": unavailable},
    }


def _empty_state(state: Dict[str, Any]) -> None:
    state["items"] = []
    state["restaurant_id"] = None
    state["coupon_code"] = None


async def _mutate(user_id: UUID, mutation: Callable[[Dict[str, Any]], None]) -> Dict[str, Any]:
    """
    Applies `mutation` to the user's cart with a compare-and-set on `version`.

    A write that loses the race is re-read and re-applied; after
    CART_WRITE_RETRIES lost races the operation fails with Conflict.
    """
    for attempt in range(1, CART_WRITE_RETRIES + 1):
        cart = await get_or_create_cart(user_id)
        state = {
            "items": copy.deepcopy(cart.items or []),
            "restaurant_id": str(cart.restaurant_id) if cart.restaurant_id else None,
            "coupon_code": cart.coupon_code,
        }
        mutation(state)
        if not state["items"]:
            _empty_state(state)

        dropped_reason = None
        if state["coupon_code"]:
            coupon = await load_coupon(state["restaurant_id"], state["coupon_code"])
            try:
                if coupon is None:
                    raise ValidationError(f"Coupon {state['coupon_code']} no longer exists")
                evaluate_coupon(coupon, subtotal_of(state["items"]))
            except ValidationError as e:
                dropped_reason = e.message
                state["coupon_code"] = None

        updated = await Cart.filter(id=cart.id, version=cart.version).update(
            items=state["items"],
            restaurant_id=state["restaurant_id"],
            coupon_code=state["coupon_code"],
            version=cart.version + 1,
            updated_at=now_utc(),
        )
        if updated:
            cart.items = state["items"]
            cart.restaurant_id = UUID(state["restaurant_id"]) if state["restaurant_id"] else None
            cart.coupon_code = state["coupon_code"]
            cart.version += 1
            return await build_cart_view(cart, dropped_reason)
        log.warning(f"Cart write for user {user_id} lost a race (attempt {attempt})")

    raise Conflict("Cart was modified by another request; please retry")


def _check_quantity(quantity: int) -> None:
    if quantity < 1 or quantity > MAX_QUANTITY_PER_LINE:
        raise ValidationError(f"Quantity must be between 1 and {MAX_QUANTITY_PER_LINE}")


def _normalize_customizations(customizations: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    normalized = []
    for c in customizations or []:
        if not c.get("name") or c.get("value") is None:
            raise ValidationError("Customization name and value are required")
        price = money(c.get("additional_price", 0))
        if price < 0:
            raise ValidationError("Additional price cannot be negative")
        normalized.append({"name": c["name"], "value": str(c["value"]), "additional_price": str(price)})
    return normalized


def _find_line(items: List[Dict[str, Any]], line_id: str) -> int:
    for index, line in enumerate(items):
        if line["line_id"] == str(line_id):
            return index
    raise NotFound("Cart item not found")


async def get_cart(actor: Actor) -> Dict[str, Any]:
    authorize(actor, Role.USER)
    return await build_cart_view(await get_or_create_cart(actor.id))


async def add_item(
    actor: Actor,
    restaurant_id: UUID,
    dish_id: UUID,
    quantity: int = 1,
    customizations: Optional[List[Dict[str, Any]]] = None,
    special_instructions: str = "",
    replace: bool = False,
) -> Dict[str, Any]:
    """
    Adds a dish to the cart, merging with an identical existing line.

    A cart holds dishes from one restaurant only: adding from another
    restaurant fails with Conflict unless `replace` is set, which empties the
    cart first.
    """
    authorize(actor, Role.USER)
    _check_quantity(quantity)
    customizations = _normalize_customizations(customizations)
    special_instructions = (special_instructions or "").strip()[:200]

    restaurant = await Restaurant.get_or_none(id=restaurant_id)
    if not restaurant or not restaurant.is_active:
        raise NotFound("Restaurant not found or not available")
    dish = await MenuItem.get_or_none(id=dish_id, restaurant_id=restaurant.id)
    if not dish or not dish.is_available:
        raise NotFound("Menu item not found or not available")

    def add(state):
        if state["restaurant_id"] and state["restaurant_id"] != str(restaurant.id):
            if not replace:
                raise Conflict(
                    "Cart already contains items from another restaurant. Clear it first or replace it.",
                    {"cart_restaurant_id": state["restaurant_id"]},
                )
            _empty_state(state)
        state["restaurant_id"] = str(restaurant.id)

        for line in state["items"]:
            if (line["dish_id"] == str(dish.id)
                    and line["customizations"] == customizations
                    and line["special_instructions"] == special_instructions):
                new_quantity = line["quantity"] + quantity
                if new_quantity > MAX_QUANTITY_PER_LINE:
                    raise ValidationError(f"Maximum {MAX_QUANTITY_PER_LINE} items allowed per menu item")
                line["quantity"] = new_quantity
                line["unit_price"] = str(money(dish.price))
                return

        state["items"].append({
            "line_id": uuid.uuid4().hex,
            "dish_id": str(dish.id),
            "restaurant_id": str(restaurant.id),
            "name": dish.name,
            "quantity": quantity,
            "unit_price": str(money(dish.price)),
            "customizations": customizations,
            "special_instructions": special_instructions,
        })

    return await _mutate(actor.id, add)


async def update_quantity(actor: Actor, line_id: str, quantity: int) -> Dict[str, Any]:
    """Sets a line's quantity; zero or less removes the line."""
    authorize(actor, Role.USER)
    if quantity > MAX_QUANTITY_PER_LINE:
        raise ValidationError(f"Maximum {MAX_QUANTITY_PER_LINE} items allowed per menu item")

    def update(state):
        index = _find_line(state["items"], line_id)
        if quantity <= 0:
            state["items"].pop(index)
        else:
            state["items"][index]["quantity"] = quantity

    return await _mutate(actor.id, update)


async def remove_item(actor: Actor, line_id: str) -> Dict[str, Any]:
    authorize(actor, Role.USER)

    def remove(state):
        state["items"].pop(_find_line(state["items"], line_id))

    return await _mutate(actor.id, remove)


async def apply_coupon(actor: Actor, code: str) -> Dict[str, Any]:
    authorize(actor, Role.USER)
    code = (code or "").strip().upper()
    if not code:
        raise ValidationError("Coupon code is required")

    cart = await get_or_create_cart(actor.id)
    if not cart.items:
        raise ValidationError("Cart is empty")
    coupon = await load_coupon(cart.restaurant_id, code)
    if not coupon:
        raise NotFound("Invalid discount code")
    # Raises when the coupon does not qualify for the current subtotal
    evaluate_coupon(coupon, subtotal_of(cart.items))

    def apply(state):
        state["coupon_code"] = code

    return await _mutate(actor.id, apply)


async def remove_coupon(actor: Actor) -> Dict[str, Any]:
    authorize(actor, Role.USER)

    def remove(state):
        state["coupon_code"] = None

    return await _mutate(actor.id, remove)


async def clear_cart(actor: Actor) -> Dict[str, Any]:
    authorize(actor, Role.USER)
    return await _mutate(actor.id, _empty_state)


async def replace_lines(user_id: UUID, restaurant_id: UUID, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Replaces the whole cart with `lines` from one restaurant (used by reorder)."""
    def replace(state):
        _empty_state(state)
        if lines:
            state["restaurant_id"] = str(restaurant_id)
            state["items"] = copy.deepcopy(lines)

    return await _mutate(user_id, replace)
