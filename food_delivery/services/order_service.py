import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from tortoise.exceptions import IntegrityError
from tortoise.expressions import F
from tortoise.transactions import in_transaction

from food_delivery.core.config import MAX_QUANTITY_PER_LINE, ORDER_NUMBER_RETRIES, REWARD_POINTS_PER_UNIT
from food_delivery.core.errors import Conflict, Forbidden, NotFound, ValidationError
from food_delivery.core.security import Actor, authorize, ensure_owner, require_restaurant
from food_delivery.models.cart import Cart
from food_delivery.models.discount import Discount
from food_delivery.models.notification import NotificationType
from food_delivery.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from food_delivery.models.restaurant import MenuItem, Restaurant
from food_delivery.models.user import Role, User
from food_delivery.services.cart_service import (
    check_availability,
    get_or_create_cart,
    load_coupon,
    replace_lines,
)
from food_delivery.services.notification_service import event_for_status, notify
from food_delivery.services.order_lifecycle import history_entry, plan_transition
from food_delivery.services.pricing import compute_cart
from food_delivery.utils import generate_order_number, money, now_utc

log = logging.getLogger(__name__)

SORTABLE_FIELDS = {"created_at", "total_amount", "status", "order_number"}
ADDRESS_REQUIRED = ("street", "city", "state", "zip_code")
ADDRESS_OPTIONAL = ("apartment_number", "delivery_instructions")


def delivery_address_of(address: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Trimmed copy of a delivery address; street, city, state and zip code are required."""
    address = address or {}
    missing = [f for f in ADDRESS_REQUIRED if not str(address.get(f) or "").strip()]
    if missing:
        raise ValidationError("Complete delivery address is required", {"missing_fields": missing})

    cleaned = {f: str(address[f]).strip() for f in ADDRESS_REQUIRED}
    for name in ADDRESS_OPTIONAL:
        value = str(address.get(name) or "").strip()
        if value:
            cleaned[name] = value
    if len(cleaned.get("delivery_instructions", "")) > 200:
        raise ValidationError("Delivery instructions cannot exceed 200 characters")
    return cleaned


def payment_method_of(value: Any) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(f"Invalid payment method {value!r}; must be one of: {allowed}")


async def place_order(
    actor: Actor,
    delivery_address: Dict[str, Any],
    payment_method: Any = PaymentMethod.CASH,
    notes: Optional[str] = None,
) -> Order:
    """
    Checkout: freezes the actor's cart into a pending order.

    The coupon usage claim, order rows, cart reset and the customer
    notification are written in one transaction; the cart is cleared with a
    compare-and-set so a concurrent cart edit fails the checkout with Conflict.
    An order number that collides with an existing one rolls the transaction
    back and is retried with a fresh number.
    """
    authorize(actor, Role.USER)
    address = delivery_address_of(delivery_address)
    method = payment_method_of(payment_method)
    cart = await get_or_create_cart(actor.id)
    if not cart.items:
        raise ValidationError("Cart is empty")

    unavailable = await check_availability(cart)
    if unavailable:
        raise ValidationError(
            "Some items in your cart are no longer available",
            {"unavailable_items": unavailable},
        )

    restaurant = await Restaurant.get_or_none(id=cart.restaurant_id)
    if not restaurant or not restaurant.is_active:
        raise ValidationError("Restaurant is not available")

    coupon = await load_coupon(cart.restaurant_id, cart.coupon_code)
    totals = compute_cart(cart.items, coupon=coupon, delivery_fee=restaurant.delivery_fee, strict=True)
    if totals.subtotal < money(restaurant.minimum_order):
        raise ValidationError(
            f"Order does not meet the minimum order amount of {money(restaurant.minimum_order)}"
        )

    for attempt in range(1, ORDER_NUMBER_RETRIES + 1):
        order_number = generate_order_number()
        try:
            order = await _write_order(
                actor, cart, restaurant, coupon, totals, order_number,
                address=address, method=method, notes=notes,
            )
        except IntegrityError:
            if not await Order.filter(order_number=order_number).exists():
                raise
            log.warning(f"Order number {order_number} already taken (attempt {attempt}/{ORDER_NUMBER_RETRIES})")
            continue
        log.info(f"Order {order.order_number} placed by user {actor.id} for {order.total_amount}")
        return order

    raise Conflict("Could not allocate an order number; please try again")


async def _write_order(actor: Actor, cart: Cart, restaurant: Restaurant, coupon: Optional[Discount],
                       totals, order_number: str, address: Dict[str, str], method: PaymentMethod,
                       notes: Optional[str]) -> Order:
    now = now_utc()
    async with in_transaction() as conn:
        if coupon is not None:
            claim = Discount.filter(id=coupon.id)
            if coupon.usage_limit is not None:
                claim = claim.filter(used_count__lt=coupon.usage_limit)
            claimed = await claim.using_db(conn).update(used_count=F("used_count") + 1)
            if not claimed:
                raise Conflict(f"Coupon {coupon.code} usage limit reached")

        order = await Order.create(
            order_number=order_number,
            customer_id=actor.id,
            restaurant_id=restaurant.id,
            status=OrderStatus.PENDING,
            status_history=[history_entry(OrderStatus.PENDING, "Order placed", actor.role, now)],
            subtotal=totals.subtotal,
            discount_amount=totals.discount_amount,
            delivery_fee=totals.delivery_fee,
            total_amount=totals.total,
            delivery_address=address,
            payment_method=method,
            payment_status=PaymentStatus.PENDING,
            coupon_code=totals.coupon_code,
            notes=notes,
            using_db=conn,
        )

        for line in totals.lines:
            await OrderItem.create(
                order=order,
                dish_id=line["dish_id"],
                name=line["name"],
                quantity=line["quantity"],
                unit_price=money(line["unit_price"]),
                customizations=line.get("customizations") or [],
                special_instructions=line.get("special_instructions") or None,
                line_total=line["line_total"],
                using_db=conn,
            )

        cleared = await Cart.filter(id=cart.id, version=cart.version).using_db(conn).update(
            items=[], restaurant_id=None, coupon_code=None, version=cart.version + 1, updated_at=now
        )
        if not cleared:
            raise Conflict("Cart changed during checkout; please review it and try again")

        await notify(
            actor.id,
            NotificationType.ORDER_PLACED,
            {"order_id": order.id, "order_number": order.order_number, "restaurant_name": restaurant.name},
            conn=conn,
        )

    return order


async def get_order(actor: Actor, order_id: UUID) -> Order:
    """Fetches an order with its items; visible to its customer, its restaurant and admins."""
    order = await Order.get_or_none(id=order_id).prefetch_related("items", "restaurant")
    if not order:
        raise NotFound("Order not found")
    ensure_owner(actor, order)
    return order


async def list_orders(
    actor: Actor,
    statuses: Optional[List[str]] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    restaurant_id: Optional[UUID] = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Tuple[List[Order], int]:
    """Paged order listing scoped by the actor's role."""
    if actor.role == Role.USER:
        query = Order.filter(customer_id=actor.id)
    elif actor.role == Role.RESTAURANT:
        query = Order.filter(restaurant_id=require_restaurant(actor))
    else:
        authorize(actor, Role.ADMIN)
        query = Order.all()
        if restaurant_id:
            query = query.filter(restaurant_id=restaurant_id)

    if statuses:
        try:
            query = query.filter(status__in=[OrderStatus(s) for s in statuses])
        except ValueError as e:
            raise ValidationError(f"Invalid status filter: {e}")
    if start_date:
        query = query.filter(created_at__gte=start_date)
    if end_date:
        query = query.filter(created_at__lte=end_date)
    if search:
        query = query.filter(order_number__icontains=search.strip())

    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by {sort_by}")
    ordering = f"-{sort_by}" if sort_order == "desc" else sort_by

    total = await query.count()
    orders = await query.order_by(ordering).offset((page - 1) * limit).limit(limit).prefetch_related("items")
    return orders, total


def reward_points_for(total_amount: Decimal) -> int:
    return int(money(total_amount)) * REWARD_POINTS_PER_UNIT


async def transition_order(
    actor: Actor,
    order_id: UUID,
    new_status: Any,
    note: Optional[str] = None,
    expected_status: Optional[str] = None,
) -> Order:
    """
    Moves an order to `new_status`.

    The write is a compare-and-set on the order's version: if another
    transition was accepted since the order was read, or the caller's
    `expected_status` is stale, the order is left unchanged and Conflict is
    raised. History append, reward points and the customer notification
    commit together with the status change.
    """
    order = await Order.get_or_none(id=order_id).prefetch_related("restaurant")
    if not order:
        raise NotFound("Order not found")
    ensure_owner(actor, order)

    if expected_status is not None:
        try:
            expected = OrderStatus(expected_status)
        except ValueError:
            raise ValidationError(f"Unknown expected status: {expected_status!r}")
        if expected != order.status:
            raise Conflict(
                f"Order is {order.status.value}, not {expected.value}; reload and retry",
                {"current_status": order.status.value},
            )

    changes = plan_transition(order, new_status, note, actor)
    target = changes["status"]
    now = now_utc()

    async with in_transaction() as conn:
        updated = await Order.filter(id=order.id, version=order.version).using_db(conn).update(
            **changes, version=order.version + 1, updated_at=now
        )
        if not updated:
            raise Conflict("Order was updated by another request; reload and retry")

        if target == OrderStatus.DELIVERED:
            points = reward_points_for(order.total_amount)
            if points:
                await User.filter(id=order.customer_id).using_db(conn).update(
                    reward_points=F("reward_points") + points
                )

        await notify(
            order.customer_id,
            event_for_status(target),
            {
                "order_id": order.id,
                "order_number": order.order_number,
                "restaurant_name": order.restaurant.name,
                "reason": note or "",
            },
            conn=conn,
        )

    for key, value in changes.items():
        setattr(order, key, value)
    order.version += 1
    order.updated_at = now
    log.info(f"Order {order.order_number} moved to {target.value} by {actor.role.value} {actor.id}")
    return order


async def cancel_order(
    actor: Actor,
    order_id: UUID,
    reason: Optional[str] = None,
    expected_status: Optional[str] = None,
) -> Order:
    """Customers may cancel while pending/confirmed; staff must give a reason."""
    if actor.role == Role.USER and not (reason and reason.strip()):
        reason = "Cancelled by customer"
    return await transition_order(actor, order_id, OrderStatus.CANCELLED, reason, expected_status)


async def reorder(actor: Actor, order_id: UUID) -> Dict[str, Any]:
    """
    Refills the actor's cart from a past order at current menu prices.

    Dishes no longer on the menu (removed or unavailable) are dropped and
    listed under `dropped_items`.
    """
    authorize(actor, Role.USER)
    order = await Order.get_or_none(id=order_id).prefetch_related("items")
    if not order:
        raise NotFound("Order not found")
    if str(order.customer_id) != str(actor.id):
        raise Forbidden("Access denied. You do not own this order.")

    restaurant = await Restaurant.get_or_none(id=order.restaurant_id)
    if not restaurant or not restaurant.is_active:
        raise ValidationError("Restaurant is not available")

    dishes = await MenuItem.filter(
        restaurant_id=restaurant.id, id__in=[item.dish_id for item in order.items]
    )
    dish_map = {str(d.id): d for d in dishes}

    lines, dropped = [], []
    for item in order.items:
        dish = dish_map.get(str(item.dish_id))
        if not dish or not dish.is_available:
            dropped.append({
                "dish_id": str(item.dish_id),
                "name": item.name,
                "reason": "Item no longer available" if not dish else "Item temporarily unavailable",
            })
            continue
        lines.append({
            "line_id": uuid.uuid4().hex,
            "dish_id": str(dish.id),
            "restaurant_id": str(restaurant.id),
            "name": dish.name,
            "quantity": min(item.quantity, MAX_QUANTITY_PER_LINE),
            "unit_price": str(money(dish.price)),
            "customizations": item.customizations or [],
            "special_instructions": item.special_instructions or "",
        })

    view = await replace_lines(actor.id, restaurant.id, lines)
    view["dropped_items"] = dropped
    log.info(f"Reorder of {order.order_number}: {len(lines)} lines kept, {len(dropped)} dropped")
    return view
