import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from tortoise.exceptions import IntegrityError

from food_delivery.core.errors import Conflict, NotFound, ValidationError
from food_delivery.core.security import Actor, ensure_owner, require_restaurant
from food_delivery.models.discount import Discount, DiscountType
from food_delivery.models.restaurant import Restaurant
from food_delivery.services.pricing import evaluate_coupon
from food_delivery.utils import as_utc, money, now_utc

log = logging.getLogger(__name__)

DISCOUNT_STATUSES = ("active", "scheduled", "expired")
EDITABLE_FIELDS = {
    "name", "description", "code", "type", "value", "min_order_amount",
    "max_discount_amount", "usage_limit", "start_date", "end_date", "is_active",
}


def discount_status(discount: Discount, now: Optional[datetime] = None) -> str:
    now = as_utc(now or now_utc())
    if as_utc(discount.end_date) < now:
        return "expired"
    if as_utc(discount.start_date) > now:
        return "scheduled"
    return "active"


def _validate(fields: Dict[str, Any], used_count: int = 0) -> None:
    for required in ("name", "code", "type", "value", "start_date", "end_date"):
        if fields.get(required) in (None, ""):
            raise ValidationError(f"{required} is required")

    try:
        discount_type = DiscountType(fields["type"])
    except ValueError:
        raise ValidationError(f"Unknown discount type: {fields['type']!r}")

    value = money(fields["value"])
    if value <= 0:
        raise ValidationError("Discount value must be positive")
    if discount_type == DiscountType.PERCENTAGE and value > 100:
        raise ValidationError("Percentage discount cannot exceed 100")
    if as_utc(fields["start_date"]) >= as_utc(fields["end_date"]):
        raise ValidationError("End date must be after start date")
    if money(fields.get("min_order_amount")) < 0:
        raise ValidationError("Minimum order amount cannot be negative")
    if fields.get("usage_limit") is not None and fields["usage_limit"] < 1:
        raise ValidationError("Usage limit must be at least 1")
    if fields.get("usage_limit") is not None and fields["usage_limit"] < used_count:
        raise ValidationError(
            f"Usage limit cannot be lower than the {used_count} redemptions already made",
            details={"used_count": used_count},
        )


async def _ensure_unique_code(restaurant_id: UUID, code: str, exclude_id: Optional[UUID] = None) -> None:
    query = Discount.filter(restaurant_id=restaurant_id, code=code)
    if exclude_id:
        query = query.exclude(id=exclude_id)
    if await query.exists():
        raise Conflict(f"Discount code {code} already exists")


async def list_discounts(actor: Actor, status: Optional[str] = None) -> List[Discount]:
    restaurant_id = require_restaurant(actor)
    if status is not None and status not in DISCOUNT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(DISCOUNT_STATUSES)}")

    now = now_utc()
    query = Discount.filter(restaurant_id=restaurant_id)
    if status == "active":
        query = query.filter(start_date__lte=now, end_date__gte=now)
    elif status == "scheduled":
        query = query.filter(start_date__gt=now)
    elif status == "expired":
        query = query.filter(end_date__lt=now)
    return await query.order_by("-created_at")


async def create_discount(actor: Actor, **fields) -> Discount:
    restaurant_id = require_restaurant(actor)
    fields = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
    _validate(fields)
    fields["code"] = fields["code"].strip().upper()
    await _ensure_unique_code(restaurant_id, fields["code"])

    try:
        discount = await Discount.create(restaurant_id=restaurant_id, **fields)
    except IntegrityError:
        raise Conflict(f"Discount code {fields['code']} already exists")
    log.info(f"Discount {discount.code} created for restaurant {restaurant_id}")
    return discount


async def _owned_discount(actor: Actor, discount_id: UUID) -> Discount:
    require_restaurant(actor)
    discount = await Discount.get_or_none(id=discount_id)
    if not discount:
        raise NotFound("Discount not found")
    return ensure_owner(actor, discount, allow_admin=False)


async def update_discount(actor: Actor, discount_id: UUID, **changes) -> Discount:
    discount = await _owned_discount(actor, discount_id)
    changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
    if "code" in changes:
        changes["code"] = changes["code"].strip().upper()
        await _ensure_unique_code(discount.restaurant_id, changes["code"], exclude_id=discount.id)

    merged = {f: getattr(discount, f) for f in EDITABLE_FIELDS}
    merged.update(changes)
    _validate(merged, used_count=discount.used_count)

    discount.update_from_dict(changes)
    await discount.save()
    log.info(f"Discount {discount.code} updated")
    return discount


async def delete_discount(actor: Actor, discount_id: UUID) -> None:
    discount = await _owned_discount(actor, discount_id)
    await discount.delete()
    log.info(f"Discount {discount.code} deleted")


async def validate_discount(code: str, restaurant_id: UUID, order_amount: Any) -> Dict[str, Any]:
    """Coupon preview: what `code` would take off an order of `order_amount`."""
    code = (code or "").strip().upper()
    if not code:
        raise ValidationError("Coupon code is required")
    order_amount = money(order_amount)
    if order_amount < 0:
        raise ValidationError("Order amount cannot be negative")
    if not await Restaurant.filter(id=restaurant_id, is_active=True).exists():
        raise NotFound("Restaurant not found")

    discount = await Discount.get_or_none(restaurant_id=restaurant_id, code=code)
    if not discount:
        raise NotFound("Invalid discount code")

    amount = evaluate_coupon(discount, order_amount)
    return {
        "discount_id": discount.id,
        "code": discount.code,
        "name": discount.name,
        "type": discount.type,
        "value": money(discount.value),
        "discount_amount": amount,
        "final_amount": money(order_amount - amount),
    }
