"""
Cart computation: line totals, coupon evaluation and grand total.

Pure functions over plain line dicts and any coupon object exposing the
Discount attributes, so the same math backs cart reads, coupon previews and
checkout.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from food_delivery.core.errors import ValidationError
from food_delivery.models.discount import DiscountType
from food_delivery.utils import as_utc, money, now_utc

ZERO = Decimal("0.00")


@dataclass
class CartTotals:
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    delivery_fee: Decimal = ZERO
    total: Decimal = ZERO
    item_count: int = 0
    coupon_code: Optional[str] = None
    coupon_dropped: bool = False
    coupon_error: Optional[str] = None
    lines: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def active_lines(lines: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drops lines whose quantity is not a positive integer."""
    return [line for line in lines if int(line.get("quantity") or 0) > 0]


def line_total(line: Dict[str, Any]) -> Decimal:
    quantity = int(line["quantity"])
    extras = sum((money(c.get("additional_price", 0)) for c in line.get("customizations") or []), ZERO)
    return money((money(line["unit_price"]) + extras) * quantity)


def subtotal_of(lines: Iterable[Dict[str, Any]]) -> Decimal:
    return money(sum((line_total(line) for line in active_lines(lines)), ZERO))


def evaluate_coupon(coupon: Any, subtotal: Decimal, now: Optional[datetime] = None) -> Decimal:
    """
    Returns the discount `coupon` grants on `subtotal`.

    Raises ValidationError when the coupon is inactive, outside its date
    window, exhausted, or the subtotal is below its minimum order amount.
    """
    now = as_utc(now or now_utc())
    subtotal = money(subtotal)

    if not coupon.is_active:
        raise ValidationError(f"Coupon {coupon.code} is not active")
    if as_utc(coupon.start_date) > now:
        raise ValidationError(f"Coupon {coupon.code} is not yet active")
    if as_utc(coupon.end_date) < now:
        raise ValidationError(f"Coupon {coupon.code} has expired")
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise ValidationError(f"Coupon {coupon.code} usage limit reached")
    if subtotal < money(coupon.min_order_amount):
        raise ValidationError(
            f"Minimum order amount of {money(coupon.min_order_amount)} required for coupon {coupon.code}"
        )

    value = money(coupon.value)
    if DiscountType(coupon.type) == DiscountType.PERCENTAGE:
        amount = money(subtotal * value / Decimal(100))
        if coupon.max_discount_amount is not None:
            amount = min(amount, money(coupon.max_discount_amount))
    else:
        amount = min(value, subtotal)
    return money(amount)


def compute_cart(
    lines: Iterable[Dict[str, Any]],
    coupon: Any = None,
    delivery_fee: Any = ZERO,
    now: Optional[datetime] = None,
    strict: bool = False,
) -> CartTotals:
    """
    Derives {subtotal, discount_amount, delivery_fee, total} from cart lines.

    A coupon that no longer qualifies is dropped and reported in the result,
    unless `strict` is set, in which case its ValidationError propagates.
    """
    kept = active_lines(lines)
    subtotal = subtotal_of(kept)
    totals = CartTotals(
        subtotal=subtotal,
        item_count=sum(int(line["quantity"]) for line in kept),
        lines=[dict(line, line_total=line_total(line)) for line in kept],
    )
    if not kept:
        return totals

    totals.delivery_fee = money(delivery_fee)
    if coupon is not None:
        try:
            totals.discount_amount = evaluate_coupon(coupon, subtotal, now)
            totals.coupon_code = coupon.code
        except ValidationError as e:
            if strict:
                raise
            totals.coupon_dropped = True
            totals.coupon_error = e.message

    totals.total = money(max(subtotal - totals.discount_amount, ZERO) + totals.delivery_fee)
    return totals
