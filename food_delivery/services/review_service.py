"""
Customer reviews of delivered orders.

A customer reviews each delivered order at most once. Restaurant averages and
the star distribution are aggregated in the database over visible reviews;
hidden reviews stay with the restaurant owner and admins.
"""
import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from tortoise.exceptions import IntegrityError
from tortoise.functions import Avg, Count

from food_delivery.core.config import REVIEW_EDIT_WINDOW_HOURS
from food_delivery.core.errors import Conflict, NotFound, ValidationError
from food_delivery.core.security import Actor, authorize, ensure_owner, require_restaurant
from food_delivery.models.notification import NotificationType
from food_delivery.models.order import Order, OrderStatus
from food_delivery.models.restaurant import Restaurant
from food_delivery.models.review import Review
from food_delivery.models.user import Role
from food_delivery.services.notification_service import notify
from food_delivery.utils import as_utc, now_utc

log = logging.getLogger(__name__)

TENTH = Decimal("0.1")
COMMENT_MIN, COMMENT_MAX = 10, 1000
RESPONSE_MAX = 500


def _one_place(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value)).quantize(TENTH, rounding=ROUND_HALF_UP)


def _rating(name: str, value: Any, required: bool = True) -> Optional[int]:
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationError(f"{name} must be a whole number between 1 and 5")
    return value


def overall_rating(food: int, service: int, delivery: Optional[int] = None) -> Decimal:
    """Mean of the given ratings to one decimal place; delivery counts only when given."""
    scores = [food, service] + ([delivery] if delivery is not None else [])
    return _one_place(Decimal(sum(scores)) / len(scores))


def star_bucket(overall: Any) -> int:
    return int(Decimal(str(overall)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def create_review(
    actor: Actor,
    order_id: UUID,
    food_rating: int,
    service_rating: int,
    comment: str,
    delivery_rating: Optional[int] = None,
) -> Review:
    authorize(actor, Role.USER)
    food = _rating("food_rating", food_rating)
    service = _rating("service_rating", service_rating)
    delivery = _rating("delivery_rating", delivery_rating, required=False)
    comment = (comment or "").strip()
    if not COMMENT_MIN <= len(comment) <= COMMENT_MAX:
        raise ValidationError(f"Comment must be between {COMMENT_MIN} and {COMMENT_MAX} characters")

    order = await Order.get_or_none(id=order_id, customer_id=actor.id, status=OrderStatus.DELIVERED)
    if not order:
        raise NotFound("Order not found or not eligible for review")
    if await Review.filter(user_id=actor.id, order_id=order.id).exists():
        raise Conflict("Review already exists for this order")

    try:
        review = await Review.create(
            user_id=actor.id,
            restaurant_id=order.restaurant_id,
            order_id=order.id,
            food_rating=food,
            service_rating=service,
            delivery_rating=delivery,
            overall_rating=overall_rating(food, service, delivery),
            comment=comment,
        )
    except IntegrityError:
        raise Conflict("Review already exists for this order")
    log.info(f"Review {review.id} posted for order {order.order_number} ({review.overall_rating})")
    return review


async def list_my_reviews(actor: Actor, page: int = 1, limit: int = 10) -> Tuple[List[Review], int]:
    authorize(actor, Role.USER)
    query = Review.filter(user_id=actor.id)
    total = await query.count()
    reviews = await query.order_by("-created_at").offset((page - 1) * limit).limit(limit)
    return reviews, total


async def _review(review_id: UUID) -> Review:
    review = await Review.get_or_none(id=review_id)
    if not review:
        raise NotFound("Review not found")
    return review


async def delete_review(actor: Actor, review_id: UUID) -> None:
    """Authors may delete within the edit window; admins at any time."""
    review = ensure_owner(actor, await _review(review_id))
    if not actor.is_admin:
        window = timedelta(hours=REVIEW_EDIT_WINDOW_HOURS)
        if as_utc(review.created_at) < now_utc() - window:
            raise ValidationError(
                f"Review can only be deleted within {REVIEW_EDIT_WINDOW_HOURS} hours of creation"
            )
    await review.delete()
    log.info(f"Review {review_id} deleted by {actor.role.value} {actor.id}")


async def rating_summary(restaurant_id: UUID) -> Dict[str, Any]:
    """Average ratings and the 5..1 star distribution over visible reviews."""
    visible = Review.filter(restaurant_id=restaurant_id, is_hidden=False)
    averages = await visible.annotate(
        total=Count("id"),
        overall=Avg("overall_rating"),
        food=Avg("food_rating"),
        service=Avg("service_rating"),
        delivery=Avg("delivery_rating"),
    ).group_by("restaurant_id").values("total", "overall", "food", "service", "delivery")

    distribution = {stars: 0 for stars in range(5, 0, -1)}
    rows = await visible.annotate(count=Count("id")).group_by("overall_rating").values("overall_rating", "count")
    for row in rows:
        distribution[star_bucket(row["overall_rating"])] += row["count"]

    row = averages[0] if averages else {}
    return {
        "total_reviews": row.get("total") or 0,
        "average_rating": _one_place(row.get("overall")) or Decimal("0.0"),
        "average_food": _one_place(row.get("food")) or Decimal("0.0"),
        "average_service": _one_place(row.get("service")) or Decimal("0.0"),
        "average_delivery": _one_place(row.get("delivery")),
        "distribution": distribution,
    }


async def restaurant_reviews(
    restaurant_id: UUID, page: int = 1, limit: int = 10
) -> Tuple[List[Review], int, Dict[str, Any]]:
    """Public listing: visible reviews of an active restaurant, newest first."""
    if not await Restaurant.filter(id=restaurant_id, is_active=True).exists():
        raise NotFound("Restaurant not found")
    query = Review.filter(restaurant_id=restaurant_id, is_hidden=False)
    total = await query.count()
    reviews = await query.order_by("-created_at").offset((page - 1) * limit).limit(limit)
    return reviews, total, await rating_summary(restaurant_id)


async def own_restaurant_reviews(
    actor: Actor,
    responded: Optional[bool] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Review], int, Dict[str, Any]]:
    restaurant_id = require_restaurant(actor)
    query = Review.filter(restaurant_id=restaurant_id)
    if responded is not None:
        query = query.filter(response_message__isnull=not responded)
    total = await query.count()
    reviews = await query.order_by("-created_at").offset((page - 1) * limit).limit(limit)
    return reviews, total, await rating_summary(restaurant_id)


async def respond_to_review(actor: Actor, review_id: UUID, message: str) -> Review:
    """Sets (or replaces) the restaurant's public reply and lets the reviewer know."""
    restaurant_id = require_restaurant(actor)
    review = await _review(review_id)
    if str(review.restaurant_id) != str(restaurant_id):
        raise NotFound("Review not found")

    message = (message or "").strip()
    if not message:
        raise ValidationError("Response text is required")
    if len(message) > RESPONSE_MAX:
        raise ValidationError(f"Response must be at most {RESPONSE_MAX} characters")

    review.response_message = message
    review.responded_by = actor.id
    review.responded_at = now_utc()
    await review.save(update_fields=["response_message", "responded_by", "responded_at", "updated_at"])
    await notify(review.user_id, NotificationType.GENERAL, {
        "title": "The restaurant replied to your review",
        # Literal braces survive the template formatting in notify()
        "message": message.replace("{", "{{").replace("}", "}}"),
        "review_id": review.id,
    })
    return review


async def set_review_hidden(actor: Actor, review_id: UUID, is_hidden: bool) -> Review:
    authorize(actor, Role.ADMIN)
    review = await _review(review_id)
    review.is_hidden = is_hidden
    await review.save(update_fields=["is_hidden", "updated_at"])
    log.info(f"Review {review.id} {'hidden' if is_hidden else 'restored'} by {actor.id}")
    return review
