import logging
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from tortoise.expressions import Q

from food_delivery.core.config import NOTIFICATION_TTL_DAYS
from food_delivery.core.errors import NotFound, ValidationError
from food_delivery.core.security import Actor, authorize, ensure_owner
from food_delivery.models.notification import Notification, NotificationPriority, NotificationType
from food_delivery.models.order import OrderStatus
from food_delivery.models.user import Role, User
from food_delivery.utils import now_utc

log = logging.getLogger(__name__)

ORDER_EVENT_TEMPLATES = {
    NotificationType.ORDER_PLACED: (
        "Order Placed Successfully!",
        "Your order #{order_number} has been placed and is awaiting confirmation.",
    ),
    NotificationType.ORDER_CONFIRMED: (
        "Order Confirmed",
        "Your order #{order_number} has been confirmed by {restaurant_name}.",
    ),
    NotificationType.ORDER_PREPARING: (
        "Order Being Prepared",
        "Your order #{order_number} is now being prepared.",
    ),
    NotificationType.ORDER_READY: (
        "Order Ready",
        "Your order #{order_number} is ready.",
    ),
    NotificationType.ORDER_PICKED_UP: (
        "Order On The Way",
        "Your order #{order_number} has been picked up and is on its way.",
    ),
    NotificationType.ORDER_DELIVERED: (
        "Order Delivered",
        "Your order #{order_number} has been delivered. Enjoy your meal!",
    ),
    NotificationType.ORDER_CANCELLED: (
        "Order Cancelled",
        "Your order #{order_number} has been cancelled. Reason: {reason}",
    ),
}

STATUS_EVENTS = {
    OrderStatus.PENDING: NotificationType.ORDER_PLACED,
    OrderStatus.CONFIRMED: NotificationType.ORDER_CONFIRMED,
    OrderStatus.PREPARING: NotificationType.ORDER_PREPARING,
    OrderStatus.READY: NotificationType.ORDER_READY,
    OrderStatus.PICKED_UP: NotificationType.ORDER_PICKED_UP,
    OrderStatus.DELIVERED: NotificationType.ORDER_DELIVERED,
    OrderStatus.CANCELLED: NotificationType.ORDER_CANCELLED,
}

HIGH_PRIORITY_EVENTS = {NotificationType.ORDER_CANCELLED, NotificationType.ORDER_DELIVERED}


class _Blank(dict):
    def __missing__(self, key):
        return ""


def event_for_status(status: Any) -> NotificationType:
    return STATUS_EVENTS[OrderStatus(status)]


async def notify(
    user_id: UUID,
    event_type: NotificationType,
    payload: Dict[str, Any],
    conn: Any = None,
) -> Notification:
    """
    Records an in-app notification for `user_id`.

    Passing `conn` writes it in the caller's transaction, so the notification
    exists only if the state change that triggered it is committed.
    """
    event_type = NotificationType(event_type)
    title, template = ORDER_EVENT_TEMPLATES.get(
        event_type, (payload.get("title", "Notification"), payload.get("message", ""))
    )
    notification = await Notification.create(
        user_id=user_id,
        type=event_type,
        title=title,
        message=template.format_map(_Blank(payload))[:500],
        data={k: str(v) for k, v in payload.items()},
        related_order_id=payload.get("order_id"),
        priority=NotificationPriority.HIGH if event_type in HIGH_PRIORITY_EVENTS else NotificationPriority.MEDIUM,
        expires_at=now_utc() + timedelta(days=NOTIFICATION_TTL_DAYS),
        using_db=conn,
    )
    log.info(f"Notification {event_type.value} recorded for user {user_id}")
    return notification


def _unexpired(now) -> Q:
    return Q(expires_at__isnull=True) | Q(expires_at__gt=now)


async def unread_count(user_id: UUID) -> int:
    return await Notification.filter(_unexpired(now_utc()), user_id=user_id, is_read=False).count()


async def list_notifications(
    actor: Actor,
    is_read: Optional[bool] = None,
    types: Optional[Iterable[str]] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Notification], int, int]:
    """Returns (page of notifications, total matching, unread count) for the actor's inbox."""
    query = Notification.filter(_unexpired(now_utc()), user_id=actor.id)
    if is_read is not None:
        query = query.filter(is_read=is_read)
    if types:
        try:
            query = query.filter(type__in=[NotificationType(t) for t in types])
        except ValueError as e:
            raise ValidationError(f"Unknown notification type: {e}")

    total = await query.count()
    items = await query.order_by("-created_at").offset((page - 1) * limit).limit(limit)
    return items, total, await unread_count(actor.id)


async def mark_read(actor: Actor, notification_ids: List[UUID]) -> int:
    if not notification_ids:
        raise ValidationError("notification_ids must not be empty")
    return await Notification.filter(
        user_id=actor.id, id__in=notification_ids, is_read=False
    ).update(is_read=True, read_at=now_utc())


async def mark_all_read(actor: Actor) -> int:
    return await Notification.filter(user_id=actor.id, is_read=False).update(is_read=True, read_at=now_utc())


async def delete_notification(actor: Actor, notification_id: UUID) -> None:
    notification = await Notification.get_or_none(id=notification_id)
    if not notification:
        raise NotFound("Notification not found")
    ensure_owner(actor, notification)
    await notification.delete()


async def send_notification(
    actor: Actor,
    title: str,
    message: str,
    type: NotificationType = NotificationType.GENERAL,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
    user_ids: Optional[List[UUID]] = None,
    role: Optional[Role] = None,
) -> int:
    """Admin broadcast to explicit users or to every active user of a role."""
    authorize(actor, Role.ADMIN)
    if not user_ids and role is None:
        raise ValidationError("Either user_ids or role is required")

    query = User.filter(is_active=True)
    query = query.filter(id__in=user_ids) if user_ids else query.filter(role=role)
    recipients = await query.values_list("id", flat=True)

    expires_at = now_utc() + timedelta(days=NOTIFICATION_TTL_DAYS)
    await Notification.bulk_create([
        Notification(
            user_id=uid,
            type=type,
            title=title,
            message=message,
            priority=priority,
            data={"sent_by": str(actor.id)},
            expires_at=expires_at,
        )
        for uid in recipients
    ])
    log.info(f"Admin {actor.id} sent '{title}' to {len(recipients)} users")
    return len(recipients)
