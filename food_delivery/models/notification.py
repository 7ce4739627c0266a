from enum import Enum
from tortoise import fields, models
import uuid


class NotificationType(str, Enum):
    ORDER_PLACED = "order-placed"
    ORDER_CONFIRMED = "order-confirmed"
    ORDER_PREPARING = "order-preparing"
    ORDER_READY = "order-ready"
    ORDER_PICKED_UP = "order-picked-up"
    ORDER_DELIVERED = "order-delivered"
    ORDER_CANCELLED = "order-cancelled"
    PROMOTION = "promotion"
    SYSTEM_MAINTENANCE = "system-maintenance"
    GENERAL = "general"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    user = fields.ForeignKeyField("models.User", related_name="notifications")
    type = fields.CharEnumField(NotificationType, default=NotificationType.GENERAL, max_length=32)
    title = fields.CharField(max_length=100)
    message = fields.CharField(max_length=500)
    data = fields.JSONField(default=dict)
    related_order = fields.ForeignKeyField(
        "models.Order", related_name="notifications", null=True, on_delete=fields.SET_NULL
    )
    priority = fields.CharEnumField(NotificationPriority, default=NotificationPriority.MEDIUM, max_length=16)
    is_read = fields.BooleanField(default=False)
    read_at = fields.DatetimeField(null=True)
    expires_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "notifications"
        indexes = [
            ("user_id", "created_at"),
            ("user_id", "is_read", "created_at"),  # Unread inbox queries
            ("type",),
        ]
