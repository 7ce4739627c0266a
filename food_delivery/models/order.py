from enum import Enum
from tortoise import fields, models
import uuid


class OrderStatus(str, Enum):
    PENDING = "pending"        # Placed by the customer, awaiting the restaurant
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"    # Handed to the courier
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    DIGITAL_WALLET = "digital-wallet"
    ONLINE = "online"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Order(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order_number = fields.CharField(max_length=32, unique=True)
    customer = fields.ForeignKeyField("models.User", related_name="orders", on_delete=fields.RESTRICT)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="orders", on_delete=fields.RESTRICT)
    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PENDING, max_length=16)
    # Append-only list of {status, timestamp, note, actor_role}
    status_history = fields.JSONField(default=list)
    subtotal = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    discount_amount = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    delivery_fee = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_amount = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    # {street, city, state, zip_code, apartment_number, delivery_instructions}
    delivery_address = fields.JSONField(default=dict)
    payment_method = fields.CharEnumField(PaymentMethod, default=PaymentMethod.CASH, max_length=16)
    payment_status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING, max_length=16)
    coupon_code = fields.CharField(max_length=64, null=True)
    notes = fields.TextField(null=True)
    cancellation_reason = fields.TextField(null=True)
    cancelled_by = fields.CharField(max_length=16, null=True)
    delivered_at = fields.DatetimeField(null=True)
    version = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        indexes = [
            ("restaurant_id",),          # Restaurant order queries
            ("status",),                 # Status-based filtering
            ("customer_id",),            # User order history
            ("created_at",),             # Time-based queries
            ("restaurant_id", "status", "created_at"),  # Composite: revenue reports
        ]


class OrderItem(models.Model):
    """Frozen copy of a cart line at checkout time."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="items")
    # Not a foreign key: the dish may later be removed from the menu
    dish_id = fields.UUIDField()
    name = fields.CharField(max_length=255)
    quantity = fields.IntField()
    unit_price = fields.DecimalField(max_digits=12, decimal_places=2)
    customizations = fields.JSONField(default=list)
    special_instructions = fields.CharField(max_length=200, null=True)
    line_total = fields.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        table = "order_items"
        indexes = [
            ("order_id",),              # Order line items
            ("dish_id",),               # Dish popularity
        ]
