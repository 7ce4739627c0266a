from enum import Enum
from tortoise import fields, models
import uuid


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Discount(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="discounts")
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    code = fields.CharField(max_length=64) # Stored upper-cased
    type = fields.CharEnumField(DiscountType, max_length=16)
    value = fields.DecimalField(max_digits=10, decimal_places=2)
    min_order_amount = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    max_discount_amount = fields.DecimalField(max_digits=10, decimal_places=2, null=True) # None: no cap
    usage_limit = fields.IntField(null=True) # None: unlimited
    used_count = fields.IntField(default=0)
    start_date = fields.DatetimeField()
    end_date = fields.DatetimeField()
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "discounts"
        unique_together = (("restaurant", "code"),)
        indexes = [
            ("restaurant_id", "is_active"),
            ("restaurant_id", "start_date", "end_date"),
        ]
