from tortoise import fields, models
import uuid


class Cart(models.Model):
    """
    Single active cart per user. Lines are stored as an ordered JSON list:
    {line_id, dish_id, restaurant_id, name, quantity, unit_price,
     customizations, special_instructions}.
    `version` is bumped on every write and used for compare-and-set.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    user = fields.OneToOneField("models.User", related_name="cart")
    items = fields.JSONField(default=list)
    restaurant_id = fields.UUIDField(null=True)
    coupon_code = fields.CharField(max_length=64, null=True)
    version = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "carts"
