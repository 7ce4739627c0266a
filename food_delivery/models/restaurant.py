from tortoise import fields, models
import uuid


class Restaurant(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    # A restaurant account owns exactly one restaurant
    owner = fields.OneToOneField("models.User", related_name="restaurant", on_delete=fields.RESTRICT)
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    cuisine = fields.JSONField(default=list)
    phone = fields.CharField(max_length=32, null=True)
    email = fields.CharField(max_length=255, null=True)
    address = fields.JSONField(default=dict)
    delivery_fee = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    minimum_order = fields.DecimalField(max_digits=10, decimal_places=2, default=0)
    operating_hours = fields.JSONField(default=dict)
    bank_details = fields.JSONField(default=dict)
    is_active = fields.BooleanField(default=True)
    is_verified = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "restaurants"
        indexes = [
            ("is_active",),  # For filtering active restaurants
        ]


class MenuItem(models.Model):
    """A dish. Always looked up together with its restaurant id."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="menu_items")
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    category = fields.CharField(max_length=64, null=True)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    is_available = fields.BooleanField(default=True)
    preparation_time = fields.IntField(default=15) # minutes
    position = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "menu_items"
        ordering = ["position", "created_at"]
        indexes = [
            ("restaurant_id",),  # Fast restaurant menu queries
            ("is_available",),
            ("restaurant_id", "id"),  # Composite: dish lookup scoped by restaurant
        ]
