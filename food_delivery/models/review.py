from tortoise import fields, models
import uuid


class Review(models.Model):
    """A customer's rating of one delivered order."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    user = fields.ForeignKeyField("models.User", related_name="reviews", on_delete=fields.RESTRICT)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="reviews", on_delete=fields.RESTRICT)
    order = fields.ForeignKeyField("models.Order", related_name="reviews", on_delete=fields.RESTRICT)
    food_rating = fields.SmallIntField()
    service_rating = fields.SmallIntField()
    delivery_rating = fields.SmallIntField(null=True)
    # Mean of the individual ratings, one decimal place
    overall_rating = fields.DecimalField(max_digits=2, decimal_places=1)
    comment = fields.TextField()
    is_hidden = fields.BooleanField(default=False)
    response_message = fields.CharField(max_length=500, null=True)
    responded_by = fields.UUIDField(null=True)
    responded_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "reviews"
        unique_together = (("user", "order"),)
        indexes = [
            ("restaurant_id", "is_hidden", "created_at"),  # Public restaurant listing
        ]
