from enum import Enum
from tortoise import fields, models
import uuid


class Role(str, Enum):
    USER = "user"
    RESTAURANT = "restaurant"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = (Role.ADMIN, Role.SUPER_ADMIN)


class User(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    email = fields.CharField(max_length=255, unique=True)
    full_name = fields.CharField(max_length=255)
    phone = fields.CharField(max_length=32, null=True)
    role = fields.CharEnumField(Role, default=Role.USER, max_length=16)
    is_active = fields.BooleanField(default=True)
    is_verified = fields.BooleanField(default=False)
    reward_points = fields.IntField(default=0)
    favorites = fields.ManyToManyField(
        "models.Restaurant", related_name="favorited_by", through="user_favorites"
    )
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "users"
        indexes = [
            ("role",),       # Admin listing by role
            ("is_active",),
        ]

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
