import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from food_delivery.models.user import Role


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    full_name: str
    phone: Optional[str] = None
    role: Role
    is_active: bool
    is_verified: bool
    reward_points: int
    created_at: datetime


class RoleChangeRequest(BaseModel):
    """`role` is validated against the closed role set by the service."""
    role: str


class UserStatusUpdate(BaseModel):
    is_active: bool
