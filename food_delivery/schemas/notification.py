import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from food_delivery.models.notification import NotificationPriority, NotificationType
from food_delivery.models.user import Role


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = {}
    related_order_id: Optional[uuid.UUID] = None
    priority: NotificationPriority
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class MarkReadRequest(BaseModel):
    notification_ids: List[uuid.UUID] = Field(..., min_length=1)


class SendNotificationRequest(BaseModel):
    """Admin broadcast: either explicit recipients or every active user with a role."""
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=500)
    type: NotificationType = NotificationType.GENERAL
    priority: NotificationPriority = NotificationPriority.MEDIUM
    user_ids: Optional[List[uuid.UUID]] = None
    role: Optional[Role] = None
