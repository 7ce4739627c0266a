import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreate(BaseModel):
    order_id: uuid.UUID
    food_rating: int = Field(..., ge=1, le=5)
    service_rating: int = Field(..., ge=1, le=5)
    delivery_rating: Optional[int] = Field(None, ge=1, le=5)
    comment: str = Field(..., min_length=10, max_length=1000)


class ReviewReply(BaseModel):
    message: str = Field(..., min_length=1, max_length=500)


class ReviewVisibility(BaseModel):
    is_hidden: bool


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    restaurant_id: uuid.UUID
    order_id: uuid.UUID
    food_rating: int
    service_rating: int
    delivery_rating: Optional[int] = None
    overall_rating: Decimal
    comment: str
    is_hidden: bool
    response_message: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime
