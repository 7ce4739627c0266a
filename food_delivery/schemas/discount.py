import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from food_delivery.models.discount import DiscountType


class DiscountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    code: str = Field(..., min_length=1, max_length=64, description="Stored upper-cased.")
    type: DiscountType
    value: Decimal = Field(..., gt=0)
    min_order_amount: Decimal = Field(Decimal("0"), ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, gt=0, description="Cap for percentage coupons.")
    usage_limit: Optional[int] = Field(None, ge=1, description="Omit for unlimited use.")
    start_date: datetime
    end_date: datetime
    is_active: bool = True


class DiscountUpdate(BaseModel):
    """Partial update; omitted fields keep their value."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    code: Optional[str] = Field(None, min_length=1, max_length=64)
    type: Optional[DiscountType] = None
    value: Optional[Decimal] = Field(None, gt=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, gt=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class DiscountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    restaurant_id: uuid.UUID
    name: str
    description: Optional[str] = None
    code: str
    type: DiscountType
    value: Decimal
    min_order_amount: Decimal
    max_discount_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    used_count: int
    start_date: datetime
    end_date: datetime
    is_active: bool
    status: Optional[str] = None


class ValidateDiscountRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    restaurant_id: uuid.UUID
    order_amount: Decimal = Field(..., ge=0)
