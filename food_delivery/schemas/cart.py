import uuid
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from food_delivery.core.config import MAX_QUANTITY_PER_LINE


class CustomizationRequest(BaseModel):
    """One chosen option on a dish, e.g. size: large."""
    name: str = Field(..., min_length=1)
    value: str
    additional_price: Decimal = Field(Decimal("0"), ge=0)


class AddCartItemRequest(BaseModel):
    restaurant_id: uuid.UUID
    dish_id: uuid.UUID
    quantity: int = Field(1, ge=1, le=MAX_QUANTITY_PER_LINE)
    customizations: List[CustomizationRequest] = Field(default_factory=list)
    special_instructions: Optional[str] = Field(None, max_length=200)
    replace: bool = Field(False, description="Empty a cart holding another restaurant's dishes first.")


class UpdateCartItemRequest(BaseModel):
    """A quantity of zero or less removes the line."""
    quantity: int = Field(..., le=MAX_QUANTITY_PER_LINE)


class ApplyCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
