import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from food_delivery.models.order import OrderStatus, PaymentMethod, PaymentStatus


class DeliveryAddress(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    apartment_number: Optional[str] = None
    delivery_instructions: Optional[str] = Field(None, max_length=200)


class PlaceOrderRequest(BaseModel):
    """Checkout body; items come from the caller's cart."""
    delivery_address: DeliveryAddress
    payment_method: PaymentMethod
    notes: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(BaseModel):
    """
    Requested transition. `status` is kept as free text so an unknown value is
    reported as an invalid transition rather than a schema error.
    """
    status: str
    note: Optional[str] = Field(None, max_length=500)
    expected_status: Optional[str] = Field(
        None, description="Status the caller last saw; a mismatch fails with 409."
    )


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    expected_status: Optional[str] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    dish_id: uuid.UUID
    name: str
    quantity: int
    unit_price: Decimal
    customizations: List[Dict[str, Any]] = []
    special_instructions: Optional[str] = None
    line_total: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID
    restaurant_id: uuid.UUID
    status: OrderStatus
    status_history: List[Dict[str, Any]] = []
    subtotal: Decimal
    discount_amount: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    delivery_address: Dict[str, Any] = {}
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    coupon_code: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    delivered_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime


def serialize_order(order, include_items: bool = True) -> Dict[str, Any]:
    """Order as a plain dict; `include_items` needs the items relation prefetched."""
    data = OrderResponse.model_validate(order).model_dump()
    if include_items:
        data["items"] = [OrderItemResponse.model_validate(i).model_dump() for i in order.items]
    return data
