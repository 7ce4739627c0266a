import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: Decimal
    is_available: bool
    preparation_time: int
    position: int


class RestaurantResponse(BaseModel):
    """Public view of a restaurant."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    cuisine: List[str] = []
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Dict[str, Any] = {}
    delivery_fee: Decimal
    minimum_order: Decimal
    operating_hours: Dict[str, Any] = {}
    is_active: bool
    is_verified: bool


class RestaurantProfileResponse(RestaurantResponse):
    """Owner view, including payout details."""
    owner_id: uuid.UUID
    bank_details: Dict[str, Any] = {}


class RestaurantProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    cuisine: Optional[List[str]] = None
    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[Dict[str, Any]] = None
    delivery_fee: Optional[Decimal] = Field(None, ge=0)
    minimum_order: Optional[Decimal] = Field(None, ge=0)
    operating_hours: Optional[Dict[str, Any]] = None
    bank_details: Optional[Dict[str, Any]] = None


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Name of the dish (e.g., Chicken Biryani).")
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=64)
    price: Decimal = Field(..., gt=0, description="Selling price of the dish.")
    is_available: bool = True
    preparation_time: int = Field(15, ge=0, description="Minutes.")
    position: Optional[int] = Field(None, ge=0)


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=64)
    price: Optional[Decimal] = Field(None, gt=0)
    is_available: Optional[bool] = None
    preparation_time: Optional[int] = Field(None, ge=0)
    position: Optional[int] = Field(None, ge=0)


class RestaurantStatusUpdate(BaseModel):
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None
