import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from food_delivery.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from food_delivery.core.errors import DomainError
from food_delivery.core.security import Actor, get_current_actor
from food_delivery.schemas.order import CancelOrderRequest, OrderStatusUpdate, PlaceOrderRequest, serialize_order
from food_delivery.schemas.response import SuccessResponse
from food_delivery.services.order_service import (
    cancel_order,
    get_order,
    list_orders,
    place_order,
    reorder,
    transition_order,
)
from food_delivery.utils import paginate
from typing import List, Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def place_order_endpoint(payload: PlaceOrderRequest, actor: Actor = Depends(get_current_actor)):
    """
    Checkout: turns the caller's cart into a pending order and empties the cart.
    """
    try:
        order = await place_order(
            actor,
            payload.delivery_address.model_dump(exclude_none=True),
            payload.payment_method,
            notes=payload.notes,
        )
        log.info(f"Order {order.order_number} placed successfully for user {actor.id}.")
        return SuccessResponse(
            message="Order placed successfully",
            data=serialize_order(order, include_items=False),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error placing order: {e}")
        raise HTTPException(status_code=500, detail="Server failed to place order.")


@router.get("/", response_model=SuccessResponse)
async def list_orders_endpoint(
    status_filter: Optional[List[str]] = Query(None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
    restaurant_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    actor: Actor = Depends(get_current_actor),
):
    """Customers see their orders, restaurants their incoming orders, admins everything."""
    try:
        orders, total = await list_orders(
            actor,
            statuses=status_filter,
            start_date=start_date,
            end_date=end_date,
            search=search,
            restaurant_id=restaurant_id,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return SuccessResponse(data={
            "orders": [serialize_order(o) for o in orders],
            "pagination": paginate(page, limit, total),
        })
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing orders: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list orders.")


@router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_endpoint(order_id: UUID, actor: Actor = Depends(get_current_actor)):
    """Fetches details for a specific order."""
    try:
        order = await get_order(actor, order_id)
        data = serialize_order(order)
        data["restaurant_name"] = order.restaurant.name
        return SuccessResponse(data=data)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch order details.")


@router.patch("/{order_id}/status", response_model=SuccessResponse)
async def update_status_endpoint(order_id: UUID, payload: OrderStatusUpdate,
                                 actor: Actor = Depends(get_current_actor)):
    """
    Moves the order one step forward (or to cancelled). Send `expected_status`
    to have the change rejected with 409 if someone else moved it first.
    """
    try:
        order = await transition_order(
            actor, order_id, payload.status, note=payload.note, expected_status=payload.expected_status
        )
        return SuccessResponse(
            message=f"Order status successfully updated to {order.status.value}",
            data=serialize_order(order, include_items=False),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error updating order status: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update order status.")


@router.post("/{order_id}/cancel", response_model=SuccessResponse)
async def cancel_order_endpoint(order_id: UUID, payload: CancelOrderRequest,
                                actor: Actor = Depends(get_current_actor)):
    try:
        order = await cancel_order(actor, order_id, reason=payload.reason, expected_status=payload.expected_status)
        return SuccessResponse(message="Order cancelled", data=serialize_order(order, include_items=False))
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error cancelling order: {e}")
        raise HTTPException(status_code=500, detail="Server failed to cancel order.")


@router.post("/{order_id}/reorder", response_model=SuccessResponse)
async def reorder_endpoint(order_id: UUID, actor: Actor = Depends(get_current_actor)):
    """Refills the cart from a past order at today's prices."""
    try:
        view = await reorder(actor, order_id)
        message = "Items added to cart"
        if view["dropped_items"]:
            message = f"Items added to cart; {len(view['dropped_items'])} no longer available"
        return SuccessResponse(message=message, data=view)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error reordering {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to reorder.")
