import logging
from fastapi import APIRouter, Depends, HTTPException
from food_delivery.core.errors import DomainError
from food_delivery.core.security import Actor, get_current_actor
from food_delivery.schemas.cart import AddCartItemRequest, ApplyCouponRequest, UpdateCartItemRequest
from food_delivery.schemas.response import SuccessResponse
from food_delivery.services.cart_service import (
    add_item,
    apply_coupon,
    clear_cart,
    get_cart,
    remove_coupon,
    remove_item,
    update_quantity,
)

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.get("/", response_model=SuccessResponse)
async def get_cart_endpoint(actor: Actor = Depends(get_current_actor)):
    """Current cart with totals recomputed and availability checked."""
    try:
        return SuccessResponse(data=await get_cart(actor))
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching cart for user {actor.id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch cart.")


@router.post("/items", response_model=SuccessResponse)
async def add_item_endpoint(payload: AddCartItemRequest, actor: Actor = Depends(get_current_actor)):
    try:
        view = await add_item(
            actor,
            restaurant_id=payload.restaurant_id,
            dish_id=payload.dish_id,
            quantity=payload.quantity,
            customizations=[c.model_dump() for c in payload.customizations],
            special_instructions=payload.special_instructions or "",
            replace=payload.replace,
        )
        return SuccessResponse(message="Item added to cart", data=view)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error adding item to cart: {e}")
        raise HTTPException(status_code=500, detail="Server failed to add item to cart.")


@router.patch("/items/{line_id}", response_model=SuccessResponse)
async def update_item_endpoint(line_id: str, payload: UpdateCartItemRequest,
                               actor: Actor = Depends(get_current_actor)):
    """Sets a line's quantity; zero removes it."""
    try:
        view = await update_quantity(actor, line_id, payload.quantity)
        return SuccessResponse(message="Cart updated", data=view)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error updating cart line {line_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update cart.")


@router.delete("/items/{line_id}", response_model=SuccessResponse)
async def remove_item_endpoint(line_id: str, actor: Actor = Depends(get_current_actor)):
    try:
        view = await remove_item(actor, line_id)
        return SuccessResponse(message="Item removed from cart", data=view)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error removing cart line {line_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to remove item.")


@router.post("/coupon", response_model=SuccessResponse)
async def apply_coupon_endpoint(payload: ApplyCouponRequest, actor: Actor = Depends(get_current_actor)):
    try:
        view = await apply_coupon(actor, payload.code)
        return SuccessResponse(message="Coupon applied", data=view)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error applying coupon {payload.code}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to apply coupon.")


@router.delete("/coupon", response_model=SuccessResponse)
async def remove_coupon_endpoint(actor: Actor = Depends(get_current_actor)):
    try:
        view = await remove_coupon(actor)
        return SuccessResponse(message="Coupon removed", data=view)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error removing coupon: {e}")
        raise HTTPException(status_code=500, detail="Server failed to remove coupon.")


@router.delete("/", response_model=SuccessResponse)
async def clear_cart_endpoint(actor: Actor = Depends(get_current_actor)):
    try:
        view = await clear_cart(actor)
        return SuccessResponse(message="Cart cleared", data=view)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error clearing cart: {e}")
        raise HTTPException(status_code=500, detail="Server failed to clear cart.")
