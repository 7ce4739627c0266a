import logging
from fastapi import APIRouter, Depends, HTTPException
from food_delivery.core.errors import DomainError
from food_delivery.core.security import Actor, get_current_actor
from food_delivery.schemas.discount import ValidateDiscountRequest
from food_delivery.schemas.response import SuccessResponse
from food_delivery.services.discount_service import validate_discount

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.post("/validate", response_model=SuccessResponse)
async def validate_discount_endpoint(payload: ValidateDiscountRequest, actor: Actor = Depends(get_current_actor)):
    """Previews what a coupon code would take off an order amount; nothing is applied."""
    try:
        result = await validate_discount(payload.code, payload.restaurant_id, payload.order_amount)
        return SuccessResponse(message="Discount code is valid", data=result)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error validating discount {payload.code} for user {actor.id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to validate discount.")
