"""Owner area: routes for the restaurant bound to the calling account."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from food_delivery.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, TOP_DISHES_LIMIT
from food_delivery.core.errors import DomainError
from food_delivery.core.security import Actor, get_current_actor
from food_delivery.schemas.discount import DiscountCreate, DiscountResponse, DiscountUpdate
from food_delivery.schemas.response import SuccessResponse
from food_delivery.schemas.review import ReviewReply, ReviewResponse
from food_delivery.schemas.restaurant import (
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    RestaurantProfileResponse,
    RestaurantProfileUpdate,
)
from food_delivery.services.discount_service import (
    create_discount,
    delete_discount,
    discount_status,
    list_discounts,
    update_discount,
)
from food_delivery.services.restaurant_service import (
    add_menu_item,
    get_own_restaurant,
    list_menu,
    remove_menu_item,
    update_menu_item,
    update_profile,
)
from food_delivery.services.review_service import own_restaurant_reviews, respond_to_review
from food_delivery.services.stats_service import (
    payouts_chart,
    restaurant_dashboard,
    restaurant_top_dishes,
    revenue_report,
)
from food_delivery.utils import paginate
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")

RANGE_PATTERN = "^(week|month|quarter|year)$"


def _discount_data(discount) -> dict:
    data = DiscountResponse.model_validate(discount).model_dump()
    data["status"] = discount_status(discount)
    return data


@router.get("/profile", response_model=SuccessResponse)
async def get_profile_endpoint(actor: Actor = Depends(get_current_actor)):
    try:
        restaurant = await get_own_restaurant(actor)
        return SuccessResponse(data=RestaurantProfileResponse.model_validate(restaurant).model_dump())
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching restaurant profile: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch restaurant profile.")


@router.patch("/profile", response_model=SuccessResponse)
async def update_profile_endpoint(payload: RestaurantProfileUpdate, actor: Actor = Depends(get_current_actor)):
    try:
        restaurant = await update_profile(actor, **payload.model_dump(exclude_unset=True))
        return SuccessResponse(
            message="Profile updated",
            data=RestaurantProfileResponse.model_validate(restaurant).model_dump(),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error updating restaurant profile: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update restaurant profile.")


@router.get("/menu", response_model=SuccessResponse)
async def list_menu_endpoint(actor: Actor = Depends(get_current_actor)):
    try:
        items = await list_menu(actor)
        return SuccessResponse(data=[MenuItemResponse.model_validate(i).model_dump() for i in items])
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing menu: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list menu.")


@router.post("/menu", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def add_menu_item_endpoint(payload: MenuItemCreate, actor: Actor = Depends(get_current_actor)):
    """Adds a dish to the caller's menu."""
    try:
        item = await add_menu_item(actor, **payload.model_dump())
        return SuccessResponse(message="Menu item added", data=MenuItemResponse.model_validate(item).model_dump())
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error adding menu item: {e}")
        raise HTTPException(status_code=500, detail="Server failed to add menu item.")


@router.patch("/menu/{item_id}", response_model=SuccessResponse)
async def update_menu_item_endpoint(item_id: UUID, payload: MenuItemUpdate,
                                   actor: Actor = Depends(get_current_actor)):
    try:
        item = await update_menu_item(actor, item_id, **payload.model_dump(exclude_unset=True))
        return SuccessResponse(message="Menu item updated", data=MenuItemResponse.model_validate(item).model_dump())
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error updating menu item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update menu item.")


@router.delete("/menu/{item_id}", response_model=SuccessResponse)
async def remove_menu_item_endpoint(item_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        await remove_menu_item(actor, item_id)
        return SuccessResponse(message="Menu item removed", data={"id": item_id})
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error removing menu item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to remove menu item.")


@router.get("/discounts", response_model=SuccessResponse)
async def list_discounts_endpoint(
    discount_status_filter: Optional[str] = Query(None, alias="status", pattern="^(active|scheduled|expired)$"),
    actor: Actor = Depends(get_current_actor),
):
    try:
        discounts = await list_discounts(actor, status=discount_status_filter)
        return SuccessResponse(data=[_discount_data(d) for d in discounts])
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing discounts: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list discounts.")


@router.post("/discounts", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_discount_endpoint(payload: DiscountCreate, actor: Actor = Depends(get_current_actor)):
    try:
        discount = await create_discount(actor, **payload.model_dump())
        return SuccessResponse(message="Discount created", data=_discount_data(discount))
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error creating discount: {e}")
        raise HTTPException(status_code=500, detail="Server failed to create discount.")


@router.patch("/discounts/{discount_id}", response_model=SuccessResponse)
async def update_discount_endpoint(discount_id: UUID, payload: DiscountUpdate,
                                   actor: Actor = Depends(get_current_actor)):
    try:
        discount = await update_discount(actor, discount_id, **payload.model_dump(exclude_unset=True))
        return SuccessResponse(message="Discount updated", data=_discount_data(discount))
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error updating discount {discount_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update discount.")


@router.delete("/discounts/{discount_id}", response_model=SuccessResponse)
async def delete_discount_endpoint(discount_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        await delete_discount(actor, discount_id)
        return SuccessResponse(message="Discount deleted", data={"id": discount_id})
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error deleting discount {discount_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to delete discount.")


@router.get("/stats", response_model=SuccessResponse)
async def stats_endpoint(actor: Actor = Depends(get_current_actor)):
    """Dashboard counters and revenue."""
    try:
        return SuccessResponse(data=await restaurant_dashboard(actor))
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching restaurant stats: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch stats.")


@router.get("/revenue", response_model=SuccessResponse)
async def revenue_endpoint(
    range_name: str = Query("month", alias="range", pattern=RANGE_PATTERN),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return SuccessResponse(data=await revenue_report(actor, range_name))
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching revenue report: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch revenue.")


@router.get("/payouts/chart", response_model=SuccessResponse)
async def payouts_chart_endpoint(
    range_name: str = Query("month", alias="range", pattern=RANGE_PATTERN),
    actor: Actor = Depends(get_current_actor),
):
    """Earnings minus platform commission per period."""
    try:
        return SuccessResponse(data={"chart_data": await payouts_chart(actor, range_name)})
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching payouts chart: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch payouts chart.")


@router.get("/top-dishes", response_model=SuccessResponse)
async def top_dishes_endpoint(
    limit: int = Query(TOP_DISHES_LIMIT, ge=1, le=50),
    actor: Actor = Depends(get_current_actor),
):
    try:
        return SuccessResponse(data=await restaurant_top_dishes(actor, limit))
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching top dishes: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch top dishes.")


@router.get("/reviews", response_model=SuccessResponse)
async def list_reviews_endpoint(
    responded: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
):
    """Every review of the restaurant, hidden ones included, with the rating summary."""
    try:
        reviews, total, summary = await own_restaurant_reviews(actor, responded=responded, page=page, limit=limit)
        return SuccessResponse(data={
            "reviews": [ReviewResponse.model_validate(r).model_dump() for r in reviews],
            "summary": summary,
            "pagination": paginate(page, limit, total),
        })
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing restaurant reviews: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list reviews.")


@router.put("/reviews/{review_id}/response", response_model=SuccessResponse)
async def respond_to_review_endpoint(review_id: UUID, payload: ReviewReply,
                                     actor: Actor = Depends(get_current_actor)):
    try:
        review = await respond_to_review(actor, review_id, payload.message)
        return SuccessResponse(
            message="Response saved",
            data=ReviewResponse.model_validate(review).model_dump(),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error responding to review {review_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to save review response.")
