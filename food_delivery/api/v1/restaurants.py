import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from food_delivery.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from food_delivery.core.errors import DomainError
from food_delivery.core.security import Actor, get_current_actor
from food_delivery.schemas.response import SuccessResponse
from food_delivery.schemas.restaurant import MenuItemResponse, RestaurantResponse
from food_delivery.schemas.review import ReviewResponse
from food_delivery.services.restaurant_service import get_restaurant, list_restaurants
from food_delivery.services.review_service import restaurant_reviews
from food_delivery.services.user_service import list_favorites, toggle_favorite
from food_delivery.utils import paginate
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.get("/", response_model=SuccessResponse)
async def list_restaurants_endpoint(
    search: Optional[str] = None,
    cuisine: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    """Browse active restaurants."""
    try:
        restaurants, total = await list_restaurants(search=search, cuisine=cuisine, page=page, limit=limit)
        return SuccessResponse(data={
            "restaurants": [RestaurantResponse.model_validate(r).model_dump() for r in restaurants],
            "pagination": paginate(page, limit, total),
        })
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing restaurants: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list restaurants.")


@router.get("/favorites", response_model=SuccessResponse)
async def list_favorites_endpoint(actor: Actor = Depends(get_current_actor)):
    try:
        favorites = await list_favorites(actor)
        return SuccessResponse(data=[RestaurantResponse.model_validate(r).model_dump() for r in favorites])
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing favorites for {actor.id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list favorites.")


@router.get("/{restaurant_id}", response_model=SuccessResponse)
async def get_restaurant_endpoint(restaurant_id: UUID):
    """Restaurant details with the dishes currently available."""
    try:
        restaurant, menu = await get_restaurant(restaurant_id)
        data = RestaurantResponse.model_validate(restaurant).model_dump()
        data["menu"] = [MenuItemResponse.model_validate(m).model_dump() for m in menu]
        return SuccessResponse(data=data)
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching restaurant {restaurant_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch restaurant.")


@router.post("/{restaurant_id}/favorite", response_model=SuccessResponse)
async def toggle_favorite_endpoint(restaurant_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        is_favorite = await toggle_favorite(actor, restaurant_id)
        return SuccessResponse(
            message="Added to favorites" if is_favorite else "Removed from favorites",
            data={"restaurant_id": restaurant_id, "is_favorite": is_favorite},
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error toggling favorite {restaurant_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update favorites.")


@router.get("/{restaurant_id}/reviews", response_model=SuccessResponse)
async def restaurant_reviews_endpoint(
    restaurant_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    """Visible reviews with average ratings and the star distribution."""
    try:
        reviews, total, summary = await restaurant_reviews(restaurant_id, page=page, limit=limit)
        return SuccessResponse(data={
            "reviews": [ReviewResponse.model_validate(r).model_dump() for r in reviews],
            "summary": summary,
            "pagination": paginate(page, limit, total),
        })
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing reviews for restaurant {restaurant_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list reviews.")
