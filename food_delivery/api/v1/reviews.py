import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from food_delivery.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from food_delivery.core.errors import DomainError
from food_delivery.core.security import Actor, get_current_actor
from food_delivery.schemas.response import SuccessResponse
from food_delivery.schemas.review import ReviewCreate, ReviewResponse
from food_delivery.services.review_service import create_review, delete_review, list_my_reviews
from food_delivery.utils import paginate
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_review_endpoint(payload: ReviewCreate, actor: Actor = Depends(get_current_actor)):
    """Rates a delivered order; each order can be reviewed once."""
    try:
        review = await create_review(
            actor,
            payload.order_id,
            payload.food_rating,
            payload.service_rating,
            payload.comment,
            delivery_rating=payload.delivery_rating,
        )
        return SuccessResponse(
            message="Review created successfully",
            data=ReviewResponse.model_validate(review).model_dump(),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error creating review for order {payload.order_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to create review.")


@router.get("/", response_model=SuccessResponse)
async def list_my_reviews_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
):
    try:
        reviews, total = await list_my_reviews(actor, page=page, limit=limit)
        return SuccessResponse(data={
            "reviews": [ReviewResponse.model_validate(r).model_dump() for r in reviews],
            "pagination": paginate(page, limit, total),
        })
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing reviews for user {actor.id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list reviews.")


@router.delete("/{review_id}", response_model=SuccessResponse)
async def delete_review_endpoint(review_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        await delete_review(actor, review_id)
        return SuccessResponse(message="Review deleted successfully")
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error deleting review {review_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to delete review.")
