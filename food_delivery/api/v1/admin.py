import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from food_delivery.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from food_delivery.core.errors import DomainError
from food_delivery.core.security import Actor, get_current_actor
from food_delivery.schemas.notification import SendNotificationRequest
from food_delivery.schemas.response import SuccessResponse
from food_delivery.schemas.restaurant import RestaurantProfileResponse, RestaurantStatusUpdate
from food_delivery.schemas.review import ReviewResponse, ReviewVisibility
from food_delivery.schemas.user import RoleChangeRequest, UserResponse, UserStatusUpdate
from food_delivery.services.notification_service import send_notification
from food_delivery.services.restaurant_service import set_restaurant_status
from food_delivery.services.review_service import set_review_hidden
from food_delivery.services.stats_service import platform_stats
from food_delivery.services.user_service import change_role, delete_user, list_users, set_user_active
from food_delivery.utils import paginate
from typing import Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.get("/stats", response_model=SuccessResponse)
async def platform_stats_endpoint(actor: Actor = Depends(get_current_actor)):
    """Platform-wide users, restaurants, orders and revenue."""
    try:
        return SuccessResponse(data=await platform_stats(actor))
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error fetching platform stats: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch platform stats.")


@router.get("/users", response_model=SuccessResponse)
async def list_users_endpoint(
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
):
    try:
        users, total, distribution = await list_users(actor, role=role, search=search, page=page, limit=limit)
        return SuccessResponse(data={
            "users": [UserResponse.model_validate(u).model_dump() for u in users],
            "role_distribution": distribution,
            "pagination": paginate(page, limit, total),
        })
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing users: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list users.")


@router.patch("/users/{user_id}/role", response_model=SuccessResponse)
async def change_role_endpoint(user_id: UUID, payload: RoleChangeRequest,
                               actor: Actor = Depends(get_current_actor)):
    """Only super admins may grant or revoke admin roles."""
    try:
        user = await change_role(actor, user_id, payload.role)
        return SuccessResponse(
            message=f"Role updated to {user.role.value}",
            data=UserResponse.model_validate(user).model_dump(),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error changing role of user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to change role.")


@router.patch("/users/{user_id}/status", response_model=SuccessResponse)
async def user_status_endpoint(user_id: UUID, payload: UserStatusUpdate,
                               actor: Actor = Depends(get_current_actor)):
    try:
        user = await set_user_active(actor, user_id, payload.is_active)
        return SuccessResponse(
            message="User activated" if user.is_active else "User deactivated",
            data=UserResponse.model_validate(user).model_dump(),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error updating status of user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update user status.")


@router.delete("/users/{user_id}", response_model=SuccessResponse)
async def delete_user_endpoint(user_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        await delete_user(actor, user_id)
        return SuccessResponse(message="User deleted", data={"id": user_id})
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error deleting user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to delete user.")


@router.patch("/restaurants/{restaurant_id}/status", response_model=SuccessResponse)
async def restaurant_status_endpoint(restaurant_id: UUID, payload: RestaurantStatusUpdate,
                                     actor: Actor = Depends(get_current_actor)):
    try:
        restaurant = await set_restaurant_status(
            actor, restaurant_id, is_active=payload.is_active, is_verified=payload.is_verified
        )
        return SuccessResponse(
            message="Restaurant status updated",
            data=RestaurantProfileResponse.model_validate(restaurant).model_dump(),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error updating restaurant {restaurant_id} status: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update restaurant status.")


@router.post("/notifications", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def send_notification_endpoint(payload: SendNotificationRequest, actor: Actor = Depends(get_current_actor)):
    """Broadcast to explicit users or to every active user with a role."""
    try:
        sent = await send_notification(
            actor,
            title=payload.title,
            message=payload.message,
            type=payload.type,
            priority=payload.priority,
            user_ids=payload.user_ids,
            role=payload.role,
        )
        return SuccessResponse(message=f"Notification sent to {sent} users", data={"sent": sent})
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error sending notification: {e}")
        raise HTTPException(status_code=500, detail="Server failed to send notification.")


@router.patch("/reviews/{review_id}/visibility", response_model=SuccessResponse)
async def review_visibility_endpoint(review_id: UUID, payload: ReviewVisibility,
                                     actor: Actor = Depends(get_current_actor)):
    """Hidden reviews drop out of the public listing and the restaurant's averages."""
    try:
        review = await set_review_hidden(actor, review_id, payload.is_hidden)
        return SuccessResponse(
            message="Review hidden" if review.is_hidden else "Review restored",
            data=ReviewResponse.model_validate(review).model_dump(),
        )
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error updating review {review_id} visibility: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update review visibility.")
