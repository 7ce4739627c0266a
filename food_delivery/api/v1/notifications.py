import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from food_delivery.core.config import MAX_PAGE_SIZE, NOTIFICATION_PAGE_SIZE
from food_delivery.core.errors import DomainError
from food_delivery.core.security import Actor, get_current_actor
from food_delivery.schemas.notification import MarkReadRequest, NotificationResponse
from food_delivery.schemas.response import SuccessResponse
from food_delivery.services.notification_service import (
    delete_notification,
    list_notifications,
    mark_all_read,
    mark_read,
)
from food_delivery.utils import paginate
from typing import List, Optional
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.get("/", response_model=SuccessResponse)
async def list_notifications_endpoint(
    is_read: Optional[bool] = None,
    types: Optional[List[str]] = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(NOTIFICATION_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
):
    """The caller's inbox, newest first, with the unread count."""
    try:
        items, total, unread = await list_notifications(actor, is_read=is_read, types=types, page=page, limit=limit)
        return SuccessResponse(data={
            "notifications": [NotificationResponse.model_validate(n).model_dump() for n in items],
            "unread_count": unread,
            "pagination": paginate(page, limit, total),
        })
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error listing notifications for {actor.id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to fetch notifications.")


@router.patch("/read", response_model=SuccessResponse)
async def mark_read_endpoint(payload: MarkReadRequest, actor: Actor = Depends(get_current_actor)):
    try:
        updated = await mark_read(actor, payload.notification_ids)
        return SuccessResponse(message=f"{updated} notifications marked as read", data={"updated": updated})
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error marking notifications read: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update notifications.")


@router.patch("/read-all", response_model=SuccessResponse)
async def mark_all_read_endpoint(actor: Actor = Depends(get_current_actor)):
    try:
        updated = await mark_all_read(actor)
        return SuccessResponse(message="All notifications marked as read", data={"updated": updated})
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error marking all notifications read: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update notifications.")


@router.delete("/{notification_id}", response_model=SuccessResponse)
async def delete_notification_endpoint(notification_id: UUID, actor: Actor = Depends(get_current_actor)):
    try:
        await delete_notification(actor, notification_id)
        return SuccessResponse(message="Notification deleted", data={"id": notification_id})
    except DomainError:
        raise
    except Exception as e:
        log.error(f"Error deleting notification {notification_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to delete notification.")
