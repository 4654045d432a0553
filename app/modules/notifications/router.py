"""Notification inbox endpoints for the authenticated recipient."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.modules.notifications.schemas import NotificationResponse, UnreadCountResponse
from app.modules.notifications.service import NotificationService, to_response
from app.modules.users.models import User
from app.shared import deps

router = APIRouter()


@router.get("/", response_model=List[NotificationResponse], summary="List my notifications")
async def list_notifications(
    limit: int = Query(default=100, ge=1, le=500),
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(NotificationService),
) -> List[NotificationResponse]:
    notifications = await service.list_for(str(current_user.id), limit=limit)
    return [to_response(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Count unread notifications")
async def unread_count(
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(NotificationService),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await service.unread_count(str(current_user.id)))


@router.post("/read-all", summary="Mark every notification as read")
async def mark_all_read(
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(NotificationService),
) -> dict[str, int]:
    return {"updated": await service.mark_all_read(str(current_user.id))}


@router.post("/{notification_id}/read", response_model=NotificationResponse, summary="Mark as read")
async def mark_read(
    notification_id: str,
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(NotificationService),
) -> NotificationResponse:
    notification = await service.mark_read(str(current_user.id), notification_id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return to_response(notification)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: str,
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(NotificationService),
) -> None:
    if not await service.delete(str(current_user.id), notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")


@router.delete("/", summary="Clear all notifications")
async def clear_notifications(
    current_user: User = Depends(deps.get_current_user),
    service: NotificationService = Depends(NotificationService),
) -> dict[str, int]:
    return {"deleted": await service.clear_all(str(current_user.id))}
