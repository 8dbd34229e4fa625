"""
Notification center API endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, status

from learnhub.api.deps import get_current_user_id, get_notification_service
from learnhub.models.common import APIResponse
from learnhub.models.notifications import (
    DeliveryDecision, Notification, NotificationCreate, NotificationPreferences,
    NotificationPreferencesUpdate, NotificationSummary
)
from learnhub.services.notification_service import ALL_CATEGORIES, NotificationService

router = APIRouter()


@router.get("", response_model=APIResponse[List[Notification]])
async def list_notifications(
    category: str = ALL_CATEGORIES,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Notifications of the calling user, newest first, optionally for one category"""
    notifications = await notification_service.list_notifications(user_id, category)
    return APIResponse(data=notifications)


@router.post("", response_model=APIResponse[DeliveryDecision], status_code=status.HTTP_201_CREATED)
async def add_notification(
    payload: NotificationCreate,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    decision = await notification_service.add_notification(user_id, payload)
    return APIResponse(data=decision, message="Notification stored")


@router.get("/summary", response_model=APIResponse[NotificationSummary])
async def get_notification_summary(
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    return APIResponse(data=await notification_service.get_summary(user_id))


@router.get("/unread-count", response_model=APIResponse[int])
async def get_unread_count(
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    return APIResponse(data=await notification_service.unread_count(user_id))


@router.get("/preferences", response_model=APIResponse[NotificationPreferences])
async def get_preferences(
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    return APIResponse(data=await notification_service.get_preferences(user_id))


@router.patch("/preferences", response_model=APIResponse[NotificationPreferences])
async def update_preferences(
    update: NotificationPreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    preferences = await notification_service.update_preferences(user_id, update)
    return APIResponse(data=preferences, message="Preferences updated")


@router.post("/read-all", response_model=APIResponse[int])
async def mark_all_as_read(
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    updated = await notification_service.mark_all_as_read(user_id)
    return APIResponse(data=updated, message=f"{updated} notifications marked as read")


@router.post("/{notification_id}/read", response_model=APIResponse[Notification])
async def mark_as_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    notification = await notification_service.mark_as_read(user_id, notification_id)
    return APIResponse(data=notification)


@router.delete("/{notification_id}", response_model=APIResponse)
async def remove_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    await notification_service.remove_notification(user_id, notification_id)
    return APIResponse(message="Notification removed")


@router.delete("", response_model=APIResponse[int])
async def clear_all_notifications(
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    cleared = await notification_service.clear_all(user_id)
    return APIResponse(data=cleared, message="Notifications cleared")
