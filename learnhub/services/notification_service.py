"""
Notification Service
Stores user notifications and decides delivery from per-category preferences and quiet hours
"""
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Union
from zoneinfo import ZoneInfo

from learnhub.core.error_handling import InvalidInputError, NotFoundError
from learnhub.core.stores import BaseStore
from learnhub.models.course import utc_now
from learnhub.models.notifications import (
    DeliveryDecision, Notification, NotificationCategory, NotificationCreate,
    NotificationPreferences, NotificationPreferencesUpdate, NotificationSummary, QuietHours
)

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"


def within_quiet_hours(quiet_hours: QuietHours, now: datetime) -> bool:
    """Inclusive HH:MM window check on the user's local clock; start later than end wraps past midnight"""
    if not quiet_hours.enabled:
        return False

    current = now.astimezone(ZoneInfo(quiet_hours.timezone)).strftime("%H:%M")
    start, end = quiet_hours.start, quiet_hours.end
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


class NotificationService:
    """Service for managing notifications and delivery preferences"""

    def __init__(
        self,
        notifications: BaseStore[Notification],
        preferences: BaseStore[NotificationPreferences],
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.notifications = notifications
        self.preferences = preferences
        self.clock = clock or utc_now

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        """Stored preferences, or the defaults for a user who never saved any"""
        preferences = await self.preferences.get(user_id)
        return preferences or NotificationPreferences(user_id=user_id)

    async def update_preferences(
        self,
        user_id: str,
        update: NotificationPreferencesUpdate
    ) -> NotificationPreferences:
        """Merge per category and per quiet-hours field"""
        existing = await self.preferences.get(user_id)
        preferences = existing or NotificationPreferences(user_id=user_id)

        for category, category_update in update.categories.items():
            current = preferences.categories[category]
            preferences.categories[category] = current.model_copy(
                update=category_update.model_dump(exclude_none=True)
            )

        if update.quiet_hours is not None:
            preferences.quiet_hours = preferences.quiet_hours.model_copy(
                update=update.quiet_hours.model_dump(exclude_none=True)
            )

        if existing is None:
            await self.preferences.add(preferences)
        else:
            await self.preferences.update(preferences)

        logger.info(f"Notification preferences updated for user: {user_id}", extra={"user_id": user_id})
        return preferences

    async def add_notification(self, user_id: str, payload: NotificationCreate) -> DeliveryDecision:
        """Store the notification unread, then decide whether to surface it now"""
        now = self.clock()
        notification = Notification(
            id=uuid.uuid4().hex,
            user_id=user_id,
            title=payload.title,
            message=payload.message,
            category=payload.category,
            priority=payload.priority,
            is_read=False,
            timestamp=now,
            action_url=payload.action_url
        )
        await self.notifications.add(notification)

        preferences = await self.get_preferences(user_id)
        category_prefs = preferences.categories[notification.category]

        if not category_prefs.enabled:
            decision = DeliveryDecision(notification=notification, deliver=False, reason="category disabled")
        elif within_quiet_hours(preferences.quiet_hours, now):
            decision = DeliveryDecision(notification=notification, deliver=False, reason="quiet hours")
        else:
            decision = DeliveryDecision(
                notification=notification,
                deliver=True,
                sound=category_prefs.sound,
                desktop=category_prefs.desktop
            )

        logger.info(
            f"Notification {notification.id} stored ({notification.category.value}), deliver={decision.deliver}",
            extra={"user_id": user_id, "event_type": "notification"}
        )
        return decision

    async def list_notifications(
        self,
        user_id: str,
        category: Union[NotificationCategory, str] = ALL_CATEGORIES
    ) -> List[Notification]:
        """Newest first; the latest added wins timestamp ties"""
        notifications = await self._user_notifications(user_id)
        if category != ALL_CATEGORIES:
            try:
                category = NotificationCategory(category)
            except ValueError as e:
                raise InvalidInputError(f"Unknown notification category: {category}", {"category": category}) from e
            notifications = [n for n in notifications if n.category == category]
        return sorted(reversed(notifications), key=lambda n: n.timestamp, reverse=True)

    async def unread_count(self, user_id: str) -> int:
        return sum(1 for n in await self._user_notifications(user_id) if not n.is_read)

    async def get_summary(self, user_id: str) -> NotificationSummary:
        notifications = await self.list_notifications(user_id)
        categories = {category.value: 0 for category in NotificationCategory}
        for notification in notifications:
            categories[notification.category.value] += 1

        return NotificationSummary(
            total_count=len(notifications),
            unread_count=sum(1 for n in notifications if not n.is_read),
            notifications=notifications,
            categories=categories,
            generated_at=self.clock()
        )

    async def mark_as_read(self, user_id: str, notification_id: str) -> Notification:
        notification = await self._require_notification(user_id, notification_id)
        notification.is_read = True
        await self.notifications.update(notification)
        return notification

    async def mark_all_as_read(self, user_id: str) -> int:
        """Returns how many notifications changed"""
        updated = 0
        for notification in await self._user_notifications(user_id):
            if not notification.is_read:
                notification.is_read = True
                await self.notifications.update(notification)
                updated += 1

        logger.info(f"Marked {updated} notifications as read", extra={"user_id": user_id})
        return updated

    async def remove_notification(self, user_id: str, notification_id: str) -> None:
        await self._require_notification(user_id, notification_id)
        await self.notifications.remove(notification_id)

    async def clear_all(self, user_id: str) -> int:
        notifications = await self._user_notifications(user_id)
        for notification in notifications:
            await self.notifications.remove(notification.id)

        logger.info(f"Cleared {len(notifications)} notifications", extra={"user_id": user_id})
        return len(notifications)

    async def _user_notifications(self, user_id: str) -> List[Notification]:
        return [n for n in await self.notifications.list_all() if n.user_id == user_id]

    async def _require_notification(self, user_id: str, notification_id: str) -> Notification:
        notification = await self.notifications.get(notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError(
                f"Notification not found: {notification_id}",
                {"notification_id": notification_id}
            )
        return notification
