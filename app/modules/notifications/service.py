from datetime import datetime
from typing import List, Optional

import structlog
from beanie import PydanticObjectId
from bson.errors import InvalidId

from app.core.config import settings
from app.modules.alerts.manager import notification_hub
from app.modules.notifications.models import Notification
from app.modules.notifications.schemas import (
    NotificationCreate,
    NotificationEvent,
    NotificationResponse,
)
from app.shared.exceptions import PersistenceError
from app.shared.schemas import utc_now

log = structlog.get_logger()


def to_response(notification: Notification) -> NotificationResponse:
    data = notification.model_dump(exclude={"details"})
    return NotificationResponse.model_validate({**data, "details": notification.details})


class NotificationService:
    """Durable notification store plus the unread -> read state machine."""

    async def persist(self, data: NotificationCreate) -> Notification:
        """Store one notification; store failures surface as PersistenceError."""
        notification = Notification(
            **data.model_dump(exclude={"details"}),
            details=data.details,
        )
        try:
            await notification.insert()
        except Exception as exc:
            raise PersistenceError(data.recipient_id, str(exc)) from exc
        log.info(
            "notifications.created",
            recipient_id=data.recipient_id,
            kind=data.kind.value,
            priority=data.priority.value,
        )
        await self._publish("created", notification)
        return notification

    async def list_for(
        self,
        recipient_id: str,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Notification]:
        """Newest first; expired notifications are hidden, not deleted."""
        now = now or utc_now()
        notifications: List[Notification] = (
            await Notification.find(Notification.recipient_id == recipient_id)
            .sort("-created_at")
            .limit(limit or settings.NOTIFICATION_LIST_LIMIT)
            .to_list()
        )
        return [n for n in notifications if not n.is_expired(now)]

    async def unread_count(self, recipient_id: str, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        unread = await Notification.find(
            Notification.recipient_id == recipient_id,
            Notification.read == False,  # noqa: E712
        ).to_list()
        return sum(1 for n in unread if not n.is_expired(now))

    async def mark_read(self, recipient_id: str, notification_id: str) -> Notification | None:
        notification = await self._get_owned(recipient_id, notification_id)
        if not notification:
            return None
        if not notification.read:
            notification.read = True
            await notification.save()
            await self._publish("updated", notification)
        return notification

    async def mark_all_read(self, recipient_id: str) -> int:
        unread = await Notification.find(
            Notification.recipient_id == recipient_id,
            Notification.read == False,  # noqa: E712
        ).to_list()
        for notification in unread:
            notification.read = True
            await notification.save()
            await self._publish("updated", notification)
        return len(unread)

    async def delete(self, recipient_id: str, notification_id: str) -> bool:
        notification = await self._get_owned(recipient_id, notification_id)
        if not notification:
            return False
        await notification.delete()
        await notification_hub.publish(
            recipient_id,
            NotificationEvent(
                event="deleted", recipient_id=recipient_id, notification_id=notification_id
            ).model_dump(by_alias=True, mode="json"),
        )
        return True

    async def clear_all(self, recipient_id: str) -> int:
        notifications = await Notification.find(
            Notification.recipient_id == recipient_id
        ).to_list()
        for notification in notifications:
            await notification.delete()
        await notification_hub.publish(
            recipient_id,
            NotificationEvent(event="cleared", recipient_id=recipient_id).model_dump(
                by_alias=True, mode="json"
            ),
        )
        log.info("notifications.cleared", recipient_id=recipient_id, count=len(notifications))
        return len(notifications)

    async def _get_owned(self, recipient_id: str, notification_id: str) -> Notification | None:
        try:
            object_id = PydanticObjectId(notification_id)
        except (InvalidId, TypeError):
            return None
        notification: Notification | None = await Notification.get(object_id)
        if not notification or notification.recipient_id != recipient_id:
            return None
        return notification

    async def _publish(self, event: str, notification: Notification) -> None:
        payload = NotificationEvent(
            event=event,
            recipient_id=notification.recipient_id,
            notification_id=str(notification.id),
            notification=to_response(notification),
        )
        await notification_hub.publish(
            notification.recipient_id, payload.model_dump(by_alias=True, mode="json")
        )
