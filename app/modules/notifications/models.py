from datetime import datetime, timezone
from typing import Optional

from beanie import Document
from pydantic import Field
from pymongo import IndexModel

from app.modules.alerts.models import AlertKind, AlertPriority
from app.modules.notifications.schemas import NotificationDetails, SystemDetails


class Notification(Document):
    """Recipient-addressed record; unread until the recipient marks it read."""

    recipient_id: str = Field(..., min_length=1)
    kind: AlertKind
    priority: AlertPriority
    title: str
    message: str
    details: NotificationDetails = Field(default_factory=SystemDetails)
    action_url: Optional[str] = None
    read: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = None

    class Settings:
        name = "notifications"
        indexes = [
            IndexModel([("recipient_id", 1), ("created_at", -1)]),
            IndexModel([("recipient_id", 1), ("read", 1)]),
        ]

    def is_expired(self, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now
