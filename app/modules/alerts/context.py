"""Collaborators the alert pipeline needs, bundled into one explicit session object."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List, Protocol

from app.modules.alerts.manager import SubscriptionHub, alert_hub
from app.modules.alerts.models import Alert
from app.modules.alerts.schemas import AlertEvent, AlertResponse
from app.modules.notifications.models import Notification
from app.modules.notifications.schemas import NotificationCreate
from app.modules.notifications.service import NotificationService
from app.modules.roster.service import RosterService
from app.shared.schemas import utc_now


class RecipientDirectory(Protocol):
    async def fetch_active_links(self, patient_id: str) -> List[str]: ...

    async def fetch_display_name(self, user_id: str) -> str: ...


class NotificationStore(Protocol):
    async def persist(self, data: NotificationCreate) -> Notification: ...


class AlertChannel(Protocol):
    async def send_alert(self, recipient_id: str, alert: Alert) -> None: ...


class HubAlertChannel:
    """Publish toasts on the in-process alert hub."""

    def __init__(self, hub: SubscriptionHub = alert_hub) -> None:
        self.hub = hub

    async def send_alert(self, recipient_id: str, alert: Alert) -> None:
        event = AlertEvent(
            recipient_id=recipient_id,
            alert=AlertResponse.from_alert(replace(alert, recipient_id=recipient_id)),
        )
        await self.hub.publish(recipient_id, event.model_dump(by_alias=True, mode="json"))


@dataclass
class MonitoringContext:
    directory: RecipientDirectory
    store: NotificationStore
    channel: AlertChannel
    clock: Callable[[], datetime] = utc_now


def default_context() -> MonitoringContext:
    """Context backed by MongoDB and the in-process hubs."""
    return MonitoringContext(
        directory=RosterService(),
        store=NotificationService(),
        channel=HubAlertChannel(),
    )
