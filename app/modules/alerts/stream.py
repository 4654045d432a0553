"""Per-connection fan-in of hub events for the SSE endpoint."""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

import structlog

from app.core.config import settings
from app.modules.alerts.board import PatientStatusBoard
from app.modules.alerts.generator import generate_alerts
from app.modules.alerts.manager import (
    Subscription,
    subscribe_to_alerts,
    subscribe_to_new_readings,
    subscribe_to_notifications,
)
from app.modules.alerts.schemas import AlertResponse, AlertSetEvent
from app.modules.vitals.models import VitalReading

log = structlog.get_logger()


def format_sse(event: str, payload: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


class AlertStream:
    """Queue fed by the alert, notification and (for doctors) reading hubs.

    ``board`` is only given for doctors; every new reading of a watched patient
    is folded into it and the whole alert set is regenerated and pushed.
    """

    def __init__(
        self,
        user_id: str,
        board: Optional[PatientStatusBoard] = None,
        queue_size: Optional[int] = None,
        keepalive_seconds: Optional[float] = None,
    ) -> None:
        self.user_id = user_id
        self.board = board
        self.keepalive_seconds = keepalive_seconds or settings.ALERT_STREAM_KEEPALIVE_SECONDS
        self._queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue(
            maxsize=queue_size or settings.ALERT_STREAM_QUEUE_SIZE
        )
        self._subscriptions: List[Subscription] = []

    def open(self) -> None:
        """Subscribe to the hubs; raises SubscriptionError when a hub is closed."""
        try:
            self._subscriptions.append(subscribe_to_alerts(self.user_id, self._on_alert))
            self._subscriptions.append(
                subscribe_to_notifications(self.user_id, self._on_notification)
            )
            if self.board is not None and self.board.patient_ids():
                self._subscriptions.append(
                    subscribe_to_new_readings(self.board.patient_ids(), self._on_reading)
                )
        except Exception:
            self.close()
            raise

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    @property
    def active(self) -> bool:
        return bool(self._subscriptions) and all(s.active for s in self._subscriptions)

    def alert_set(self) -> dict[str, Any]:
        alerts = generate_alerts(self.board.snapshots() if self.board else [], recipient_id=self.user_id)
        return AlertSetEvent(alerts=[AlertResponse.from_alert(a) for a in alerts]).model_dump(
            by_alias=True, mode="json"
        )

    async def events(
        self, is_disconnected: Callable[[], Awaitable[bool]]
    ) -> AsyncIterator[str]:
        """Yield SSE frames until the client leaves or a channel closes."""
        if self.board is not None:
            yield format_sse("alerts", self.alert_set())
        while True:
            if await is_disconnected():
                log.info("alerts.stream_client_left", user_id=self.user_id)
                return
            if not self.active:
                yield format_sse("error", {"detail": "Alert channel closed, reconnect"})
                return
            try:
                event, payload = await asyncio.wait_for(
                    self._queue.get(), timeout=self.keepalive_seconds
                )
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield format_sse(event, payload)

    def _enqueue(self, event: str, payload: Any) -> None:
        try:
            self._queue.put_nowait((event, payload))
        except asyncio.QueueFull:
            log.warning("alerts.stream_queue_full", user_id=self.user_id, event=event)

    async def _on_alert(self, payload: dict[str, Any]) -> None:
        self._enqueue("alert", payload)

    async def _on_notification(self, payload: dict[str, Any]) -> None:
        self._enqueue("notification", payload)

    async def _on_reading(self, reading: VitalReading) -> None:
        if self.board is None or not self.board.apply(reading):
            return
        self._enqueue("alerts", self.alert_set())
