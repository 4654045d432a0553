"""In-process publish/subscribe hubs for readings, notifications and toasts."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable

import structlog

from app.shared.exceptions import SubscriptionError

log = structlog.get_logger()

EventCallback = Callable[[Any], Awaitable[None]]

WILDCARD = "*"


class Subscription:
    """Handle returned by ``SubscriptionHub.subscribe``."""

    def __init__(self, hub: "SubscriptionHub", keys: list[str], callback: EventCallback) -> None:
        self._hub = hub
        self.keys = keys
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call any number of times."""
        if not self._active:
            return
        self._active = False
        self._hub._remove(self)

    def _close(self) -> None:
        self._active = False


class SubscriptionHub:
    """Route events published under a key (a patient or recipient id) to callbacks.

    Callbacks for one publish run one after another in subscription order, so
    events published for the same key are observed in publish order. A failing
    callback is logged and skipped.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, keys: Iterable[str], callback: EventCallback) -> Subscription:
        if self._closed:
            raise SubscriptionError(f"{self.name} channel is closed")
        normalized = [self._normalize(key) for key in keys]
        if not normalized:
            raise SubscriptionError(f"{self.name} subscription needs at least one key")
        subscription = Subscription(self, list(dict.fromkeys(normalized)), callback)
        for key in subscription.keys:
            self._subscriptions.setdefault(key, []).append(subscription)
        return subscription

    async def publish(self, key: str, event: Any) -> int:
        """Deliver an event to subscribers of `key` and of the wildcard; returns deliveries."""
        if self._closed:
            return 0
        delivered = 0
        for subscription in self._targets(self._normalize(key)):
            if not subscription.active:
                continue
            try:
                await subscription.callback(event)
                delivered += 1
            except Exception as exc:
                log.warning(
                    "hub.callback_failed", hub=self.name, key=key, error=str(exc), exc_info=True
                )
        return delivered

    def subscriber_count(self, key: str) -> int:
        return len(self._subscriptions.get(self._normalize(key), []))

    def close(self) -> None:
        """Terminate every subscription; later subscribe calls fail."""
        self._closed = True
        for subscriptions in self._subscriptions.values():
            for subscription in subscriptions:
                subscription._close()
        self._subscriptions.clear()

    def reset(self) -> None:
        self.close()
        self._closed = False

    def _targets(self, key: str) -> list[Subscription]:
        seen: set[int] = set()
        targets: list[Subscription] = []
        for lookup in (key, WILDCARD):
            for subscription in list(self._subscriptions.get(lookup, [])):
                if id(subscription) in seen:
                    continue
                seen.add(id(subscription))
                targets.append(subscription)
        return targets

    def _remove(self, subscription: Subscription) -> None:
        for key in subscription.keys:
            remaining = [s for s in self._subscriptions.get(key, []) if s is not subscription]
            if remaining:
                self._subscriptions[key] = remaining
            else:
                self._subscriptions.pop(key, None)

    @staticmethod
    def _normalize(key: str) -> str:
        key = str(key).strip()
        if not key or key.lower() in {"*", "all"}:
            return WILDCARD
        return key


reading_hub = SubscriptionHub("readings")
notification_hub = SubscriptionHub("notifications")
alert_hub = SubscriptionHub("alerts")


def subscribe_to_new_readings(
    patient_ids: Iterable[str], on_reading: EventCallback
) -> Subscription:
    """Receive every newly stored reading of the given patients."""
    return reading_hub.subscribe(patient_ids, on_reading)


def subscribe_to_notifications(recipient_id: str, on_change: EventCallback) -> Subscription:
    """Receive created/updated/deleted events for one recipient's notifications."""
    return notification_hub.subscribe([recipient_id], on_change)


def subscribe_to_alerts(recipient_id: str, on_alert: EventCallback) -> Subscription:
    """Receive ephemeral toast alerts addressed to one recipient."""
    return alert_hub.subscribe([recipient_id], on_alert)
