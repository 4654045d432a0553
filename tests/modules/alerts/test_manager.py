from typing import Any

import pytest

from app.modules.alerts.manager import SubscriptionHub
from app.shared.exceptions import SubscriptionError


@pytest.mark.asyncio
async def test_publish_reaches_key_and_wildcard_subscribers_in_order() -> None:
    hub = SubscriptionHub("test")
    seen: list[tuple[str, Any]] = []

    async def first(event: Any) -> None:
        seen.append(("first", event))

    async def everything(event: Any) -> None:
        seen.append(("wildcard", event))

    async def other(event: Any) -> None:
        seen.append(("other", event))

    hub.subscribe(["p1"], first)
    hub.subscribe(["*"], everything)
    hub.subscribe(["p2"], other)

    delivered = await hub.publish("p1", 1)
    await hub.publish("p1", 2)

    assert delivered == 2
    assert seen == [("first", 1), ("wildcard", 1), ("first", 2), ("wildcard", 2)]


@pytest.mark.asyncio
async def test_subscriber_on_several_keys_gets_one_delivery() -> None:
    hub = SubscriptionHub("test")
    seen: list[Any] = []

    async def on_event(event: Any) -> None:
        seen.append(event)

    hub.subscribe(["p1", "p1", "*"], on_event)
    await hub.publish("p1", "reading")

    assert seen == ["reading"]


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent() -> None:
    hub = SubscriptionHub("test")
    seen: list[Any] = []

    async def on_event(event: Any) -> None:
        seen.append(event)

    subscription = hub.subscribe(["p1"], on_event)
    subscription.unsubscribe()
    subscription.unsubscribe()

    assert subscription.active is False
    assert hub.subscriber_count("p1") == 0
    assert await hub.publish("p1", "x") == 0
    assert seen == []


@pytest.mark.asyncio
async def test_failing_callback_does_not_block_others() -> None:
    hub = SubscriptionHub("test")
    seen: list[Any] = []

    async def broken(event: Any) -> None:
        raise RuntimeError("boom")

    async def healthy(event: Any) -> None:
        seen.append(event)

    hub.subscribe(["p1"], broken)
    hub.subscribe(["p1"], healthy)

    assert await hub.publish("p1", "x") == 1
    assert seen == ["x"]


@pytest.mark.asyncio
async def test_closed_hub_rejects_subscribers_and_ends_sessions() -> None:
    hub = SubscriptionHub("test")

    async def on_event(event: Any) -> None:
        return None

    subscription = hub.subscribe(["p1"], on_event)
    hub.close()

    assert subscription.active is False
    assert await hub.publish("p1", "x") == 0
    with pytest.raises(SubscriptionError):
        hub.subscribe(["p1"], on_event)

    hub.reset()
    assert hub.subscribe(["p1"], on_event).active is True


def test_subscription_needs_keys() -> None:
    hub = SubscriptionHub("test")

    async def on_event(event: Any) -> None:
        return None

    with pytest.raises(SubscriptionError):
        hub.subscribe([], on_event)


def test_all_and_blank_keys_mean_wildcard() -> None:
    hub = SubscriptionHub("test")

    async def on_event(event: Any) -> None:
        return None

    hub.subscribe(["all"], on_event)
    hub.subscribe([" "], on_event)

    assert hub.subscriber_count("*") == 2
