import json
from datetime import datetime, timezone
from typing import Any

import pytest

from app.modules.alerts.board import PatientStatusBoard
from app.modules.alerts.manager import alert_hub, notification_hub, reading_hub
from app.modules.alerts.stream import AlertStream, format_sse
from app.modules.vitals.classifier import VitalStatus, VitalType
from app.modules.vitals.models import VitalReading

NOW = datetime.now(timezone.utc).replace(microsecond=0)


async def _connected() -> bool:
    return False


def _parse(frame: str) -> tuple[str, Any]:
    lines = frame.strip().split("\n")
    return lines[0].removeprefix("event: "), json.loads(lines[1].removeprefix("data: "))


def _reading(value: str) -> VitalReading:
    return VitalReading(
        user_id="p1",
        type=VitalType.HEART_RATE,
        value=value,
        unit="bpm",
        status=VitalStatus.NORMAL,
        recorded_at=NOW,
    )


def test_format_sse() -> None:
    assert format_sse("alert", {"a": 1}) == 'event: alert\ndata: {"a": 1}\n\n'


@pytest.mark.asyncio
async def test_doctor_stream_starts_with_alert_set_and_regenerates_on_reading() -> None:
    board = PatientStatusBoard()
    board.track("p1", "Ada")
    stream = AlertStream("doc-1", board=board, keepalive_seconds=1)
    stream.open()
    events = stream.events(_connected)

    name, payload = _parse(await events.__anext__())
    assert name == "alerts"
    assert [a["rule"] for a in payload["alerts"]] == ["stale_vitals"]

    await reading_hub.publish("p1", _reading("130"))
    name, payload = _parse(await events.__anext__())

    assert name == "alerts"
    kinds = [a["kind"] for a in payload["alerts"]]
    assert kinds[0] == "critical"
    assert "stale_vitals" not in [a["rule"] for a in payload["alerts"]]
    stream.close()


@pytest.mark.asyncio
async def test_stream_forwards_toasts_and_notification_changes() -> None:
    stream = AlertStream("user-1", keepalive_seconds=1)
    stream.open()
    events = stream.events(_connected)

    await alert_hub.publish("user-1", {"event": "alert", "recipientId": "user-1"})
    await notification_hub.publish("user-1", {"event": "created"})
    await notification_hub.publish("someone-else", {"event": "created"})

    assert _parse(await events.__anext__())[0] == "alert"
    assert _parse(await events.__anext__()) == ("notification", {"event": "created"})
    stream.close()


@pytest.mark.asyncio
async def test_stream_sends_keepalive_when_idle() -> None:
    stream = AlertStream("user-1", keepalive_seconds=0.01)
    stream.open()

    frame = await stream.events(_connected).__anext__()

    assert frame == ": keepalive\n\n"
    stream.close()


@pytest.mark.asyncio
async def test_stream_ends_with_error_when_channel_closes() -> None:
    stream = AlertStream("user-1", keepalive_seconds=0.01)
    stream.open()
    events = stream.events(_connected)

    notification_hub.close()
    frames = [frame async for frame in events]

    assert _parse(frames[-1])[0] == "error"


@pytest.mark.asyncio
async def test_stream_stops_when_client_disconnects() -> None:
    stream = AlertStream("user-1", keepalive_seconds=0.01)
    stream.open()

    async def gone() -> bool:
        return True

    assert [frame async for frame in stream.events(gone)] == []
    stream.close()
    assert alert_hub.subscriber_count("user-1") == 0


def test_open_on_closed_hub_raises_and_leaves_nothing_behind() -> None:
    from app.shared.exceptions import SubscriptionError

    notification_hub.close()
    stream = AlertStream("user-1")

    with pytest.raises(SubscriptionError):
        stream.open()
    assert alert_hub.subscriber_count("user-1") == 0
