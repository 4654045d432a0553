"""Doctor alert list and the real-time SSE stream."""

from typing import List

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.modules.alerts.generator import generate_alerts
from app.modules.alerts.schemas import AlertResponse
from app.modules.alerts.stream import AlertStream, format_sse
from app.modules.roster.service import RosterService, get_roster_service
from app.modules.users.models import User
from app.shared import deps
from app.shared.constants import Role
from app.shared.exceptions import SubscriptionError

router = APIRouter()
log = structlog.get_logger()


@router.get("/", response_model=List[AlertResponse], summary="Current alerts for my patients")
async def list_alerts(
    current_user: User = Depends(deps.require_doctor),
    roster: RosterService = Depends(get_roster_service),
) -> List[AlertResponse]:
    doctor_id = str(current_user.id)
    snapshots = await roster.build_snapshots(doctor_id)
    return [AlertResponse.from_alert(a) for a in generate_alerts(snapshots, recipient_id=doctor_id)]


@router.get("/stream")
async def stream_alerts(
    request: Request,
    current_user: User = Depends(deps.get_current_user),
    roster: RosterService = Depends(get_roster_service),
) -> StreamingResponse:
    """
    Server-Sent Events stream for the authenticated user.

    Events:
    - alert: toast for a critical or warning reading of a linked patient
    - notification: created/updated/deleted/cleared changes to my inbox
    - alerts: doctors only; the full regenerated alert set for the roster
    - error: the channel closed; the client should reconnect
    """
    user_id = str(current_user.id)
    board = await roster.build_board(user_id) if Role.DOCTOR in current_user.roles else None
    stream = AlertStream(user_id, board=board)

    async def event_generator():
        try:
            stream.open()
        except SubscriptionError as exc:
            yield format_sse("error", {"detail": str(exc)})
            return
        log.info("alerts.stream_connected", user_id=user_id, doctor=board is not None)
        try:
            async for frame in stream.events(request.is_disconnected):
                yield frame
        except Exception as exc:
            log.error("alerts.stream_failed", user_id=user_id, error=str(exc))
        finally:
            stream.close()
            log.info("alerts.stream_closed", user_id=user_id)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
