"""V1 status event endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from status_notify.api.dependencies import get_engine
from status_notify.api.v1.schemas import StatusEventRequest, StatusEventResponse
from status_notify.engine.client import NotificationEngine  # noqa: TC001
from status_notify.errors.definitions import ErrInvalidRole
from status_notify.routing.models import NotificationEvent
from status_notify.toast.sinks import ToastBuffer

router = APIRouter(tags=["status-events"])


@router.post("/status-events", response_model=StatusEventResponse)
async def post_status_event(
    body: StatusEventRequest,
    engine: Annotated[NotificationEngine, Depends(get_engine)],
) -> StatusEventResponse:
    """Run a status change through the pipeline.

    Always answers with the local message the actor should see; dispatch
    problems show up in the ``dispatch`` report, never as an error status.
    """
    kwargs = {}
    if body.timestamp is not None:
        kwargs["timestamp"] = body.timestamp
    try:
        event = NotificationEvent(
            project_id=body.project_id,
            new_status=body.new_status,
            acting_role=body.acting_role,
            old_status=body.old_status,
            context=dict(body.context),
            **kwargs,
        )
    except ValueError:
        raise ErrInvalidRole from None

    toasts = ToastBuffer()
    outcome = await engine.handle_status_change(event, toasts, wait=body.wait)
    pending = not body.wait and outcome.decision.should_dispatch_externally
    return StatusEventResponse.from_outcome(outcome, toasts.toasts, pending=pending)
