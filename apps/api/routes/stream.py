"""Server-sent events stream delivering realtime ranking events to a user."""

import logging
from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from apps.api.deps import get_current_user_id
from apps.rankings.services.realtime import RealtimeHub, get_realtime_hub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stream"])


@router.get("/stream")
async def stream_events(
    user_id: int = Depends(get_current_user_id),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    """Open the caller's event stream (feed_activity, ranking_changed)."""
    subscription = hub.subscribe(user_id)
    return EventSourceResponse(
        hub.stream(subscription),
        ping=15,
        ping_message_factory=lambda: ServerSentEvent(comment="keep-alive"),
    )
