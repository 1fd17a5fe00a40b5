from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from vitals.services.broadcaster import Subscription, VitalsBroadcaster

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def get_broadcaster(request: Request) -> VitalsBroadcaster:
    return request.app.state.broadcaster


def format_event(payload: str) -> str:
    """Frame one JSON payload as a Server-Sent Events record."""
    return f"data: {payload}\n\n"


async def stream_vitals(
    broadcaster: VitalsBroadcaster, subscription: Subscription
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one subscriber until it goes away.

    Starlette cancels this generator as soon as the client disconnects or a
    write fails; the finally block then takes the subscriber out of the
    registry without waiting for the next tick.
    """
    try:
        while True:
            payload = await subscription.next()
            if payload is None:
                return
            yield format_event(payload)
    finally:
        await broadcaster.unsubscribe(subscription)


@router.get("", summary="Stream host vitals (Server-Sent Events)")
async def vitals_stream(
    broadcaster: VitalsBroadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    """
    Push one snapshot immediately, then one per tick, as `data: <json>` records.

    The connection stays open until the client disconnects or the server
    shuts down.
    """
    subscription = await broadcaster.subscribe()
    return StreamingResponse(
        stream_vitals(broadcaster, subscription),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        # Also covers a client that leaves before the first frame is sent
        background=BackgroundTask(broadcaster.unsubscribe, subscription),
    )
