"""
File watching API routes.
Toggles the change watcher and streams change events using Server-Sent Events (SSE).
"""

import json
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from mdserver.api.schemas import MessageResponse
from mdserver.dependencies import get_event_channel, get_watcher
from mdserver.events import ChangeEventStream, EventChannel
from mdserver.interfaces.components import IChangeWatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/watch", tags=["watch"])


def format_sse(event_type: str, data: dict) -> str:
    """Format one SSE message."""
    return f"event: {event_type}\ndata: {json.dumps(data)}\n\n"


async def change_event_generator(
    request: Request,
    channel: EventChannel,
    heartbeat: float,
) -> AsyncGenerator[str, None]:
    """
    Yield SSE messages for change events until the client disconnects.

    A comment line is sent whenever no event arrives within the heartbeat
    interval so that proxies keep the connection open.
    """
    async with ChangeEventStream(channel) as stream:
        yield format_sse("ready", {"listening": True})
        while not await request.is_disconnected():
            event = await stream.get(timeout=heartbeat)
            if event is None:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(event.name, event.payload)


@router.post("/start", response_model=MessageResponse)
async def start_watching(watcher: IChangeWatcher = Depends(get_watcher)):
    """Start watching the root for markdown changes."""
    watcher.start()
    return MessageResponse(message="File watching started", data={"running": watcher.is_running})


@router.post("/stop", response_model=MessageResponse)
async def stop_watching(watcher: IChangeWatcher = Depends(get_watcher)):
    """Stop watching the root."""
    watcher.stop()
    return MessageResponse(message="File watching stopped", data={"running": watcher.is_running})


@router.get("/status", response_model=MessageResponse)
async def watch_status(watcher: IChangeWatcher = Depends(get_watcher)):
    """Report whether the watcher is running."""
    state = "running" if watcher.is_running else "stopped"
    return MessageResponse(message=f"File watching {state}", data={"running": watcher.is_running})


@router.get("/events")
async def watch_events(
    request: Request,
    heartbeat: float = Query(15.0, gt=0, le=300, description="Seconds between keep-alive comments"),
    channel: EventChannel = Depends(get_event_channel),
):
    """
    Stream change events as Server-Sent Events.

    Event names are ``fileAdded``, ``fileChanged`` and ``fileDeleted``; the
    data is ``{"path": "<relative path>"}``. Events only flow while the
    watcher is running.
    """
    return StreamingResponse(
        change_event_generator(request, channel, heartbeat),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
