"""Compilation events pushed to pages over WebSocket."""

from __future__ import annotations

import asyncio
import logging

from starlette.websockets import WebSocket, WebSocketState

from devchannel import events
from devchannel.server.hub import ChannelHub, Subscriber

log = logging.getLogger(__name__)


async def stream_events(ws: WebSocket, hub: ChannelHub) -> None:
    """Subscribe *ws* to *hub* and forward events until either side goes away."""
    await ws.accept()
    try:
        sub = hub.subscribe()
    except RuntimeError:
        await ws.close(code=1001)
        return

    tasks = {
        asyncio.create_task(_pump(ws, sub)),
        asyncio.create_task(_drain(ws)),
        asyncio.create_task(sub.closed.wait()),
    }
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None:
                log.info("subscriber %d dropped: %r", sub.id, exc)
    finally:
        hub.unsubscribe(sub)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await _close(ws)


async def _pump(ws: WebSocket, sub: Subscriber) -> None:
    while True:
        event = await sub.queue.get()
        await ws.send_text(events.encode(event))


async def _drain(ws: WebSocket) -> None:
    # pages never send anything; reading is how a disconnect shows up
    while True:
        msg = await ws.receive()
        if msg["type"] == "websocket.disconnect":
            return


async def _close(ws: WebSocket) -> None:
    if ws.client_state is not WebSocketState.CONNECTED:
        return
    if ws.application_state is not WebSocketState.CONNECTED:
        return
    try:
        await ws.close(code=1001)
    except (RuntimeError, OSError) as exc:
        log.debug("close after disconnect: %r", exc)
