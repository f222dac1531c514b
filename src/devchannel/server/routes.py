"""All HTTP and WebSocket endpoints of the signalling channel."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Request, Response, WebSocket
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from devchannel import events
from devchannel.protocol import CLIENT_SCRIPT_PATH, EP_CONFIG, EP_EVENTS, EP_STATUS, GREETING
from devchannel.server.streaming import stream_events

router = APIRouter()


# --- Pydantic request bodies ------------------------------------------------

class EventBody(BaseModel):
    type: str
    data: Any = None


# --- Routes ------------------------------------------------------------------

@router.get(CLIENT_SCRIPT_PATH)
async def client_script(request: Request):
    """The bootstrap script, for entry points that load it by reference."""
    return Response(content=request.app.state.client_script, media_type="text/javascript")


@router.get(EP_CONFIG)
async def client_config(request: Request):
    return request.app.state.settings.config.as_dict()


@router.get(EP_STATUS)
async def status(request: Request):
    settings = request.app.state.settings
    hub = request.app.state.hub
    subscribers = hub.list()
    return {
        "status": hub.status.type if hub.status is not None else None,
        "subscriber_count": len(subscribers),
        "subscribers": subscribers,
        "sock_path": settings.sock_path,
        "address": asdict(settings.address),
    }


@router.post(EP_EVENTS)
async def publish_event(body: EventBody, request: Request):
    """Report a compiler lifecycle transition; it is broadcast to every page."""
    try:
        event = events.from_dict(body.model_dump())
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    delivered = request.app.state.hub.publish(event)
    return {"status": "ok", "type": event.type, "delivered": delivered}


def channel_router(sock_path: str) -> APIRouter:
    """Greeting and WebSocket endpoint at *sock_path*, with or without a trailing slash."""
    channel = APIRouter()

    async def greeting():
        return PlainTextResponse(GREETING)

    async def websocket(ws: WebSocket):
        await stream_events(ws, ws.app.state.hub)

    base = sock_path.rstrip("/")
    paths = [sock_path] if not base else [base, base + "/"]
    for path in paths:
        channel.add_api_route(path, greeting, methods=["GET"], include_in_schema=False)
        channel.add_api_websocket_route(path, websocket)
    return channel
