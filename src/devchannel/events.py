"""Compilation events: dataclasses ↔ tagged JSON text."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from devchannel.protocol import MSG_ERRORS, MSG_INVALID, MSG_OK, MSG_STILL_OK, MSG_WARNINGS


@dataclass(frozen=True)
class Invalid:
    """A rebuild started; the current output is stale."""
    type = MSG_INVALID


@dataclass(frozen=True)
class Ok:
    assets: dict[str, str] = field(default_factory=dict)
    hash: str | None = None
    type = MSG_OK


@dataclass(frozen=True)
class StillOk:
    """Rebuild finished without changing the output."""
    type = MSG_STILL_OK


@dataclass(frozen=True)
class Warnings:
    messages: tuple[str, ...] = ()
    type = MSG_WARNINGS


@dataclass(frozen=True)
class Errors:
    messages: tuple[str, ...] = ()
    type = MSG_ERRORS


CompilationEvent = Union[Invalid, Ok, StillOk, Warnings, Errors]


def to_dict(event: CompilationEvent) -> dict[str, Any]:
    """Return the ``{"type", "data"}`` wire object for *event*."""
    if isinstance(event, Ok):
        return {"type": event.type, "data": {"assets": dict(event.assets), "hash": event.hash}}
    if isinstance(event, (Warnings, Errors)):
        return {"type": event.type, "data": list(event.messages)}
    return {"type": event.type}


def from_dict(msg: Any) -> CompilationEvent:
    """Build an event from a parsed wire object. Raises ValueError if malformed."""
    if not isinstance(msg, dict):
        raise ValueError(f"expected an object, got {type(msg).__name__}")
    mtype = msg.get("type")
    data = msg.get("data")

    if mtype == MSG_INVALID:
        return Invalid()
    if mtype == MSG_STILL_OK:
        return StillOk()
    if mtype == MSG_OK:
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError("ok data must be an object")
        assets = data.get("assets") or {}
        if not isinstance(assets, dict):
            raise ValueError("ok.assets must be an object")
        return Ok(assets={str(k): str(v) for k, v in assets.items()}, hash=data.get("hash"))
    if mtype in (MSG_WARNINGS, MSG_ERRORS):
        if data is None:
            data = []
        if not isinstance(data, list):
            raise ValueError(f"{mtype} data must be a list")
        cls = Warnings if mtype == MSG_WARNINGS else Errors
        return cls(messages=tuple(str(m) for m in data))

    raise ValueError(f"unknown event type {mtype!r}")


def encode(event: CompilationEvent) -> str:
    return json.dumps(to_dict(event))


def decode(raw: str | bytes) -> CompilationEvent:
    """Parse wire text into an event. Raises ValueError on bad JSON or shape."""
    try:
        msg = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid event payload: {exc}") from exc
    return from_dict(msg)
