"""ChannelClient: the page side of the signalling channel, in Python.

Does what the bootstrap script does in a browser. It resolves the socket
address against the page origin, keeps one connection open, reconnects with a
bounded backoff and turns compilation events into console lines and reload
actions.

Usage::

    client = ChannelClient(config, PageOrigin.from_url("http://localhost:8080/main"),
                           on_reload=lambda event: print("reload!"))
    async with client:
        await client.connected.wait()
        ...
    print(client.console.lines)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable

import websockets
from websockets.asyncio.client import ClientConnection

from devchannel import events, policy
from devchannel.address import ChannelConfig, PageOrigin, ResolvedAddress, resolve
from devchannel.policy import Action, ClientOptions, Decision, LogLine
from devchannel.protocol import RECONNECT_FACTOR, RECONNECT_INITIAL_S, RECONNECT_MAX_S

log = logging.getLogger(__name__)
console_log = logging.getLogger("devchannel.console")

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

EventCallback = Callable[[events.CompilationEvent], Any]


class ChannelConnectionError(ConnectionError):
    """The signalling endpoint could not be reached."""


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"


@dataclass(frozen=True)
class Backoff:
    """Reconnect delays: ``initial * factor**attempt`` seconds, capped at ``maximum``."""
    initial: float = RECONNECT_INITIAL_S
    factor: float = RECONNECT_FACTOR
    maximum: float = RECONNECT_MAX_S

    def delay(self, attempt: int) -> float:
        return min(self.maximum, self.initial * self.factor ** min(attempt, 32))


class ConsoleLog:
    """The channel's console output, kept for inspection and mirrored to logging."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write(self, line: LogLine) -> None:
        text = str(line)
        self.lines.append(text)
        console_log.log(_LEVELS.get(line.level, logging.INFO), text)

    def counts(self) -> Counter:
        # emission order across async events is unspecified; compare as a multiset
        return Counter(self.lines)


class Connection:
    """A single connection attempt. Never reopened; reconnecting makes a new one."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.state = ConnectionState.IDLE
        self._ws: ClientConnection | None = None

    async def open(self, connect: Callable = websockets.connect) -> None:
        if self.state is not ConnectionState.IDLE:
            raise RuntimeError(f"connection is already {self.state.value}")
        self.state = ConnectionState.CONNECTING
        try:
            self._ws = await connect(self.url)
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as exc:
            self.state = ConnectionState.ERRORED
            raise ChannelConnectionError(f"cannot reach {self.url}: {exc}") from exc
        except Exception:
            self.state = ConnectionState.ERRORED
            raise
        self.state = ConnectionState.OPEN

    async def messages(self) -> AsyncIterator[str]:
        assert self._ws is not None
        try:
            async for raw in self._ws:
                yield raw
        except websockets.ConnectionClosedError as exc:
            log.debug("connection to %s dropped: %s", self.url, exc)
            self.state = ConnectionState.ERRORED
        else:
            self.state = ConnectionState.CLOSED

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
        if self.state in (ConnectionState.IDLE, ConnectionState.CONNECTING, ConnectionState.OPEN):
            self.state = ConnectionState.CLOSED


class ChannelClient:
    """Keeps one live connection per page and applies the reload/log policy."""

    def __init__(
        self,
        config: ChannelConfig,
        page: PageOrigin,
        *,
        on_reload: EventCallback | None = None,
        on_hot_update: EventCallback | None = None,
        console: ConsoleLog | None = None,
        backoff: Backoff | None = None,
        connect: Callable = websockets.connect,
    ) -> None:
        self.config = config
        self.page = page
        self.options = ClientOptions.from_config(config)
        self.address: ResolvedAddress = resolve(config, page)
        self.console = console if console is not None else ConsoleLog()
        self.backoff = backoff if backoff is not None else Backoff()
        self.connection: Connection | None = None
        self.connected = asyncio.Event()
        self._on_reload = on_reload
        self._on_hot_update = on_hot_update
        self._connect = connect
        self._task: asyncio.Task | None = None
        self._closing = False

    async def __aenter__(self) -> ChannelClient:
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # --- Lifecycle ----------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Start the connect/reconnect loop. Calling again returns the same task."""
        if self._closing:
            raise RuntimeError("channel client is closed")
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"devchannel {self.address.url}")
        return self._task

    async def close(self) -> None:
        """Tear down as a page unload would: cancel reconnects, close the socket."""
        if self._closing:
            return
        self._closing = True
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        if self.connection is not None:
            await self.connection.close()
        self.connected.clear()

    async def _run(self) -> None:
        attempt = 0
        while not self._closing:
            conn = Connection(self.address.url)
            self.connection = conn
            try:
                await conn.open(self._connect)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if isinstance(exc, ChannelConnectionError):
                    log.debug("%s", exc)
                else:
                    log.debug("unexpected error connecting to %s", conn.url, exc_info=True)
                # one line per outage, not one per retry
                if attempt == 0:
                    self._emit(policy.connection_failed(self.options, self.address.url))
            else:
                attempt = 0
                self.connected.set()
                self._emit(policy.opened(self.options))
                try:
                    await self._consume(conn)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    log.debug("connection to %s failed", conn.url, exc_info=True)
                    conn.state = ConnectionState.ERRORED
                finally:
                    self.connected.clear()
                self._emit(policy.disconnected(self.options))

            delay = self.backoff.delay(attempt)
            attempt += 1
            log.debug("reconnecting to %s in %.1fs", self.address.url, delay)
            await asyncio.sleep(delay)

    # --- Events -------------------------------------------------------------

    async def _consume(self, conn: Connection) -> None:
        initial = True
        async for raw in conn.messages():
            try:
                event = events.decode(raw)
            except ValueError as exc:
                log.warning("ignoring malformed message from %s: %s", conn.url, exc)
                continue
            decision = policy.decide(event, self.options, initial=initial)
            initial = False
            await self._apply(decision, event)

    async def _apply(self, decision: Decision, event: events.CompilationEvent) -> None:
        self._emit(decision)
        if decision.action is Action.RELOAD:
            callback = self._on_reload
        elif decision.action is Action.HOT_UPDATE:
            callback = self._on_hot_update
        else:
            return
        if callback is None:
            return
        try:
            result = callback(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            log.exception("%s handler failed", decision.action.value)

    def _emit(self, decision: Decision) -> None:
        for line in decision.lines:
            self.console.write(line)
