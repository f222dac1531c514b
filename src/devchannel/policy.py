"""Reload/log policy: decides what a page does with each compilation event.

Pure functions only: callers perform the returned action and print the
returned lines. Lines are already filtered by the client log level, so an
empty ``lines`` tuple means "print nothing".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from devchannel.address import ChannelConfig
from devchannel.events import CompilationEvent, Errors, Invalid, Ok, StillOk, Warnings
from devchannel.protocol import LOG_PREFIX


class LogLevel(str, Enum):
    SILENT = "silent"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {
    LogLevel.SILENT: 0,
    LogLevel.ERROR: 1,
    LogLevel.WARN: 2,
    LogLevel.INFO: 3,
    LogLevel.DEBUG: 4,
}


class Action(str, Enum):
    NONE = "none"
    HOT_UPDATE = "hot-update"
    RELOAD = "reload"


@dataclass(frozen=True)
class LogLine:
    level: str  # "error" | "warn" | "info" | "debug"
    text: str

    def __str__(self) -> str:
        return f"{LOG_PREFIX} {self.text}"


@dataclass(frozen=True)
class ClientOptions:
    hot: bool = False
    live_reload: bool = True
    log_level: LogLevel = LogLevel.INFO

    @classmethod
    def from_config(cls, config: ChannelConfig) -> ClientOptions:
        return cls(
            hot=config.hot,
            live_reload=config.live_reload,
            log_level=LogLevel(config.log_level),
        )


@dataclass(frozen=True)
class Decision:
    action: Action = Action.NONE
    lines: tuple[LogLine, ...] = ()


def _gate(options: ClientOptions, lines: list[LogLine], *, always: bool = False) -> tuple[LogLine, ...]:
    """Keep the lines the log level lets through.

    ``always`` lines (build errors and warnings) ignore the threshold; only
    ``silent`` hides them.
    """
    if options.log_level is LogLevel.SILENT:
        return ()
    if always:
        return tuple(lines)
    return tuple(line for line in lines if LogLevel(line.level).rank <= options.log_level.rank)


def _after_build(options: ClientOptions, initial: bool) -> Decision:
    # the first status after connecting describes the build already on the page
    if initial:
        return Decision()
    if options.hot:
        return Decision(Action.HOT_UPDATE, _gate(options, [LogLine("info", "App hot update...")]))
    if options.live_reload:
        return Decision(Action.RELOAD, _gate(options, [LogLine("info", "App updated. Reloading...")]))
    return Decision(lines=_gate(options, [LogLine("info", "App updated. Reloading is disabled.")]))


def decide(event: CompilationEvent, options: ClientOptions, *, initial: bool = False) -> Decision:
    if isinstance(event, Invalid):
        return Decision(lines=_gate(options, [LogLine("info", "App updated. Recompiling...")]))

    if isinstance(event, StillOk):
        return Decision(lines=_gate(options, [LogLine("info", "Nothing changed.")]))

    if isinstance(event, Ok):
        return _after_build(options, initial)

    if isinstance(event, Warnings):
        lines = _gate(
            options,
            [LogLine("warn", "Warnings while compiling.")]
            + [LogLine("warn", m) for m in event.messages],
            always=True,
        )
        after = _after_build(options, initial)
        return Decision(after.action, lines + after.lines)

    if isinstance(event, Errors):
        lines = _gate(
            options,
            [LogLine("error", "Errors while compiling. Reload prevented.")]
            + [LogLine("error", m) for m in event.messages],
            always=True,
        )
        return Decision(lines=lines)

    raise TypeError(f"not a compilation event: {event!r}")


# --- Connection status ------------------------------------------------------

def opened(options: ClientOptions) -> Decision:
    lines = []
    if options.hot:
        lines.append(LogLine("info", "Hot Module Replacement enabled."))
    if options.live_reload:
        lines.append(LogLine("info", "Live Reloading enabled."))
    return Decision(lines=_gate(options, lines))


def disconnected(options: ClientOptions) -> Decision:
    return Decision(lines=_gate(options, [LogLine("error", "Disconnected!")]))


def connection_failed(options: ClientOptions, url: str) -> Decision:
    return Decision(lines=_gate(options, [LogLine("error", f"Could not connect to {url}.")]))
