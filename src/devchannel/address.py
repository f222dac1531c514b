"""Signalling address resolution.

The socket address a page connects to is layered: explicit ``sockHost`` /
``sockPort`` / ``sockPath`` overrides first, then whatever the ``public`` host
string implies, then the page's own location (or the default path).

``RESOLUTION_ORDER`` is the single definition of that precedence. The server
runs :func:`resolve` against its own bind address to register the endpoint
route; the bootstrap script embeds the same table together with
:func:`static_candidates` and runs it against ``window.location``, so both ends
agree on one address.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from devchannel.protocol import DEFAULT_HOST, DEFAULT_SOCK_PATH, WILDCARD_HOSTS

# field -> candidate sources, highest priority first
RESOLUTION_ORDER: dict[str, tuple[str, ...]] = {
    "hostname": ("sock_host", "public_hostname", "page_hostname"),
    "port": ("sock_port", "public_port", "page_port"),
    "path": ("sock_path", "public_path", "default_path"),
}

_PUBLIC_RE = re.compile(
    r"""
    ^(?:[a-z][a-z0-9+.-]*://)?          # optional scheme, ignored
    (?P<hostname>\[[^\]]*\]|[^:/]*)     # hostname or [ipv6]
    (?::(?P<port>[^/]*))?               # optional :port
    (?P<path>/.*)?$                     # optional /path
    """,
    re.VERBOSE | re.IGNORECASE,
)

_DEFAULT_PORTS = {"http": "80", "https": "443"}

# ChannelConfig field -> option name used by the server options and the wire
_WIRE_NAMES = {
    "host": "sockHost",
    "port": "sockPort",
    "path": "sockPath",
    "public_host": "public",
    "log_level": "clientLogLevel",
    "hot": "hot",
    "live_reload": "liveReload",
}


class ResolutionError(ValueError):
    """A configured host or port cannot be turned into a socket address."""


@dataclass(frozen=True)
class PublicHost:
    hostname: str
    port: str = ""
    path: str = ""


@dataclass(frozen=True)
class PageOrigin:
    """The location the page was loaded from (``window.location`` in a browser)."""

    protocol: str = "http:"
    hostname: str = ""
    port: str | int = ""

    @property
    def secure(self) -> bool:
        return self.protocol.rstrip(":").lower() == "https"

    @classmethod
    def from_url(cls, url: str) -> PageOrigin:
        parts = urlsplit(url)
        scheme = parts.scheme.lower() or "http"
        port = str(parts.port) if parts.port is not None else ""
        # browsers report the scheme's default port as empty
        if _DEFAULT_PORTS.get(scheme) == port:
            port = ""
        return cls(protocol=f"{scheme}:", hostname=parts.hostname or "", port=port)


@dataclass(frozen=True)
class ChannelConfig:
    host: str | None = None
    port: int | str | None = None
    path: str | None = None
    public_host: str | None = None
    log_level: str = "info"
    hot: bool = False
    live_reload: bool = True

    def as_dict(self) -> dict[str, Any]:
        return {wire: getattr(self, name) for name, wire in _WIRE_NAMES.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChannelConfig:
        return cls(**{
            name: data[wire] for name, wire in _WIRE_NAMES.items() if wire in data
        })


@dataclass(frozen=True)
class ResolvedAddress:
    protocol: str  # "ws" | "wss"
    hostname: str
    port: str  # "" means the page's own port
    path: str

    @property
    def url(self) -> str:
        host = f"[{self.hostname}]" if ":" in self.hostname else self.hostname
        netloc = f"{host}:{self.port}" if self.port else host
        return f"{self.protocol}://{netloc}{self.path}"


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def normalize_path(path: str | None) -> str:
    """Return *path* with one leading separator and repeated ones collapsed ("" if unset).

    A trailing separator is kept as written, once.
    """
    path = (path or "").strip()
    if not path:
        return ""
    return re.sub(r"/{2,}", "/", "/" + path)


def _port(value: int | str | None) -> str:
    text = "" if value is None else str(value).strip()
    if text and not text.isdigit():
        raise ResolutionError(f"invalid port {value!r}")
    # port 0 means "not bound to a fixed port": same as unset
    return "" if text in ("", "0") else str(int(text))


def _unbracket(hostname: str) -> str:
    if hostname.startswith("[") and hostname.endswith("]"):
        return hostname[1:-1]
    return hostname


def parse_public_host(value: str) -> PublicHost:
    """Split ``hostname[:port][/path]`` into its components.

    A leading ``scheme://`` and a trailing slash are tolerated; the port and
    the path may each be absent. Raises :class:`ResolutionError` when there
    is no hostname or the port is not numeric.
    """
    match = _PUBLIC_RE.match((value or "").strip())
    hostname = _unbracket(match["hostname"]) if match else ""
    if not hostname:
        raise ResolutionError(f"public host {value!r} has no hostname")
    path = normalize_path(match["path"])
    return PublicHost(
        hostname=hostname,
        port=_port(match["port"]),
        path="" if path == "/" else path,
    )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def static_candidates(config: ChannelConfig) -> dict[str, str]:
    """Every candidate value that does not depend on the page location."""
    public = parse_public_host(config.public_host) if config.public_host else None
    public_hostname = public.hostname if public else ""
    if public_hostname in WILDCARD_HOSTS:
        public_hostname = ""
    return {
        "sock_host": _unbracket((config.host or "").strip()),
        "sock_port": _port(config.port),
        "sock_path": normalize_path(config.path),
        "public_hostname": public_hostname,
        "public_port": public.port if public else "",
        "public_path": public.path if public else "",
        "default_path": DEFAULT_SOCK_PATH,
    }


def page_candidates(page: PageOrigin) -> dict[str, str]:
    return {
        "page_hostname": _unbracket(page.hostname),
        "page_port": _port(page.port),
    }


def pick(candidates: dict[str, str], field: str) -> str:
    """First non-empty candidate for *field* in ``RESOLUTION_ORDER``."""
    for source in RESOLUTION_ORDER[field]:
        value = candidates.get(source, "")
        if value:
            return value
    return ""


def resolve(config: ChannelConfig, page: PageOrigin) -> ResolvedAddress:
    candidates = {**static_candidates(config), **page_candidates(page)}
    return ResolvedAddress(
        protocol="wss" if page.secure else "ws",
        hostname=pick(candidates, "hostname"),
        port=pick(candidates, "port"),
        path=pick(candidates, "path"),
    )


def server_origin(host: str | None, port: int | str | None) -> PageOrigin:
    """The origin the server resolves against: its own bind address."""
    return PageOrigin(protocol="http:", hostname=host or DEFAULT_HOST, port=port or "")
