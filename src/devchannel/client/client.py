"""DevChannelClient: sync HTTP client SDK for the signalling channel server."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

import httpx

from devchannel import events
from devchannel.address import ChannelConfig, PageOrigin
from devchannel.client.channel import ChannelClient
from devchannel.protocol import (
    CLIENT_SCRIPT_PATH,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SOCK_PATH,
    EP_CONFIG,
    EP_EVENTS,
    EP_STATUS,
)


class DevChannelClient:
    """Thin client for the devchannel server.

    All calls are synchronous (httpx). ``channel()`` hands back the async
    :class:`ChannelClient` a page served by this server would run.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = 30.0,
        *,
        base_url: str | None = None,
    ) -> None:
        self._base = base_url or f"http://{host}:{port}"
        self._http = httpx.Client(base_url=self._base, timeout=timeout)

    @classmethod
    def from_url(cls, url: str, timeout: float = 30.0) -> DevChannelClient:
        """Client for the server that serves the page at *url*."""
        parts = urlsplit(url)
        return cls(base_url=f"{parts.scheme or 'http'}://{parts.netloc}", timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # --- Server info --------------------------------------------------------

    def greeting(self, sock_path: str = DEFAULT_SOCK_PATH) -> str:
        return self._http.get(sock_path).raise_for_status().text

    def status(self) -> dict:
        return self._http.get(EP_STATUS).raise_for_status().json()

    def client_script(self) -> str:
        return self._http.get(CLIENT_SCRIPT_PATH).raise_for_status().text

    def client_config(self) -> ChannelConfig:
        return ChannelConfig.from_dict(self._http.get(EP_CONFIG).raise_for_status().json())

    # --- Build lifecycle ----------------------------------------------------

    def publish(self, event: events.CompilationEvent) -> dict:
        """Report a compiler transition; the server broadcasts it to every page."""
        return self._http.post(EP_EVENTS, json=events.to_dict(event)).raise_for_status().json()

    # --- Channel ------------------------------------------------------------

    def channel(self, page_url: str | None = None, **kwargs: Any) -> ChannelClient:
        """Build the channel client a page loaded from *page_url* would run.

        Args:
            page_url: Where the page was loaded from; defaults to the server root.
                Behind a proxy this is the proxy's address.
            **kwargs: Forwarded to :class:`ChannelClient` (callbacks, backoff, …).
        """
        page = PageOrigin.from_url(page_url or self._base + "/")
        return ChannelClient(self.client_config(), page, **kwargs)
