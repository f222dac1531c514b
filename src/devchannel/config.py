"""Server options and the resolved server-side channel settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

from devchannel.address import ChannelConfig, ResolvedAddress, resolve, server_origin
from devchannel.protocol import DEFAULT_HOST, DEFAULT_PORT

ClientLogLevel = Literal["silent", "error", "warn", "info", "debug"]

# field -> environment variable read by ``python -m devchannel.server``
ENV_VARS = {
    "host": "DEVCHANNEL_HOST",
    "port": "DEVCHANNEL_PORT",
    "public": "DEVCHANNEL_PUBLIC",
    "sock_path": "DEVCHANNEL_SOCK_PATH",
    "sock_host": "DEVCHANNEL_SOCK_HOST",
    "sock_port": "DEVCHANNEL_SOCK_PORT",
    "hot": "DEVCHANNEL_HOT",
    "live_reload": "DEVCHANNEL_LIVE_RELOAD",
    "client_log_level": "DEVCHANNEL_CLIENT_LOG_LEVEL",
}


class ServerOptions(BaseModel):
    """Dev-server options, accepted under their camelCase names or field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    public: str | None = None
    sock_path: str | None = Field(None, alias="sockPath")
    sock_host: str | None = Field(None, alias="sockHost")
    sock_port: int | None = Field(None, alias="sockPort")
    hot: bool = False
    live_reload: bool = Field(True, alias="liveReload")
    client_log_level: ClientLogLevel = Field("info", alias="clientLogLevel")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerOptions:
        environ = os.environ if environ is None else environ
        values = {
            field: environ[var]
            for field, var in ENV_VARS.items()
            if environ.get(var, "").strip()
        }
        return cls(**values)

    def channel_config(self) -> ChannelConfig:
        """Map the options onto the layered client configuration.

        Without ``public`` the bootstrap script falls back to the server's own
        ``host:port``; a wildcard bind host is swapped for the page hostname
        during resolution.
        """
        host = f"[{self.host}]" if ":" in self.host else self.host
        return ChannelConfig(
            host=self.sock_host,
            port=self.sock_port,
            path=self.sock_path,
            public_host=self.public or f"{host}:{self.port}",
            log_level=self.client_log_level,
            hot=self.hot,
            live_reload=self.live_reload,
        )


@dataclass(frozen=True)
class ChannelSettings:
    options: ServerOptions
    config: ChannelConfig
    address: ResolvedAddress  # as resolved against the server's own bind address

    @property
    def sock_path(self) -> str:
        return self.address.path

    @classmethod
    def from_options(cls, options: ServerOptions) -> ChannelSettings:
        """Resolve *options*. Raises ResolutionError for a malformed public host."""
        config = options.channel_config()
        address = resolve(config, server_origin(options.host, options.port))
        return cls(options=options, config=config, address=address)
