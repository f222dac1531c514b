"""devchannel: live-reload signalling channel for a development server."""

from devchannel.address import ChannelConfig, PageOrigin, ResolutionError, resolve
from devchannel.client.channel import ChannelClient
from devchannel.client.client import DevChannelClient

__all__ = [
    "ChannelClient",
    "ChannelConfig",
    "DevChannelClient",
    "PageOrigin",
    "ResolutionError",
    "resolve",
]
