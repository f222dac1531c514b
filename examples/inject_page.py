"""Inject the bootstrap script into a page served by some other framework."""

from devchannel.address import ChannelConfig
from devchannel.bootstrap import inject

config = ChannelConfig(path="/ws", public_host="dev.example.test", hot=True)

html = "<!doctype html><html><body><h1>Hello</h1></body></html>"
print(inject(html, config))
