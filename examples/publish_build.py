"""Basic example: report a rebuild to every page watching the server."""

import time

from devchannel import DevChannelClient
from devchannel.events import Invalid, Ok, Warnings

client = DevChannelClient()

# The greeting proves the channel route is mounted where we expect
print("Greeting:", client.greeting().strip())

# A source file changed
print("Invalid ->", client.publish(Invalid()))
time.sleep(0.5)

# Rebuild finished with a warning; pages still reload
print("Warnings ->", client.publish(Warnings(messages=("unused variable 'x'",))))
print("Ok ->", client.publish(Ok(assets={"main.js": "3f2a"}, hash="3f2a")))

status = client.status()
print(f"Status: {status['status']} ({status['subscriber_count']} pages connected)")

client.close()
