"""Watch the channel like a page would, printing what the page would do."""

import asyncio

from devchannel import DevChannelClient


async def main():
    page_url = "http://localhost:8080/index.html"

    with DevChannelClient.from_url(page_url) as http:
        channel = http.channel(
            page_url,
            on_reload=lambda event: print(">> location.reload()"),
            on_hot_update=lambda event: print(f">> hot update to {event.hash}"),
        )

    print("--- Connecting to", channel.address.url, "---")
    async with channel:
        await asyncio.sleep(30)

    print("--- Console ---")
    for line in channel.console.lines:
        print(line)

asyncio.run(main())
