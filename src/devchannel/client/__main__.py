"""python -m devchannel.client [PAGE_URL]"""

import asyncio
import logging
import os
import sys

from devchannel.client.client import DevChannelClient
from devchannel.protocol import DEFAULT_HOST, DEFAULT_PORT

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
log = logging.getLogger("devchannel.client")

page_url = (
    sys.argv[1] if len(sys.argv) > 1
    else os.environ.get("DEVCHANNEL_PAGE_URL", f"http://{DEFAULT_HOST}:{DEFAULT_PORT}/")
)


async def main():
    with DevChannelClient.from_url(page_url) as http:
        channel = http.channel(
            page_url,
            on_reload=lambda event: log.info("page reload requested"),
            on_hot_update=lambda event: log.info("hot update requested (hash=%s)", getattr(event, "hash", None)),
        )
    log.info("page %s -> channel %s", page_url, channel.address.url)
    async with channel:
        await asyncio.Event().wait()


try:
    asyncio.run(main())
except KeyboardInterrupt:
    pass
