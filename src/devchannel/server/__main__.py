"""python -m devchannel.server"""

import logging
import sys

import uvicorn

from devchannel.address import ResolutionError
from devchannel.config import ServerOptions
from devchannel.server.app import create_app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)

options = ServerOptions.from_env()

# Resolve before binding: a bad public host must never reach a listening socket
try:
    app = create_app(options)
except ResolutionError as exc:
    logging.getLogger("devchannel.server").error("invalid channel configuration: %s", exc)
    sys.exit(2)

uvicorn.run(
    app,
    host=options.host,
    port=options.port,
    log_level="info",
)
