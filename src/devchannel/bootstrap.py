"""Bootstrap script generation.

The generated script is what every page runs: it carries the channel
configuration as literal data plus the resolution table, resolves the socket
address against ``window.location`` and keeps the connection alive.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from devchannel.address import RESOLUTION_ORDER, ChannelConfig, static_candidates
from devchannel.protocol import (
    LOG_PREFIX,
    RECONNECT_FACTOR,
    RECONNECT_INITIAL_S,
    RECONNECT_MAX_S,
)

TEMPLATE_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=False,
    keep_trailing_newline=True,
)

_MARKER = "data-devchannel"


def client_payload(config: ChannelConfig) -> dict[str, Any]:
    """The data embedded in the script. Raises ResolutionError for a bad public host."""
    return {
        "candidates": static_candidates(config),
        "order": {name: list(sources) for name, sources in RESOLUTION_ORDER.items()},
        "publicHost": config.public_host,
        "logLevel": config.log_level,
        "hot": config.hot,
        "liveReload": config.live_reload,
        "logPrefix": LOG_PREFIX,
        "reconnect": {
            "initial": RECONNECT_INITIAL_S,
            "factor": RECONNECT_FACTOR,
            "maximum": RECONNECT_MAX_S,
        },
    }


def generate(config: ChannelConfig) -> str:
    return _env.get_template("client.js.j2").render(payload=client_payload(config))


def inject(html: str, config: ChannelConfig) -> str:
    """Insert the bootstrap script into an HTML document, once.

    The script goes right before ``</body>``, or at the end of documents that
    have none.
    """
    if _MARKER in html:
        return html
    tag = f"<script {_MARKER}>\n{generate(config)}</script>\n"
    end = html.lower().rfind("</body")
    if end < 0:
        return html + tag
    return html[:end] + tag + html[end:]
