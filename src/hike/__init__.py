"""
=============================================================================
HIKE - A Small Static File Server With Dynamic Pages
=============================================================================

hike serves a directory over HTTP/1.1. Pages can be registered as
"dynamic": before such a page is sent, literal markers in it are replaced
by the output of Python functions.

    public/index.html                 GET /  →
    ─────────────────                 ─────────
    <p>Up: <!-- [uptime] --></p>      <p>Up: 3 days, 4:12</p>

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    hike/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m hike)
    ├── server.py            # Server: registration API and lifecycle
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # Per-request log entries
    ├── core/                # Network transport
    │   ├── socket_server.py # Listening socket, accept loop
    │   └── connection.py    # One client socket
    ├── handlers/            # Per-request logic
    │   ├── resolver.py      # URL path → file
    │   └── request_handler.py
    ├── pages/               # Dynamic pages
    │   ├── anchors.py       # Marker substitution
    │   └── registry.py      # URL → anchors
    └── http/                # Protocol codec
        ├── request.py
        ├── response.py
        ├── status_codes.py
        └── mime_types.py

=============================================================================
QUICK START
=============================================================================

    from hike import Server, DynamicPage, Anchor

    server = Server("127.0.0.1", 8080)
    server.root_dir = "./public"
    server.insert_dynamic_page(DynamicPage("/", [
        Anchor("<!-- [hello] -->", lambda: "Hello, world"),
    ]))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import Server
from .config import ServerConfig
from .pages import (
    Anchor,
    AnchorRenderError,
    DynamicPage,
    PageRegistry,
    DuplicatePageError,
    RegistryFrozenError,
)

__all__ = [
    "Server",
    "ServerConfig",
    "Anchor",
    "AnchorRenderError",
    "DynamicPage",
    "PageRegistry",
    "DuplicatePageError",
    "RegistryFrozenError",
    "__version__",
]
