"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable in one dataclass, with three ways to fill it:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   defaults        ServerConfig()                                    │
    │       ▲                                                             │
    │   environment     ServerConfig.from_env()     HIKE_PORT=9000 ...    │
    │       ▲                                                             │
    │   command line    python -m hike --port 9000                        │
    └─────────────────────────────────────────────────────────────────────┘

    Later layers win: CLI over environment over defaults.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .access_log import LOG_FORMATS
from .http.response import DEFAULT_SERVER_NAME


_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """
    Configuration for a hike server.

    Development:
        ServerConfig(root_dir="./public", debug=True)

    Behind a reverse proxy:
        ServerConfig(host="0.0.0.0", port=8000, log_format="json")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 128
    """
    Maximum number of queued connections before new ones are refused.
    """

    buffer_size: int = 8192
    """
    Bytes read per recv() call.
    """

    timeout: float = 30.0
    """
    Per-connection socket timeout in seconds, for reads and writes.
    A client that stalls longer is dropped without a response.
    """

    max_request_size: int = 64 * 1024
    """
    Largest request head accepted, in bytes. Larger requests are dropped.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """
    Directory whose files are served. Must exist.
    """

    index_file: str = "index.html"
    """
    File served for "/" and any directory request.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    debug: bool = False
    """
    Trace every request and anchor at DEBUG level on the "hike" logger.
    """

    log_level: str = "INFO"
    """
    Root logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    log_format: str = "text"
    """
    Access log format: "text" (Apache style) or "json".
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = DEFAULT_SERVER_NAME
    """
    Value of the Server response header.
    """

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        HIKE_HOST        Bind address        (default: 127.0.0.1)
        HIKE_PORT        Bind port           (default: 8080)
        HIKE_ROOT_DIR    Document root       (default: .)
        HIKE_INDEX_FILE  Index file name     (default: index.html)
        HIKE_TIMEOUT     Socket timeout, s   (default: 30)
        HIKE_LOG_LEVEL   Logging level       (default: INFO)
        HIKE_LOG_FORMAT  text or json        (default: text)
        HIKE_DEBUG       1/true/yes/on       (default: off)

        Args:
            environ: Mapping to read instead of os.environ.

        Raises:
            ValueError: A numeric variable does not parse.
        """
        env = os.environ if environ is None else environ

        return cls(
            host=env.get("HIKE_HOST", "127.0.0.1"),
            port=int(env.get("HIKE_PORT", "8080")),
            root_dir=env.get("HIKE_ROOT_DIR", "."),
            index_file=env.get("HIKE_INDEX_FILE", "index.html"),
            timeout=float(env.get("HIKE_TIMEOUT", "30")),
            log_level=env.get("HIKE_LOG_LEVEL", "INFO").upper(),
            log_format=env.get("HIKE_LOG_FORMAT", "text").lower(),
            debug=env.get("HIKE_DEBUG", "").strip().lower() in _TRUE_VALUES,
        )

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.

        Called when a Server is constructed, before anything binds.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is None or self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if not Path(self.root_dir).is_dir():
            raise ValueError(f"root_dir is not a directory: {self.root_dir}")

        if (
            self.index_file in ("", ".", "..")
            or Path(self.index_file).name != self.index_file
        ):
            raise ValueError(f"index_file must be a bare file name: {self.index_file!r}")

        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log_level: {self.log_level!r}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, not {self.log_format!r}")
