"""
=============================================================================
ACCESS LOG
=============================================================================

One entry per answered request, on the "hike.access" logger.

    text (default):
    127.0.0.1 - - [18/Oct/2026:09:12:44 +0000] "GET /" 200 418 1.92ms dynamic /srv/www/index.html

    json:
    {"client_ip": "127.0.0.1", "method": "GET", "target": "/", "status_code": 200, ...}

The access logger is separate from the module loggers so it can be routed
on its own:

    logging.getLogger("hike.access").addHandler(file_handler)
    logging.getLogger("hike.access").propagate = False

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger("hike.access")


LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """
    Structured log entry for a request.

    client_ip:      Peer IP address
    method:         Request method, "-" if the request line was unreadable
    target:         Raw request target as sent (query string included)
    file:           Resolved file served, or None
    status_code:    Response status
    content_length: Response body size in bytes
    duration_ms:    Time from raw bytes in to response built
    dynamic:        Whether the page went through anchors
    timestamp:      Local time, Apache format
    """

    client_ip: str
    method: str
    target: str
    file: Optional[str]
    status_code: int
    content_length: int
    duration_ms: float
    dynamic: bool = False
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = time.strftime("%d/%b/%Y:%H:%M:%S %z")

    def to_dict(self) -> dict:
        return {
            "client_ip": self.client_ip,
            "method": self.method,
            "target": self.target,
            "file": self.file,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "dynamic": self.dynamic,
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache common log format, plus duration, page kind and file."""
        kind = "dynamic" if self.dynamic else "static"
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms '
            f'{kind} {self.file or "-"}'
        )


def emit(entry: RequestLog, log_format: str = "text", level: int = logging.INFO) -> None:
    """Write one entry to the access logger in the given format."""
    if log_format == "json":
        logger.log(level, json.dumps(entry.to_dict()))
    else:
        logger.log(level, entry.to_text())
