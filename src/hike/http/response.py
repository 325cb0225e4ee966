"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds and serializes the HTTP/1.1 responses hike sends.

=============================================================================
WHAT GOES ON THE WIRE
=============================================================================

    HTTP/1.1 200 OK\r\n                        ← status line
    Content-Type: text/html; charset=utf-8\r\n ← from file extension
    Connection: close\r\n                      ← one request per connection
    Content-Length: 18\r\n                     ← always, auto-calculated
    Date: Sun, 18 Oct 2026 09:12:44 GMT\r\n    ← auto-added
    Server: hike/1.0\r\n                       ← auto-added
    \r\n
    <html>Hello</html>                         ← body (rendered if dynamic)

Errors are the same shape with an empty body:

    HTTP/1.1 404 Not Found\r\n
    Connection: close\r\n
    Content-Length: 0\r\n
    ...
    \r\n

No caching headers, no chunked encoding. Content-Length is the only way
a client learns where the body ends (besides the connection closing).

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus
from .mime_types import get_content_type


DEFAULT_SERVER_NAME = "hike/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be serialized.

        Handler builds         to_bytes()             Connection sends
        HTTPResponse   ─────►  serializes   ─────►    raw bytes
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK" """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize to bytes ready for socket.sendall().

        Content-Length, Date and Server are filled in unless the caller
        already set them. The header dict itself is left untouched.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .file(page_bytes, "index.html")
            .close_connection()
            .build())

    Every method but build()/to_bytes() returns self.
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._server_name = server_name

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the body; strings are encoded as UTF-8."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """
        Set a file body, with Content-Type detected from filename.

        Args:
            content: File content (already rendered, for dynamic pages)
            filename: Name or path used for MIME detection only
        """
        self._body = content
        self._headers["Content-Type"] = get_content_type(filename)
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Set Connection: close (hike never keeps connections alive)."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize in one step."""
        return self.build().to_bytes(self._server_name)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always in GMT.

    Example: Wed, 01 Jan 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# The three responses the request handler can produce.
#
# =============================================================================

def ok(body: bytes, filename: Optional[str] = None) -> HTTPResponse:
    """
    200 OK carrying a file body.

    Args:
        body: Response bytes (raw file or rendered page)
        filename: Used for Content-Type; omitted → no Content-Type header
    """
    builder = ResponseBuilder().status(HTTPStatus.OK).close_connection()

    if filename is not None:
        builder.file(body, filename)
    else:
        builder.body(body)

    return builder.build()


def error(status: HTTPStatus) -> HTTPResponse:
    """Error response with an empty body."""
    return ResponseBuilder().status(status).close_connection().build()


def not_found() -> HTTPResponse:
    """404 Not Found with an empty body."""
    return error(HTTPStatus.NOT_FOUND)


def internal_error() -> HTTPResponse:
    """500 Internal Server Error with an empty body (dynamic page failures)."""
    return error(HTTPStatus.INTERNAL_SERVER_ERROR)
