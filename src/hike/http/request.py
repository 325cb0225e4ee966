"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses the raw bytes read from a connection into an HTTPRequest.

=============================================================================
WHAT WE ACTUALLY NEED FROM A REQUEST
=============================================================================

hike only serves files, so the interesting part of a request is its
first line:

    GET /assets/logo%20big.png?v=3 HTTP/1.1\r\n
    ─┬─ ─────────────┬─────────────── ───┬────
     │               │                   │
   Method       Request target        Version
                     │
          ┌──────────┴───────────┐
          │                      │
   Path (decoded)          Query string
   /assets/logo big.png    v=3  (kept for logging, never resolved)

Headers are parsed too (Host and User-Agent end up in the access log),
but a body is never read: GET is the only method we serve.

=============================================================================
LENIENCY
=============================================================================

Whatever arrived before the peer stopped sending is parsed, leniently:

    - a request without the final blank line is still parsed
    - bare LF line endings are accepted
    - malformed header lines are skipped

What we do NOT accept is a broken request line. That raises
HTTPParseError and the handler answers 404.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import parse_qs, unquote, urlsplit
import re


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code the caller should answer with. For hike that is
    always 404 (we do not speak 400), but the code is kept on the exception
    so the policy lives in one place: the request handler.
    """

    def __init__(self, message: str, status_code: int = 404):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         "GET", "POST", ... (only GET is served)
        path:           Percent-decoded path, query and fragment stripped.
                        This is the key for both the resolver and the
                        dynamic page registry.
        target:         The request target exactly as sent, for logging.
        version:        "HTTP/1.0" or "HTTP/1.1"
        headers:        Header names lowercased
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        client_address: (ip, port) of the peer
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or default."""
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

        Raw bytes
           │
           ▼
        1. Size check              too large?  → HTTPParseError
        2. Cut at \\r\\n\\r\\n         (or take everything if absent)
        3. Request line            METHOD SP TARGET SP VERSION
        4. Headers                 "Name: value", lowercased names
        5. Split target            path (decoded) + query
           │
           ▼
        HTTPRequest
    """

    # Method is any upper-case token. Whether we *serve* it is the
    # handler's call, not the parser's.
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) +(\S+) +(HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s][^:]*):\s*(.*)$")

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 64 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse raw request data.

        Args:
            data: Bytes read from the connection.
            client_address: Peer (ip, port), carried along for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request line is missing or malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes")

        header_end = data.find(b"\r\n\r\n")
        head = data if header_end == -1 else data[:header_end]

        # Latin-1 maps every byte, so decoding can never fail here.
        # Percent-decoding of the path below is done as UTF-8.
        lines = head.decode("latin-1").splitlines()
        if not lines or not lines[0].strip():
            raise HTTPParseError("Empty request")

        method, target, version = self._parse_request_line(lines[0].strip())
        path, query_params = self._split_target(target)
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers,
            query_params=query_params,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}")

        return method, target, version

    def _split_target(self, target: str) -> tuple[str, Dict[str, list[str]]]:
        """
        Split a request target into a decoded path and query parameters.

        Origin-form ("/a/b?x=1") is the norm. Absolute-form
        ("http://host/a/b?x=1") is what proxies send; we take its path.
        Origin-form never goes through urlsplit(): a target
        like "//etc/passwd" would be read as a network location.
        """
        if target.startswith(("http://", "https://")):
            parts = urlsplit(target)
            raw_path, query = parts.path or "/", parts.query
        else:
            raw_path, _, query = target.partition("?")
            raw_path = raw_path.partition("#")[0]
            query = query.partition("#")[0]

        if not raw_path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {target!r}")

        path = unquote(raw_path, encoding="utf-8", errors="replace")
        if "\x00" in path:
            raise HTTPParseError("Invalid path: contains NUL")

        return path, parse_qs(query, keep_blank_values=True)

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}

        for line in lines:
            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip junk

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 64 * 1024,
) -> HTTPRequest:
    """Parse a request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
