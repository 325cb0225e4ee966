"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes hike can put on the wire, with their reason phrases.

=============================================================================
WHY SO FEW?
=============================================================================

hike answers every request with one of three outcomes:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK: the file was found (and rendered, if dynamic)       │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  404   │ Not Found: no file after index fallback, a non-GET       │
    │        │ method, or a request line we could not parse             │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ Internal Server Error: an anchor callback blew up while  │
    │        │ rendering a dynamic page                                 │
    └────────┴───────────────────────────────────────────────────────────┘

Anything richer (redirects, 304s, 405s) belongs to a fuller server.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """Check if this is a 4xx or 5xx status (used for log levels)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
