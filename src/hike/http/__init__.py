"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Translates between raw bytes and structured HTTP messages.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes → HTTPRequest (method, decoded path)     │
    │ response.py      HTTPResponse → raw bytes (status, headers, body)   │
    │ status_codes.py  200 / 404 / 500 with reason phrases                │
    │ mime_types.py    file extension → Content-Type                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,              # 200 OK
    error,           # any status, empty body
    not_found,       # 404 Not Found
    internal_error,  # 500 Internal Server Error
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "error",
    "not_found",
    "internal_error",
    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
]
