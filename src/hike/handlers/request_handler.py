"""
=============================================================================
REQUEST HANDLER
=============================================================================

Turns the raw bytes of one request into the raw bytes of one response.

=============================================================================
PIPELINE
=============================================================================

    raw bytes
        │
        ▼
    ┌──────────────────┐  HTTPParseError / not GET
    │ read request line│ ─────────────────────────────► 404, empty body
    └────────┬─────────┘
             ▼
    ┌──────────────────┐  None (missing, escape, not a file)
    │ resolve path     │ ─────────────────────────────► 404, empty body
    └────────┬─────────┘
             ▼
    ┌──────────────────┐  OSError
    │ read file bytes  │ ─────────────────────────────► 404, empty body
    └────────┬─────────┘
             ▼
    ┌──────────────────┐  anchors = registry.lookup(decoded URL path)
    │ dynamic?         │
    └───┬──────────┬───┘
        │ yes      │ no
        ▼          │
    ┌──────────┐   │      AnchorRenderError
    │ render   │ ──┼────────────────────────────────► 500, empty body
    └───┬──────┘   │
        ▼          ▼
    ┌──────────────────┐
    │ 200 + file bytes │
    └──────────────────┘

The registry is keyed on the URL the client asked for, not the file that
was found: "/" registered as dynamic matches a GET / that resolves to
index.html, while GET /index.html is served untouched.

Every outcome, including 404s, produces one access log entry.

=============================================================================
"""

import logging
import time
from pathlib import Path
from typing import Optional

from ..access_log import RequestLog, emit
from ..http import (
    HTTPRequest,
    HTTPResponse,
    RequestParser,
    HTTPParseError,
    HTTPStatus,
    ok,
    error,
    not_found,
    internal_error,
)
from ..http.response import DEFAULT_SERVER_NAME
from ..pages import PageRegistry, AnchorRenderError, render
from .resolver import PathResolver


logger = logging.getLogger(__name__)


class RequestHandler:
    """
    Stateless per-request logic; one instance is shared by all workers.

    Everything it holds (resolver, frozen registry, parser) is read-only
    once serving starts, so handle() is safe to call from many threads.

    Usage:
        handler = RequestHandler(PathResolver("./public"), registry)
        response_bytes = handler.handle(b"GET / HTTP/1.1\\r\\n\\r\\n", ("127.0.0.1", 5000))
    """

    def __init__(
        self,
        resolver: PathResolver,
        registry: Optional[PageRegistry] = None,
        parser: Optional[RequestParser] = None,
        server_name: str = DEFAULT_SERVER_NAME,
        log_format: str = "text",
    ):
        self.resolver = resolver
        self.registry = registry if registry is not None else PageRegistry()
        self.parser = parser or RequestParser()
        self.server_name = server_name
        self.log_format = log_format

    def handle(self, raw_request: bytes, client_address: tuple[str, int] = ("", 0)) -> bytes:
        """Process a request and serialize the response for the socket."""
        return self.process(raw_request, client_address).to_bytes(self.server_name)

    def process(
        self,
        raw_request: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPResponse:
        """
        Process a request into an unserialized response.

        Never raises for anything a client can send: every failure maps
        to a 404 or a 500.
        """
        start_time = time.perf_counter()

        try:
            request = self.parser.parse(raw_request, client_address)
        except HTTPParseError as e:
            logger.debug(f"Malformed request from {client_address[0]}: {e}")
            response = error(self._parse_error_status(e))
            self._log(client_address, "-", "-", None, False, response, start_time)
            return response

        response, file_path, dynamic = self._respond(request)

        logger.debug(
            f"{client_address[0]}:{client_address[1]}: url = {request.path} "
            f"=> {file_path or '-'} ({int(response.status)})"
        )
        self._log(
            client_address, request.method, request.target,
            file_path, dynamic, response, start_time,
        )
        return response

    def _respond(self, request: HTTPRequest) -> tuple[HTTPResponse, Optional[Path], bool]:
        if request.method != "GET":
            logger.debug(f"Unsupported method {request.method} for {request.path}")
            return not_found(), None, False

        file_path = self.resolver.resolve(request.path)
        if file_path is None:
            return not_found(), None, False

        try:
            content = file_path.read_bytes()
        except OSError as e:
            logger.warning(f"Error reading {file_path}: {e}")
            return not_found(), None, False

        anchors = self.registry.lookup(request.path)
        if not anchors:
            return ok(content, filename=file_path.name), file_path, False

        try:
            content = render(content, anchors)
        except AnchorRenderError:
            logger.exception(f"Dynamic page {request.path} failed to render")
            return internal_error(), file_path, True

        return ok(content, filename=file_path.name), file_path, True

    @staticmethod
    def _parse_error_status(exc: HTTPParseError) -> HTTPStatus:
        """Status carried by a parse error; codes hike does not speak become 404."""
        try:
            return HTTPStatus(exc.status_code)
        except ValueError:
            return HTTPStatus.NOT_FOUND

    def _log(
        self,
        client_address: tuple[str, int],
        method: str,
        target: str,
        file_path: Optional[Path],
        dynamic: bool,
        response: HTTPResponse,
        start_time: float,
    ) -> None:
        emit(
            RequestLog(
                client_ip=client_address[0] or "-",
                method=method,
                target=target,
                file=str(file_path) if file_path is not None else None,
                status_code=int(response.status),
                content_length=len(response.body),
                duration_ms=(time.perf_counter() - start_time) * 1000,
                dynamic=dynamic,
            ),
            self.log_format,
        )
