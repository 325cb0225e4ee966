"""
Unit tests for HTTP response building.
"""

from datetime import datetime, timezone

from hike.http import HTTPStatus, get_content_type, get_mime_type
from hike.http.response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    error,
    not_found,
    internal_error,
    format_http_date,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: hike/1.0\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_sets_content_length(self):
        """Test that Content-Length is auto-set, including zero."""
        assert b"Content-Length: 11\r\n" in HTTPResponse(body=b"hello world").to_bytes()
        assert b"Content-Length: 0\r\n" in HTTPResponse().to_bytes()

    def test_to_bytes_does_not_mutate_headers(self):
        """Test that serializing leaves the header dict alone."""
        response = HTTPResponse(body=b"x")
        response.to_bytes()

        assert response.headers == {}

    def test_custom_server_name(self):
        """Test overriding the Server header value."""
        assert b"Server: test/0\r\n" in HTTPResponse().to_bytes(server_name="test/0")

    def test_binary_body_untouched(self):
        """Test that arbitrary bytes pass through serialization."""
        body = bytes(range(256))

        assert HTTPResponse(body=body).to_bytes().endswith(b"\r\n\r\n" + body)

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers == {"X-One": "1", "X-Two": "2"}


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        """Test setting status code."""
        response = ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()
        assert response.status == HTTPStatus.NOT_FOUND

    def test_str_body_is_utf8(self):
        """Test that string bodies are encoded as UTF-8."""
        response = ResponseBuilder().body("é").build()
        assert response.body == b"\xc3\xa9"

    def test_file_sets_content_type(self):
        """Test Content-Type detection from a file name."""
        response = ResponseBuilder().file(b"<p>", "/srv/www/index.html").build()

        assert response.body == b"<p>"
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_close_connection(self):
        """Test Connection: close header."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_method_chaining(self):
        """Test fluent API chaining."""
        result = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Custom", "value")
            .content_type("text/plain")
            .body("Hello")
            .to_bytes())

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Type: text/plain\r\n" in result
        assert result.endswith(b"Hello")


class TestConvenienceFunctions:
    """Tests for the three responses hike sends."""

    def test_ok(self):
        """Test 200 response with a file body."""
        response = ok(b"body", filename="a.css")

        assert response.status == 200
        assert response.body == b"body"
        assert response.headers["Content-Type"] == "text/css; charset=utf-8"
        assert response.headers["Connection"] == "close"

    def test_ok_without_filename(self):
        """Test that no filename means no Content-Type."""
        assert "Content-Type" not in ok(b"x").headers

    def test_not_found(self):
        """Test 404 response has an empty body."""
        response = not_found()

        assert response.status == 404
        assert response.body == b""
        assert b"Content-Length: 0\r\n" in response.to_bytes()

    def test_error(self):
        """Test that error() builds an empty-bodied response for any status."""
        response = error(HTTPStatus.INTERNAL_SERVER_ERROR)

        assert response.status == 500
        assert response.body == b""
        assert response.headers["Connection"] == "close"

    def test_internal_error(self):
        """Test 500 response has an empty body."""
        response = internal_error()

        assert response.status == 500
        assert response.body == b""


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test status code phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_status_categories(self):
        """Test status code category checks."""
        assert HTTPStatus.OK.is_success
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error


class TestMimeTypes:
    """Tests for Content-Type detection."""

    def test_known_extensions(self):
        assert get_mime_type("logo.PNG") == "image/png"
        assert get_mime_type("app.js") == "text/javascript"

    def test_unknown_extension_falls_back(self):
        assert get_mime_type("LICENSE") == "application/octet-stream"
        assert get_content_type("LICENSE") == "application/octet-stream"

    def test_charset_only_for_text(self):
        assert get_content_type("data.json") == "application/json; charset=utf-8"
        assert get_content_type("photo.jpg") == "image/jpeg"


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        """Test HTTP date format."""
        dt = datetime(2026, 10, 18, 9, 5, 3, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Sun, 18 Oct 2026 09:05:03 GMT"
