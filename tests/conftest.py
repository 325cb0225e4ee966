"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hike import Server, ServerConfig
from hike.handlers import PathResolver, RequestHandler
from hike.pages import PageRegistry


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/page.html?lang=en&v=2 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"\r\n"
    )


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """
    A small document root:

        index.html          <h1><!-- [Marker1] --></h1>
        hello.txt           Hello world
        LICENSE             MIT
        assets/index.html   <p>{{a}} and {{b}}</p>
        docs/index.html     docs home
        empty/              (no index file)
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(b"<h1><!-- [Marker1] --></h1>")
    (root / "hello.txt").write_bytes(b"Hello world")
    (root / "LICENSE").write_bytes(b"MIT")
    (root / "assets").mkdir()
    (root / "assets" / "index.html").write_bytes(b"<p>{{a}} and {{b}}</p>")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_bytes(b"docs home")
    (root / "empty").mkdir()
    return root


@pytest.fixture
def registry() -> PageRegistry:
    return PageRegistry()


@pytest.fixture
def handler(docroot: Path, registry: PageRegistry) -> RequestHandler:
    """Request handler over `docroot`; register pages on `registry` first."""
    return RequestHandler(PathResolver(docroot), registry)


@pytest.fixture
def get():
    """Build the raw bytes of a minimal GET request for a target."""
    def _get(target: str) -> bytes:
        return f"GET {target} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode("utf-8")
    return _get


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """
    Test server helper that runs in a background thread.

    The listening socket is bound and listening before the thread starts,
    so clients can connect immediately: the kernel queues them until the
    accept loop picks them up.
    """

    __test__ = False  # not a test class

    def __init__(self, server: Server):
        self.server = server
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(16)
        self.port = self._sock.getsockname()[1]
        self._thread: threading.Thread = None

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"sock": self._sock},
            daemon=True,
        )
        self._thread.start()

    def stop(self):
        """Stop the server and wait for run() to return."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes and read until the server closes the connection."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            s.sendall(raw)
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def make_server(docroot: Path) -> Generator:
    """
    Factory for a running server over `docroot`.

    Usage:
        srv = make_server(pages=[DynamicPage(...)])
        srv.request(b"GET / HTTP/1.1\\r\\n\\r\\n")
    """
    started = []

    def _make(pages=(), **config_overrides) -> TestServer:
        config_kwargs = dict(
            host="127.0.0.1",
            port=0,
            root_dir=str(docroot),
            timeout=5.0,
            log_level="WARNING",
        )
        config_kwargs.update(config_overrides)
        config = ServerConfig(**config_kwargs)
        server = Server(config=config)
        for page in pages:
            server.insert_dynamic_page(page)

        test_srv = TestServer(server)
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield _make

    for test_srv in started:
        test_srv.stop()
