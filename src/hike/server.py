"""
=============================================================================
HIKE SERVER
=============================================================================

The public entry point: configure, register dynamic pages, run.

    from hike import Server, DynamicPage, Anchor

    server = Server("127.0.0.1", 8080)
    server.root_dir = "./public"
    server.insert_dynamic_page(DynamicPage("/", [
        Anchor("<!-- [uptime] -->", read_uptime),
    ]))
    server.run()            # blocks until Ctrl+C or shutdown()

=============================================================================
THREADING MODEL
=============================================================================

    accept thread                      worker threads (one per connection)
    ─────────────                      ───────────────────────────────────
    SocketServer.start()
      accept() ─► _handle_connection ─► Thread(_process_connection)
      accept() ─► _handle_connection ─► Thread(_process_connection)
      ...                                 read ► handle ► send ► close

There is no pool and no limit: every accepted connection gets its own
daemon thread. The worker set is tracked only so shutdown can join it.

Registration happens before run(); run() freezes the registry, after which
insert_dynamic_page() raises RegistryFrozenError.

=============================================================================
"""

import dataclasses
import logging
import socket
import threading
import time
from pathlib import Path
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection
from .handlers import PathResolver, RequestHandler
from .http import RequestParser
from .pages import DynamicPage, PageRegistry


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Upper bound on how long shutdown waits for in-flight workers, in seconds
WORKER_JOIN_TIMEOUT = 5.0


class Server:
    """
    A static file server with dynamic pages.

    Args:
        host: Bind address; overrides config.host.
        port: Bind port; overrides config.port.
        config: Full configuration. Copied, never mutated in place.

    Raises:
        ValueError: The resulting configuration is invalid.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        config: Optional[ServerConfig] = None,
    ):
        self.config = dataclasses.replace(config) if config else ServerConfig()
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port
        self.config.validate()

        self._registry = PageRegistry()
        self._socket_server = SocketServer(self.config)
        self._handler: Optional[RequestHandler] = None

        self._workers: set[threading.Thread] = set()
        self._workers_lock = threading.Lock()

    # =========================================================================
    # SETTINGS
    # =========================================================================

    @property
    def root_dir(self) -> Path:
        return Path(self.config.root_dir)

    @root_dir.setter
    def root_dir(self, path: str | Path):
        """
        Set the document root.

        Raises:
            ValueError: `path` does not exist or is not a directory. The
                        previous root is kept.
        """
        if not Path(path).exists():
            raise ValueError(f"Root directory does not exist: {path}")
        if not Path(path).is_dir():
            raise ValueError(f"Root directory is not a directory: {path}")
        self.config.root_dir = str(path)

    @property
    def index_file(self) -> str:
        return self.config.index_file

    @index_file.setter
    def index_file(self, name: str):
        if name in ("", ".", "..") or Path(name).name != name:
            raise ValueError(f"index_file must be a bare file name: {name!r}")
        self.config.index_file = name

    @property
    def debug(self) -> bool:
        return self.config.debug

    @debug.setter
    def debug(self, enabled: bool):
        self.config.debug = bool(enabled)

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); the real port once serving with port 0."""
        return self._socket_server.address

    @property
    def registry(self) -> PageRegistry:
        return self._registry

    @property
    def active_connections(self) -> int:
        with self._workers_lock:
            return len(self._workers)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def insert_dynamic_page(self, page: DynamicPage) -> None:
        """
        Register a dynamic page.

        Raises:
            DuplicatePageError: page.url is already registered.
            RegistryFrozenError: The server is already running.
        """
        self._registry.register(page)
        logger.debug(f"Registered dynamic page {page.url} with {len(page.anchors)} anchors")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, sock: Optional[socket.socket] = None):
        """
        Serve until shutdown() or SIGINT/SIGTERM. Blocks.

        Args:
            sock: Optional socket already bound and listening. The server
                  takes ownership of it.
        """
        self._setup_logging()
        self._registry.freeze()

        self._handler = RequestHandler(
            resolver=PathResolver(self.config.root_dir, self.config.index_file),
            registry=self._registry,
            parser=RequestParser(max_request_size=self.config.max_request_size),
            server_name=self.config.server_name,
            log_format=self.config.log_format,
        )

        logger.info(
            f"Serving {Path(self.config.root_dir).resolve()} "
            f"with {len(self._registry)} dynamic pages"
        )

        try:
            self._socket_server.start(self._handle_connection, sock=sock)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._join_workers()

    def shutdown(self):
        """Stop accepting connections; run() returns shortly after."""
        self._socket_server.shutdown()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format=LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        hike_logger = logging.getLogger("hike")
        hike_logger.setLevel(logging.DEBUG if self.config.debug else level)

    def _join_workers(self):
        with self._workers_lock:
            workers = list(self._workers)

        if workers:
            logger.info(f"Waiting for {len(workers)} in-flight connections...")

        deadline = time.monotonic() + WORKER_JOIN_TIMEOUT
        for worker in workers:
            worker.join(max(0.0, deadline - time.monotonic()))

        still_running = sum(1 for worker in workers if worker.is_alive())
        if still_running:
            logger.warning(f"{still_running} connections still open at shutdown")

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Start a worker thread for one accepted connection."""
        worker = threading.Thread(
            target=self._run_worker,
            args=(conn,),
            name=f"hike-{conn.id}",
            daemon=True,
        )
        with self._workers_lock:
            self._workers.add(worker)
        worker.start()

    def _run_worker(self, conn: Connection):
        try:
            self._process_connection(conn)
        finally:
            with self._workers_lock:
                self._workers.discard(threading.current_thread())

    def _process_connection(self, conn: Connection):
        """
        One request, one response, then close (runs in a worker thread).

        Transport failures drop the connection without a response; they
        never reach the accept loop.
        """
        with conn:
            try:
                raw_request = conn.read_request()
                if raw_request is None:
                    logger.debug(f"[{conn.id}] Closed by peer before sending a request")
                    return

                response_bytes = self._handler.handle(raw_request, conn.address)
                conn.send_response(response_bytes)

            except (OSError, ValueError) as e:
                # TimeoutError and ConnectionError are OSErrors;
                # ValueError is an oversized request
                logger.warning(f"[{conn.id}] Dropping connection from {conn.client_ip}: {e}")

            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")
