"""
=============================================================================
SOCKET SERVER
=============================================================================

The listening side: owns the server socket and runs the accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   socket() ─► setsockopt() ─► bind() ─► listen() ─► accept() loop  │
    │                                                        │            │
    │                                     Connection(client_socket)      │
    │                                                        │            │
    │                                     connection_handler(conn)       │
    │                                     (Server starts a worker)       │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

An embedding application (or a test) may instead hand start() a socket it
has already bound and put into listen mode; only the accept loop runs then.

=============================================================================
SHUTDOWN
=============================================================================

accept() is given a 1 second timeout, so the loop wakes up regularly and
notices shutdown() even when no client is connecting:

    while not shutting down:
        try:
            accept()           # at most 1s
        except timeout:
            continue           # re-check the shutdown flag
        except EMFILE, ECONNABORTED, ...:
            sleep briefly, continue

A SocketServer serves once. shutdown() called before start() is remembered:
start() then closes the socket it was given and returns without serving.

SIGINT (Ctrl+C) and SIGTERM call shutdown() when start() runs on the main
thread. Python only allows signal handlers there, so a server started from
a worker thread must be stopped with shutdown().

=============================================================================
"""

import errno
import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0
ACCEPT_RETRY_DELAY = 0.1

# accept() failures that say nothing about the listening socket itself
_TRANSIENT_ACCEPT_ERRORS = frozenset({
    errno.EMFILE,
    errno.ENFILE,
    errno.ENOBUFS,
    errno.ENOMEM,
    errno.ECONNABORTED,
    errno.EINTR,
    errno.EPROTO,
})


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: host, port, backlog and the per-connection limits.

        No socket exists until start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (IP, port).

        While serving this is the socket's real address, so a configured
        port of 0 reports the port the OS picked.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with hike's socket options."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restart without waiting for TIME_WAIT to expire
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        except (AttributeError, OSError):
            pass  # Not available on Windows

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return sock

    def _setup_signals(self):
        """Route SIGTERM and SIGINT to shutdown(). Main thread only."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(
        self,
        connection_handler: Callable[[Connection], None],
        sock: Optional[socket.socket] = None,
    ):
        """
        Accept connections until shutdown(). Blocks.

        Args:
            connection_handler: Called with each new Connection, on the
                                accept thread. It must not block.
            sock: Optional socket that is already bound and listening.
                  The server takes ownership and closes it on exit.

        Raises:
            OSError: Binding the configured address failed.
        """
        if self._shutdown_event.is_set():
            logger.info("Shutdown requested before start, not serving")
            if sock is not None:
                sock.close()
            return

        if sock is None:
            self._socket = self._create_socket()
            try:
                self._socket.bind((self.config.host, self.config.port))
            except OSError as e:
                logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
                self._socket.close()
                self._socket = None
                raise
            self._socket.listen(self.config.backlog)
        else:
            self._socket = sock

        self._socket.settimeout(ACCEPT_POLL_INTERVAL)

        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._shutdown_event.is_set():
                    break
                if e.errno in _TRANSIENT_ACCEPT_ERRORS:
                    logger.warning(f"Accept failed, retrying: {e}")
                    self._shutdown_event.wait(ACCEPT_RETRY_DELAY)
                    continue
                logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop within one poll interval. Idempotent."""
        logger.info("Shutting down socket server...")
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until shutdown() has been called.

        Returns:
            True if shut down, False if `timeout` elapsed first.
        """
        return self._shutdown_event.wait(timeout)
