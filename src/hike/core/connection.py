"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted socket for exactly one request/response exchange.

=============================================================================
LIFECYCLE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
              │                                       ▲
              └── peer closed / timeout / too large ──┘

hike never keeps a connection alive: every response carries
"Connection: close" and the worker closes the socket right after writing.

=============================================================================
READING
=============================================================================

Only the request head matters (GET has no body), so reading stops at the
first blank line (CRLF CRLF, or bare LF LF), or when the peer half-closes:

    recv ──► "GET / HTTP/1.1\r\nHost: x\r\n"       keep reading
    recv ──► "\r\n"                                  \r\n\r\n seen, done

    recv ──► "GET / HTTP/1.1"                        keep reading
    recv ──► b""  (peer shut down its side)          return what we have

A peer that closes without sending anything gets no response at all.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


HEADER_TERMINATORS = (b"\r\n\r\n", b"\n\n")


def find_head_end(data: bytes) -> int:
    """Offset just past the first blank line in data, or -1 if none yet."""
    ends = [
        pos + len(terminator)
        for terminator in HEADER_TERMINATORS
        if (pos := data.find(terminator)) != -1
    ]
    return min(ends) if ends else -1


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and close() idempotency."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current lifecycle state.
        created_at: When the connection was accepted.
        buffer_size: Bytes per recv() call.
        timeout: Socket timeout for every read and write, in seconds.
        max_request_size: Request heads larger than this are rejected.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: float = 30.0
    max_request_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read the request head from the socket.

        Returns:
            Raw request bytes (up to and including the blank line when
            present), or None if the peer closed without sending anything.

        Raises:
            TimeoutError: The peer stopped sending before the head ended.
            ValueError: The head exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            while find_head_end(self._buffer) == -1:
                chunk = self._recv()
                if not chunk:
                    break

                self._buffer += chunk

                if len(self._buffer) > self.max_request_size:
                    raise ValueError(f"Request too large: {len(self._buffer)} bytes")
        except socket.timeout:
            raise TimeoutError("Request read timeout")

        if not self._buffer:
            return None

        head_end = find_head_end(self._buffer)
        if head_end == -1:
            request_data = self._buffer
        else:
            request_data = self._buffer[:head_end]

        self._buffer = b""
        self.state = ConnectionState.PROCESSING
        return request_data

    def _recv(self) -> bytes:
        """socket.recv() that reports an abrupt disconnect as EOF."""
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send the whole response.

        Returns:
            True if sent, False if the peer went away.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection: shutdown(SHUT_WR), drain, close.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            # socket.timeout is an OSError subclass
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        """
        Close automatically on exit:

            with conn:
                data = conn.read_request()
                conn.send_response(response)
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
