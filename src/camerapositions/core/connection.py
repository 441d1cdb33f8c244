"""
=============================================================================
CONNECTION HANDLING
=============================================================================

One Connection object owns one accepted client socket for its whole life.
The display server speaks exactly one request per connection:

    RECEIVING ──► PARSING ──┬──► ROUTING ──► RESPONDING ──► CLOSED
        ▲            │      │
        └── need ────┘      └── malformed / EOF / timeout / too big ──► CLOSED
            more bytes            (no response is written)

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

A request can arrive in any number of recv() chunks:

    recv() → "GET /api/con"
    recv() → "fig HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"

Every chunk is appended to a buffer and the whole buffer is handed to the
parser again. The parser answers "not yet" (None) until the blank line
and any Content-Length body are present.

=============================================================================
FAILURE POLICY
=============================================================================

    ┌────────────────────────────┬────────────────────────────────────────┐
    │  Condition                 │  Outcome                               │
    ├────────────────────────────┼────────────────────────────────────────┤
    │  Peer closes before done   │  close, nothing sent                   │
    │  Bytes cannot be parsed    │  close, nothing sent                   │
    │  Read timeout              │  close, nothing sent                   │
    │  Buffer > max_request_size │  close, nothing sent                   │
    │  Send fails                │  warning logged, close                 │
    │  Anything else             │  response written, then close          │
    └────────────────────────────┴────────────────────────────────────────┘

=============================================================================
"""

import logging
import socket
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..http.request import HTTPParseError, HTTPRequest, RequestParser
from ..http.router import Router


logger = logging.getLogger(__name__)

access_logger = logging.getLogger("camerapositions.access")


class ConnectionState(Enum):
    """Connection lifecycle states."""
    RECEIVING = "receiving"    # Waiting for (more) request bytes
    PARSING = "parsing"        # Buffer handed to the parser
    ROUTING = "routing"        # Handler running
    RESPONDING = "responding"  # Writing the response
    CLOSED = "closed"          # Socket released


_SHARED_PARSER = RequestParser()

# Bounds on reading leftover peer bytes after our FIN
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


@dataclass(eq=False)
class Connection:
    """
    A single accepted client.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        router: Produces the response for the parsed request.
        on_close: Called exactly once after the socket is released.
        buffer_size: Bytes per recv() call.
        timeout: Read timeout in seconds (None = wait forever).
        max_request_size: Buffer limit before the connection is dropped.
    """

    socket: socket.socket
    address: tuple
    router: Router
    on_close: Optional[Callable[["Connection"], None]] = None

    buffer_size: int = 64 * 1024
    timeout: Optional[float] = 30.0
    max_request_size: int = 1024 * 1024

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.RECEIVING
    created_at: float = field(default_factory=time.time)

    _buffer: bytes = field(default=b"", repr=False)
    _close_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # SERVING
    # =========================================================================

    def serve(self) -> None:
        """
        Read one request, answer it, close. Never raises.

        This is the target of the per-connection thread.
        """
        try:
            request = self.read_request()
            if request is None:
                return

            self.state = ConnectionState.ROUTING
            response = self.router.handle(request)

            self.state = ConnectionState.RESPONDING
            data = response.to_bytes()
            if self.send_response(data):
                elapsed_ms = (time.time() - self.created_at) * 1000
                access_logger.info(
                    f'{self.client_ip} "{request.method} {request.path}" '
                    f"{int(response.status)} {len(data)} {elapsed_ms:.1f}ms"
                )
        except Exception:
            logger.exception(f"[{self.id}] Unexpected error serving {self.client_ip}")
        finally:
            self.close()

    def read_request(self) -> Optional[HTTPRequest]:
        """
        Receive until the buffer parses into a complete request.

        Returns:
            The request, or None if the connection should be dropped
            without a response.
        """
        while True:
            self.state = ConnectionState.RECEIVING
            try:
                chunk = self._recv()
            except socket.timeout:
                logger.debug(f"[{self.id}] Read timeout, dropping connection")
                return None

            if not chunk:
                logger.debug(f"[{self.id}] Peer closed before a full request")
                return None

            self._buffer += chunk
            if len(self._buffer) > self.max_request_size:
                logger.warning(
                    f"[{self.id}] Request from {self.client_ip} exceeds "
                    f"{self.max_request_size} bytes, dropping connection"
                )
                return None

            self.state = ConnectionState.PARSING
            try:
                request = _SHARED_PARSER.parse(self._buffer, self.address)
            except HTTPParseError as e:
                logger.debug(f"[{self.id}] Malformed request: {e}")
                return None

            if request is not None:
                return request

    def _recv(self) -> bytes:
        """
        Receive one chunk. Reset and abort both read as end of stream.

        socket.timeout propagates so the caller can tell it apart.
        """
        try:
            return self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise
        except OSError:
            return b""

    def send_response(self, data: bytes) -> bool:
        """
        Write the whole response with sendall().

        Returns:
            True if every byte was handed to the kernel.
        """
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def abort(self) -> None:
        """
        Interrupt a blocked recv()/sendall() from another thread.

        The serving thread wakes up, sees end of stream and runs close().
        """
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def close(self) -> None:
        """
        Shut down and release the socket. Safe to call more than once.

        Sequence: shutdown(SHUT_WR) sends FIN, a short drain reads what the
        peer still had in flight, close() frees the descriptor. The drain
        stops after DRAIN_TIMEOUT seconds or DRAIN_LIMIT bytes, whichever
        comes first.
        """
        with self._close_lock:
            if self.state == ConnectionState.CLOSED:
                return
            self.state = ConnectionState.CLOSED

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        logger.debug(f"[{self.id}] Connection closed after {time.time() - self.created_at:.3f}s")

        if self.on_close is not None:
            self.on_close(self)
