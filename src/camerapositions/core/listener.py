"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept thread:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   start(port)                                                        │
    │      ├──► socket()      AF_INET, SOCK_STREAM                         │
    │      ├──► setsockopt()  SO_REUSEADDR, TCP_NODELAY                    │
    │      ├──► bind()        failure → logged, start() returns False      │
    │      ├──► listen()                                                   │
    │      └──► accept thread                                              │
    │               │                                                      │
    │               └──► per client: Connection + daemon thread            │
    │                                                                      │
    │   stop()                                                             │
    │      ├──► running = False, close listening socket                    │
    │      ├──► join accept thread                                         │
    │      ├──► abort every open connection                                │
    │      └──► join connection threads                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

accept() runs with a short timeout so the loop notices a stop request
within one poll interval; closing the socket from another thread does not
reliably wake a blocked accept() on every platform.

A failed accept() is logged and the loop carries on. Running out of
descriptors (EMFILE, ENFILE) adds a short back-off first. The loop only
ends once stop() has cleared the running flag or closed the socket.

start() and stop() are both idempotent.

=============================================================================
"""

import errno
import logging
import socket
import threading
import time
from typing import List, Optional

from ..config import ServerConfig
from ..http.router import Router
from .connection import Connection
from .registry import ConnectionRegistry


logger = logging.getLogger(__name__)

# Out of descriptors: accepting again at once would fail the same way
RESOURCE_ERRNOS = (errno.EMFILE, errno.ENFILE, errno.ENOBUFS, errno.ENOMEM)
ACCEPT_BACKOFF = 0.1


class Listener:
    """
    Accepts clients and hands each one to its own thread.

    Usage:
        listener = Listener(config, router)
        if listener.start(8080):
            ...
        listener.stop()
    """

    def __init__(self, config: ServerConfig, router: Router):
        self.config = config
        self.router = router
        self.registry = ConnectionRegistry()

        self._socket: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._workers: List[threading.Thread] = []
        self._workers_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._running = False
        self._port: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def port(self) -> Optional[int]:
        """The bound port while running (resolves port 0), else None."""
        return self._port if self._running else None

    @property
    def connection_count(self) -> int:
        return self.registry.count

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(self.config.accept_poll_interval)
        return sock

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, port: Optional[int] = None) -> bool:
        """
        Bind and begin accepting in a background thread.

        Args:
            port: Port to bind; defaults to config.port. 0 = any free port.

        Returns:
            True if listening (including when already running), False if
            the bind failed.
        """
        with self._state_lock:
            if self._running:
                return True

            bind_port = self.config.port if port is None else port
            sock = self._create_socket()
            try:
                sock.bind((self.config.host, bind_port))
                sock.listen(self.config.backlog)
            except OSError as e:
                logger.error(f"Failed to bind to {self.config.host}:{bind_port}: {e}")
                sock.close()
                return False

            self._socket = sock
            self._port = sock.getsockname()[1]
            self._running = True

            self._accept_thread = threading.Thread(
                target=self._accept_loop,
                args=(sock,),
                name=f"accept-{self._port}",
                daemon=True,
            )
            self._accept_thread.start()

        logger.info(f"Server listening on {self.config.host}:{self._port}")
        return True

    def stop(self, timeout: float = 5.0) -> None:
        """Stop accepting, close every connection, wait for the threads."""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            sock, self._socket = self._socket, None
            accept_thread, self._accept_thread = self._accept_thread, None

        logger.info("Shutting down listener...")

        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass

        if accept_thread is not None:
            accept_thread.join(timeout)

        self.registry.close_all()

        with self._workers_lock:
            workers, self._workers = self._workers, []
        for worker in workers:
            if worker.is_alive():
                worker.join(timeout)

        logger.info("Listener stopped")

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _accept_loop(self, sock: socket.socket) -> None:
        while self._running:
            try:
                client_socket, client_address = sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running or sock.fileno() == -1:
                    break
                logger.error(f"Accept error: {e}")
                if e.errno in RESOURCE_ERRNOS:
                    time.sleep(ACCEPT_BACKOFF)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
            self._spawn(client_socket, client_address)

    def _spawn(self, client_socket: socket.socket, client_address: tuple) -> None:
        conn = Connection(
            socket=client_socket,
            address=client_address,
            router=self.router,
            on_close=self.registry.discard,
            buffer_size=self.config.buffer_size,
            timeout=self.config.read_timeout,
            max_request_size=self.config.max_request_size,
        )
        self.registry.add(conn)

        worker = threading.Thread(
            target=conn.serve,
            name=f"conn-{conn.id}",
            daemon=True,
        )
        with self._workers_lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)

        try:
            worker.start()
        except RuntimeError as e:
            logger.error(f"Cannot serve {client_address[0]}:{client_address[1]}: {e}")
            with self._workers_lock:
                if worker in self._workers:
                    self._workers.remove(worker)
            self.registry.discard(conn)
            try:
                client_socket.close()
            except OSError:
                pass
