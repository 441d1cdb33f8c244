"""
Live connection bookkeeping.

The listener adds each accepted Connection here and the connection removes
itself when it closes. On shutdown every registered connection is aborted
so no worker thread stays blocked in recv().
"""

import logging
import threading
from typing import List, Set

from .connection import Connection


logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Thread-safe set of open connections."""

    def __init__(self):
        self._connections: Set[Connection] = set()
        self._lock = threading.Lock()

    def add(self, conn: Connection) -> None:
        with self._lock:
            self._connections.add(conn)

    def discard(self, conn: Connection) -> bool:
        """Remove a connection. Returns False if it was not registered."""
        with self._lock:
            if conn not in self._connections:
                return False
            self._connections.remove(conn)
            return True

    def snapshot(self) -> List[Connection]:
        with self._lock:
            return list(self._connections)

    def close_all(self) -> int:
        """Abort every open connection; returns how many were signalled."""
        connections = self.snapshot()
        for conn in connections:
            conn.abort()
        if connections:
            logger.info(f"Aborted {len(connections)} open connection(s)")
        return len(connections)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._connections)

    def __len__(self) -> int:
        return self.count
