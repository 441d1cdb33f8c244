"""
Core networking: the TCP listener and per-client connections.
"""

from .connection import Connection, ConnectionState
from .listener import Listener
from .registry import ConnectionRegistry

__all__ = ["Connection", "ConnectionState", "ConnectionRegistry", "Listener"]
