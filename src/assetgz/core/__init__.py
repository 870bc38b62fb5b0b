"""
Transport layer: listening socket and per-connection request framing.

    SocketServer   accept loop with signal-driven shutdown
    Connection     buffered request reads, keep-alive timeouts
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer

__all__ = ["Connection", "ConnectionState", "SocketServer"]
