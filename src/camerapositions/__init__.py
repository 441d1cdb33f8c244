"""
=============================================================================
CAMERA POSITIONS
=============================================================================

Live "who is on which camera" display for a production room.

An operator edits stations, lenses and operator assignments; every change
publishes an immutable snapshot. A small HTTP server hands that snapshot
and its images to a full-screen browser page that polls every 5 seconds,
and small per-camera displays get the same data pushed to them.

    ┌──────────────┐   publish   ┌───────────────┐   GET /api/config   ┌─────────┐
    │ StationBoard │ ──────────► │ SnapshotStore │ ◄────────────────── │ browser │
    └──────────────┘             └───────────────┘                     └─────────┘
           │                                                                ▲
           │ push                                                           │
           ▼                                                         DisplayServer
    ┌──────────────┐
    │ OLED devices │
    └──────────────┘

Usage:
    from camerapositions import DisplayServer, SnapshotStore

    store = SnapshotStore()
    server = DisplayServer(store=store)
    server.start(8080)

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, setup_logging
from .server import DisplayServer, build_router
from .state.snapshot_store import SnapshotStore
from .state.publisher import SnapshotPublisher
from .storage.images import ImageStore
from .storage.persistence import JsonPersistence

__all__ = [
    "__version__",
    "ServerConfig",
    "setup_logging",
    "DisplayServer",
    "build_router",
    "SnapshotStore",
    "SnapshotPublisher",
    "ImageStore",
    "JsonPersistence",
]
