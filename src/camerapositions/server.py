"""
=============================================================================
DISPLAY SERVER
=============================================================================

Ties the read side of the application together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          DisplayServer                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Listener ──► Connection ──► Router                                 │
    │                                 ├── /, /index.html   BundledAssets   │
    │                                 ├── /styles.css      BundledAssets   │
    │                                 ├── /display.js      BundledAssets   │
    │                                 ├── /api/config      SnapshotStore   │
    │                                 └── /api/images/*    ImageStore      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The server never writes application state. Editing goes through
StationBoard, which publishes into the same SnapshotStore this server
reads from.

=============================================================================
"""

import logging
import socket
from typing import Optional

from .config import ServerConfig
from .core.listener import Listener
from .handlers.api import ConfigHandler, ImageHandler
from .handlers.static import BundledAssets, StaticAssetHandler
from .http.router import Router
from .state.snapshot_store import SnapshotStore
from .storage.images import ImageStore


logger = logging.getLogger(__name__)


def build_router(
    store: SnapshotStore,
    images: ImageStore,
    assets: BundledAssets,
) -> Router:
    """Register the display routes in lookup order."""
    router = Router()

    static = StaticAssetHandler(assets)
    router.get("/", name="index")(static.handle)
    router.get("/index.html", name="index_html")(static.handle)
    router.get("/styles.css", name="styles")(static.handle)
    router.get("/display.js", name="script")(static.handle)

    router.get("/api/config", name="config")(ConfigHandler(store).handle)
    router.get("/api/images/*filename", name="image")(ImageHandler(images).handle)

    return router


def lan_address() -> str:
    """
    Best guess at this machine's LAN address.

    Connecting a UDP socket sends nothing; it only makes the kernel pick
    the outbound interface, whose address we then read back.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("8.8.8.8", 80))
        return sock.getsockname()[0]
    except OSError:
        return "localhost"
    finally:
        sock.close()


class DisplayServer:
    """
    HTTP server for the room display.

    Usage:
        server = DisplayServer(config, store, images)
        server.start()
        print(server.display_url)
        ...
        server.stop()

    Args:
        config: Network settings (host, backlog, timeouts...).
        store: Snapshot served at /api/config.
        images: Blob store served at /api/images/.
        assets: Bundled page files; read from the package when omitted.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        store: Optional[SnapshotStore] = None,
        images: Optional[ImageStore] = None,
        assets: Optional[BundledAssets] = None,
    ):
        self.config = config or ServerConfig()
        self.store = store if store is not None else SnapshotStore()
        self.images = images if images is not None else ImageStore(
            self.config.images_dir, max_width=self.config.image_max_width
        )
        self.assets = assets if assets is not None else BundledAssets()

        self.router = build_router(self.store, self.images, self.assets)
        self.listener = Listener(self.config, self.router)

    def start(self, port: Optional[int] = None) -> bool:
        """Start listening; False if the port could not be bound."""
        started = self.listener.start(port)
        if started:
            logger.info(f"Display available at {self.display_url}")
        return started

    def stop(self) -> None:
        self.listener.stop()

    @property
    def is_running(self) -> bool:
        return self.listener.is_running

    @property
    def port(self) -> Optional[int]:
        return self.listener.port

    @property
    def connection_count(self) -> int:
        return self.listener.connection_count

    @property
    def display_url(self) -> Optional[str]:
        """URL to open on the display machine, or None when stopped."""
        if not self.is_running:
            return None
        return f"http://{lan_address()}:{self.port}"

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
