"""
=============================================================================
BUNDLED DISPLAY ASSETS
=============================================================================

The room display is three files shipped inside the package:

    camerapositions/web/
    ├── index.html     page shell, clock, camera container
    ├── styles.css     full-screen column layout
    └── display.js     polls /api/config every 5 seconds

They are read once when the server is built and served from memory.
Nothing on the filesystem is reachable through these routes: the set of
names is closed, so there is no path to traverse.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from ..http.mime_types import ASSET_TYPES
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, not_found, ok_text


logger = logging.getLogger(__name__)


WEB_DIR = Path(__file__).resolve().parent.parent / "web"


class BundledAssets:
    """
    Immutable in-memory copy of the display assets.

    Args:
        directory: Where to read the files from (default: package web/).
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else WEB_DIR
        self._files: Dict[str, bytes] = {}

        for name in ASSET_TYPES:
            path = self.directory / name
            try:
                self._files[name] = path.read_bytes()
            except OSError as e:
                logger.warning(f"Bundled asset {name} unavailable: {e}")

    def get(self, name: str) -> Optional[bytes]:
        return self._files.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._files


class StaticAssetHandler:
    """
    Serves one bundled asset per route.

    Usage:
        handler = StaticAssetHandler(BundledAssets())
        router.get("/")(handler.handle)
        router.get("/styles.css")(handler.handle)
    """

    def __init__(self, assets: BundledAssets):
        self.assets = assets

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        name = "index.html" if request.path == "/" else request.path.lstrip("/")
        content_type = ASSET_TYPES.get(name)
        body = self.assets.get(name)

        if content_type is None or body is None:
            return not_found()
        return ok_text(body, content_type)
