"""
=============================================================================
API HANDLERS
=============================================================================

    GET /api/config             current snapshot JSON, or {} before the
                                first publish
    GET /api/images/<filename>  stored image blob, or 404

=============================================================================
FILENAME SANITIZATION
=============================================================================

The image route captures everything after "/api/images/". Only the last
path segment is used, and dot names are refused outright:

    ┌──────────────────────────────┬────────────────────────────────────┐
    │  Requested                   │  Result                            │
    ├──────────────────────────────┼────────────────────────────────────┤
    │  /api/images/a.png           │  "a.png"                           │
    │  /api/images/x/y/a.png       │  "a.png"                           │
    │  /api/images/../../etc/hosts │  "hosts" (looked up in the store)  │
    │  /api/images/..              │  404 (leading dot)                 │
    │  /api/images/.env            │  404 (leading dot)                 │
    │  /api/images/                │  404 (empty)                       │
    └──────────────────────────────┴────────────────────────────────────┘

ImageStore.load() then checks the resolved path is inside its directory,
so even a name that slipped through could not leave the store.

=============================================================================
"""

import logging
from typing import Optional

from ..http.mime_types import JSON, image_content_type
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, not_found, ok_binary, ok_text
from ..state.snapshot_store import SnapshotStore
from ..storage.images import ImageStore


logger = logging.getLogger(__name__)


def sanitize_image_name(raw: str) -> Optional[str]:
    """Last "/" segment of a requested name, or None if unusable."""
    name = raw.rsplit("/", 1)[-1]
    if not name or name.startswith("."):
        return None
    return name


class ConfigHandler:
    """Serves the current snapshot; readers never wait for writers."""

    def __init__(self, store: SnapshotStore):
        self.store = store

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        return ok_text(self.store.current_body(), JSON)


class ImageHandler:
    """Serves stored image blobs by sanitized filename."""

    def __init__(self, images: ImageStore):
        self.images = images

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        name = sanitize_image_name(request.path_params.get("filename", ""))
        if name is None:
            logger.debug(f"Rejected image name in {request.path!r}")
            return not_found()

        data = self.images.load(name)
        if data is None:
            return not_found()
        return ok_binary(data, image_content_type(name))
