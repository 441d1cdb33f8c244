"""
=============================================================================
IMAGE STORE
=============================================================================

A flat directory of image blobs addressed by filename:

    <data_dir>/images/
    ├── 3F2C...E1.png        station angle photo
    ├── 9A41...07.png        lens photo
    └── 0D88...5B.png        operator photo

Filenames are generated ("<UUID>.png") unless the caller supplies one.
Wide images are scaled down with Pillow before they hit the disk:

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │  Input                       │  Stored as                           │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │  decodable, width > max      │  resized to max width, PNG           │
    │  decodable, width <= max     │  original bytes                      │
    │  not decodable by Pillow     │  original bytes                      │
    └──────────────────────────────┴──────────────────────────────────────┘

=============================================================================
SECURITY: READ PATH
=============================================================================

load() is reachable from the network (GET /api/images/<name>). The HTTP
handler already strips everything up to the last "/" and rejects dot
names, and load() additionally refuses any name whose resolved path is
not inside the images directory:

    full_path = (images_dir / filename).resolve()
    full_path.relative_to(images_dir)  # ValueError if outside

=============================================================================
"""

import io
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError


logger = logging.getLogger(__name__)


class ImageStore:
    """
    Filesystem blob store for station, lens and operator photos.

    Usage:
        store = ImageStore(config.images_dir, max_width=1024)
        name = store.save(jpeg_bytes)        # "6B1E...A2.png"
        data = store.load(name)
        store.delete(name)
    """

    def __init__(self, directory: Path, max_width: int = 1024):
        self.directory = Path(directory)
        self.max_width = max_width

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create images directory {self.directory}: {e}")

    def save(self, data: bytes, filename: Optional[str] = None) -> Optional[str]:
        """
        Store image bytes.

        Args:
            data: Encoded image (any format Pillow reads, or opaque bytes).
            filename: Name to store under; a fresh "<UUID>.png" if omitted.

        Returns:
            The stored filename, or None if the write failed.
        """
        name = filename or f"{str(uuid.uuid4()).upper()}.png"
        path = self.path_for(name)
        if path is None:
            logger.error(f"Refusing to save image outside store: {name!r}")
            return None

        payload = self._downscale(data)
        if payload is None:
            payload = data

        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "wb") as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to save image {name}: {e}")
            return None

        logger.info(f"Saved image: {name}")
        return name

    def load(self, filename: str) -> Optional[bytes]:
        """Bytes of a stored image, or None if missing or out of bounds."""
        path = self.path_for(filename)
        if path is None or not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.warning(f"Failed to read image {filename}: {e}")
            return None

    def delete(self, filename: str) -> None:
        path = self.path_for(filename)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete image {filename}: {e}")
            return
        logger.info(f"Deleted image: {filename}")

    def path_for(self, filename: str) -> Optional[Path]:
        """
        Resolve a filename inside the store.

        Returns None for empty names and for names that would resolve
        outside the images directory ("../x", absolute paths, symlinks
        pointing elsewhere).
        """
        if not filename:
            return None

        root = self.directory.resolve()
        full_path = (root / filename).resolve()
        try:
            full_path.relative_to(root)
        except ValueError:
            return None

        if full_path == root:
            return None
        return full_path

    def _downscale(self, data: bytes) -> Optional[bytes]:
        """
        PNG bytes scaled to max_width, or None when no resize applies.

        The aspect ratio is preserved; height rounds to the nearest pixel.
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                width, height = image.size
                if width <= self.max_width:
                    return None

                new_size = (self.max_width, max(1, round(height * self.max_width / width)))
                resized = image.resize(new_size, Image.Resampling.LANCZOS)
                if resized.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
                    resized = resized.convert("RGBA")

                buf = io.BytesIO()
                resized.save(buf, format="PNG")
                return buf.getvalue()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            logger.debug(f"Storing image without resize: {e}")
            return None
