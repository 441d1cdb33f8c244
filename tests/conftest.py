"""
pytest configuration and fixtures.
"""

import io
import socket
import time
from datetime import datetime, timezone
from typing import Callable, Generator, Iterable

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from PIL import Image

from camerapositions import DisplayServer, ServerConfig
from camerapositions.state.models import DisplayLens, DisplayStation, PublishedSnapshot
from camerapositions.state.snapshot_store import SnapshotStore
from camerapositions.storage.images import ImageStore
from camerapositions.storage.persistence import JsonPersistence


# =============================================================================
# HELPERS
# =============================================================================

def make_png(width: int = 4, height: int = 3, color=(200, 30, 30)) -> bytes:
    """Encode a solid-colour PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def send_raw(
    port: int,
    chunks: Iterable[bytes],
    delay: float = 0.0,
    timeout: float = 5.0,
) -> bytes:
    """
    Write chunks to the server and read until it closes the connection.

    Returns everything received; b"" means the server closed without
    answering.
    """
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        for chunk in chunks:
            sock.sendall(chunk)
            if delay:
                time.sleep(delay)

        received = b""
        while True:
            try:
                data = sock.recv(65536)
            except ConnectionResetError:
                break
            if not data:
                break
            received += data
        return received


def http_get(port: int, path: str) -> bytes:
    return send_raw(port, [f"GET {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode()])


def split_response(raw: bytes):
    """Split a raw response into (status code, headers dict, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return status, headers, body


def wait_until(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return condition()


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "campos"


@pytest.fixture
def config(data_dir: Path) -> ServerConfig:
    """Test configuration: localhost, ephemeral port, fast polling."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        read_timeout=2.0,
        accept_poll_interval=0.05,
        data_dir=data_dir,
        log_level="WARNING",
    )


@pytest.fixture
def persistence(data_dir: Path) -> JsonPersistence:
    return JsonPersistence(data_dir)


@pytest.fixture
def images(config: ServerConfig) -> ImageStore:
    return ImageStore(config.images_dir, max_width=config.image_max_width)


@pytest.fixture
def store() -> SnapshotStore:
    return SnapshotStore()


@pytest.fixture
def sample_snapshot() -> PublishedSnapshot:
    """Two cameras: one staffed with a lens, one empty and disabled."""
    return PublishedSnapshot(
        event_name="Sunday Service",
        event_date=datetime(2026, 10, 25, 9, 0, tzinfo=timezone.utc),
        stations=(
            DisplayStation(
                number=1,
                label="Wide",
                angle_photo_filename="angle.png",
                operator_name="Sam",
                lenses=(DisplayLens("24-70mm", "lens.png"),),
            ),
            DisplayStation(number=2, disabled=True),
        ),
    )


@pytest.fixture
def server(
    config: ServerConfig,
    store: SnapshotStore,
    images: ImageStore,
) -> Generator[DisplayServer, None, None]:
    """A running DisplayServer on an ephemeral port."""
    srv = DisplayServer(config, store, images)
    assert srv.start(0)

    yield srv

    srv.stop()


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png
