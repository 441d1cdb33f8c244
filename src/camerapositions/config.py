"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the display server and the services around it.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m camerapositions --port 3000                     │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── CAMPOS_PORT=3000 python -m camerapositions                │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The display server runs on a trusted LAN segment, so the defaults bind
every interface: the room monitor and the embedded displays are other
machines on the same network.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_DATA_DIR = Path.home() / ".camera-positions"


@dataclass
class ServerConfig:
    """
    Configuration for the display server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, read_timeout, accept_poll_interval

    HTTP SETTINGS
    - max_request_size

    STORAGE
    - data_dir, image_max_width

    DEVICE PUSH
    - push_timeout

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All interfaces (display clients live on other machines)
    - "127.0.0.1" - Localhost only (tests, development)
    """

    port: int = 8080
    """
    The port number to listen on. 0 asks the OS for an ephemeral port,
    which the listener reports once bound.
    """

    backlog: int = 64
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 64 * 1024
    """Bytes requested from the socket per recv() call."""

    read_timeout: Optional[float] = 30.0
    """
    Idle timeout while waiting for request bytes, in seconds.
    None = wait forever (a stalled client then holds its thread until stop()).
    """

    accept_poll_interval: float = 0.5
    """
    Timeout on accept() so the accept loop notices stop() promptly.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 1024 * 1024  # 1 MB
    """
    Ceiling on buffered request bytes. Display clients only send GETs,
    so anything this large is dropped without a response.
    """

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE
    # ─────────────────────────────────────────────────────────────────────

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    """
    Root directory for persisted state:
        cameras.json, lenses.json, weekends/<id>.json,
        person-photos.json, published-display.json, devices.json,
        images/
    """

    image_max_width: int = 1024
    """Stored images wider than this are scaled down to this width."""

    # ─────────────────────────────────────────────────────────────────────
    # DEVICE PUSH
    # ─────────────────────────────────────────────────────────────────────

    push_timeout: float = 3.0
    """Per-device timeout for the fire-and-forget display push."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    def __post_init__(self):
        self.data_dir = Path(self.data_dir).expanduser()

    @property
    def images_dir(self) -> Path:
        return self.data_dir / "images"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        CAMPOS_HOST          Server host (default: 0.0.0.0)
        CAMPOS_PORT          Server port (default: 8080)
        CAMPOS_READ_TIMEOUT  Idle read timeout in seconds, "none" disables
        CAMPOS_DATA_DIR      State directory (default: ~/.camera-positions)
        CAMPOS_LOG_LEVEL     Logging level (default: INFO)

        =====================================================================
        """
        timeout_raw = os.getenv("CAMPOS_READ_TIMEOUT", "30")
        read_timeout = None if timeout_raw.lower() == "none" else float(timeout_raw)

        return cls(
            host=os.getenv("CAMPOS_HOST", "0.0.0.0"),
            port=int(os.getenv("CAMPOS_PORT", "8080")),
            read_timeout=read_timeout,
            data_dir=Path(os.getenv("CAMPOS_DATA_DIR", str(DEFAULT_DATA_DIR))),
            log_level=os.getenv("CAMPOS_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Runs at startup so a bad value fails before the listener binds.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0")

        if self.accept_poll_interval <= 0:
            raise ValueError("accept_poll_interval must be > 0")

        if self.image_max_width < 1:
            raise ValueError("image_max_width must be >= 1")

        if self.push_timeout <= 0:
            raise ValueError("push_timeout must be > 0")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the command-line runner."""
    numeric = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("camerapositions").setLevel(numeric)
