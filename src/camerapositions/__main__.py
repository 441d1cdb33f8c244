"""
=============================================================================
CAMERA POSITIONS CLI ENTRY POINT
=============================================================================

    # Defaults (0.0.0.0:8080, data in ~/.camera-positions)
    python -m camerapositions

    # Custom port and data directory
    camera-positions --port 9000 --data-dir /srv/campos

    # Verbose
    camera-positions --log-level DEBUG

Configuration precedence: command line, then CAMPOS_* environment
variables, then built-in defaults.

Startup sequence:

    1. Build ServerConfig and set up logging
    2. Open the data directory (JSON files + images/)
    3. Restore the last published snapshot, so /api/config is never
       empty after a restart
    4. Load the editable board; this seeds defaults and publishes
    5. Start the display server and wait for SIGINT/SIGTERM

=============================================================================
"""

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import ServerConfig, setup_logging
from .push.devices import DevicePushService
from .server import DisplayServer
from .state.board import StationBoard
from .state.publisher import SnapshotPublisher
from .state.snapshot_store import SnapshotStore
from .storage.images import ImageStore
from .storage.persistence import JsonPersistence


logger = logging.getLogger("camerapositions")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="camera-positions",
        description="Serve the camera positions room display",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  camera-positions                          # Run with defaults
  camera-positions --port 9000              # Custom port
  camera-positions --data-dir ./campos      # Custom data directory
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 0.0.0.0)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--data-dir", "-d",
        type=Path,
        default=None,
        help="Directory for JSON state and images (default: ~/.camera-positions)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"camera-positions {__version__}",
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Apply command-line overrides on top of the environment."""
    config = ServerConfig.from_env()

    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.log_level is not None:
        overrides["log_level"] = args.log_level

    config = replace(config, **overrides)
    config.validate()
    return config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level)

    # =========================================================================
    # WIRE THE APPLICATION
    # =========================================================================

    persistence = JsonPersistence(config.data_dir)
    images = ImageStore(config.images_dir, max_width=config.image_max_width)
    pusher = DevicePushService(persistence, timeout=config.push_timeout)

    store = SnapshotStore(persistence)
    store.restore()

    publisher = SnapshotPublisher(store, pusher)
    board = StationBoard(persistence, images, publisher)
    board.load()

    server = DisplayServer(config, store, images)
    if not server.start():
        return 1

    # =========================================================================
    # WAIT FOR A SHUTDOWN SIGNAL
    # =========================================================================

    stop_requested = threading.Event()

    def shutdown_handler(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
        stop_requested.set()

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    try:
        while not stop_requested.wait(1.0):
            pass
    finally:
        server.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
