"""
Application state: domain models, the published snapshot and its store.

The editable StationBoard lives in camerapositions.state.board; it is not
re-exported here because it depends on the storage package, which in
turn depends on these models.
"""

from .models import (
    DisplayLens,
    DisplayStation,
    EventConfig,
    Lens,
    PublishedSnapshot,
    Station,
    StationAssignment,
)
from .publisher import SnapshotPublisher, build_snapshot
from .snapshot_store import EMPTY_BODY, PublishedVersion, SnapshotStore

__all__ = [
    "DisplayLens",
    "DisplayStation",
    "EventConfig",
    "Lens",
    "PublishedSnapshot",
    "Station",
    "StationAssignment",
    "SnapshotPublisher",
    "build_snapshot",
    "EMPTY_BODY",
    "PublishedVersion",
    "SnapshotStore",
]
