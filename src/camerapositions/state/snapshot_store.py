"""
=============================================================================
SNAPSHOT STORE
=============================================================================

Holds the one "current" published snapshot that every polling client
reads. Single writer (the editing side), many readers (one thread per
HTTP connection).

=============================================================================
ATOMIC REFERENCE SWAP
=============================================================================

The snapshot and its serialized JSON travel together in one immutable
PublishedVersion object. Publishing builds a brand-new version and then
rebinds a single attribute:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   writer:  version = PublishedVersion(snapshot, body)   (private)   │
    │            self._current = version                 ← one rebind     │
    │                                                                      │
    │   reader:  version = self._current                 ← one load       │
    │            send(version.body)                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Rebinding an attribute is atomic under the interpreter, so a reader
gets either the old version or the new one, never a mix, and never
waits on the writer. Readers take no lock at all.

Writers are serialized by a lock so that two publishes cannot interleave
their "save to disk" steps out of order with the in-memory swap.

=============================================================================
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .models import PublishedSnapshot


logger = logging.getLogger(__name__)


EMPTY_BODY = b"{}"


def serialize_snapshot(snapshot: PublishedSnapshot) -> bytes:
    """The exact bytes served at /api/config for a snapshot."""
    return json.dumps(snapshot.to_dict(), ensure_ascii=False, sort_keys=True).encode("utf-8")


@dataclass(frozen=True)
class PublishedVersion:
    """One published state: the snapshot, its wire bytes, and a counter."""

    snapshot: Optional[PublishedSnapshot]
    body: bytes
    generation: int = 0


class SnapshotStore:
    """
    Current-snapshot holder with an optional on-disk mirror.

    Args:
        persistence: Object with save_published(snapshot) and
                     load_published(); typically a JsonPersistence.
                     None keeps everything in memory (tests).
    """

    def __init__(self, persistence=None):
        self._persistence = persistence
        self._write_lock = threading.Lock()
        self._current = PublishedVersion(snapshot=None, body=EMPTY_BODY)

    @property
    def current(self) -> PublishedVersion:
        return self._current

    def load_current(self) -> Optional[PublishedSnapshot]:
        """The current snapshot, or None before the first publish."""
        return self._current.snapshot

    def current_body(self) -> bytes:
        """Serialized current snapshot, or b"{}" when there is none."""
        return self._current.body

    def save_current(self, snapshot: PublishedSnapshot) -> PublishedVersion:
        """
        Replace the current snapshot wholesale.

        Serialization happens before the swap, so readers never observe a
        snapshot whose body is still being built.
        """
        body = serialize_snapshot(snapshot)

        with self._write_lock:
            version = PublishedVersion(
                snapshot=snapshot,
                body=body,
                generation=self._current.generation + 1,
            )
            self._current = version

            if self._persistence is not None:
                self._persistence.save_published(snapshot)

        logger.debug(f"Published snapshot generation {version.generation} ({len(body)} bytes)")
        return version

    def restore(self) -> bool:
        """
        Seed the store from the persisted snapshot, if any.

        Lets the display show the last published state before the editing
        side has loaded. Returns True if a snapshot was restored.
        """
        if self._persistence is None:
            return False

        snapshot = self._persistence.load_published()
        if snapshot is None:
            return False

        with self._write_lock:
            self._current = PublishedVersion(
                snapshot=snapshot,
                body=serialize_snapshot(snapshot),
                generation=self._current.generation + 1,
            )
        logger.info("Restored last published snapshot from disk")
        return True
