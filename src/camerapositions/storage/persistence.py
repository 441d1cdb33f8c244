"""
=============================================================================
JSON PERSISTENCE
=============================================================================

Plain JSON files under the data directory:

    <data_dir>/
    ├── cameras.json             list of Station
    ├── lenses.json              list of Lens
    ├── weekends/<id>.json       one EventConfig per file
    ├── person-photos.json       operator name → image filename
    ├── published-display.json   last PublishedSnapshot
    └── devices.json             list of DeviceLink

Writes go to "<file>.tmp" and are moved into place with os.replace(), so
a crash mid-write leaves the previous version intact. Output is indented
with sorted keys to keep diffs of the data directory readable.

Failures never propagate: an unreadable file loads as "absent" and a
failed write is logged. The in-memory state stays authoritative.

=============================================================================
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..state.models import EventConfig, Lens, PublishedSnapshot, Station


logger = logging.getLogger(__name__)


class JsonPersistence:
    """
    Loads and saves every piece of persisted state.

    Usage:
        persistence = JsonPersistence(config.data_dir)
        stations = persistence.load_stations()
        persistence.save_stations(stations)
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.events_dir = self.data_dir / "weekends"
        self._create_directories()

    def _create_directories(self) -> None:
        for directory in (self.data_dir, self.events_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"Failed to create {directory}: {e}")

    # =========================================================================
    # STATIONS AND LENSES
    # =========================================================================

    def load_stations(self) -> List[Station]:
        data = self._load(self.data_dir / "cameras.json")
        return [Station.from_dict(item) for item in data or []]

    def save_stations(self, stations: List[Station]) -> None:
        self._save([s.to_dict() for s in stations], self.data_dir / "cameras.json")

    def load_lenses(self) -> List[Lens]:
        data = self._load(self.data_dir / "lenses.json")
        return [Lens.from_dict(item) for item in data or []]

    def save_lenses(self, lenses: List[Lens]) -> None:
        self._save([l.to_dict() for l in lenses], self.data_dir / "lenses.json")

    # =========================================================================
    # EVENTS
    # =========================================================================

    def load_event(self, event_id: str) -> Optional[EventConfig]:
        data = self._load(self.events_dir / f"{event_id}.json")
        return EventConfig.from_dict(data) if data else None

    def save_event(self, event: EventConfig) -> None:
        self._save(event.to_dict(), self.events_dir / f"{event.id}.json")

    def load_all_events(self) -> List[EventConfig]:
        """Every stored event, oldest date first."""
        events = []
        for path in sorted(self.events_dir.glob("*.json")):
            data = self._load(path)
            if not data:
                continue
            try:
                events.append(EventConfig.from_dict(data))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed event file {path.name}: {e}")
        return sorted(events, key=lambda event: event.date)

    # =========================================================================
    # PERSON PHOTOS, PUBLISHED SNAPSHOT, DEVICES
    # =========================================================================

    def load_person_photos(self) -> Dict[str, str]:
        return dict(self._load(self.data_dir / "person-photos.json") or {})

    def save_person_photos(self, photos: Dict[str, str]) -> None:
        self._save(photos, self.data_dir / "person-photos.json")

    def load_published(self) -> Optional[PublishedSnapshot]:
        data = self._load(self.data_dir / "published-display.json")
        if not data:
            return None
        try:
            return PublishedSnapshot.from_dict(data)
        except (KeyError, ValueError) as e:
            logger.warning(f"Ignoring malformed published-display.json: {e}")
            return None

    def save_published(self, snapshot: PublishedSnapshot) -> None:
        self._save(snapshot.to_dict(), self.data_dir / "published-display.json")

    def load_devices(self) -> List[Dict[str, Any]]:
        return list(self._load(self.data_dir / "devices.json") or [])

    def save_devices(self, devices: List[Dict[str, Any]]) -> None:
        self._save(devices, self.data_dir / "devices.json")

    # =========================================================================
    # FILE HELPERS
    # =========================================================================

    def _load(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load {path.name}: {e}")
            return None

    def _save(self, value: Any, path: Path) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, sort_keys=True, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to save {path.name}: {e}")
