"""
=============================================================================
STATION BOARD
=============================================================================

The editable side of the application: stations, the lens tray, events,
and the working assignments of the selected event. Every mutation that
changes what a display would show is persisted and then published.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         EDIT → PUBLISH                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   board.assign_operator(station_id, "Sam")                          │
    │       │                                                              │
    │       ├──► evict "Sam" from every other station                     │
    │       ├──► set operator on station_id                               │
    │       └──► publish()                                                │
    │              ├──► save event (weekends/<id>.json)                   │
    │              └──► SnapshotPublisher.publish()                       │
    │                     ├──► SnapshotStore swap (readers see it next)   │
    │                     └──► device push (background threads)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
INVARIANTS
=============================================================================

    - Station numbers are 1..N with no gaps, in list order.
    - An operator name sits on at most one station of an event.
    - A station's lens list never holds the same lens twice.
    - Deleting a lens removes it from every working assignment.

All operations run under one re-entrant lock, so edits from several
threads (CLI, tests, a future API) serialize cleanly. Readers of the
published snapshot never touch this lock.

=============================================================================
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from ..storage.images import ImageStore
from ..storage.persistence import JsonPersistence
from .models import EventConfig, Lens, PublishedSnapshot, Station, StationAssignment
from .publisher import SnapshotPublisher


logger = logging.getLogger(__name__)


DEFAULT_EVENT_NAME = "This Weekend"
DEFAULT_STATION_COUNT = 5


class UnknownEntityError(KeyError):
    """Raised when an operation names a station, lens or event that does not exist."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"Unknown {kind}: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


def next_sunday(now: Optional[datetime] = None) -> datetime:
    """Today if it is Sunday, otherwise the coming Sunday (same time of day)."""
    now = now or datetime.now(timezone.utc)
    return now + timedelta(days=(6 - now.weekday()) % 7)


class StationBoard:
    """
    Editable state store.

    Usage:
        board = StationBoard(persistence, images, publisher)
        board.load()
        lens = board.add_lens("24-70mm")
        board.assign_lens(board.stations[0].id, lens.id)
    """

    def __init__(
        self,
        persistence: JsonPersistence,
        images: ImageStore,
        publisher: SnapshotPublisher,
    ):
        self.persistence = persistence
        self.images = images
        self.publisher = publisher

        self.stations: List[Station] = []
        self.lenses: List[Lens] = []
        self.events: List[EventConfig] = []
        self.selected_event_id: Optional[str] = None
        self.assignments: List[StationAssignment] = []
        self.person_photos: Dict[str, str] = {}

        self._lock = threading.RLock()

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    @property
    def selected_event(self) -> Optional[EventConfig]:
        if self.selected_event_id is None:
            return None
        return next((e for e in self.events if e.id == self.selected_event_id), None)

    def station(self, station_id: str) -> Station:
        for station in self.stations:
            if station.id == station_id:
                return station
        raise UnknownEntityError("station", station_id)

    def lens(self, lens_id: str) -> Lens:
        for lens in self.lenses:
            if lens.id == lens_id:
                return lens
        raise UnknownEntityError("lens", lens_id)

    def assignment(self, station_id: str) -> StationAssignment:
        """The working assignment for a station (created on demand)."""
        for assignment in self.assignments:
            if assignment.station_id == station_id:
                return assignment
        self.station(station_id)
        assignment = StationAssignment(station_id=station_id)
        self.assignments.append(assignment)
        return assignment

    # =========================================================================
    # LOADING AND EVENTS
    # =========================================================================

    def load(self, now: Optional[datetime] = None) -> Optional[PublishedSnapshot]:
        """
        Load persisted state, seed defaults, and publish.

        Seeds, only when nothing is stored yet:
            - one event "This Weekend" dated next Sunday
            - five stations numbered 1..5
        """
        with self._lock:
            self.stations = self.persistence.load_stations()
            self.lenses = self.persistence.load_lenses()
            self.events = self.persistence.load_all_events()
            self.person_photos = self.persistence.load_person_photos()

            if not self.events:
                event = EventConfig(name=DEFAULT_EVENT_NAME, date=next_sunday(now))
                self.events.append(event)
                self.persistence.save_event(event)
                logger.info(f"Created default event dated {event.date:%Y-%m-%d}")

            if not self.stations:
                self.stations = [Station(number=i) for i in range(1, DEFAULT_STATION_COUNT + 1)]
                self.persistence.save_stations(self.stations)
                logger.info(f"Created {DEFAULT_STATION_COUNT} default stations")

            if self.selected_event_id is None and self.events:
                self.selected_event_id = self.events[0].id

            self._load_working_assignments()
            return self.publish()

    def select_event(self, event_id: str) -> Optional[PublishedSnapshot]:
        with self._lock:
            if not any(e.id == event_id for e in self.events):
                raise UnknownEntityError("event", event_id)
            self.selected_event_id = event_id
            self._load_working_assignments()
            return self.publish()

    def add_event(
        self,
        name: str,
        date: datetime,
        external_plan_id: Optional[str] = None,
    ) -> EventConfig:
        """
        Create an event; it becomes selected only if none is.

        A naive date is taken to be UTC, as format_date() does.
        """
        if date.tzinfo is None:
            date = date.replace(tzinfo=timezone.utc)

        with self._lock:
            event = EventConfig(name=name, date=date, external_plan_id=external_plan_id)
            self.events.append(event)
            self.events.sort(key=lambda e: e.date)
            self.persistence.save_event(event)

            if self.selected_event_id is None:
                self.selected_event_id = event.id
                self._load_working_assignments()
                self.publish()
            return event

    def _load_working_assignments(self) -> None:
        """Copy the selected event's assignments and add blanks for new stations."""
        event = self.selected_event
        if event is None:
            self.assignments = []
            return

        assignments = [
            StationAssignment(
                station_id=a.station_id,
                operator_name=a.operator_name,
                operator_external_id=a.operator_external_id,
                lens_ids=list(a.lens_ids),
            )
            for a in event.assignments
        ]
        present = {a.station_id for a in assignments}
        for station in self.stations:
            if station.id not in present:
                assignments.append(StationAssignment(station_id=station.id))
        self.assignments = assignments

    # =========================================================================
    # STATIONS
    # =========================================================================

    def add_station(self) -> Station:
        with self._lock:
            next_number = max((s.number for s in self.stations), default=0) + 1
            station = Station(number=next_number)
            self.stations.append(station)
            self.persistence.save_stations(self.stations)

            self.assignments.append(StationAssignment(station_id=station.id))
            self.publish()
            return station

    def remove_station(self, station_id: str) -> None:
        """Remove a station, renumber the rest 1..N, drop its assignment."""
        with self._lock:
            station = self.station(station_id)
            self.stations.remove(station)
            for index, remaining in enumerate(self.stations, start=1):
                remaining.number = index
            self.persistence.save_stations(self.stations)

            self.assignments = [a for a in self.assignments if a.station_id != station_id]
            self.publish()

    def update_station_label(self, station_id: str, label: Optional[str]) -> None:
        with self._lock:
            self.station(station_id).label = label or None
            self.persistence.save_stations(self.stations)
            self.publish()

    def set_station_photo(self, station_id: str, image_data: bytes) -> Optional[str]:
        """Replace the angle photo; the previous file is deleted."""
        with self._lock:
            station = self.station(station_id)
            if station.angle_photo_filename:
                self.images.delete(station.angle_photo_filename)
                station.angle_photo_filename = None

            filename = self.images.save(image_data)
            station.angle_photo_filename = filename
            self.persistence.save_stations(self.stations)
            self.publish()
            return filename

    def set_station_disabled(self, station_id: str, disabled: bool) -> None:
        with self._lock:
            self.station(station_id).disabled = disabled
            self.persistence.save_stations(self.stations)
            self.publish()

    # =========================================================================
    # LENS TRAY
    # =========================================================================

    def add_lens(self, name: str, image_data: Optional[bytes] = None) -> Lens:
        with self._lock:
            lens = Lens(name=name)
            if image_data is not None:
                lens.photo_filename = self.images.save(image_data)
            self.lenses.append(lens)
            self.persistence.save_lenses(self.lenses)
            return lens

    def update_lens(self, lens_id: str, name: str, image_data: Optional[bytes] = None) -> None:
        with self._lock:
            lens = self.lens(lens_id)
            lens.name = name
            if image_data is not None:
                if lens.photo_filename:
                    self.images.delete(lens.photo_filename)
                lens.photo_filename = self.images.save(image_data)
            self.persistence.save_lenses(self.lenses)
            self.publish()

    def duplicate_lens(self, lens_id: str) -> Lens:
        """Copy a lens under a new id, with its own copy of the photo."""
        with self._lock:
            original = self.lens(lens_id)
            copy = Lens(name=original.name)
            if original.photo_filename:
                data = self.images.load(original.photo_filename)
                if data is not None:
                    copy.photo_filename = self.images.save(data)
            self.lenses.append(copy)
            self.persistence.save_lenses(self.lenses)
            return copy

    def delete_lens(self, lens_id: str) -> None:
        """Delete a lens and strip it from every working assignment."""
        with self._lock:
            lens = self.lens(lens_id)
            if lens.photo_filename:
                self.images.delete(lens.photo_filename)
            self.lenses.remove(lens)
            self.persistence.save_lenses(self.lenses)

            for assignment in self.assignments:
                assignment.lens_ids = [i for i in assignment.lens_ids if i != lens_id]
            self.publish()

    # =========================================================================
    # ASSIGNMENTS
    # =========================================================================

    def assign_operator(
        self,
        station_id: str,
        name: str,
        external_id: Optional[str] = None,
    ) -> None:
        """Put an operator on a station, evicting them from any other."""
        with self._lock:
            target = self.assignment(station_id)

            for assignment in self.assignments:
                if assignment.operator_name == name:
                    assignment.clear_operator()

            target.operator_name = name
            target.operator_external_id = external_id
            self.publish()

    def remove_operator(self, station_id: str) -> None:
        with self._lock:
            self.assignment(station_id).clear_operator()
            self.publish()

    def assign_lens(self, station_id: str, lens_id: str) -> bool:
        """
        Add a lens to a station.

        Returns False (and publishes nothing) if it was already there.
        """
        with self._lock:
            self.lens(lens_id)
            assignment = self.assignment(station_id)
            if lens_id in assignment.lens_ids:
                return False
            assignment.lens_ids.append(lens_id)
            self.publish()
            return True

    def remove_lens(self, station_id: str, lens_id: str) -> None:
        with self._lock:
            assignment = self.assignment(station_id)
            assignment.lens_ids = [i for i in assignment.lens_ids if i != lens_id]
            self.publish()

    # =========================================================================
    # PERSON PHOTOS
    # =========================================================================

    def set_person_photo(self, name: str, image_data: bytes) -> Optional[str]:
        with self._lock:
            old = self.person_photos.get(name)
            if old:
                self.images.delete(old)

            filename = self.images.save(image_data)
            if filename is None:
                self.person_photos.pop(name, None)
            else:
                self.person_photos[name] = filename
            self.persistence.save_person_photos(self.person_photos)
            self.publish()
            return filename

    def remove_person_photo(self, name: str) -> None:
        with self._lock:
            filename = self.person_photos.pop(name, None)
            if filename:
                self.images.delete(filename)
            self.persistence.save_person_photos(self.person_photos)
            self.publish()

    # =========================================================================
    # PUBLISH
    # =========================================================================

    def publish(self) -> Optional[PublishedSnapshot]:
        """
        Save the selected event with the working assignments and publish.

        No-op returning None when no event is selected.
        """
        with self._lock:
            event = self.selected_event
            if event is None:
                return None

            event.assignments = [
                StationAssignment(
                    station_id=a.station_id,
                    operator_name=a.operator_name,
                    operator_external_id=a.operator_external_id,
                    lens_ids=list(a.lens_ids),
                )
                for a in self.assignments
            ]
            self.persistence.save_event(event)

            return self.publisher.publish(
                event,
                self.stations,
                self.lenses,
                self.assignments,
                self.person_photos,
            )
