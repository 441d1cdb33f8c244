"""
=============================================================================
SNAPSHOT PUBLISHER
=============================================================================

Turns editable state into a PublishedSnapshot and commits it.

    stations ─┐
    lenses ───┤                           ┌──► SnapshotStore.save_current()
    event ────┼──► build_snapshot() ──────┤
    assigns ──┤     (pure function)       └──► DevicePushService.push()
    photos ───┘                                 (fire-and-forget)

=============================================================================
RESOLUTION RULES
=============================================================================

For each station, in display order:

    1. Find its assignment; none means "no operator, no lenses".
    2. Resolve lens ids against the lens tray. Ids that no longer exist
       are dropped silently, order of the survivors is kept.
    3. Look up the operator's photo by name in the person-photo map.
    4. Copy number, label, angle photo and disabled flag as they are.

Identifiers never leave this module: the snapshot only carries what a
display needs to draw.

=============================================================================
"""

import logging
from typing import Dict, Iterable, List, Optional

from .models import (
    DisplayLens,
    DisplayStation,
    EventConfig,
    Lens,
    PublishedSnapshot,
    Station,
    StationAssignment,
)
from .snapshot_store import SnapshotStore


logger = logging.getLogger(__name__)


def build_snapshot(
    event: EventConfig,
    stations: Iterable[Station],
    lenses: Iterable[Lens],
    assignments: Iterable[StationAssignment],
    person_photos: Dict[str, str],
) -> PublishedSnapshot:
    """
    Build the display snapshot for an event. Pure: no I/O, no mutation.

    Args:
        event: Supplies the service name and date.
        stations: Stations in display order.
        lenses: The whole lens tray.
        assignments: Working assignments for the event.
        person_photos: Operator name → stored image filename.
    """
    lenses_by_id = {lens.id: lens for lens in lenses}

    # first assignment per station wins, matching lookup-by-station
    assignment_by_station: Dict[str, StationAssignment] = {}
    for assignment in assignments:
        assignment_by_station.setdefault(assignment.station_id, assignment)

    display_stations: List[DisplayStation] = []
    for station in stations:
        assignment = assignment_by_station.get(station.id)

        display_lenses = []
        operator_name: Optional[str] = None
        if assignment is not None:
            operator_name = assignment.operator_name
            for lens_id in assignment.lens_ids:
                lens = lenses_by_id.get(lens_id)
                if lens is not None:
                    display_lenses.append(DisplayLens(lens.name, lens.photo_filename))

        operator_photo = person_photos.get(operator_name) if operator_name else None

        display_stations.append(DisplayStation(
            number=station.number,
            label=station.label,
            angle_photo_filename=station.angle_photo_filename,
            operator_name=operator_name,
            operator_photo_filename=operator_photo,
            lenses=tuple(display_lenses),
            disabled=station.disabled,
        ))

    return PublishedSnapshot(
        event_name=event.name,
        event_date=event.date,
        stations=tuple(display_stations),
    )


class SnapshotPublisher:
    """
    Builds and commits snapshots; notifies devices afterwards.

    Args:
        store: Where the current snapshot lives.
        pusher: Optional object with push(snapshot), called after the
                store swap. It must not block.
    """

    def __init__(self, store: SnapshotStore, pusher=None):
        self.store = store
        self.pusher = pusher

    def publish(
        self,
        event: EventConfig,
        stations: Iterable[Station],
        lenses: Iterable[Lens],
        assignments: Iterable[StationAssignment],
        person_photos: Dict[str, str],
    ) -> PublishedSnapshot:
        snapshot = build_snapshot(event, stations, lenses, assignments, person_photos)
        self.store.save_current(snapshot)
        logger.info(f"Auto-published display for {event.name!r} ({len(snapshot.stations)} cameras)")

        if self.pusher is not None:
            self.pusher.push(snapshot)

        return snapshot
