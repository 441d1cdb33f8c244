"""
Unit tests for StationBoard, the editable side of the application.
"""

from datetime import datetime, timezone

import pytest

from camerapositions.state.board import (
    DEFAULT_EVENT_NAME,
    StationBoard,
    UnknownEntityError,
    next_sunday,
)
from camerapositions.state.publisher import SnapshotPublisher
from camerapositions.state.snapshot_store import SnapshotStore

from conftest import make_png


MONDAY = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)
SUNDAY = datetime(2026, 10, 25, 10, 0, tzinfo=timezone.utc)


class RecordingPusher:
    def __init__(self):
        self.pushed = []

    def push(self, snapshot):
        self.pushed.append(snapshot)


@pytest.fixture
def board_store() -> SnapshotStore:
    return SnapshotStore()


@pytest.fixture
def pusher() -> RecordingPusher:
    return RecordingPusher()


@pytest.fixture
def board(persistence, images, board_store, pusher) -> StationBoard:
    """A loaded board with the default event and five stations."""
    b = StationBoard(persistence, images, SnapshotPublisher(board_store, pusher))
    b.load(now=MONDAY)
    return b


def generation(store: SnapshotStore) -> int:
    return store.current.generation


class TestNextSunday:
    """Tests for the default event date."""

    def test_weekday_moves_forward(self):
        """Monday rolls forward to the coming Sunday."""
        assert next_sunday(MONDAY).date() == SUNDAY.date()

    def test_sunday_is_today(self):
        """On a Sunday the date does not move."""
        assert next_sunday(SUNDAY) == SUNDAY


class TestLoad:
    """Tests for StationBoard.load()."""

    def test_seeds_defaults(self, board, board_store):
        """An empty data directory gets one event and five stations."""
        assert [e.name for e in board.events] == [DEFAULT_EVENT_NAME]
        assert board.events[0].date.date() == SUNDAY.date()
        assert [s.number for s in board.stations] == [1, 2, 3, 4, 5]
        assert board.selected_event is board.events[0]

        snapshot = board_store.load_current()
        assert snapshot.event_name == DEFAULT_EVENT_NAME
        assert len(snapshot.stations) == 5

    def test_reload_keeps_state(self, board, persistence, images):
        """A second board over the same directory does not re-seed."""
        station_id = board.stations[0].id
        board.assign_operator(station_id, "Sam")

        store = SnapshotStore()
        reloaded = StationBoard(persistence, images, SnapshotPublisher(store))
        reloaded.load(now=MONDAY)

        assert len(reloaded.events) == 1
        assert [s.id for s in reloaded.stations] == [s.id for s in board.stations]
        assert reloaded.assignment(station_id).operator_name == "Sam"
        assert store.load_current().station(1).operator_name == "Sam"

    def test_load_pushes(self, board, pusher):
        """Publishing on load also notifies devices."""
        assert len(pusher.pushed) == 1


class TestEvents:
    """Tests for event selection and creation."""

    def test_add_event_keeps_selection(self, board):
        """A new event does not steal the selection."""
        selected = board.selected_event_id
        board.add_event("Christmas Eve", datetime(2026, 12, 24, tzinfo=timezone.utc))

        assert board.selected_event_id == selected
        assert len(board.events) == 2

    def test_events_sorted_by_date(self, board):
        """Events stay ordered by date."""
        board.add_event("Earlier", datetime(2026, 1, 4, tzinfo=timezone.utc))
        assert board.events[0].name == "Earlier"

    def test_add_event_with_naive_date(self, board, persistence):
        """A naive date is stored as UTC and the event is persisted."""
        event = board.add_event("Naive", datetime(2026, 11, 1, 9, 0))

        assert event.date == datetime(2026, 11, 1, 9, 0, tzinfo=timezone.utc)
        assert [e.name for e in board.events] == [DEFAULT_EVENT_NAME, "Naive"]
        assert len(persistence.load_all_events()) == 2

    def test_select_event_swaps_assignments(self, board, board_store):
        """Each event keeps its own assignments."""
        station_id = board.stations[0].id
        board.assign_operator(station_id, "Sam")

        other = board.add_event("Other", datetime(2026, 11, 1, tzinfo=timezone.utc))
        board.select_event(other.id)

        assert board.assignment(station_id).operator_name is None
        assert board_store.load_current().event_name == "Other"

        board.select_event(board.events[0].id)
        assert board.assignment(station_id).operator_name == "Sam"

    def test_select_unknown_event(self, board):
        """Selecting a missing event raises."""
        with pytest.raises(UnknownEntityError):
            board.select_event("nope")


class TestStations:
    """Tests for station editing."""

    def test_add_station_numbers_next(self, board, board_store):
        """New stations take max + 1 and are published."""
        station = board.add_station()

        assert station.number == 6
        assert board_store.load_current().station(6) is not None

    def test_remove_station_renumbers(self, board, board_store):
        """Removing a station closes the gap and keeps the order of the rest."""
        for station, label in zip(board.stations[:3], ["Wide", "Pulpit", "Crowd"]):
            board.update_station_label(station.id, label)

        removed = board.stations[1]
        board.remove_station(removed.id)

        assert [s.number for s in board.stations] == [1, 2, 3, 4]
        assert all(a.station_id != removed.id for a in board.assignments)

        published = board_store.load_current().stations
        assert len(published) == 4
        assert [(s.number, s.label) for s in published[:2]] == [(1, "Wide"), (2, "Crowd")]
        assert all(s.label != "Pulpit" for s in published)

    def test_update_label(self, board, board_store):
        """Labels are published; an empty label clears it."""
        station_id = board.stations[0].id
        board.update_station_label(station_id, "Wide")
        assert board_store.load_current().station(1).label == "Wide"

        board.update_station_label(station_id, "")
        assert board_store.load_current().station(1).label is None

    def test_set_photo_replaces_old_file(self, board, images):
        """A new angle photo deletes the previous one."""
        station_id = board.stations[0].id
        first = board.set_station_photo(station_id, make_png())
        second = board.set_station_photo(station_id, make_png(color=(0, 0, 255)))

        assert images.load(first) is None
        assert images.load(second) is not None
        assert board.station(station_id).angle_photo_filename == second

    def test_disable_station(self, board, board_store):
        """Disabled stations are flagged in the snapshot."""
        board.set_station_disabled(board.stations[2].id, True)
        assert board_store.load_current().station(3).disabled is True

    def test_unknown_station(self, board):
        """Operations on a missing station raise UnknownEntityError."""
        with pytest.raises(UnknownEntityError) as exc_info:
            board.update_station_label("missing", "x")
        assert exc_info.value.kind == "station"


class TestLenses:
    """Tests for the lens tray."""

    def test_add_lens_does_not_publish(self, board, board_store):
        """Adding to the tray changes nothing on the display."""
        before = generation(board_store)
        board.add_lens("24-70mm")
        assert generation(board_store) == before

    def test_assign_lens_is_idempotent(self, board, board_store):
        """Assigning the same lens twice publishes once."""
        lens = board.add_lens("24-70mm")
        station_id = board.stations[0].id

        assert board.assign_lens(station_id, lens.id) is True
        after_first = generation(board_store)
        assert board.assign_lens(station_id, lens.id) is False

        assert generation(board_store) == after_first
        assert board.assignment(station_id).lens_ids == [lens.id]

    def test_assign_unknown_lens(self, board):
        """Unknown lens ids are rejected."""
        with pytest.raises(UnknownEntityError):
            board.assign_lens(board.stations[0].id, "nope")

    def test_update_lens_publishes_name(self, board, board_store):
        """Renaming an assigned lens shows on the display."""
        lens = board.add_lens("24-70mm")
        board.assign_lens(board.stations[0].id, lens.id)
        board.update_lens(lens.id, "24-70mm f/2.8")

        assert board_store.load_current().station(1).lenses[0].name == "24-70mm f/2.8"

    def test_duplicate_copies_photo(self, board, images):
        """A duplicate gets a new id and its own image file."""
        lens = board.add_lens("Zoom", make_png())
        copy = board.duplicate_lens(lens.id)

        assert copy.id != lens.id
        assert copy.name == "Zoom"
        assert copy.photo_filename != lens.photo_filename
        assert images.load(copy.photo_filename) == images.load(lens.photo_filename)

    def test_delete_lens_cascades(self, board, board_store):
        """Deleting a lens removes it from every station."""
        lens = board.add_lens("Prime")
        for station in board.stations[:2]:
            board.assign_lens(station.id, lens.id)

        board.delete_lens(lens.id)

        assert all(lens.id not in a.lens_ids for a in board.assignments)
        assert board_store.load_current().station(1).lenses == ()

    def test_remove_lens(self, board):
        """remove_lens drops one lens from one station."""
        a = board.add_lens("A")
        b = board.add_lens("B")
        station_id = board.stations[0].id
        board.assign_lens(station_id, a.id)
        board.assign_lens(station_id, b.id)

        board.remove_lens(station_id, a.id)
        assert board.assignment(station_id).lens_ids == [b.id]


class TestOperators:
    """Tests for operator assignment."""

    def test_operator_is_exclusive(self, board, board_store):
        """Assigning an operator elsewhere evicts them from their old station."""
        first, second = board.stations[0].id, board.stations[1].id
        board.assign_operator(first, "Sam", external_id="42")
        board.assign_operator(second, "Sam")

        assert board.assignment(first).operator_name is None
        assert board.assignment(first).operator_external_id is None
        assert board.assignment(second).operator_name == "Sam"

        snapshot = board_store.load_current()
        assert snapshot.station(1).operator_name is None
        assert snapshot.station(2).operator_name == "Sam"

    def test_remove_operator(self, board):
        """remove_operator clears name and external id."""
        station_id = board.stations[0].id
        board.assign_operator(station_id, "Ana", external_id="7")
        board.remove_operator(station_id)

        assignment = board.assignment(station_id)
        assert assignment.operator_name is None
        assert assignment.operator_external_id is None

    def test_person_photo_in_snapshot(self, board, board_store, images):
        """An operator's photo is published alongside their name."""
        board.assign_operator(board.stations[0].id, "Sam")
        first = board.set_person_photo("Sam", make_png())
        assert board_store.load_current().station(1).operator_photo_filename == first

        second = board.set_person_photo("Sam", make_png(color=(1, 2, 3)))
        assert images.load(first) is None
        assert board_store.load_current().station(1).operator_photo_filename == second

    def test_remove_person_photo(self, board, board_store, images):
        """Removing the photo deletes the file and unpublishes it."""
        board.assign_operator(board.stations[0].id, "Sam")
        filename = board.set_person_photo("Sam", make_png())
        board.remove_person_photo("Sam")

        assert images.load(filename) is None
        assert board_store.load_current().station(1).operator_photo_filename is None
