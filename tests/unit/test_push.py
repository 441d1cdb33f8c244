"""
Unit tests for device links and the fire-and-forget push.
"""

import requests

from camerapositions.push import devices
from camerapositions.push.devices import DeviceLink, DevicePushService


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


class RecordingPost:
    """Replaces requests.post; records calls and returns a canned status."""

    def __init__(self, status_code: int = 200, error: Exception = None):
        self.calls = []
        self.status_code = status_code
        self.error = error

    def __call__(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status_code)


def join_all(threads):
    for thread in threads:
        thread.join(timeout=5.0)


class TestDeviceLink:
    """Tests for DeviceLink."""

    def test_url(self):
        """Devices are addressed at /api/display on their IP."""
        link = DeviceLink(station_number=1, ip_address="10.0.0.51")
        assert link.url == "http://10.0.0.51/api/display"

    def test_dict_round_trip(self):
        """Links persist with cameraNumber and ipAddress keys."""
        link = DeviceLink(station_number=2, ip_address="10.0.0.52", id="D2")

        assert link.to_dict() == {"id": "D2", "cameraNumber": 2, "ipAddress": "10.0.0.52"}
        assert DeviceLink.from_dict(link.to_dict()) == link


class TestDeviceRegistry:
    """Tests for link management."""

    def test_add_remove_update(self):
        """Links can be added, edited and removed."""
        service = DevicePushService()
        link = service.add(1, "10.0.0.51")
        assert service.links == [link]

        edited = DeviceLink(station_number=3, ip_address="10.0.0.99", id=link.id)
        assert service.update(edited) is True
        assert service.links[0].station_number == 3

        assert service.remove(link.id) is True
        assert service.remove(link.id) is False
        assert service.links == []

    def test_update_unknown(self):
        """Updating a link that does not exist reports False."""
        service = DevicePushService()
        assert service.update(DeviceLink(station_number=1, ip_address="x", id="nope")) is False

    def test_links_persist(self, persistence):
        """Links are saved and reloaded through persistence."""
        DevicePushService(persistence).add(4, "10.0.0.54")

        reloaded = DevicePushService(persistence)
        assert [(l.station_number, l.ip_address) for l in reloaded.links] == [(4, "10.0.0.54")]

    def test_malformed_entries_skipped(self, persistence):
        """Broken stored entries are ignored on load."""
        persistence.save_devices([{"id": "A"}, {"id": "B", "cameraNumber": 1, "ipAddress": "h"}])

        service = DevicePushService(persistence)
        assert [l.id for l in service.links] == ["B"]


class TestPush:
    """Tests for DevicePushService.push()."""

    def test_payload_per_station(self, monkeypatch, sample_snapshot):
        """Each device gets its station's operator and first lens."""
        post = RecordingPost()
        monkeypatch.setattr(devices.requests, "post", post)

        service = DevicePushService(timeout=3.0)
        service.add(1, "10.0.0.51")
        service.add(2, "10.0.0.52")
        join_all(service.push(sample_snapshot))

        by_url = {call["url"]: call for call in post.calls}
        assert by_url["http://10.0.0.51/api/display"]["json"] == {"operator": "Sam", "lens": "24-70mm"}
        assert by_url["http://10.0.0.52/api/display"]["json"] == {"operator": "", "lens": ""}
        assert all(call["timeout"] == 3.0 for call in post.calls)

    def test_unknown_station_skipped(self, monkeypatch, sample_snapshot):
        """Devices bound to a station not in the snapshot get nothing."""
        post = RecordingPost()
        monkeypatch.setattr(devices.requests, "post", post)

        service = DevicePushService()
        service.add(9, "10.0.0.59")

        assert service.push(sample_snapshot) == []
        assert post.calls == []

    def test_threads_are_daemons(self, monkeypatch, sample_snapshot):
        """Pushes never keep the process alive."""
        monkeypatch.setattr(devices.requests, "post", RecordingPost())

        service = DevicePushService()
        service.add(1, "10.0.0.51")
        threads = service.push(sample_snapshot)
        join_all(threads)

        assert threads and all(t.daemon for t in threads)

    def test_send_unreachable(self, monkeypatch):
        """Connection errors are logged and reported as None."""
        error = requests.exceptions.ConnectTimeout("timed out")
        monkeypatch.setattr(devices.requests, "post", RecordingPost(error=error))

        service = DevicePushService()
        link = DeviceLink(station_number=1, ip_address="10.0.0.51")
        assert service.send(link, {"operator": "", "lens": ""}) is None

    def test_send_non_200(self, monkeypatch):
        """Non-200 answers are returned, not raised."""
        monkeypatch.setattr(devices.requests, "post", RecordingPost(status_code=500))

        service = DevicePushService()
        link = DeviceLink(station_number=1, ip_address="10.0.0.51")
        assert service.send(link, {"operator": "Sam", "lens": ""}) == 500
