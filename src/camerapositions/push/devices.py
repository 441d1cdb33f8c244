"""
=============================================================================
DEVICE PUSH
=============================================================================

Small embedded displays (one OLED per camera) show the operator and the
first lens of their station. They cannot poll, so every publish pushes
to them:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   publish()                                                          │
    │      └──► DevicePushService.push(snapshot)                           │
    │              │                                                       │
    │              ├──► thread: POST http://10.0.0.51/api/display          │
    │              │        {"operator": "Sam", "lens": "24-70"}           │
    │              │                                                       │
    │              └──► thread: POST http://10.0.0.52/api/display          │
    │                       {"operator": "", "lens": ""}                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each POST runs on its own daemon thread with a short timeout. Nothing
waits for the result, nothing retries, and failures are only logged:
the next publish carries the full state again.

A device linked to a station number that is not in the snapshot gets
nothing.

=============================================================================
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ..state.models import PublishedSnapshot


logger = logging.getLogger(__name__)


@dataclass
class DeviceLink:
    """One physical display, bound to a station number."""

    station_number: int
    ip_address: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()).upper())

    @property
    def url(self) -> str:
        return f"http://{self.ip_address}/api/display"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "cameraNumber": self.station_number, "ipAddress": self.ip_address}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeviceLink":
        return cls(
            id=data["id"],
            station_number=int(data["cameraNumber"]),
            ip_address=data["ipAddress"],
        )


class DevicePushService:
    """
    Registry of device links plus the fire-and-forget notifier.

    Args:
        persistence: Object with load_devices()/save_devices(list[dict]),
                     typically a JsonPersistence. None = memory only.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, persistence=None, timeout: float = 3.0):
        self._persistence = persistence
        self.timeout = timeout
        self._links: List[DeviceLink] = []
        self._lock = threading.Lock()

        if persistence is not None:
            self._load()

    def _load(self) -> None:
        links = []
        for item in self._persistence.load_devices():
            try:
                links.append(DeviceLink.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed device entry: {e}")
        self._links = links

    def _save(self) -> None:
        if self._persistence is not None:
            self._persistence.save_devices([link.to_dict() for link in self._links])

    # =========================================================================
    # REGISTRY
    # =========================================================================

    @property
    def links(self) -> List[DeviceLink]:
        with self._lock:
            return list(self._links)

    def add(self, station_number: int, ip_address: str) -> DeviceLink:
        link = DeviceLink(station_number=station_number, ip_address=ip_address)
        with self._lock:
            self._links.append(link)
            self._save()
        return link

    def remove(self, link_id: str) -> bool:
        with self._lock:
            before = len(self._links)
            self._links = [link for link in self._links if link.id != link_id]
            removed = len(self._links) != before
            if removed:
                self._save()
        return removed

    def update(self, link: DeviceLink) -> bool:
        with self._lock:
            for index, existing in enumerate(self._links):
                if existing.id == link.id:
                    self._links[index] = link
                    self._save()
                    return True
        return False

    # =========================================================================
    # PUSH
    # =========================================================================

    def push(self, snapshot: PublishedSnapshot) -> List[threading.Thread]:
        """
        Send each linked device its station's operator and first lens.

        Returns the started threads; callers normally ignore them.
        """
        threads = []
        for link in self.links:
            station = snapshot.station(link.station_number)
            if station is None:
                continue

            payload = {
                "operator": station.operator_name or "",
                "lens": station.lenses[0].name if station.lenses else "",
            }
            thread = threading.Thread(
                target=self.send,
                args=(link, payload),
                name=f"device-push-{link.ip_address}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)
        return threads

    def send(self, link: DeviceLink, payload: Dict[str, str]) -> Optional[int]:
        """
        POST one payload. Never raises.

        Returns the HTTP status, or None if the device was unreachable.
        """
        try:
            resp = requests.post(link.url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not reach device at {link.ip_address}: {e}")
            return None

        if resp.status_code == 200:
            logger.info(
                f"Device {link.ip_address} cam {link.station_number} updated: "
                f"op={payload['operator']!r} lens={payload['lens']!r}"
            )
        else:
            logger.warning(f"Device at {link.ip_address} returned HTTP {resp.status_code}")
        return resp.status_code
