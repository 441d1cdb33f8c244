"""
=============================================================================
DOMAIN MODELS
=============================================================================

Editable entities (mutable dataclasses, owned by StationBoard):

    Station            one physical camera position, numbered 1..N
    Lens               a lens in the shared tray
    StationAssignment  who operates a station and which lenses it carries
    EventConfig        one service/event and its assignments

Published entities (frozen, shared with every server thread):

    PublishedSnapshot  what the room display and the devices see
    DisplayStation     one station, ids resolved away
    DisplayLens        one lens, ids resolved away

=============================================================================
JSON SHAPES
=============================================================================

Persisted and published JSON uses camelCase keys; optional fields that
are None are omitted rather than written as null. Dates are ISO-8601 in
UTC with second precision: "2026-02-22T15:00:00Z".

    {"serviceName": "This Weekend",
     "serviceDate": "2026-02-22T15:00:00Z",
     "cameras": [{"number": 1, "label": "Wide",
                  "operatorName": "Sam",
                  "lenses": [{"name": "24-70"}]}]}

=============================================================================
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def new_id() -> str:
    return str(uuid.uuid4()).upper()


def format_date(value: datetime) -> str:
    """Render an aware datetime as "YYYY-MM-DDTHH:MM:SSZ" in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(ISO_FORMAT)


def parse_date(text: str) -> datetime:
    """Inverse of format_date; also accepts "+00:00" style offsets."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


# =============================================================================
# EDITABLE ENTITIES
# =============================================================================

@dataclass
class Station:
    """A camera station. Numbers stay contiguous from 1 in display order."""

    number: int
    id: str = field(default_factory=new_id)
    label: Optional[str] = None
    angle_photo_filename: Optional[str] = None
    disabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = _compact({
            "id": self.id,
            "number": self.number,
            "label": self.label,
            "anglePhotoFilename": self.angle_photo_filename,
        })
        if self.disabled:
            data["disabled"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Station":
        return cls(
            id=data["id"],
            number=int(data["number"]),
            label=data.get("label"),
            angle_photo_filename=data.get("anglePhotoFilename"),
            disabled=bool(data.get("disabled", False)),
        )


@dataclass
class Lens:
    """A lens in the tray, assignable to any number of stations."""

    name: str
    id: str = field(default_factory=new_id)
    photo_filename: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "name": self.name,
            "photoFilename": self.photo_filename,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lens":
        return cls(
            id=data["id"],
            name=data["name"],
            photo_filename=data.get("photoFilename"),
        )


@dataclass
class StationAssignment:
    """
    Operator and lenses for one station within one event.

    lens_ids is ordered and never holds the same id twice; an operator
    name appears on at most one assignment per event. StationBoard
    enforces both.
    """

    station_id: str
    operator_name: Optional[str] = None
    operator_external_id: Optional[str] = None
    lens_ids: List[str] = field(default_factory=list)

    def clear_operator(self) -> None:
        self.operator_name = None
        self.operator_external_id = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "cameraPositionId": self.station_id,
            "operatorName": self.operator_name,
            "operatorExternalId": self.operator_external_id,
            "lensIds": list(self.lens_ids),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StationAssignment":
        return cls(
            station_id=data["cameraPositionId"],
            operator_name=data.get("operatorName"),
            operator_external_id=data.get("operatorExternalId"),
            lens_ids=list(data.get("lensIds", [])),
        )


@dataclass
class EventConfig:
    """One service/event ("This Weekend") and its saved assignments."""

    name: str
    date: datetime
    id: str = field(default_factory=new_id)
    external_plan_id: Optional[str] = None
    assignments: List[StationAssignment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "serviceName": self.name,
            "serviceDate": format_date(self.date),
            "externalPlanId": self.external_plan_id,
            "assignments": [a.to_dict() for a in self.assignments],
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventConfig":
        return cls(
            id=data["id"],
            name=data["serviceName"],
            date=parse_date(data["serviceDate"]),
            external_plan_id=data.get("externalPlanId"),
            assignments=[StationAssignment.from_dict(a) for a in data.get("assignments", [])],
        )


# =============================================================================
# PUBLISHED SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class DisplayLens:
    name: str
    photo_filename: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"name": self.name, "photoFilename": self.photo_filename})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayLens":
        return cls(name=data["name"], photo_filename=data.get("photoFilename"))


@dataclass(frozen=True)
class DisplayStation:
    """One station as the display renders it. Carries no identifiers."""

    number: int
    label: Optional[str] = None
    angle_photo_filename: Optional[str] = None
    operator_name: Optional[str] = None
    operator_photo_filename: Optional[str] = None
    lenses: Tuple[DisplayLens, ...] = ()
    disabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = _compact({
            "number": self.number,
            "label": self.label,
            "anglePhotoFilename": self.angle_photo_filename,
            "operatorName": self.operator_name,
            "operatorPhotoFilename": self.operator_photo_filename,
        })
        data["lenses"] = [lens.to_dict() for lens in self.lenses]
        if self.disabled:
            data["disabled"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayStation":
        return cls(
            number=int(data["number"]),
            label=data.get("label"),
            angle_photo_filename=data.get("anglePhotoFilename"),
            operator_name=data.get("operatorName"),
            operator_photo_filename=data.get("operatorPhotoFilename"),
            lenses=tuple(DisplayLens.from_dict(l) for l in data.get("lenses", [])),
            disabled=bool(data.get("disabled", False)),
        )


@dataclass(frozen=True)
class PublishedSnapshot:
    """
    The complete display state at one instant.

    Rebuilt from scratch on every edit and never patched, so a reader
    holding a reference always sees one consistent event.
    """

    event_name: str
    event_date: datetime
    stations: Tuple[DisplayStation, ...] = ()

    def station(self, number: int) -> Optional[DisplayStation]:
        for station in self.stations:
            if station.number == number:
                return station
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "serviceName": self.event_name,
            "serviceDate": format_date(self.event_date),
            "cameras": [s.to_dict() for s in self.stations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PublishedSnapshot":
        return cls(
            event_name=data["serviceName"],
            event_date=parse_date(data["serviceDate"]),
            stations=tuple(DisplayStation.from_dict(s) for s in data.get("cameras", [])),
        )
