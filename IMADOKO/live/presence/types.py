"""
Value types shared by the presence engine.

Payloads coming from the store use the wire field names of the session row
(host_lat, host_lng, guest_lat, guest_lng, status). They are narrowed once
into a SessionUpdate at the boundary; nothing past that point looks at raw
dicts.
"""

import enum
import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

HOST_FIELDS = ("host_lat", "host_lng")
GUEST_FIELDS = ("guest_lat", "guest_lng")
WIRE_FIELDS = HOST_FIELDS + GUEST_FIELDS + ("status",)


class Status(str, enum.Enum):
    ACTIVE = "active"
    STOPPED = "stopped"


class DisplayStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


class Role(str, enum.Enum):
    HOST = "host"
    GUEST = "guest"

    def owned_fields(self, coord) -> dict:
        """Fields this role is allowed to write for a fresh position."""
        if self is Role.HOST:
            return {"host_lat": coord.lat, "host_lng": coord.lng, "status": Status.ACTIVE.value}
        return {"guest_lat": coord.lat, "guest_lng": coord.lng}


class Coord(NamedTuple):
    lat: float
    lng: float

    @classmethod
    def from_pair(cls, lat, lng) -> Optional["Coord"]:
        """Build a coordinate, None if either half is missing.

        Raises ValueError for values that are not numbers or out of range.
        """
        if lat is None or lng is None:
            return None
        if isinstance(lat, bool) or isinstance(lng, bool):
            raise ValueError("coordinates must be numbers")
        lat, lng = float(lat), float(lng)
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"latitude out of range: {lat}")
        if not -180.0 <= lng <= 180.0:
            raise ValueError(f"longitude out of range: {lng}")
        return cls(lat, lng)


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class SessionUpdate:
    status: Optional[Status] = None
    host_coord: Optional[Coord] = None
    # UNSET: not part of this update. None: guest explicitly cleared.
    guest_coord: Union[Coord, None, _Unset] = UNSET

    @property
    def touches_guest(self) -> bool:
        return self.guest_coord is not UNSET

    @classmethod
    def from_payload(cls, payload: dict) -> "SessionUpdate":
        status = None
        raw_status = payload.get("status")
        if raw_status is not None:
            try:
                status = Status(raw_status)
            except ValueError:
                logger.warning("ignoring unknown session status %r", raw_status)

        host_coord = None
        if all(k in payload for k in HOST_FIELDS):
            try:
                host_coord = Coord.from_pair(payload["host_lat"], payload["host_lng"])
            except (TypeError, ValueError) as e:
                logger.warning("ignoring host coordinate: %s", e)

        guest_coord = UNSET
        if any(k in payload for k in GUEST_FIELDS):
            try:
                guest_coord = Coord.from_pair(payload.get("guest_lat"), payload.get("guest_lng"))
            except (TypeError, ValueError) as e:
                logger.warning("ignoring guest coordinate: %s", e)

        return cls(status=status, host_coord=host_coord, guest_coord=guest_coord)


@dataclass(frozen=True)
class SessionRecord:
    token: str
    status: Status = Status.ACTIVE
    host_coord: Optional[Coord] = None
    guest_coord: Optional[Coord] = None

    def to_payload(self) -> dict:
        host = self.host_coord or (None, None)
        guest = self.guest_coord or (None, None)
        return {
            "host_lat": host[0],
            "host_lng": host[1],
            "guest_lat": guest[0],
            "guest_lng": guest[1],
            "status": self.status.value,
        }

    @classmethod
    def from_payload(cls, token, payload: dict) -> "SessionRecord":
        update = SessionUpdate.from_payload(payload)
        return cls(
            token=token,
            status=update.status or Status.ACTIVE,
            host_coord=update.host_coord,
            guest_coord=update.guest_coord or None,
        )


@dataclass(frozen=True)
class SessionView:
    """What the rendering layer sees."""

    host_coord: Optional[Coord] = None
    guest_coord: Optional[Coord] = None
    status: DisplayStatus = DisplayStatus.PENDING
