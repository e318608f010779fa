"""
Chat Data Model
===============

Messages, modes, payloads and the normalized response returned by the
dispatcher.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union


class Sender(Enum):
    """Who produced a message."""
    USER = "user"
    ASSISTANT = "assistant"


class Mode(Enum):
    """Interaction modes restricting the response shape."""
    UNSET = "unset"
    STANDARD = "standard"
    VISUAL = "visual"
    DEEP = "deep"

    @property
    def title(self) -> str:
        return MODE_TITLES[self]

    @classmethod
    def parse(cls, value: Union["Mode", str, None]) -> "Mode":
        """Parse a mode from an enum member or its string value.

        ``None``, the empty string and the front-end's ``"default"`` all map
        to ``UNSET``. Unknown strings raise ``ValueError``.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNSET
        normalized = str(value).strip().lower()
        if normalized in ("", "default"):
            return cls.UNSET
        return cls(normalized)


MODE_TITLES = {
    Mode.UNSET: "FloatChat",
    Mode.STANDARD: "Standard Query",
    Mode.VISUAL: "Visual Discovery",
    Mode.DEEP: "Deep Search",
}


class PayloadKind(Enum):
    """Category of content a response carries."""
    TEXT = "text"
    SERIES = "series"
    GEO = "geo"


@dataclass(frozen=True)
class Message:
    """A chat message. Never mutated after creation."""
    sender: Sender
    text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Build a message from its wire form.

        The front-end labels assistant messages ``"ai"``; anything other than
        ``"user"`` is treated as the assistant.
        """
        sender = Sender.USER if data.get("sender") == "user" else Sender.ASSISTANT
        text = data.get("text")
        if not isinstance(text, str):
            raise ValueError("Message text must be a string")

        raw = data.get("timestamp")
        try:
            if isinstance(raw, (int, float)):
                # JavaScript timestamps are in milliseconds
                timestamp = datetime.fromtimestamp(raw / 1000.0, timezone.utc)
            elif isinstance(raw, str):
                timestamp = datetime.fromisoformat(raw)
            else:
                timestamp = datetime.now(timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Invalid message timestamp: {raw!r}") from e

        return cls(sender=sender, text=text, timestamp=timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender.value,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class SeriesPayload:
    """Chart-ready records sharing an independent variable."""
    title: str
    x_key: str
    records: Tuple[Mapping[str, float], ...]

    def __post_init__(self):
        object.__setattr__(self, "records", tuple(self.records))
        if not self.records:
            raise ValueError("Series payload needs at least one record")
        for record in self.records:
            if self.x_key not in record:
                raise ValueError(f"Series record missing independent variable '{self.x_key}'")
        if not self.y_keys:
            raise ValueError("Series payload needs at least one dependent variable")

    @property
    def y_keys(self) -> Tuple[str, ...]:
        """Dependent variable names, in the order of the first record."""
        return tuple(key for key in self.records[0] if key != self.x_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "x_key": self.x_key,
            "y_keys": list(self.y_keys),
            "records": [dict(record) for record in self.records],
        }


@dataclass(frozen=True)
class GeoPoint:
    """A located record with auxiliary attributes."""
    lat: float
    lon: float
    name: str = ""
    status: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "name": self.name,
            "status": self.status,
            **dict(self.attributes),
        }


@dataclass(frozen=True)
class GeoPayload:
    """A set of located records for a map."""
    title: str
    points: Tuple[GeoPoint, ...]

    def __post_init__(self):
        object.__setattr__(self, "points", tuple(self.points))
        if not self.points:
            raise ValueError("Geo payload needs at least one point")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "points": [point.to_dict() for point in self.points],
        }


Payload = Union[SeriesPayload, GeoPayload]

_PAYLOAD_TYPES = {
    PayloadKind.TEXT: type(None),
    PayloadKind.SERIES: SeriesPayload,
    PayloadKind.GEO: GeoPayload,
}


@dataclass(frozen=True)
class Response:
    """
    The only value ever returned to the caller.

    ``data`` must match ``kind``: absent for text, a ``SeriesPayload`` for
    series and a ``GeoPayload`` for geo.
    """
    kind: PayloadKind
    text: str
    data: Optional[Payload] = None
    source: str = "system"

    def __post_init__(self):
        if not isinstance(self.kind, PayloadKind):
            raise TypeError(f"Unknown payload kind: {self.kind!r}")
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValueError("Response text must be a non-empty string")
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.data, expected):
            raise TypeError(
                f"{self.kind.value} response cannot carry {type(self.data).__name__} data"
            )

    @classmethod
    def text_only(cls, text: str, source: str = "system") -> "Response":
        return cls(kind=PayloadKind.TEXT, text=text, source=source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "text": self.text,
            "data": self.data.to_dict() if self.data is not None else None,
            "source": self.source,
        }
