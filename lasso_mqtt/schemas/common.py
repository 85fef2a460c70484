"""
Wire types shared by the search result and overlay messages.

Positions travel in GeoJSON order ([lon, lat]) so renderers can feed them
straight into map SDKs; timestamps are ISO 8601 strings with a UTC offset.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence


@dataclass(frozen=True)
class Position:
    """
    A [lon, lat] pair on the wire.

    Invariants:
        - -180 <= lon <= 180
        - -90 <= lat <= 90

    Example:
        >>> Position(lon=-104.98, lat=39.74).to_dict()
        [-104.98, 39.74]
    """
    lon: float
    lat: float

    def __post_init__(self):
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Position lon must be in [-180, 180], got {self.lon}")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Position lat must be in [-90, 90], got {self.lat}")

    def to_dict(self) -> List[float]:
        return [self.lon, self.lat]

    @classmethod
    def from_dict(cls, data: Sequence[float]) -> 'Position':
        """Parse [lon, lat] (ValueError for anything else)."""
        try:
            return cls(lon=float(data[0]), lat=float(data[1]))
        except (IndexError, TypeError) as e:
            raise ValueError(f"Invalid Position data {data!r}: {e}") from e


@dataclass(frozen=True)
class Timestamp:
    """ISO 8601 creation time of a message; rejected at construction if unparsable."""
    value: str

    def __post_init__(self):
        try:
            datetime.fromisoformat(self.value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid ISO timestamp: {self.value!r}") from e

    @classmethod
    def now(cls) -> 'Timestamp':
        return cls(value=datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_datetime(cls, dt: datetime) -> 'Timestamp':
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return cls(value=dt.isoformat())

    def to_datetime(self) -> datetime:
        return datetime.fromisoformat(self.value)

    def to_dict(self) -> str:
        return self.value
