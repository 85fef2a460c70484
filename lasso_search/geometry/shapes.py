"""
Geometric Shapes Module
========================

Pure geographic value types - NO state, NO side effects.

Design:
- Immutable shapes (frozen dataclass pattern)
- Coordinates validated once at construction
- Polygons normalized at construction (open ring, no repeated vertices)
- Thread-safe by design (immutability)
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Tuple


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable geographic coordinate.

    Latitude is the planar y axis and longitude the planar x axis for
    every geometric predicate. GeoJSON stores positions as [lon, lat];
    use from_lon_lat()/to_lon_lat() at that boundary.

    Attributes:
        latitude: Degrees in [-90, 90]
        longitude: Degrees in [-180, 180]
    """

    latitude: float
    longitude: float

    def __post_init__(self):
        """Validate ranges and coerce to float."""
        lat = float(self.latitude)
        lon = float(self.longitude)
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90], got {self.latitude}")
        if not -180.0 <= lon <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {self.longitude}")
        object.__setattr__(self, 'latitude', lat)
        object.__setattr__(self, 'longitude', lon)

    @classmethod
    def from_lon_lat(cls, position: Sequence[float]) -> "Coordinate":
        """Build from a GeoJSON [lon, lat] position (extra elements ignored)."""
        if len(position) < 2:
            raise ValueError(f"position needs [lon, lat], got {list(position)}")
        return cls(latitude=position[1], longitude=position[0])

    def to_lon_lat(self) -> Tuple[float, float]:
        """GeoJSON ordering."""
        return (self.longitude, self.latitude)

    @property
    def x(self) -> float:
        return self.longitude

    @property
    def y(self) -> float:
        return self.latitude


@dataclass(frozen=True)
class Polygon:
    """
    Immutable polygon ring drawn by the user.

    The ring is stored OPEN: the last vertex implicitly connects back to the
    first. Construction collapses consecutive duplicate vertices and drops an
    explicit closing vertex, so no two consecutive vertices are identical.

    A Polygon may hold fewer than three vertices. Whether it encloses any
    area is decided by GeometryKernel, not here, so that callers get an
    explicit InvalidPolygonError from the query instead of a constructor
    failure.

    Attributes:
        vertices: Tuple of Coordinate in drawing order
    """

    vertices: Tuple[Coordinate, ...]

    def __post_init__(self):
        """Normalize the ring."""
        normalized = []
        for vertex in self.vertices:
            if not isinstance(vertex, Coordinate):
                raise TypeError(f"vertices must be Coordinate, got {type(vertex)}")
            if normalized and normalized[-1] == vertex:
                continue
            normalized.append(vertex)

        # Drop closing vertex(es): caller may pass a closed ring
        while len(normalized) > 1 and normalized[-1] == normalized[0]:
            normalized.pop()

        object.__setattr__(self, 'vertices', tuple(normalized))

    @classmethod
    def from_coordinates(cls, coordinates: Iterable[Coordinate]) -> "Polygon":
        return cls(vertices=tuple(coordinates))

    @classmethod
    def from_lon_lat(cls, positions: Iterable[Sequence[float]]) -> "Polygon":
        """Build from GeoJSON-ordered [[lon, lat], ...] positions."""
        return cls(vertices=tuple(Coordinate.from_lon_lat(p) for p in positions))

    def to_lon_lat(self) -> list:
        return [list(vertex.to_lon_lat()) for vertex in self.vertices]

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self) -> Iterator[Coordinate]:
        return iter(self.vertices)

    def edges(self) -> Iterator[Tuple[Coordinate, Coordinate]]:
        """Yield (start, end) for every edge of the implicitly closed ring."""
        count = len(self.vertices)
        if count < 2:
            return
        for i in range(count):
            yield self.vertices[i - 1], self.vertices[i]
