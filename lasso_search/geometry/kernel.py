"""
Geometry Kernel Module
======================

Stateless point-in-polygon and ring helpers.

Design:
- All methods are static (no instance state)
- Exact sign tests on cross products (no epsilon, no division)
- Planar approximation: longitude = x, latitude = y (city scale)
- Boundary rule: a point on an edge or vertex is INSIDE
"""

from collections import Counter
from typing import Iterator, Optional, Tuple

from lasso_search.geometry.shapes import Coordinate, Polygon


Bounds = Tuple[float, float, float, float]  # (min_lat, min_lon, max_lat, max_lon)


class InvalidPolygonError(ValueError):
    """Raised when a drawn ring cannot enclose any area."""

    def __init__(self, reason: str, vertex_count: int):
        super().__init__(f"Invalid polygon ({vertex_count} vertices): {reason}")
        self.reason = reason
        self.vertex_count = vertex_count


def _cross(origin: Coordinate, a: Coordinate, b: Coordinate) -> float:
    """Z component of (a - origin) x (b - origin)."""
    return (a.x - origin.x) * (b.y - origin.y) - (a.y - origin.y) * (b.x - origin.x)


def _on_segment(point: Coordinate, a: Coordinate, b: Coordinate) -> bool:
    if _cross(a, b, point) != 0:
        return False
    return (
        min(a.x, b.x) <= point.x <= max(a.x, b.x)
        and min(a.y, b.y) <= point.y <= max(a.y, b.y)
    )


def _elementary_pieces(polygon: Polygon) -> Iterator[Tuple[Coordinate, Coordinate]]:
    """
    Edges split at every ring vertex lying on them.

    Endpoints come out in (x, y) order, so a piece traversed in either
    direction yields the same tuple.
    """
    vertices = set(polygon.vertices)
    for a, b in polygon.edges():
        stops = sorted(
            {v for v in vertices if _on_segment(v, a, b)},
            key=lambda c: (c.x, c.y),
        )
        yield from zip(stops, stops[1:])


class GeometryKernel:
    """
    Pure geometric predicates over Coordinate/Polygon.

    Design Philosophy:
    - Same even-odd semantics as a ray-casting "within" query
    - Degenerate rings have an empty interior (never an error here)
    - Validation is separate: validate() raises, predicates never do
    """

    @staticmethod
    def degeneracy_reason(polygon: Polygon) -> Optional[str]:
        """
        Explain why a ring encloses no area.

        Returns:
            Human-readable reason, or None when the ring is usable
        """
        vertices = polygon.vertices
        if len(vertices) < 3:
            return "fewer than 3 vertices"

        distinct = set(vertices)
        if len(distinct) < 3:
            return "fewer than 3 distinct vertices"

        origin = vertices[0]
        # First vertex that differs from origin defines the reference direction
        direction = next(v for v in vertices if v != origin)
        if all(_cross(origin, direction, v) == 0 for v in vertices):
            return "all vertices are collinear"

        # Even-odd parity flips across a piece only if it is covered an odd
        # number of times; a stroke that retraces itself flips nothing.
        coverage = Counter(_elementary_pieces(polygon))
        if all(count % 2 == 0 for count in coverage.values()):
            return "ring encloses no area"

        return None

    @staticmethod
    def is_degenerate(polygon: Polygon) -> bool:
        return GeometryKernel.degeneracy_reason(polygon) is not None

    @staticmethod
    def validate(polygon: Polygon) -> Polygon:
        """
        Fail fast on rings that cannot be queried.

        Raises:
            InvalidPolygonError: fewer than 3 (distinct) vertices, collinear, or
                retracing itself so that no area is enclosed
        """
        reason = GeometryKernel.degeneracy_reason(polygon)
        if reason is not None:
            raise InvalidPolygonError(reason, len(polygon))
        return polygon

    @staticmethod
    def point_in_polygon(point: Coordinate, polygon: Polygon) -> bool:
        """
        Even-odd containment test over the implicitly closed ring.

        A horizontal ray is cast from the point towards +x (east). An edge is
        counted when it straddles the ray's latitude and the point lies on
        the inner side of it; the side is decided by the sign of a cross
        product, so no intersection coordinate is ever computed.

        Args:
            point: Coordinate to test
            polygon: Open ring (closure is implicit)

        Returns:
            True if the point is inside or on the boundary, False otherwise
            (always False for degenerate rings)
        """
        if GeometryKernel.is_degenerate(polygon):
            return False
        return GeometryKernel.ring_contains(point, polygon)

    @staticmethod
    def ring_contains(point: Coordinate, polygon: Polygon) -> bool:
        """
        Crossing test without the degeneracy check.

        Only for rings that already passed validate(); the query engine uses
        it to avoid re-validating the ring for every feature.
        """
        inside = False
        for a, b in polygon.edges():
            if _on_segment(point, a, b):
                return True

            if (a.y > point.y) != (b.y > point.y):
                # Crossing is to the east of the point iff the point is on the
                # left of an upward edge or on the right of a downward edge.
                if (_cross(a, b, point) > 0) == (b.y > a.y):
                    inside = not inside

        return inside

    @staticmethod
    def close_ring(polygon: Polygon) -> Tuple[Coordinate, ...]:
        """
        Closed ring for rendering the boundary.

        Appends the first vertex unless the ring is already closed or empty.
        Containment never needs this; it closes the ring implicitly.
        """
        vertices = polygon.vertices
        if not vertices or vertices[0] == vertices[-1]:
            return vertices
        return vertices + (vertices[0],)

    @staticmethod
    def connector_segment(polygon: Polygon) -> Optional[Tuple[Coordinate, Coordinate]]:
        """Last vertex -> first vertex, the visual closure of a freehand stroke."""
        if len(polygon) < 2:
            return None
        return (polygon.vertices[-1], polygon.vertices[0])

    @staticmethod
    def bounds(polygon: Polygon) -> Optional[Bounds]:
        """Axis-aligned bounding box, or None for an empty ring."""
        if not polygon.vertices:
            return None
        lats = [v.latitude for v in polygon.vertices]
        lons = [v.longitude for v in polygon.vertices]
        return (min(lats), min(lons), max(lats), max(lons))
