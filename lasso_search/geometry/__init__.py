"""
Geometry Layer
==============

Bounded Context: Pure geographic shapes and containment predicates.

Responsibilities:
- Value types (Coordinate, Polygon)
- Point-in-polygon (even-odd, boundary counts as inside)
- Ring closure and connector segment for rendering
- Degenerate ring detection
- NO state, NO I/O, NO logging

Design Philosophy:
- Pure functions where possible
- Immutable data structures
- Exact arithmetic signs, no tolerances
- Planar lat/long (documented approximation, fine at city scale)
"""

from lasso_search.geometry.shapes import Coordinate, Polygon
from lasso_search.geometry.kernel import GeometryKernel, InvalidPolygonError

__all__ = [
    "Coordinate",
    "Polygon",
    "GeometryKernel",
    "InvalidPolygonError",
]
