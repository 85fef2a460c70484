"""
Lasso Search v1.0
=================

Bounded Context: Draw-to-search over a static set of map listings.

Design Philosophy:
- Separation of Concerns: Geometry, Features, Query, Overlay, Rendering
- Immutable values flow between layers; one controller owns the state
- Invalid drawings are diagnosed, never crash the search

Architecture:

    lasso_search/
    ├── geometry/          # Pure geometry (immutable, stateless)
    │   ├── shapes.py      # Coordinate, Polygon
    │   └── kernel.py      # GeometryKernel (point-in-polygon, rings)
    │
    ├── features/          # Listing dataset (load once, read-only)
    │   └── store.py       # Feature, FeatureStore, ParseError
    │
    ├── query/             # One search (stateless)
    │   └── engine.py      # ContainmentQueryEngine, QueryResult
    │
    ├── overlay/           # Starting point + route (immutable value)
    │   └── route.py       # RouteOverlayModel, OverlayState
    │
    ├── rendering/         # Annotation derivation (stateless)
    │   └── annotations.py # AnnotationBuilder
    │
    ├── scheduling.py      # Timers + at-most-one-in-flight request slots
    └── session.py         # SearchSession + SearchController (orchestration)

Usage:

    # 1. Load listings (once)
    from lasso_search import FeatureStore, Coordinate, ContainmentQueryEngine

    store = FeatureStore.from_file("data/denver.geojson")

    # 2. Query (stateless)
    ring = [
        Coordinate(39.70, -105.00),
        Coordinate(39.80, -105.00),
        Coordinate(39.80, -104.90),
    ]
    result = ContainmentQueryEngine.query(ring, store)
    for match in result.matches:
        print(match.feature.price_label)

    # 3. Or drive a whole session
    from lasso_search import SearchController, AnnotationBuilder

    controller = SearchController(store)
    controller.start_search()
    controller.complete_drawing(ring)
    annotations = AnnotationBuilder().build(controller.session)
"""

# Geometry Layer (immutable, stateless)
from lasso_search.geometry.shapes import Coordinate, Polygon
from lasso_search.geometry.kernel import GeometryKernel, InvalidPolygonError

# Feature Layer (read-only after load)
from lasso_search.features.store import DroppedFeature, Feature, FeatureStore, ParseError

# Query Layer (stateless)
from lasso_search.query.engine import ContainmentQueryEngine, Match, QueryResult

# Overlay Layer (immutable value)
from lasso_search.overlay.route import OverlayState, RouteOverlayError, RouteOverlayModel

# Session (orchestration)
from lasso_search.session import (
    DirectionsProvider,
    MapStyle,
    ReverseGeocoder,
    SearchController,
    SearchSession,
)

# Rendering Layer (stateless)
from lasso_search.rendering.annotations import AnnotationBuilder, AnnotationKind, AnnotationStyle

__all__ = [
    # Geometry
    "Coordinate",
    "Polygon",
    "GeometryKernel",
    "InvalidPolygonError",
    # Features
    "DroppedFeature",
    "Feature",
    "FeatureStore",
    "ParseError",
    # Query
    "ContainmentQueryEngine",
    "Match",
    "QueryResult",
    # Overlay
    "OverlayState",
    "RouteOverlayError",
    "RouteOverlayModel",
    # Session
    "DirectionsProvider",
    "MapStyle",
    "ReverseGeocoder",
    "SearchController",
    "SearchSession",
    # Rendering
    "AnnotationBuilder",
    "AnnotationKind",
    "AnnotationStyle",
]

__version__ = "1.0.0"
