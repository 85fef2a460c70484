"""
Containment Query Module
========================

Stateless orchestration of one search: drawn ring -> matched listings.

Design:
- Pure function over (polygon, store), no mutation of either
- Invalid rings produce an explicit diagnosed result, never an exception
- Bounding-box prefilter from the store, exact test from the kernel
- Deterministic: matches follow store order
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple, Union

from lasso_search.features.store import Feature, FeatureStore
from lasso_search.geometry.kernel import GeometryKernel, InvalidPolygonError
from lasso_search.geometry.shapes import Coordinate, Polygon


@dataclass(frozen=True)
class Match:
    """A listing that lies inside the drawn ring."""

    feature: Feature
    matched: bool = True


@dataclass(frozen=True)
class QueryResult:
    """
    Immutable outcome of one containment query.

    Attributes:
        polygon: Normalized input ring (open)
        matches: Matched listings in store order
        boundary: Closed ring for drawing the outline
        connector: (last, first) segment closing the freehand stroke, or None
        error: Why the ring was rejected, or None

    An empty `matches` with `error is None` means "searched, nothing found";
    with an error it means "not searched".
    """

    polygon: Polygon
    matches: Tuple[Match, ...] = ()
    boundary: Tuple[Coordinate, ...] = ()
    connector: Optional[Tuple[Coordinate, Coordinate]] = None
    error: Optional[InvalidPolygonError] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def features(self) -> Tuple[Feature, ...]:
        return tuple(m.feature for m in self.matches)

    @property
    def match_count(self) -> int:
        return len(self.matches)

    def raise_for_error(self) -> "QueryResult":
        """Re-raise the rejection for callers that prefer exceptions."""
        if self.error is not None:
            raise self.error
        return self

    def __str__(self) -> str:
        if self.error is not None:
            return f"QueryResult(rejected: {self.error.reason})"
        return f"QueryResult(matches={len(self.matches)}, vertices={len(self.polygon)})"


class ContainmentQueryEngine:
    """
    Runs containment queries of drawn rings against a FeatureStore.

    Design Philosophy:
    - All methods are static (no instance state)
    - Full scan semantics; the bounding-box prefilter never changes results
    - O(n*m) worst case (n listings, m vertices)

    Usage:
        result = ContainmentQueryEngine.query(polygon, store)
        if result.ok:
            for match in result.matches:
                print(match.feature.price_label)
        else:
            print(result.error.reason)
    """

    @staticmethod
    def query(
        polygon: Union[Polygon, Sequence[Coordinate]],
        store: FeatureStore,
    ) -> QueryResult:
        """
        Find listings inside (or on the boundary of) a drawn ring.

        Args:
            polygon: Open ring, as Polygon or raw Coordinate sequence
            store: Listings to search

        Returns:
            QueryResult; `error` is set for rings with fewer than 3
            (distinct) vertices, collinear rings and rings that only
            retrace themselves
        """
        if not isinstance(polygon, Polygon):
            polygon = Polygon.from_coordinates(polygon)

        boundary = GeometryKernel.close_ring(polygon)
        connector = GeometryKernel.connector_segment(polygon)

        try:
            GeometryKernel.validate(polygon)
        except InvalidPolygonError as e:
            return QueryResult(
                polygon=polygon,
                boundary=boundary,
                connector=connector,
                error=e,
            )

        features = store.all_features()
        matches = tuple(
            Match(feature=features[index])
            for index in store.candidates(GeometryKernel.bounds(polygon))
            if GeometryKernel.ring_contains(features[index].coordinate, polygon)
        )

        return QueryResult(
            polygon=polygon,
            matches=matches,
            boundary=boundary,
            connector=connector,
        )
