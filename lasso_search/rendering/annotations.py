"""
Annotation Builder Module
=========================

Pure derivation of map annotations from a SearchSession.

Design:
- Stateless (builder holds only style configuration)
- No drawing: output is plain data for a rendering collaborator
- Layering order: boundary fill, key lines, route, pin, listings
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from lasso_search.geometry.shapes import Coordinate
from lasso_search.session import SearchSession


class AnnotationKind(str, Enum):
    """Annotation type enumeration."""
    LISTING = "listing"
    BOUNDARY = "boundary"          # filled search polygon
    KEY_LINE = "key_line"          # outline of the drawn stroke
    CONNECTOR = "connector"        # last vertex -> first vertex
    STARTING_POINT = "starting_point"
    ROUTE = "route"


@dataclass(frozen=True)
class AnnotationStyle:
    """
    Visual constants for each annotation kind.

    Colors are CSS color names; the renderer maps them to its own palette.
    """

    fill_color: str = "blue"
    fill_alpha: float = 0.25
    key_line_color: str = "blue"
    key_line_width: float = 2.0
    route_color: str = "purple"
    route_width: float = 3.0
    line_alpha: float = 1.0
    listing_symbol: str = "secondary_marker"
    default_symbol: str = "default_marker"
    listing_thumbnail: str = "listing_thumb.jpg"

    def __post_init__(self):
        for name in ("fill_alpha", "line_alpha"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0.0, 1.0], got {value}")
        if self.key_line_width <= 0 or self.route_width <= 0:
            raise ValueError("Line widths must be > 0")


@dataclass(frozen=True)
class Annotation:
    """
    One renderable map annotation.

    Attributes:
        kind: What is drawn
        coordinates: Point (1 coordinate) or polyline/polygon vertices
        title: Callout title (markers only)
        subtitle: Callout subtitle (markers only)
        feature_id: Listing id (listing markers only)
        paint: Style attributes (color, alpha, width, symbol, ...)
    """

    kind: AnnotationKind
    coordinates: Tuple[Coordinate, ...]
    title: Optional[str] = None
    subtitle: Optional[str] = None
    feature_id: Optional[str] = None
    paint: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict ([lon, lat] positions)."""
        data: Dict[str, Any] = {
            'kind': self.kind.value,
            'coordinates': [list(c.to_lon_lat()) for c in self.coordinates],
            'paint': dict(self.paint),
        }
        if self.title is not None:
            data['title'] = self.title
        if self.subtitle is not None:
            data['subtitle'] = self.subtitle
        if self.feature_id is not None:
            data['feature_id'] = self.feature_id
        return data


class AnnotationBuilder:
    """
    Builds the annotation list a renderer needs for one session snapshot.

    Usage:
        builder = AnnotationBuilder()
        annotations = builder.build(controller.session)
        payload = [a.to_dict() for a in annotations]
    """

    def __init__(self, style: Optional[AnnotationStyle] = None):
        self.style = style or AnnotationStyle()

    def build(self, session: SearchSession) -> List[Annotation]:
        annotations: List[Annotation] = []
        annotations.extend(self.search_annotations(session))
        annotations.extend(self.overlay_annotations(session))
        return annotations

    def search_annotations(self, session: SearchSession) -> List[Annotation]:
        """Boundary, key lines and listing markers of the last search."""
        result = session.last_result
        if result is None:
            return []

        s = self.style
        annotations: List[Annotation] = []

        if len(result.polygon) >= 3:
            annotations.append(Annotation(
                kind=AnnotationKind.BOUNDARY,
                coordinates=result.polygon.vertices,
                paint={'fill_color': s.fill_color, 'alpha': s.fill_alpha},
            ))

        if len(result.polygon) >= 2:
            annotations.append(Annotation(
                kind=AnnotationKind.KEY_LINE,
                coordinates=result.polygon.vertices,
                paint=self._key_line_paint(),
            ))

        if result.connector is not None:
            annotations.append(Annotation(
                kind=AnnotationKind.CONNECTOR,
                coordinates=result.connector,
                paint=self._key_line_paint(),
            ))

        for match in result.matches:
            feature = match.feature
            annotations.append(Annotation(
                kind=AnnotationKind.LISTING,
                coordinates=(feature.coordinate,),
                title=session.title_for(feature),
                subtitle=feature.price_label,
                feature_id=feature.feature_id,
                paint={
                    'symbol': s.listing_symbol,
                    'thumbnail': s.listing_thumbnail,
                    'selected': feature.feature_id == session.selected_feature_id,
                },
            ))

        return annotations

    def overlay_annotations(self, session: SearchSession) -> List[Annotation]:
        """Starting point pin and route line."""
        s = self.style
        overlay = session.overlay
        annotations: List[Annotation] = []

        if overlay.route is not None:
            annotations.append(Annotation(
                kind=AnnotationKind.ROUTE,
                coordinates=overlay.route,
                paint={'stroke_color': s.route_color, 'width': s.route_width, 'alpha': s.line_alpha},
            ))

        if overlay.starting_point is not None:
            annotations.append(Annotation(
                kind=AnnotationKind.STARTING_POINT,
                coordinates=(overlay.starting_point,),
                title="Starting Location",
                paint={'symbol': s.default_symbol},
            ))

        return annotations

    def _key_line_paint(self) -> Dict[str, Any]:
        s = self.style
        return {'stroke_color': s.key_line_color, 'width': s.key_line_width, 'alpha': s.line_alpha}
