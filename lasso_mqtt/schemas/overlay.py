"""
Overlay Message Schema
=====================

Bounded Context: Route Overlay Data Structures

Schema for the starting point / route overlay, the selected listing and
the UI mode (drawing, map style).

Design:
- OverlayMessage mirrors RouteOverlayModel plus selection and map style
- state is one of: no_start, has_start, has_start_and_route

Invariants:
- route is non-empty only when a starting point is set
- state agrees with starting_point / route
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .common import Position, Timestamp


OVERLAY_STATES = ("no_start", "has_start", "has_start_and_route")


@dataclass(frozen=True)
class OverlayMessage:
    """
    Overlay state message for MQTT publication.

    Attributes:
        schema_version: Message schema version
        timestamp: ISO 8601 timestamp of message creation
        service_id: Publishing service
        revision: Session revision that produced this message
        state: Overlay state name
        style: Active map style id
        drawing: True while the renderer should capture a search gesture
        starting_point: Starting location (None if unset)
        route: Route polyline from starting point to selected listing
        selected_feature_id: Currently selected listing (None if none)
        selected_title: Title shown for the selected listing
        annotations: Render-ready annotation dicts
    """
    schema_version: str
    timestamp: Timestamp
    service_id: str
    revision: int
    state: str
    style: str
    drawing: bool = False
    starting_point: Optional[Position] = None
    route: List[Position] = field(default_factory=list)
    selected_feature_id: Optional[str] = None
    selected_title: Optional[str] = None
    annotations: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        """Validate invariants."""
        if self.state not in OVERLAY_STATES:
            raise ValueError(
                f"Invalid overlay state '{self.state}', expected one of {OVERLAY_STATES}"
            )
        if self.route and self.starting_point is None:
            raise ValueError("route requires a starting_point")
        expected = (
            "no_start" if self.starting_point is None
            else "has_start_and_route" if self.route
            else "has_start"
        )
        if self.state != expected:
            raise ValueError(f"state '{self.state}' does not match overlay contents ('{expected}')")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'service_id': self.service_id,
            'revision': self.revision,
            'state': self.state,
            'style': self.style,
            'drawing': self.drawing,
            'starting_point': self.starting_point.to_dict() if self.starting_point else None,
            'route': [p.to_dict() for p in self.route],
            'selected_feature_id': self.selected_feature_id,
            'selected_title': self.selected_title,
            'annotations': list(self.annotations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OverlayMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            start = data.get('starting_point')
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                service_id=str(data['service_id']),
                revision=int(data['revision']),
                state=str(data['state']),
                style=str(data['style']),
                drawing=bool(data.get('drawing', False)),
                starting_point=Position.from_dict(start) if start is not None else None,
                route=[Position.from_dict(p) for p in data.get('route', [])],
                selected_feature_id=data.get('selected_feature_id'),
                selected_title=data.get('selected_title'),
                annotations=list(data.get('annotations', [])),
            )
        except KeyError as e:
            raise ValueError(f"Missing required OverlayMessage field: {e}") from e
        except TypeError as e:
            raise ValueError(f"Invalid OverlayMessage data: {e}") from e
