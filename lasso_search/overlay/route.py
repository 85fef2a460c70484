"""
Route Overlay Module
====================

Starting point + route geometry shown on top of a search.

Design:
- Immutable value: every transition returns a new model
- No routing here; route points come from an external directions provider
- At most one starting point and one route at any time

State machine:

    NO_START --set_starting_point--> HAS_START
    HAS_START --attach_route--> HAS_START_AND_ROUTE
    HAS_START_AND_ROUTE --begin_selection--> HAS_START
    HAS_START_AND_ROUTE --set_starting_point--> HAS_START (new pin)
    any --clear_starting_point--> NO_START
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Tuple

from lasso_search.geometry.shapes import Coordinate


class RouteOverlayError(ValueError):
    """Raised for overlay transitions the state machine does not allow."""
    pass


class OverlayState(str, Enum):
    """Overlay state enumeration."""
    NO_START = "no_start"
    HAS_START = "has_start"
    HAS_START_AND_ROUTE = "has_start_and_route"


@dataclass(frozen=True)
class RouteOverlayModel:
    """
    Immutable starting point / route pair.

    Attributes:
        starting_point: Pinned origin, or None
        route: Last route geometry from the directions provider, or None
    """

    starting_point: Optional[Coordinate] = None
    route: Optional[Tuple[Coordinate, ...]] = None

    @property
    def state(self) -> OverlayState:
        if self.starting_point is None:
            return OverlayState.NO_START
        if self.route is None:
            return OverlayState.HAS_START
        return OverlayState.HAS_START_AND_ROUTE

    @property
    def has_start(self) -> bool:
        return self.starting_point is not None

    def set_starting_point(self, coordinate: Coordinate) -> "RouteOverlayModel":
        """Pin a new origin; the previous pin and its route are dropped."""
        return RouteOverlayModel(starting_point=coordinate, route=None)

    def clear_starting_point(self) -> "RouteOverlayModel":
        return RouteOverlayModel()

    def begin_selection(self) -> "RouteOverlayModel":
        """A new listing was selected: the old route no longer applies."""
        return replace(self, route=None)

    def attach_route(self, points: Iterable[Coordinate]) -> "RouteOverlayModel":
        """
        Store the most recent route, replacing any previous one.

        Raises:
            RouteOverlayError: No starting point, or empty route
        """
        if self.starting_point is None:
            raise RouteOverlayError("Cannot attach a route without a starting point")
        route = tuple(points)
        if not route:
            raise RouteOverlayError("Route must contain at least one coordinate")
        return replace(self, route=route)

    def __repr__(self) -> str:
        route_len = len(self.route) if self.route is not None else 0
        return f"RouteOverlayModel(state={self.state.value}, route_points={route_len})"
