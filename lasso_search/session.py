"""
Search Session Module
=====================

Bounded Context: Interactive search orchestration.

Design:
- SearchSession: immutable snapshot of everything the map shows
- SearchController: single owner, single writer (one lock), replaces the
  session on every change and notifies listeners
- External collaborators (reverse geocoder, directions) are injected
  protocols, each behind its own RequestSlot
- Display delays go through an injectable Scheduler

Dependencies:
- lasso_search.query (containment)
- lasso_search.overlay (starting point / route)
- lasso_search.scheduling (timers, request slots)
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Protocol, Sequence

from lasso_search.features.store import Feature, FeatureStore
from lasso_search.geometry.shapes import Coordinate
from lasso_search.overlay.route import RouteOverlayError, RouteOverlayModel
from lasso_search.query.engine import ContainmentQueryEngine, QueryResult
from lasso_search.scheduling import DelayedCall, RequestSlot, Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)

SEARCH_DISMISS_DELAY = 1.0
ROUTE_DISPLAY_DELAY = 2.0


class MapStyle(str, Enum):
    """The two map themes the user can toggle between."""
    STREETS = "streets"
    EMERALD = "emerald"

    def toggled(self) -> "MapStyle":
        return MapStyle.EMERALD if self is MapStyle.STREETS else MapStyle.STREETS


class ReverseGeocoder(Protocol):
    """External collaborator: coordinate -> place name ("1234 Main St, Denver, ...")."""

    def reverse_geocode(self, coordinate: Coordinate) -> Optional[str]:
        ...


class DirectionsProvider(Protocol):
    """External collaborator: origin/destination -> route geometry."""

    def route(self, origin: Coordinate, destination: Coordinate) -> Sequence[Coordinate]:
        ...


def street_address(place_name: str) -> str:
    """First comma-separated segment of a geocoder place name."""
    return place_name.split(",")[0].strip()


@dataclass(frozen=True)
class SearchSession:
    """
    Immutable snapshot of the search UI state.

    Attributes:
        drawing: True while the user is drawing a search ring
        last_result: Most recent query result (kept for rendering)
        overlay: Starting point and route
        style: Active map theme
        selected_feature_id: Listing the user selected last
        listing_titles: Reverse-geocoded street address per feature id
        revision: Monotonic change counter
    """

    drawing: bool = False
    last_result: Optional[QueryResult] = None
    overlay: RouteOverlayModel = field(default_factory=RouteOverlayModel)
    style: MapStyle = MapStyle.STREETS
    selected_feature_id: Optional[str] = None
    listing_titles: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    revision: int = 0

    def title_for(self, feature: Feature) -> str:
        return self.listing_titles.get(feature.feature_id, "Listing")


SessionListener = Callable[[SearchSession], None]


class SearchController:
    """
    Owns the SearchSession and applies user actions to it.

    Threading:
    - Public methods may be called from any thread (control plane,
      timers, request callbacks); one RLock serializes all writes
    - Listeners run while the lock is held, in mutation order; keep them
      fast (queue work elsewhere)

    Usage:
        controller = SearchController(store, directions=provider)
        controller.subscribe(lambda session: publish(session))

        controller.start_search()
        result = controller.complete_drawing(coordinates)
        controller.set_starting_point(Coordinate(39.74, -104.98))
        controller.select_listing(result.matches[0].feature.feature_id)
    """

    def __init__(
        self,
        store: FeatureStore,
        geocoder: Optional[ReverseGeocoder] = None,
        directions: Optional[DirectionsProvider] = None,
        scheduler: Optional[Scheduler] = None,
        geocode_slot: Optional[RequestSlot] = None,
        directions_slot: Optional[RequestSlot] = None,
        search_dismiss_delay: float = SEARCH_DISMISS_DELAY,
        route_display_delay: float = ROUTE_DISPLAY_DELAY,
        initial_style: MapStyle = MapStyle.STREETS,
    ):
        """
        Initialize controller.

        Args:
            store: Listings to search (read-only)
            geocoder: Optional reverse geocoder for listing titles
            directions: Optional directions provider for routes
            scheduler: Delay scheduler (default: threading.Timer)
            geocode_slot: Request slot for reverse geocoding
            directions_slot: Request slot for directions
            search_dismiss_delay: Seconds before a finished search leaves drawing mode
            route_display_delay: Seconds before a computed route is shown
            initial_style: Map theme at startup
        """
        if search_dismiss_delay < 0 or route_display_delay < 0:
            raise ValueError("Display delays must be >= 0")

        self.store = store
        self.geocoder = geocoder
        self.directions = directions
        self.search_dismiss_delay = search_dismiss_delay
        self.route_display_delay = route_display_delay

        scheduler = scheduler or ThreadingScheduler()
        self._dismiss = DelayedCall("search_dismiss", scheduler)
        self._route_reveal = DelayedCall("route_reveal", scheduler)
        self._geocode_slot = geocode_slot or RequestSlot("geocode")
        self._directions_slot = directions_slot or RequestSlot("directions")

        self._session = SearchSession(style=initial_style)
        self._listeners: List[SessionListener] = []
        self._lock = threading.RLock()
        # Bumped by clear_all(); answers issued before it are dropped
        self._clear_count = 0

    # ─────────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────────

    @property
    def session(self) -> SearchSession:
        """Current snapshot (immutable, safe to share)."""
        return self._session

    def subscribe(self, listener: SessionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def _commit(self, **changes) -> SearchSession:
        """Replace the session and notify listeners (lock must be held)."""
        self._session = replace(
            self._session, revision=self._session.revision + 1, **changes
        )
        for listener in list(self._listeners):
            try:
                listener(self._session)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)
        return self._session

    # ─────────────────────────────────────────────────────────────────────
    # Search gesture
    # ─────────────────────────────────────────────────────────────────────

    def start_search(self) -> SearchSession:
        """Enter drawing mode. Overlay and previous results are kept."""
        with self._lock:
            self._dismiss.cancel()
            if self._session.drawing:
                return self._session
            return self._commit(drawing=True)

    def cancel_search(self) -> SearchSession:
        """Leave drawing mode."""
        with self._lock:
            self._dismiss.cancel()
            if not self._session.drawing:
                return self._session
            return self._commit(drawing=False)

    def complete_drawing(self, coordinates: Sequence[Coordinate]) -> QueryResult:
        """
        Finish a gesture: query, keep the result, auto-dismiss after a delay.

        Args:
            coordinates: Open ring in drawing order

        Returns:
            QueryResult (check `.ok`; invalid rings come back diagnosed)
        """
        result = ContainmentQueryEngine.query(coordinates, self.store)

        with self._lock:
            if result.ok:
                logger.info(f"Search matched {result.match_count} listings ({len(result.polygon)} vertices)")
            else:
                logger.warning(f"Search rejected: {result.error}")

            self._commit(last_result=result, selected_feature_id=None)
            self._dismiss.schedule(self.search_dismiss_delay, self.cancel_search)

        return result

    # ─────────────────────────────────────────────────────────────────────
    # Starting point / route
    # ─────────────────────────────────────────────────────────────────────

    def set_starting_point(self, coordinate: Coordinate) -> SearchSession:
        """Pin a starting point, replacing the previous one and its route."""
        with self._lock:
            self._route_reveal.cancel()
            self._directions_slot.cancel()
            return self._commit(overlay=self._session.overlay.set_starting_point(coordinate))

    def clear_starting_point(self) -> SearchSession:
        with self._lock:
            self._route_reveal.cancel()
            self._directions_slot.cancel()
            return self._commit(overlay=self._session.overlay.clear_starting_point())

    def attach_route(self, points: Sequence[Coordinate]) -> SearchSession:
        """
        Show a route from an external provider.

        Raises:
            RouteOverlayError: No starting point or empty route
        """
        with self._lock:
            self._route_reveal.cancel()
            return self._commit(overlay=self._session.overlay.attach_route(points))

    def clear_all(self) -> SearchSession:
        """Two-finger clear: results, pin, route, selection, drawing mode."""
        with self._lock:
            self._dismiss.cancel()
            self._route_reveal.cancel()
            self._geocode_slot.cancel()
            self._directions_slot.cancel()
            self._clear_count += 1
            return self._commit(
                drawing=False,
                last_result=None,
                overlay=RouteOverlayModel(),
                selected_feature_id=None,
                listing_titles=MappingProxyType({}),
            )

    # ─────────────────────────────────────────────────────────────────────
    # Listing selection
    # ─────────────────────────────────────────────────────────────────────

    def select_listing(self, feature_id: str) -> SearchSession:
        """
        Select a listing: resolve its street address and, with a starting
        point, request directions to it.

        Raises:
            KeyError: Unknown feature id
        """
        feature = self.store.get(feature_id)
        if feature is None:
            raise KeyError(f"Unknown listing: {feature_id}")

        with self._lock:
            overlay = self._session.overlay
            if overlay.has_start:
                overlay = overlay.begin_selection()
                self._route_reveal.cancel()

            session = self._commit(selected_feature_id=feature.feature_id, overlay=overlay)

            if self.geocoder is not None:
                issued_at = self._clear_count
                self._geocode_slot.submit(
                    self.geocoder.reverse_geocode,
                    feature.coordinate,
                    on_result=lambda name: self._apply_title(feature.feature_id, name, issued_at),
                )

            if overlay.has_start and self.directions is not None:
                self._directions_slot.submit(
                    self.directions.route,
                    overlay.starting_point,
                    feature.coordinate,
                    on_result=lambda points: self._schedule_route(overlay.starting_point, points),
                )

            return session

    def _apply_title(self, feature_id: str, place_name: str, issued_at: int) -> None:
        title = street_address(place_name)
        if not title:
            return
        with self._lock:
            # The slot's own check can pass just before clear_all() runs
            if issued_at != self._clear_count:
                logger.debug(f"Discarding title for {feature_id}: session cleared")
                return
            titles = dict(self._session.listing_titles)
            titles[feature_id] = title
            self._commit(listing_titles=MappingProxyType(titles))

    def _schedule_route(self, origin: Coordinate, points: Sequence[Coordinate]) -> None:
        route = tuple(points)

        def _reveal():
            with self._lock:
                # Pin moved or cleared while the route was pending
                if self._session.overlay.starting_point != origin:
                    logger.debug("Discarding route for a stale starting point")
                    return
                try:
                    self._commit(overlay=self._session.overlay.attach_route(route))
                except RouteOverlayError as e:
                    logger.warning(f"Route not attached: {e}")

        with self._lock:
            self._route_reveal.schedule(self.route_display_delay, _reveal)

    # ─────────────────────────────────────────────────────────────────────
    # Style
    # ─────────────────────────────────────────────────────────────────────

    def swap_style(self) -> SearchSession:
        """Toggle the map theme (disabled while drawing)."""
        with self._lock:
            if self._session.drawing:
                logger.debug("Style toggle ignored while drawing")
                return self._session
            return self._commit(style=self._session.style.toggled())

    def shutdown(self) -> None:
        """Cancel timers and outstanding requests."""
        with self._lock:
            self._dismiss.cancel()
            self._route_reveal.cancel()
        self._geocode_slot.shutdown()
        self._directions_slot.shutdown()
