"""
Search Service - Lasso search orchestrator.

This module provides the SearchService class which wires the listing
store, the SearchController, the MQTT control plane and the result/overlay
publishers into one long-running service.

Architecture:
- Control plane commands drive the SearchController
- Every session change is translated into messages and queued
- A dedicated publisher thread drains the queue to MQTT

Threading Model:
- Control Plane Thread (paho-mqtt internal, command handlers)
- Timer Threads (search dismiss, route reveal)
- Request Threads (reverse geocoding, directions)
- MQTT Publisher Thread (our thread)
"""

import logging
import queue
import threading
from typing import Any, Dict, List, Optional

from lasso_mqtt.logging import LogEvent, StructuredLogger, create_logger
from lasso_search.features.store import FeatureStore
from lasso_search.geometry.shapes import Coordinate
from lasso_search.scheduling import Scheduler
from lasso_search.session import (
    DirectionsProvider,
    ReverseGeocoder,
    SearchController,
    SearchSession,
)
from lasso_service.config import ServiceConfig
from lasso_service.messages import SessionMessageBuilder

logger = logging.getLogger(__name__)


def parse_positions(command: Dict[str, Any], key: str = "coordinates") -> List[Coordinate]:
    """
    Read a [[lon, lat], ...] list from a command payload.

    Raises:
        ValueError: Not a list of numeric pairs, or out of range
    """
    raw = command.get(key)
    if not isinstance(raw, list):
        raise ValueError(f"'{key}' must be a list of [lon, lat] pairs")
    try:
        return [Coordinate.from_lon_lat(p) for p in raw]
    except TypeError as e:
        raise ValueError(f"'{key}' must be a list of [lon, lat] pairs: {e}") from e


def parse_coordinate(command: Dict[str, Any]) -> Coordinate:
    """Read latitude/longitude fields from a command payload."""
    try:
        return Coordinate(latitude=command["latitude"], longitude=command["longitude"])
    except TypeError as e:
        raise ValueError(f"latitude/longitude must be numbers: {e}") from e


class SearchService:
    """
    Main search service.

    Lifecycle:
    1. setup(): load listings, build the controller, register commands
    2. start(): connect control plane and publishers, start publisher thread
    3. wait(): block until stop() is called
    4. stop(): stop publisher thread, disconnect everything

    Thread Safety:
    - controller: serializes all session changes with its own lock
    - publish_queue: Thread-safe queue.Queue

    Usage:
        config = ServiceConfig.from_yaml("config/search_service.yaml")
        control_plane = MQTTControlPlane(...)
        result_publisher = SearchResultPublisher(...)
        overlay_publisher = OverlayPublisher(...)

        service = SearchService(
            config=config,
            control_plane=control_plane,
            result_publisher=result_publisher,
            overlay_publisher=overlay_publisher,
        )

        service.setup()
        service.start()
        service.wait()  # Blocks until stopped
    """

    def __init__(
        self,
        config: ServiceConfig,
        control_plane,  # MQTTControlPlane
        result_publisher,  # SearchResultPublisher
        overlay_publisher,  # OverlayPublisher
        geocoder: Optional[ReverseGeocoder] = None,
        directions: Optional[DirectionsProvider] = None,
        scheduler: Optional[Scheduler] = None,
        structured_logger: Optional[StructuredLogger] = None,
    ):
        """
        Initialize search service.

        Args:
            config: Service configuration
            control_plane: MQTT control plane for commands
            result_publisher: Publisher for search result messages
            overlay_publisher: Publisher for overlay messages
            geocoder: Optional reverse geocoder (listing titles)
            directions: Optional directions provider (routes)
            scheduler: Delay scheduler (default: threading.Timer)
            structured_logger: JSON logger for store/search events
        """
        self.config = config
        self.control_plane = control_plane
        self.result_publisher = result_publisher
        self.overlay_publisher = overlay_publisher
        self.geocoder = geocoder
        self.directions = directions
        self.scheduler = scheduler
        self.events = structured_logger or create_logger("search", service_id=config.service_id)

        self.store: Optional[FeatureStore] = None
        self.controller: Optional[SearchController] = None
        self.messages: Optional[SessionMessageBuilder] = None
        self._previous: Optional[SearchSession] = None

        # MQTT publishing
        self.publish_queue = queue.Queue(maxsize=256)
        self.publisher_thread = None
        self.stop_event = threading.Event()

        self._running = False

        logger.info(f"SearchService initialized for service_id={config.service_id}")

    # ─────────────────────────────────────────────────────────────────────
    # Setup
    # ─────────────────────────────────────────────────────────────────────

    def _load_store(self) -> FeatureStore:
        """
        Load listings from config.listings_path.

        Raises:
            ParseError: Top-level GeoJSON structure is invalid
        """
        store = FeatureStore.from_file(self.config.listings_path)

        self.events.info(
            event=LogEvent.STORE_LOADED,
            message=f"Loaded {len(store)} listings",
            metadata={
                'path': str(self.config.listings_path),
                'feature_count': len(store),
                'dropped_count': store.dropped_count,
            }
        )
        if store.dropped_count:
            self.events.warning(
                event=LogEvent.STORE_FEATURES_DROPPED,
                message=f"Dropped {store.dropped_count} malformed listing records",
                metadata={
                    'dropped': [
                        {'index': d.index, 'reason': d.reason} for d in store.dropped[:20]
                    ]
                }
            )
        return store

    def setup(self):
        """
        Load listings and build the controller.

        Must be called before start().

        Raises:
            ParseError: Listings file is not a GeoJSON FeatureCollection
        """
        self.store = self._load_store()

        search = self.config.search_config
        self.controller = SearchController(
            self.store,
            geocoder=self.geocoder,
            directions=self.directions,
            scheduler=self.scheduler,
            search_dismiss_delay=search.search_dismiss_delay,
            route_display_delay=search.route_display_delay,
            initial_style=self.config.style_config.map_style,
        )
        self.messages = SessionMessageBuilder(
            self.config.service_id, self.store, self.config.style_config
        )

        self._previous = self.controller.session
        self.controller.subscribe(self._on_session_change)

        self._setup_control_handlers()
        logger.info("Search service setup complete")

    def _setup_control_handlers(self):
        """Register command handlers with the control plane's registry."""
        registry = self.control_plane.command_registry

        registry.register("start_search", self._handle_start_search, "Enter drawing mode")
        registry.register("cancel_search", self._handle_cancel_search, "Leave drawing mode")
        registry.register(
            "draw",
            self._handle_draw,
            "Search listings inside a drawn ring ([[lon, lat], ...])",
            required=("coordinates",),
        )
        registry.register(
            "set_start",
            self._handle_set_start,
            "Pin the starting location",
            required=("latitude", "longitude"),
        )
        registry.register("clear_start", self._handle_clear_start, "Remove the starting location")
        registry.register("clear_all", self._handle_clear_all, "Clear search, starting point and route")
        registry.register(
            "select_listing",
            self._handle_select_listing,
            "Select a listing (address + directions)",
            required=("feature_id",),
        )
        registry.register(
            "attach_route",
            self._handle_attach_route,
            "Show an externally computed route ([[lon, lat], ...])",
            required=("coordinates",),
        )
        registry.register("swap_style", self._handle_swap_style, "Toggle the map theme")
        registry.register("status", self._handle_status, "Publish service status")

        logger.info(f"{self.control_plane.command_registry.count()} commands registered")

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self):
        """
        Start the search service (non-blocking).

        Lifecycle:
        1. Connect control plane
        2. Connect publishers
        3. Start MQTT publisher thread
        4. Publish the initial (empty) session
        """
        if self._running:
            logger.warning("start() ignored: already running")
            return

        if self.controller is None:
            raise RuntimeError("setup() must be called before start()")

        logger.info("Starting search service")

        if not self.control_plane.connect(timeout=5.0):
            raise RuntimeError(f"Control plane could not reach {self.config.mqtt_config.broker}:{self.config.mqtt_config.port}")

        self.result_publisher.connect()
        self.overlay_publisher.connect()

        self.stop_event.clear()
        self.publisher_thread = threading.Thread(
            target=self._publish_loop,
            name="MQTTPublisherThread",
            daemon=True
        )
        self.publisher_thread.start()
        logger.info("📤 Snapshot publisher thread up")

        self._running = True

        # Retained topics start from a known state
        self._enqueue("result", self.messages.search_result(self.controller.session))
        self._enqueue("overlay", self.messages.overlay(self.controller.session))

        self.control_plane.publish_status("running", self.get_status())
        logger.info("✅ Search service started")

    def wait(self):
        """Block until stop() is called."""
        if not self._running:
            logger.warning("Search service is not running")
            return

        try:
            while not self.stop_event.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping search service")
            self.stop()

    def stop(self):
        """
        Stop the search service gracefully.

        Lifecycle:
        1. Cancel timers and pending requests
        2. Stop MQTT publisher thread
        3. Disconnect publishers
        4. Disconnect control plane
        """
        if not self._running:
            logger.warning("Search service is not running")
            return

        logger.info("Stopping search service")

        self.controller.shutdown()

        self.stop_event.set()
        if self.publisher_thread:
            self.publisher_thread.join(timeout=5.0)
            logger.info("📤 Snapshot publisher thread joined")

        self.result_publisher.disconnect()
        self.overlay_publisher.disconnect()

        self.control_plane.publish_status("stopped")
        self.control_plane.disconnect()

        self._running = False
        logger.info("✅ Search service stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of service state for the status topic."""
        session = self.controller.session
        result = session.last_result
        return {
            "service_id": self.config.service_id,
            "feature_count": len(self.store),
            "dropped_count": self.store.dropped_count,
            "revision": session.revision,
            "drawing": session.drawing,
            "style": session.style.value,
            "overlay_state": session.overlay.state.value,
            "match_count": result.match_count if result is not None else 0,
            "selected_feature_id": session.selected_feature_id,
            "available_commands": sorted(self.control_plane.command_registry.available_commands),
        }

    # ─────────────────────────────────────────────────────────────────────
    # Publishing
    # ─────────────────────────────────────────────────────────────────────

    def _on_session_change(self, session: SearchSession):
        """
        Controller listener: queue the messages affected by this change.

        Runs under the controller lock, so only builds and enqueues.
        """
        previous = self._previous
        self._previous = session

        result_changed = (
            previous is None
            or session.last_result is not previous.last_result
            or session.listing_titles != previous.listing_titles
            or session.selected_feature_id != previous.selected_feature_id
        )
        overlay_changed = (
            previous is None
            or session.overlay != previous.overlay
            or session.drawing != previous.drawing
            or session.style != previous.style
            or session.selected_feature_id != previous.selected_feature_id
            or session.listing_titles != previous.listing_titles
        )

        if result_changed:
            self._enqueue("result", self.messages.search_result(session))
        if overlay_changed:
            self._enqueue("overlay", self.messages.overlay(session))

    def _enqueue(self, msg_type: str, msg) -> None:
        try:
            self.publish_queue.put_nowait((msg_type, msg))
        except queue.Full:
            logger.warning(f"Publish queue full, dropping {msg_type} message")

    def _publish_loop(self):
        """
        MQTT publisher thread loop.

        Thread: MQTT Publisher Thread (our thread)
        """
        logger.debug("Publish loop running")

        while not self.stop_event.is_set():
            try:
                msg_type, msg = self.publish_queue.get(timeout=0.1)
            except queue.Empty:
                continue
            self._publish(msg_type, msg)

        logger.debug("Publish loop exited")

    def _publish(self, msg_type: str, msg) -> bool:
        if msg_type == "result":
            return self.result_publisher.publish_result(msg)
        if msg_type == "overlay":
            return self.overlay_publisher.publish_overlay(msg)
        logger.error(f"Unknown message type: {msg_type}")
        return False

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (called by Control Plane Thread)
    # A returned (status, details) tuple becomes the command's status reply
    # ─────────────────────────────────────────────────────────────────────

    def _handle_start_search(self, command: Dict):
        self.controller.start_search()
        logger.info("Drawing mode on")

    def _handle_cancel_search(self, command: Dict):
        self.controller.cancel_search()
        logger.info("Drawing mode off")

    def _handle_draw(self, command: Dict):
        """Handle draw command: run the containment query."""
        coordinates = parse_positions(command)
        result = self.controller.complete_drawing(coordinates)

        if result.ok:
            self.events.info(
                event=LogEvent.SEARCH_COMPLETED,
                message=f"Search matched {result.match_count} listings",
                metadata={
                    'match_count': result.match_count,
                    'vertex_count': len(result.polygon),
                }
            )
            return "search_completed", {"match_count": result.match_count}
        else:
            self.events.warning(
                event=LogEvent.SEARCH_REJECTED,
                message=f"Search rejected: {result.error.reason}",
                metadata={'vertex_count': result.error.vertex_count}
            )
            return "search_rejected", {"error": result.error.reason}

    def _handle_set_start(self, command: Dict):
        coordinate = parse_coordinate(command)
        self.controller.set_starting_point(coordinate)
        logger.info(f"Starting point set: {coordinate.latitude}, {coordinate.longitude}")

    def _handle_clear_start(self, command: Dict):
        self.controller.clear_starting_point()
        logger.info("Starting point cleared")

    def _handle_clear_all(self, command: Dict):
        self.controller.clear_all()
        logger.info("Search, starting point and route cleared")

    def _handle_select_listing(self, command: Dict):
        """Handle select_listing command (KeyError for unknown ids)."""
        feature_id = str(command["feature_id"])
        self.controller.select_listing(feature_id)
        logger.info(f"Listing selected: {feature_id}")
        return "listing_selected", {"feature_id": feature_id}

    def _handle_attach_route(self, command: Dict):
        """Handle attach_route command (RouteOverlayError without a start)."""
        points = parse_positions(command)
        self.controller.attach_route(points)
        logger.info(f"Route attached ({len(points)} points)")

    def _handle_swap_style(self, command: Dict):
        session = self.controller.swap_style()
        logger.info(f"Map style: {session.style.value}")
        return "ok", {"style": session.style.value}

    def _handle_status(self, command: Dict):
        return "status", self.get_status()
