"""
Lasso MQTT Communication Package
================================

Bounded Context: what the search service puts on the wire

The service publishes two retained snapshot streams that a map renderer
draws from: search results (matches, hull, annotations) and the overlay
(starting point, route, map style). Each snapshot carries the session
revision it was built from; publishers never send an older revision after
a newer one.

- schemas/: frozen message dataclasses with to_dict()/from_dict()
- publishers/: one paho client per stream (BasePublisher holds the shared
  connect/retain/reconnect logic)
- logging/: JSON-line StructuredLogger and the LogEvent catalogue

Example:
    >>> from lasso_mqtt import SearchResultPublisher, create_logger
    >>>
    >>> logger = create_logger("search_results")
    >>> publisher = SearchResultPublisher(
    ...     broker_host="localhost",
    ...     topic="lasso/data/results/denver",
    ...     logger=logger
    ... )
    >>> publisher.connect()
    >>> publisher.publish_result(message)
"""

__version__ = "1.0.0"

from .schemas import (
    Position,
    Timestamp,
    SearchStatus,
    ListingPayload,
    SearchResultMessage,
    OverlayMessage,
)

from .publishers import (
    BasePublisher,
    SearchResultPublisher,
    OverlayPublisher,
)

from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    '__version__',
    # Schemas
    'Position',
    'Timestamp',
    'SearchStatus',
    'ListingPayload',
    'SearchResultMessage',
    'OverlayMessage',
    # Publishers
    'BasePublisher',
    'SearchResultPublisher',
    'OverlayPublisher',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
