"""
Lasso MQTT Schemas
=================

Bounded Context: Data Structures

Immutable, typed data structures for MQTT messages.

Design:
- Frozen dataclasses (immutability)
- to_dict() / from_dict() for JSON (de)serialization
- Schema versioning for evolution
- Positions travel as [lon, lat] (GeoJSON order)

Public API
----------
Common Types:
    Position: [lon, lat] with range validation
    Timestamp: ISO 8601 timestamp wrapper

Search Result Types:
    SearchStatus: Enum (OK, REJECTED, CLEARED)
    ListingPayload: One matched listing
    SearchResultMessage: Complete search result message

Overlay Types:
    OverlayMessage: Starting point / route / selection snapshot
"""

from .common import Position, Timestamp
from .search_result import SearchStatus, ListingPayload, SearchResultMessage
from .overlay import OVERLAY_STATES, OverlayMessage

__all__ = [
    # Common types
    'Position',
    'Timestamp',
    # Search result types
    'SearchStatus',
    'ListingPayload',
    'SearchResultMessage',
    # Overlay types
    'OVERLAY_STATES',
    'OverlayMessage',
]
