"""
Search Result Message Schema
============================

Bounded Context: Search Result Data Structures

Schema for the outcome of one drawn search, published to the map renderer.

Design:
- ListingPayload: one matched listing (position + labels)
- SearchResultMessage: complete message (listings, boundary, connector,
  render-ready annotations)

Message Flow:
    SearchController -> QueryResult -> SearchResultMessage
        -> SearchResultPublisher -> MQTT -> map renderer
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .common import Position, Timestamp


class SearchStatus(str, Enum):
    """Search outcome enumeration."""
    OK = "ok"                # ring was searched (maybe zero matches)
    REJECTED = "rejected"    # ring encloses no area, nothing searched
    CLEARED = "cleared"      # no search on the map (startup or clear_all)


@dataclass(frozen=True)
class ListingPayload:
    """
    One matched listing.

    Attributes:
        feature_id: Listing identifier (use with select_listing)
        position: Listing location
        title: "Listing" or the resolved street address
        price_label: Formatted price, e.g. "$350000"
        selected: True if this is the currently selected listing
    """
    feature_id: str
    position: Position
    title: str
    price_label: str
    selected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'feature_id': self.feature_id,
            'position': self.position.to_dict(),
            'title': self.title,
            'price_label': self.price_label,
            'selected': self.selected,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ListingPayload':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                feature_id=str(data['feature_id']),
                position=Position.from_dict(data['position']),
                title=str(data['title']),
                price_label=str(data['price_label']),
                selected=bool(data.get('selected', False)),
            )
        except KeyError as e:
            raise ValueError(f"Missing required ListingPayload field: {e}") from e


@dataclass(frozen=True)
class SearchResultMessage:
    """
    Complete search result message for MQTT publication.

    Attributes:
        schema_version: Message schema version (for evolution)
        timestamp: ISO 8601 timestamp of message creation
        service_id: Publishing service
        revision: Session revision that produced this message
        status: OK, REJECTED or CLEARED
        listings: Matched listings in store order
        boundary: Closed ring (first position repeated last)
        connector: [last, first] segment, empty if not drawable
        error: Rejection reason (REJECTED only)
        annotations: Render-ready annotation dicts

    Invariants:
        - status == REJECTED  <=>  error is set
        - REJECTED and CLEARED messages carry no listings
    """
    schema_version: str
    timestamp: Timestamp
    service_id: str
    revision: int
    status: SearchStatus
    listings: List[ListingPayload] = field(default_factory=list)
    boundary: List[Position] = field(default_factory=list)
    connector: List[Position] = field(default_factory=list)
    error: Optional[str] = None
    annotations: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        """Validate invariants."""
        if self.revision < 0:
            raise ValueError(f"revision must be >= 0, got {self.revision}")
        if (self.status == SearchStatus.REJECTED) != (self.error is not None):
            raise ValueError("error must be set exactly when status is REJECTED")
        if self.status != SearchStatus.OK and self.listings:
            raise ValueError(f"{self.status.value} search results cannot carry listings")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result = {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'service_id': self.service_id,
            'revision': self.revision,
            'status': self.status.value,
            'match_count': self.match_count,
            'listings': [listing.to_dict() for listing in self.listings],
            'boundary': [p.to_dict() for p in self.boundary],
            'connector': [p.to_dict() for p in self.connector],
            'annotations': list(self.annotations),
        }
        if self.error is not None:
            result['error'] = self.error
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SearchResultMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                service_id=str(data['service_id']),
                revision=int(data['revision']),
                status=SearchStatus(data['status']),
                listings=[ListingPayload.from_dict(item) for item in data.get('listings', [])],
                boundary=[Position.from_dict(p) for p in data.get('boundary', [])],
                connector=[Position.from_dict(p) for p in data.get('connector', [])],
                error=data.get('error'),
                annotations=list(data.get('annotations', [])),
            )
        except KeyError as e:
            raise ValueError(f"Missing required SearchResultMessage field: {e}") from e
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid SearchResultMessage data: {e}") from e

    @property
    def match_count(self) -> int:
        return len(self.listings)

    def get_listing(self, feature_id: str) -> Optional[ListingPayload]:
        for listing in self.listings:
            if listing.feature_id == feature_id:
                return listing
        return None
