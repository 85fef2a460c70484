"""
Feature Store Module
====================

Static listing dataset, parsed once and queried many times.

Design:
- Fail fast on a malformed collection (ParseError)
- Drop malformed records with a traceable reason (never silently)
- Typed Feature with required price, open property mapping
- numpy coordinate columns for vectorized bounding-box candidates
- Immutable after load (tuples, read-only arrays, mappingproxy)
"""

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from lasso_search.geometry.shapes import Coordinate


class ParseError(ValueError):
    """Raised when listing data is not a GeoJSON FeatureCollection."""
    pass


@dataclass(frozen=True)
class Feature:
    """
    Immutable listing with a location and a price.

    Attributes:
        feature_id: GeoJSON "id" when present, else the record index as str
        coordinate: Listing location
        price: Raw price value (number or preformatted string)
        properties: All original properties, read-only
    """

    feature_id: str
    coordinate: Coordinate
    price: Union[int, float, str]
    properties: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if not isinstance(self.properties, MappingProxyType):
            object.__setattr__(self, 'properties', MappingProxyType(dict(self.properties)))

    @property
    def price_label(self) -> str:
        """Price as shown on the map marker, e.g. "$350000"."""
        price = self.price
        if isinstance(price, float) and price.is_integer():
            price = int(price)
        return f"${price}"


@dataclass(frozen=True)
class DroppedFeature:
    """A record skipped during load and why."""

    index: int
    reason: str


def _parse_price(properties: Mapping[str, Any]) -> Union[int, float, str]:
    if 'price' not in properties:
        raise ValueError("missing 'price' property")
    price = properties['price']
    if isinstance(price, bool):
        raise ValueError(f"price must be numeric or string, got {price!r}")
    if isinstance(price, (int, float)):
        if isinstance(price, float) and not math.isfinite(price):
            raise ValueError(f"price must be finite, got {price!r}")
        return price
    if isinstance(price, str) and price.strip():
        return price.strip()
    raise ValueError(f"price must be numeric or non-empty string, got {price!r}")


def _parse_feature(index: int, record: Any) -> Feature:
    """
    Convert one GeoJSON record to a Feature.

    Raises:
        ValueError: Record is not a usable Point listing
    """
    if not isinstance(record, dict) or record.get('type') != 'Feature':
        raise ValueError("record is not a GeoJSON Feature object")

    geometry = record.get('geometry')
    if not isinstance(geometry, dict) or geometry.get('type') != 'Point':
        geometry_type = geometry.get('type') if isinstance(geometry, dict) else None
        raise ValueError(f"geometry must be a Point, got {geometry_type!r}")

    position = geometry.get('coordinates')
    if not isinstance(position, (list, tuple)) or len(position) < 2:
        raise ValueError(f"Point coordinates must be [lon, lat], got {position!r}")
    try:
        coordinate = Coordinate.from_lon_lat([float(position[0]), float(position[1])])
    except (TypeError, ValueError, OverflowError) as e:
        raise ValueError(f"invalid Point coordinates: {e}") from e

    properties = record.get('properties') or {}
    if not isinstance(properties, dict):
        raise ValueError("properties must be an object")

    raw_id = record.get('id')
    feature_id = str(raw_id) if raw_id is not None else str(index)

    return Feature(
        feature_id=feature_id,
        coordinate=coordinate,
        price=_parse_price(properties),
        properties=properties,
    )


class FeatureStore:
    """
    Immutable collection of listings for repeated containment queries.

    Usage:
        store = FeatureStore.from_file("data/denver.geojson")
        print(len(store), store.dropped_count)

        for feature in store.all_features():  # restartable
            ...

        indices = store.candidates((39.7, -105.0, 39.8, -104.9))
    """

    def __init__(self, features: Tuple[Feature, ...], dropped: Tuple[DroppedFeature, ...] = ()):
        """
        Initialize store (prefer load()/from_file()).

        Args:
            features: Parsed listings in source order
            dropped: Records rejected during parsing
        """
        self._features = tuple(features)
        self._dropped = tuple(dropped)
        self._by_id: Dict[str, Feature] = {}
        for feature in self._features:
            # First occurrence wins for duplicated ids
            self._by_id.setdefault(feature.feature_id, feature)

        self._lats = np.array([f.coordinate.latitude for f in self._features], dtype=np.float64)
        self._lons = np.array([f.coordinate.longitude for f in self._features], dtype=np.float64)
        self._lats.flags.writeable = False
        self._lons.flags.writeable = False

    @classmethod
    def load(cls, source: str) -> "FeatureStore":
        """
        Parse a GeoJSON FeatureCollection.

        Args:
            source: Raw GeoJSON text

        Returns:
            Loaded store (check dropped_count for skipped records)

        Raises:
            ParseError: Invalid JSON, wrong top-level type, or no feature list
        """
        try:
            data = json.loads(source)
        except (TypeError, ValueError) as e:
            raise ParseError(f"Listing data is not valid JSON: {e}") from e

        if not isinstance(data, dict) or data.get('type') != 'FeatureCollection':
            found = data.get('type') if isinstance(data, dict) else type(data).__name__
            raise ParseError(f"Expected a FeatureCollection, got {found!r}")

        records = data.get('features')
        if not isinstance(records, list):
            raise ParseError("FeatureCollection 'features' must be a list")

        features: List[Feature] = []
        dropped: List[DroppedFeature] = []
        for index, record in enumerate(records):
            try:
                features.append(_parse_feature(index, record))
            except ValueError as e:
                dropped.append(DroppedFeature(index=index, reason=str(e)))

        return cls(tuple(features), tuple(dropped))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FeatureStore":
        """Read a UTF-8 GeoJSON file and load it."""
        with open(path, encoding='utf-8') as f:
            return cls.load(f.read())

    def all_features(self) -> Tuple[Feature, ...]:
        """Every listing in load order (a tuple: iterate as often as needed)."""
        return self._features

    def get(self, feature_id: str) -> Optional[Feature]:
        return self._by_id.get(str(feature_id))

    def candidates(self, bounds: Tuple[float, float, float, float]) -> np.ndarray:
        """
        Indices of listings inside an inclusive bounding box.

        Args:
            bounds: (min_lat, min_lon, max_lat, max_lon)

        Returns:
            Ascending int array (store order preserved)
        """
        min_lat, min_lon, max_lat, max_lon = bounds
        mask = (
            (self._lats >= min_lat) & (self._lats <= max_lat)
            & (self._lons >= min_lon) & (self._lons <= max_lon)
        )
        return np.flatnonzero(mask)

    @property
    def dropped(self) -> Tuple[DroppedFeature, ...]:
        return self._dropped

    @property
    def dropped_count(self) -> int:
        return len(self._dropped)

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self):
        return iter(self._features)

    def __repr__(self) -> str:
        return f"FeatureStore(features={len(self._features)}, dropped={len(self._dropped)})"
