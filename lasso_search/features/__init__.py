"""
Feature Layer
=============

Bounded Context: The static listing dataset.

Responsibilities:
- Parse a GeoJSON FeatureCollection once (fatal ParseError on bad structure)
- Drop and report malformed records
- Expose listings as a restartable sequence
- Bounding-box candidate lookup for the query engine
"""

from lasso_search.features.store import DroppedFeature, Feature, FeatureStore, ParseError

__all__ = [
    "DroppedFeature",
    "Feature",
    "FeatureStore",
    "ParseError",
]
