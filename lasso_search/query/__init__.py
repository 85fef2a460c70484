"""
Query Layer
===========

Bounded Context: One drawn ring against the listing store.

Responsibilities:
- Reject rings that enclose no area (diagnosed result, no exception)
- Collect matches in store order
- Derive the closed boundary ring and connector segment
"""

from lasso_search.query.engine import ContainmentQueryEngine, Match, QueryResult

__all__ = [
    "ContainmentQueryEngine",
    "Match",
    "QueryResult",
]
