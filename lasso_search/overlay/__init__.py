"""
Overlay Layer
=============

Bounded Context: Starting point and route shown over the search.

Responsibilities:
- At most one starting point, replaced on set
- Most recent route only, attached from an external provider
- Explicit state machine (OverlayState)
"""

from lasso_search.overlay.route import OverlayState, RouteOverlayError, RouteOverlayModel

__all__ = [
    "OverlayState",
    "RouteOverlayError",
    "RouteOverlayModel",
]
