"""
Rendering Layer
===============

Bounded Context: What the map should show.

Responsibilities:
- Listing markers with price subtitles
- Search boundary fill, key line and connector segment
- Starting point pin and route line
- Pure derivation - no drawing, no state

Non-responsibilities:
- Containment (handled by query)
- Session transitions (handled by session)
- Actual drawing (rendering collaborator, via MQTT)
"""

from lasso_search.rendering.annotations import (
    Annotation,
    AnnotationBuilder,
    AnnotationKind,
    AnnotationStyle,
)

__all__ = [
    "Annotation",
    "AnnotationBuilder",
    "AnnotationKind",
    "AnnotationStyle",
]
