from __future__ import annotations

from types import MappingProxyType

import pytest

from lasso_search.overlay import RouteOverlayModel
from lasso_search.query import ContainmentQueryEngine
from lasso_search.rendering import AnnotationBuilder, AnnotationKind, AnnotationStyle
from lasso_search.session import SearchSession

from conftest import lon_lat, square


def kinds(annotations):
    return [a.kind for a in annotations]


def test_empty_session_has_no_annotations() -> None:
    assert AnnotationBuilder().build(SearchSession()) == []


def test_search_annotations(square_store) -> None:
    result = ContainmentQueryEngine.query(square(), square_store)
    session = SearchSession(
        last_result=result,
        selected_feature_id="edge",
        listing_titles=MappingProxyType({"inside": "1234 Main St"}),
    )

    annotations = AnnotationBuilder().build(session)

    assert kinds(annotations) == [
        AnnotationKind.BOUNDARY,
        AnnotationKind.KEY_LINE,
        AnnotationKind.CONNECTOR,
        AnnotationKind.LISTING,
        AnnotationKind.LISTING,
        AnnotationKind.LISTING,
    ]
    boundary = annotations[0]
    assert boundary.paint == {"fill_color": "blue", "alpha": 0.25}
    assert annotations[1].paint["width"] == 2.0

    listings = {a.feature_id: a for a in annotations if a.kind is AnnotationKind.LISTING}
    assert listings["inside"].title == "1234 Main St"
    assert listings["edge"].title == "Listing"
    assert listings["inside"].subtitle == "$350000"
    assert listings["edge"].paint["selected"]
    assert listings["inside"].paint["symbol"] == "secondary_marker"


def test_rejected_two_point_search_draws_only_key_lines(square_store) -> None:
    result = ContainmentQueryEngine.query([lon_lat(0, 0), lon_lat(5, 5)], square_store)

    annotations = AnnotationBuilder().build(SearchSession(last_result=result))

    assert kinds(annotations) == [AnnotationKind.KEY_LINE, AnnotationKind.CONNECTOR]


def test_overlay_annotations() -> None:
    overlay = (
        RouteOverlayModel()
        .set_starting_point(lon_lat(1, 1))
        .attach_route([lon_lat(1, 1), lon_lat(2, 2)])
    )

    annotations = AnnotationBuilder().build(SearchSession(overlay=overlay))

    assert kinds(annotations) == [AnnotationKind.ROUTE, AnnotationKind.STARTING_POINT]
    route, start = annotations
    assert route.paint["stroke_color"] == "purple"
    assert route.paint["width"] == 3.0
    assert start.title == "Starting Location"
    assert start.paint["symbol"] == "default_marker"


def test_to_dict_uses_lon_lat_order() -> None:
    overlay = RouteOverlayModel().set_starting_point(lon_lat(-104.99, 39.74))

    data = AnnotationBuilder().build(SearchSession(overlay=overlay))[0].to_dict()

    assert data["kind"] == "starting_point"
    assert data["coordinates"] == [[-104.99, 39.74]]
    assert data["title"] == "Starting Location"
    assert "feature_id" not in data


def test_style_validation() -> None:
    with pytest.raises(ValueError):
        AnnotationStyle(fill_alpha=1.5)
    with pytest.raises(ValueError):
        AnnotationStyle(route_width=0)
