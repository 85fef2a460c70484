from __future__ import annotations

import pytest

from lasso_search.overlay import OverlayState, RouteOverlayError, RouteOverlayModel

from conftest import lon_lat


def test_starts_without_starting_point() -> None:
    model = RouteOverlayModel()

    assert model.state is OverlayState.NO_START
    assert model.route is None


def test_replacing_and_clearing_starting_point() -> None:
    p1, p2 = lon_lat(-104.99, 39.74), lon_lat(-104.95, 39.70)

    model = RouteOverlayModel().set_starting_point(p1).set_starting_point(p2)
    assert model.starting_point == p2
    assert model.state is OverlayState.HAS_START

    cleared = model.clear_starting_point()
    assert cleared.starting_point is None
    assert cleared.state is OverlayState.NO_START


def test_attach_route_requires_starting_point() -> None:
    with pytest.raises(RouteOverlayError):
        RouteOverlayModel().attach_route([lon_lat(0, 0), lon_lat(1, 1)])


def test_attach_route_rejects_empty_route() -> None:
    model = RouteOverlayModel().set_starting_point(lon_lat(0, 0))

    with pytest.raises(RouteOverlayError):
        model.attach_route([])


def test_latest_route_replaces_previous() -> None:
    model = RouteOverlayModel().set_starting_point(lon_lat(0, 0))

    model = model.attach_route([lon_lat(0, 0), lon_lat(1, 1)])
    model = model.attach_route([lon_lat(0, 0), lon_lat(2, 2), lon_lat(3, 3)])

    assert model.state is OverlayState.HAS_START_AND_ROUTE
    assert len(model.route) == 3


def test_new_starting_point_and_selection_drop_route() -> None:
    routed = RouteOverlayModel().set_starting_point(lon_lat(0, 0)).attach_route([lon_lat(1, 1)])

    assert routed.set_starting_point(lon_lat(5, 5)).route is None
    assert routed.begin_selection().route is None
    assert routed.begin_selection().starting_point == lon_lat(0, 0)


def test_transitions_do_not_mutate() -> None:
    original = RouteOverlayModel().set_starting_point(lon_lat(0, 0))

    original.attach_route([lon_lat(1, 1)])
    original.clear_starting_point()

    assert original.state is OverlayState.HAS_START
