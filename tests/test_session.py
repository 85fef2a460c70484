from __future__ import annotations

from typing import List

import pytest

from lasso_search.overlay import OverlayState, RouteOverlayError
from lasso_search.scheduling import RequestSlot
from lasso_search.session import MapStyle, SearchController, SearchSession, street_address

from conftest import InlineExecutor, ManualExecutor, lon_lat

SQUARE = [lon_lat(0, 0), lon_lat(0, 10), lon_lat(10, 10), lon_lat(10, 0)]


class FakeGeocoder:
    def __init__(self, answer="1234 Main St, Denver, Colorado 80202, United States"):
        self.answer = answer
        self.calls = []

    def reverse_geocode(self, coordinate):
        self.calls.append(coordinate)
        return self.answer


class FakeDirections:
    def __init__(self):
        self.calls = []

    def route(self, origin, destination):
        self.calls.append((origin, destination))
        return [origin, lon_lat(2, 2), destination]


class FailingDirections:
    def route(self, origin, destination):
        raise ConnectionError("directions service unreachable")


def make_controller(store, scheduler, executor=None, **kwargs) -> SearchController:
    executor = executor or InlineExecutor()
    return SearchController(
        store,
        scheduler=scheduler,
        geocode_slot=RequestSlot("geocode", executor),
        directions_slot=RequestSlot("directions", executor),
        **kwargs,
    )


def test_street_address_is_first_segment() -> None:
    assert street_address("1234 Main St, Denver, CO") == "1234 Main St"
    assert street_address("Union Station") == "Union Station"


def test_drawing_runs_query_and_dismisses_after_delay(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)

    controller.start_search()
    result = controller.complete_drawing(SQUARE)

    assert result.match_count == 3
    assert controller.session.last_result is result
    assert controller.session.drawing

    scheduler.advance(0.5)
    assert controller.session.drawing
    scheduler.advance(0.5)
    assert not controller.session.drawing
    assert controller.session.last_result is result


def test_new_gesture_cancels_pending_dismiss(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)

    controller.start_search()
    controller.complete_drawing(SQUARE)
    controller.start_search()
    scheduler.advance(5.0)

    assert controller.session.drawing


def test_invalid_drawing_is_kept_as_diagnosed_result(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)

    result = controller.complete_drawing([lon_lat(0, 0), lon_lat(1, 1)])

    assert not result.ok
    assert controller.session.last_result.error is result.error


def test_starting_point_replace_and_clear(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)
    p1, p2 = lon_lat(1, 1), lon_lat(2, 2)

    controller.set_starting_point(p1)
    controller.set_starting_point(p2)
    assert controller.session.overlay.starting_point == p2

    controller.clear_starting_point()
    assert controller.session.overlay.state is OverlayState.NO_START


def test_attach_route_without_start_raises(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)

    with pytest.raises(RouteOverlayError):
        controller.attach_route([lon_lat(1, 1)])


def test_redraw_keeps_overlay(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)
    controller.set_starting_point(lon_lat(1, 1))
    controller.attach_route([lon_lat(1, 1), lon_lat(3, 3)])

    controller.complete_drawing(SQUARE)

    assert controller.session.overlay.state is OverlayState.HAS_START_AND_ROUTE


def test_clear_all_resets_everything(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)
    controller.start_search()
    controller.complete_drawing(SQUARE)
    controller.set_starting_point(lon_lat(1, 1))
    controller.select_listing("inside")

    controller.clear_all()
    session = controller.session

    assert session.last_result is None
    assert session.overlay.state is OverlayState.NO_START
    assert session.selected_feature_id is None
    assert not session.drawing
    assert scheduler.pending == []


def test_select_unknown_listing_raises(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)

    with pytest.raises(KeyError):
        controller.select_listing("missing")


def test_selection_resolves_street_address_title(square_store, scheduler) -> None:
    geocoder = FakeGeocoder()
    controller = make_controller(square_store, scheduler, geocoder=geocoder)
    feature = square_store.get("inside")

    assert controller.session.title_for(feature) == "Listing"
    controller.select_listing("inside")

    assert geocoder.calls == [feature.coordinate]
    assert controller.session.selected_feature_id == "inside"
    assert controller.session.title_for(feature) == "1234 Main St"


def test_empty_geocoder_answer_keeps_default_title(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler, geocoder=FakeGeocoder(answer=None))

    controller.select_listing("inside")

    assert controller.session.title_for(square_store.get("inside")) == "Listing"


def test_route_is_revealed_after_display_delay(square_store, scheduler) -> None:
    directions = FakeDirections()
    controller = make_controller(square_store, scheduler, directions=directions)
    start = lon_lat(1, 1)
    controller.set_starting_point(start)

    controller.select_listing("inside")
    assert directions.calls == [(start, square_store.get("inside").coordinate)]
    assert controller.session.overlay.route is None

    scheduler.advance(1.5)
    assert controller.session.overlay.route is None
    scheduler.advance(0.5)
    assert len(controller.session.overlay.route) == 3


def test_no_directions_request_without_starting_point(square_store, scheduler) -> None:
    directions = FakeDirections()
    controller = make_controller(square_store, scheduler, directions=directions)

    controller.select_listing("inside")
    scheduler.advance(5.0)

    assert directions.calls == []
    assert controller.session.overlay.route is None


def test_moving_start_discards_pending_route(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler, directions=FakeDirections())
    controller.set_starting_point(lon_lat(1, 1))
    controller.select_listing("inside")

    controller.set_starting_point(lon_lat(3, 3))
    scheduler.advance(5.0)

    assert controller.session.overlay.state is OverlayState.HAS_START


def test_superseded_request_result_is_ignored(square_store, scheduler) -> None:
    executor = ManualExecutor()
    geocoder = FakeGeocoder()
    controller = make_controller(square_store, scheduler, executor=executor, geocoder=geocoder)

    controller.select_listing("inside")
    controller.select_listing("edge")
    executor.run_all()

    titles = controller.session.listing_titles
    assert "inside" not in titles
    assert titles["edge"] == "1234 Main St"
    assert len(geocoder.calls) == 1


def test_provider_failure_is_no_result(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler, directions=FailingDirections())
    controller.set_starting_point(lon_lat(1, 1))

    controller.select_listing("inside")
    scheduler.advance(5.0)

    assert controller.session.overlay.state is OverlayState.HAS_START


def test_swap_style_is_ignored_while_drawing(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)

    controller.swap_style()
    assert controller.session.style is MapStyle.EMERALD

    controller.start_search()
    controller.swap_style()
    assert controller.session.style is MapStyle.EMERALD


def test_listeners_receive_every_snapshot(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)
    seen: List[SearchSession] = []
    controller.subscribe(seen.append)

    controller.start_search()
    controller.complete_drawing(SQUARE)
    controller.set_starting_point(lon_lat(1, 1))

    assert [s.revision for s in seen] == [1, 2, 3]
    assert seen[-1] is controller.session


def test_failing_listener_does_not_break_controller(square_store, scheduler) -> None:
    controller = make_controller(square_store, scheduler)

    def broken(session):
        raise RuntimeError("renderer crashed")

    controller.subscribe(broken)
    controller.start_search()

    assert controller.session.drawing


def test_negative_delay_rejected(square_store, scheduler) -> None:
    with pytest.raises(ValueError):
        make_controller(square_store, scheduler, search_dismiss_delay=-1)


class ClearBeforeAnswerSlot(RequestSlot):
    """Runs a hook between the slot's staleness check and the answer callback."""

    def __init__(self, kind, executor, before_answer=None):
        super().__init__(kind, executor)
        self.before_answer = before_answer

    def submit(self, fn, *args, on_result, on_no_result=None):
        def deliver(answer):
            if self.before_answer is not None:
                self.before_answer()
            on_result(answer)

        return super().submit(fn, *args, on_result=deliver, on_no_result=on_no_result)


def test_title_answer_landing_after_clear_all_is_dropped(square_store, scheduler) -> None:
    executor = ManualExecutor()
    slot = ClearBeforeAnswerSlot("geocode", executor)
    controller = SearchController(
        square_store,
        geocoder=FakeGeocoder(),
        scheduler=scheduler,
        geocode_slot=slot,
        directions_slot=RequestSlot("directions", executor),
    )
    slot.before_answer = controller.clear_all

    controller.select_listing("inside")
    executor.run_all()

    assert controller.session.selected_feature_id is None
    assert dict(controller.session.listing_titles) == {}
