from __future__ import annotations

import queue

import pytest

from lasso_control import MQTTControlPlane
from lasso_mqtt import SearchStatus
from lasso_service import SearchService, ServiceConfig
from lasso_service.service import parse_coordinate, parse_positions

SQUARE = [[0, 0], [0, 10], [10, 10], [10, 0]]


class FakePublisher:
    def __init__(self):
        self.connected = False
        self.messages = []

    def connect(self, timeout: float = 10.0) -> bool:
        self.connected = True
        return True

    def disconnect(self) -> None:
        self.connected = False

    def publish_result(self, msg) -> bool:
        self.messages.append(msg)
        return True

    publish_overlay = publish_result


@pytest.fixture
def control_plane(monkeypatch):
    plane = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="lasso/control/test/commands",
        status_topic="lasso/control/test/status",
        client_id="lasso_test",
    )
    plane.statuses = []
    monkeypatch.setattr(
        plane, "publish_status",
        lambda status, details=None: plane.statuses.append((status, details or {})),
    )
    return plane


@pytest.fixture
def service(listings_file, control_plane, scheduler):
    service = SearchService(
        config=ServiceConfig(service_id="test", listings_path=listings_file),
        control_plane=control_plane,
        result_publisher=FakePublisher(),
        overlay_publisher=FakePublisher(),
        scheduler=scheduler,
    )
    service.setup()
    return service


def drain(service):
    messages = []
    while True:
        try:
            messages.append(service.publish_queue.get_nowait())
        except queue.Empty:
            return messages


def test_setup_registers_commands(service, control_plane) -> None:
    assert control_plane.command_registry.available_commands == {
        "start_search", "cancel_search", "draw", "set_start", "clear_start",
        "clear_all", "select_listing", "attach_route", "swap_style", "status",
    }
    assert len(service.store) == 3


def test_draw_publishes_result_and_overlay(service, control_plane, scheduler) -> None:
    control_plane.handle_command({"command": "start_search"})
    control_plane.handle_command({"command": "draw", "coordinates": SQUARE})

    messages = drain(service)
    kinds = [kind for kind, _ in messages]
    assert kinds == ["overlay", "result"]

    result = messages[-1][1]
    assert result.status is SearchStatus.OK
    assert [l.feature_id for l in result.listings] == ["1", "3"]
    assert control_plane.statuses[-1] == ("search_completed", {"command": "draw", "match_count": 2})

    scheduler.advance(1.0)
    (kind, overlay), = drain(service)
    assert kind == "overlay"
    assert overlay.drawing is False


def test_rejected_draw(service, control_plane) -> None:
    control_plane.handle_command({"command": "draw", "coordinates": [[0, 0], [1, 1]]})

    result = drain(service)[-1][1]
    assert result.status is SearchStatus.REJECTED
    assert result.error
    assert control_plane.statuses[-1][0] == "search_rejected"


def test_select_listing_with_start(service, control_plane) -> None:
    control_plane.handle_command({"command": "draw", "coordinates": SQUARE})
    control_plane.handle_command({"command": "set_start", "latitude": 1.0, "longitude": 1.0})
    drain(service)

    control_plane.handle_command({"command": "select_listing", "feature_id": 3})

    messages = dict(drain(service))
    assert messages["result"].get_listing("3").selected
    assert messages["overlay"].selected_feature_id == "3"
    assert messages["overlay"].state == "has_start"
    assert control_plane.statuses[-1] == (
        "listing_selected", {"command": "select_listing", "feature_id": "3"}
    )


def test_attach_route_and_clear_all(service, control_plane) -> None:
    control_plane.handle_command({"command": "set_start", "latitude": 1.0, "longitude": 1.0})
    control_plane.handle_command({"command": "attach_route", "coordinates": [[1, 1], [5, 5]]})

    overlay = drain(service)[-1][1]
    assert overlay.state == "has_start_and_route"
    assert overlay.to_dict()["route"] == [[1.0, 1.0], [5.0, 5.0]]

    control_plane.handle_command({"command": "clear_all"})
    messages = dict(drain(service))
    assert messages["result"].status is SearchStatus.CLEARED
    assert messages["overlay"].state == "no_start"


def test_command_errors_are_reported(service, control_plane) -> None:
    control_plane.handle_command({"command": "attach_route", "coordinates": [[1, 1]]})
    control_plane.handle_command({"command": "select_listing", "feature_id": "99"})
    control_plane.handle_command({"command": "set_start", "latitude": 95, "longitude": 0})
    control_plane.handle_command({"command": "draw", "coordinates": "nope"})

    assert [status for status, _ in control_plane.statuses] == ["error"] * 4
    assert control_plane.statuses[1][1]["error"] == "Unknown listing: 99"
    assert drain(service) == []


def test_swap_style_and_status(service, control_plane) -> None:
    control_plane.handle_command({"command": "swap_style"})

    (kind, overlay), = drain(service)
    assert kind == "overlay"
    assert overlay.style.endswith("emerald-v7")

    control_plane.handle_command({"command": "status"})
    status, details = control_plane.statuses[-1]
    assert status == "status"
    assert details["style"] == "emerald"
    assert details["feature_count"] == 3


def test_start_and_stop(service, control_plane, monkeypatch) -> None:
    monkeypatch.setattr(control_plane, "connect", lambda timeout=5.0: True)
    monkeypatch.setattr(control_plane, "disconnect", lambda: None)

    service.start()
    assert service.is_running
    assert service.result_publisher.connected
    assert control_plane.statuses[-1][0] == "running"

    service.stop()
    assert not service.is_running
    assert not service.overlay_publisher.connected
    assert control_plane.statuses[-1][0] == "stopped"


def test_start_requires_broker(service, control_plane, monkeypatch) -> None:
    monkeypatch.setattr(control_plane, "connect", lambda timeout=5.0: False)

    with pytest.raises(RuntimeError):
        service.start()


def test_start_requires_setup(listings_file, control_plane) -> None:
    service = SearchService(
        config=ServiceConfig(service_id="test", listings_path=listings_file),
        control_plane=control_plane,
        result_publisher=FakePublisher(),
        overlay_publisher=FakePublisher(),
    )

    with pytest.raises(RuntimeError):
        service.start()


def test_parse_helpers() -> None:
    assert parse_positions({"coordinates": [[1, 2]]})[0].latitude == 2
    assert parse_coordinate({"latitude": 39.7, "longitude": -104.9}).longitude == -104.9
    with pytest.raises(ValueError):
        parse_positions({"coordinates": [[1]]})
    with pytest.raises(ValueError):
        parse_coordinate({"latitude": "north", "longitude": 0})


def test_parse_errors_keep_their_cause() -> None:
    with pytest.raises(ValueError) as excinfo:
        parse_coordinate({"latitude": None, "longitude": 0})
    assert isinstance(excinfo.value.__cause__, TypeError)

    with pytest.raises(ValueError) as excinfo:
        parse_positions({"coordinates": [[None, 1]]})
    assert isinstance(excinfo.value.__cause__, TypeError)
