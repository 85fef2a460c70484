from __future__ import annotations

from types import SimpleNamespace

import pytest

from lasso_control import (
    CommandNotAvailableError,
    CommandRegistry,
    CommandValidationError,
    MQTTControlPlane,
    RegisteredCommand,
)


def test_register_and_execute() -> None:
    registry = CommandRegistry()
    registry.register("select_listing", lambda data: data["feature_id"], "Select", required=("feature_id",))

    assert registry.execute("select_listing", {"feature_id": "7"}) == "7"
    assert registry.is_available("select_listing")
    assert registry.required_fields("select_listing") == ("feature_id",)
    assert registry.get_help() == {"select_listing": "Select"}
    assert registry.count() == 1


def test_handler_receives_empty_dict_without_payload() -> None:
    registry = CommandRegistry()
    registry.register("status", lambda data: data, "Status")

    assert registry.execute("status") == {}


def test_unknown_command_lists_available() -> None:
    registry = CommandRegistry()
    registry.register("clear_all", lambda data: None, "Clear")

    with pytest.raises(CommandNotAvailableError, match="clear_all"):
        registry.execute("reboot")


def test_missing_fields() -> None:
    registry = CommandRegistry()
    registry.register("set_start", lambda data: None, "Start", required=("latitude", "longitude"))

    with pytest.raises(CommandValidationError) as excinfo:
        registry.execute("set_start", {"latitude": 1.0})

    assert excinfo.value.missing == ("longitude",)
    assert excinfo.value.command == "set_start"


@pytest.mark.parametrize("name", ["", "Draw", "clear all"])
def test_invalid_names(name) -> None:
    with pytest.raises(ValueError):
        CommandRegistry().register(name, lambda data: None, "bad")


def test_duplicate_registration() -> None:
    registry = CommandRegistry()
    registry.register("draw", lambda data: None, "Draw")

    with pytest.raises(ValueError):
        registry.register("draw", lambda data: None, "Draw again")


@pytest.fixture
def plane(monkeypatch):
    control = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="lasso/control/test/commands",
        status_topic="lasso/control/test/status",
        client_id="test",
    )
    control.statuses = []
    monkeypatch.setattr(
        control, "publish_status",
        lambda status, details=None: control.statuses.append(control.build_status(status, details)),
    )
    return control


def test_handle_command_dispatches(plane) -> None:
    calls = []
    plane.command_registry.register("clear_all", lambda data: calls.append(data), "Clear")

    plane.handle_command({"command": "CLEAR_ALL"})

    assert calls == [{"command": "CLEAR_ALL"}]
    assert [(s["status"], s["command"]) for s in plane.statuses] == [("ok", "clear_all")]


def test_handler_reply_is_published(plane) -> None:
    plane.command_registry.register("status", lambda data: ("status", {"revision": 4}), "Status")

    plane.handle_command({"command": "status"})

    status = plane.statuses[-1]
    assert (status["status"], status["command"], status["revision"]) == ("status", "status", 4)


def test_unknown_command_publishes_error(plane) -> None:
    plane.command_registry.register("status", lambda data: None, "Status")

    plane.handle_command({"command": "reboot"})

    status = plane.statuses[-1]
    assert status["status"] == "error"
    assert status["command"] == "reboot"
    assert status["available_commands"] == ["status"]
    assert status["client_id"] == "test"


def test_handler_errors_publish_error(plane) -> None:
    def bad_value(data):
        raise ValueError("latitude out of range")

    def bad_key(data):
        raise KeyError("Unknown listing: 99")

    plane.command_registry.register("set_start", bad_value, "Start")
    plane.command_registry.register("select_listing", bad_key, "Select", required=("feature_id",))

    plane.handle_command({"command": "set_start"})
    plane.handle_command({"command": "select_listing", "feature_id": "99"})
    plane.handle_command({"command": "select_listing"})

    assert [s["error"] for s in plane.statuses] == [
        "latitude out of range",
        "Unknown listing: 99",
        "Command 'select_listing' missing required field(s): feature_id",
    ]


def test_empty_command(plane) -> None:
    plane.handle_command({})

    assert plane.statuses[-1]["error"] == "empty command"


def test_malformed_payloads_publish_error(plane) -> None:
    plane._on_message(None, None, SimpleNamespace(payload=b"{not json"))
    plane._on_message(None, None, SimpleNamespace(payload=b"[1, 2]"))

    assert [s["status"] for s in plane.statuses] == ["error", "error"]
    assert plane.statuses[1]["error"] == "command payload must be a JSON object"


def test_on_message_runs_command(plane) -> None:
    calls = []
    plane.command_registry.register("swap_style", lambda data: calls.append(data), "Swap")

    plane._on_message(None, None, SimpleNamespace(payload=b'{"command": "swap_style"}'))

    assert calls == [{"command": "swap_style"}]


def test_registered_command_reports_missing_fields() -> None:
    entry = RegisteredCommand(lambda data: None, "Start", ("latitude", "longitude"))

    assert entry.missing_fields({"latitude": 1.0}) == ("longitude",)
    assert entry.missing_fields({"latitude": 1.0, "longitude": 2.0}) == ()
