from __future__ import annotations

import json
import logging

from lasso_mqtt.logging import LogEvent, create_logger


def test_entry_carries_bound_context() -> None:
    events = create_logger("search", service_id="denver").bind(session="a")

    entry = events.entry(
        logging.WARNING, LogEvent.SEARCH_REJECTED, "Search rejected", {"vertex_count": 2}
    )

    assert entry["level"] == "WARNING"
    assert entry["event"] == "search.rejected"
    assert entry["context"] == {"service_id": "denver", "session": "a"}
    assert entry["metadata"] == {"vertex_count": 2}


def test_exception_is_flattened() -> None:
    entry = create_logger("mqtt_publisher").entry(
        logging.ERROR, LogEvent.SERIALIZATION_ERROR, "bad", exc_info=TypeError("set")
    )

    assert entry["exception"] == {"type": "TypeError", "message": "set"}
    assert "context" not in entry


def test_emits_one_json_line(capsys) -> None:
    events = create_logger("json_line_test")

    events.info(LogEvent.STORE_LOADED, "Loaded 3 listings", metadata={"feature_count": 3})

    line = json.loads(capsys.readouterr().err.strip())
    assert line["component"] == "json_line_test"
    assert line["metadata"]["feature_count"] == 3


def test_debug_is_filtered_at_info() -> None:
    events = create_logger("filtered_test")

    assert not events.logger.isEnabledFor(logging.DEBUG)
    events.debug(LogEvent.MQTT_PUBLISH_SUCCESS, "not emitted")


def test_event_area() -> None:
    assert LogEvent.STORE_FEATURES_DROPPED.area == "store"
    assert LogEvent.MQTT_CONNECTION_ERROR.area == "error"
