"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Event names are dotted: <area>.<subject>[.<outcome>]

    mqtt.*     broker connection and publishing
    store.*    listing dataset load
    search.*   containment queries and their messages
    overlay.*  starting point / route messages
    error.*    failures that were handled (logged, not raised)

Filtering the JSON lines of a running service:
    ... | jq 'select(.event == "search.rejected") | .metadata.vertex_count'
"""

from enum import Enum


class LogEvent(str, Enum):
    """Typed log event names."""

    MQTT_CONNECTED = "mqtt.connected"
    MQTT_DISCONNECTED = "mqtt.disconnected"
    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    MQTT_PUBLISH_STALE = "mqtt.publish.stale"  # older revision than the last sent

    STORE_LOADED = "store.loaded"
    # One entry per load, listing the first dropped records with reasons
    STORE_FEATURES_DROPPED = "store.features.dropped"

    SEARCH_COMPLETED = "search.completed"
    SEARCH_REJECTED = "search.rejected"  # ring encloses no area
    SEARCH_RESULT_SERIALIZED = "search.result.serialized"
    SEARCH_RESULT_PUBLISHED = "search.result.published"

    OVERLAY_SERIALIZED = "overlay.serialized"
    OVERLAY_PUBLISHED = "overlay.published"

    SERIALIZATION_ERROR = "error.serialization"
    MQTT_CONNECTION_ERROR = "error.mqtt_connection"

    @property
    def area(self) -> str:
        """First segment of the event name ("search", "mqtt", ...)."""
        return self.value.split(".", 1)[0]
