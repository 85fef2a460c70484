"""
Base MQTT Publisher
==================

Bounded Context: MQTT Infrastructure

Both data topics (search results, overlay) carry *snapshots*: each message
replaces the previous one, and a renderer only ever needs the latest. The
base publisher is built around that:

- Retained publishing, so a renderer that subscribes late gets the state
- Revision ordering: a snapshot older than the last one sent is dropped
- Latest-wins delivery: a snapshot produced while the broker is away is
  kept and sent as soon as the connection comes back (paho reconnects
  on its own inside loop_start())

Architecture:
    BasePublisher (abstract: format_message, describe)
        ├── SearchResultPublisher
        └── OverlayPublisher
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import paho.mqtt.client as mqtt

from ..logging import LogEvent, StructuredLogger


class BasePublisher(ABC):
    """
    Publishes one kind of snapshot message to one topic.

    Subclasses implement:
        format_message(msg) -> dict   (JSON-ready payload)
        describe(msg) -> (text, metadata) for the "published" log entry
    and set `serialized_event` / `published_event`.

    Thread Safety:
        publish_snapshot() may be called from any thread; `_lock` guards
        the pending payload, revision and counters shared with paho's
        network thread (on_connect republishes the pending snapshot).
    """

    serialized_event: LogEvent
    published_event: LogEvent

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
        retain: bool = True,
    ):
        if qos not in (0, 1, 2):
            raise ValueError(f"qos must be 0, 1 or 2, got {qos}")

        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos
        self.retain = retain

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.reconnect_delay_set(min_delay=1, max_delay=30)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = threading.Event()
        self._lock = threading.Lock()
        self._pending: Optional[str] = None  # latest payload not yet accepted by paho
        self._last_revision = -1
        self._message_count = 0
        self._stale_count = 0

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    # ─────────────────────────────────────────────────────────────────────
    # Connection
    # ─────────────────────────────────────────────────────────────────────

    def connect(self, timeout: float = 10.0) -> bool:
        """Start the network loop and wait for the first CONNACK."""
        try:
            self.client.connect(self.broker_host, self.broker_port)
        except OSError as e:
            self.logger.error(
                LogEvent.MQTT_CONNECTION_ERROR,
                f"Cannot reach broker {self.broker}",
                metadata={'topic': self.topic},
                exc_info=e,
            )
            return False

        self.client.loop_start()
        if self._connected.wait(timeout=timeout):
            return True

        self.logger.error(
            LogEvent.MQTT_CONNECTION_ERROR,
            f"No CONNACK from {self.broker} within {timeout}s",
            metadata={'topic': self.topic},
        )
        return False

    def disconnect(self) -> None:
        self.client.loop_stop()
        self.client.disconnect()
        self._connected.clear()
        self.logger.info(
            LogEvent.MQTT_DISCONNECTED,
            f"Publisher for {self.topic} stopped",
            metadata=self.get_stats(),
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                LogEvent.MQTT_CONNECTION_ERROR,
                f"Broker {self.broker} refused connection ({reason_code})",
            )
            return

        self._connected.set()
        self.logger.info(
            LogEvent.MQTT_CONNECTED,
            f"Connected to {self.broker}",
            metadata={'client_id': self.client_id, 'topic': self.topic},
        )
        with self._lock:
            pending = self._pending
        if pending is not None:
            self._send(pending)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        if reason_code.is_failure:
            self.logger.warning(
                LogEvent.MQTT_DISCONNECTED,
                f"Lost connection to {self.broker}, retrying",
                metadata={'reason_code': str(reason_code)},
            )

    # ─────────────────────────────────────────────────────────────────────
    # Publishing
    # ─────────────────────────────────────────────────────────────────────

    @abstractmethod
    def format_message(self, msg) -> Dict[str, Any]:
        """JSON-ready dict for `msg`; raise ValueError if it can't be built."""

    @abstractmethod
    def describe(self, msg) -> Tuple[str, Dict[str, Any]]:
        """Log text and metadata for a published `msg`."""

    def publish_snapshot(self, msg) -> bool:
        """
        Format and publish one snapshot message.

        Returns:
            True if paho accepted the message. False if it was stale,
            unserializable, or the broker is unavailable (the snapshot is
            then sent on reconnect unless a newer one replaces it).
        """
        with self._lock:
            if msg.revision < self._last_revision:
                self._stale_count += 1
                self.logger.debug(
                    LogEvent.MQTT_PUBLISH_STALE,
                    f"Skipped stale revision {msg.revision} (last {self._last_revision})",
                    metadata={'topic': self.topic},
                )
                return False

        try:
            payload = self.format_message(msg)
        except ValueError as e:
            self.logger.error(
                LogEvent.SERIALIZATION_ERROR,
                f"Cannot build payload for revision {msg.revision}",
                exc_info=e,
            )
            return False

        self.logger.debug(self.serialized_event, f"Serialized revision {msg.revision}")
        with self._lock:
            self._last_revision = msg.revision

        if not self.publish(payload):
            return False

        text, metadata = self.describe(msg)
        self.logger.info(self.published_event, text, metadata={**metadata, 'topic': self.topic})
        return True

    def publish(self, payload: Dict[str, Any]) -> bool:
        """Serialize and hand one payload to paho (kept for reconnect if offline)."""
        try:
            data = json.dumps(payload)
        except (TypeError, ValueError) as e:
            self.logger.error(
                LogEvent.SERIALIZATION_ERROR,
                "Payload is not JSON serializable",
                metadata={'topic': self.topic},
                exc_info=e,
            )
            return False

        with self._lock:
            self._pending = data

        if not self._connected.is_set():
            self.logger.warning(
                LogEvent.MQTT_PUBLISH_FAILED,
                "Broker unavailable, snapshot held until reconnect",
                metadata={'topic': self.topic},
            )
            return False

        return self._send(data)

    def _send(self, data: str) -> bool:
        info = self.client.publish(self.topic, payload=data, qos=self.qos, retain=self.retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                LogEvent.MQTT_PUBLISH_FAILED,
                f"paho rejected publish ({mqtt.error_string(info.rc)})",
                metadata={'topic': self.topic},
            )
            return False

        with self._lock:
            # A newer snapshot may have arrived while this one was sent
            if self._pending == data:
                self._pending = None
            self._message_count += 1
            count = self._message_count

        self.logger.debug(
            LogEvent.MQTT_PUBLISH_SUCCESS,
            f"Published to {self.topic}",
            metadata={'message_count': count, 'qos': self.qos, 'retain': self.retain},
        )
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'topic': self.topic,
                'broker': self.broker,
                'connected': self._connected.is_set(),
                'message_count': self._message_count,
                'stale_count': self._stale_count,
                'last_revision': self._last_revision,
                'pending': self._pending is not None,
            }
