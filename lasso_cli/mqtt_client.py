"""
One-shot MQTT client for lasso-cli.

Connects, publishes a single command to the control topic and, when asked,
waits for the service's reply on the status topic.
"""

import json
import queue
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """
    Sends one control command per call.

    Replies: the status topic is retained, so subscribing first delivers
    the last status (flagged retain); only a live (non-retained) status
    counts as the reply to this command.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 5.0,
    ):
        self.broker = broker
        self.port = port
        self.timeout = timeout

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        if username and password:
            self.client.username_pw_set(username, password)

        self._connack: "queue.Queue[Any]" = queue.Queue()
        self._replies: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self.client.on_connect = lambda client, userdata, flags, rc, props: self._connack.put(rc)
        self.client.on_message = self._on_message

    def _on_message(self, client, userdata, msg) -> None:
        if msg.retain:
            return
        try:
            reply = json.loads(msg.payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return
        if isinstance(reply, dict):
            self._replies.put(reply)

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        qos: int = 1,
        reply_topic: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Publish `command` to `topic`.

        Args:
            topic: Control topic, e.g. "lasso/control/denver/commands"
            command: Command payload ({"command": name, ...})
            qos: Publish QoS
            reply_topic: Status topic to wait on for the service's answer

        Returns:
            The reply status dict when reply_topic is given, else None

        Raises:
            ValueError: Command is not JSON serializable
            ConnectionError: Broker unreachable or refused the connection
            TimeoutError: No publish acknowledgement or no reply in time
        """
        try:
            payload = json.dumps(command)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid command data: {e}") from e

        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except OSError as e:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                f"Is mosquitto running? ({e})"
            ) from e

        self.client.loop_start()
        try:
            self._await_connack()
            if reply_topic:
                self.client.subscribe(reply_topic, qos=1)

            info = self.client.publish(topic, payload, qos=qos)
            info.wait_for_publish(timeout=self.timeout)
            if not info.is_published():
                raise TimeoutError(f"Broker did not acknowledge command within {self.timeout}s")

            if not reply_topic:
                return None
            try:
                return self._replies.get(timeout=self.timeout)
            except queue.Empty:
                raise TimeoutError(f"No reply on {reply_topic} within {self.timeout}s") from None
        finally:
            self.client.disconnect()
            self.client.loop_stop()

    def _await_connack(self) -> None:
        try:
            reason_code = self._connack.get(timeout=self.timeout)
        except queue.Empty:
            raise TimeoutError(f"No CONNACK from {self.broker}:{self.port} within {self.timeout}s") from None
        if reason_code.is_failure:
            raise ConnectionError(f"Broker refused connection: {reason_code}")
