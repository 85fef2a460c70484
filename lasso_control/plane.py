"""
MQTTControlPlane - command intake and status replies for one search service

Bounded Context: the service's MQTT control channel
  - subscribes lasso/control/{service_id}/commands (QoS 1)
  - answers on lasso/control/{service_id}/status (QoS 1, retained)
  - dispatches decoded commands through a CommandRegistry

Every command, accepted or not, produces exactly one status message. The
retained copy lets a late subscriber see the latest outcome.

paho runs its network loop on its own thread; _on_message and therefore
every command handler run there.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandNotAvailableError, CommandRegistry

logger = logging.getLogger(__name__)


class MQTTControlPlane:
    """
    Owns the control-channel MQTT client and the command table.

    Example:
        plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="lasso/control/denver/commands",
            status_topic="lasso/control/denver/status",
            client_id="lasso_denver",
        )
        plane.command_registry.register("clear_all", service.clear_all, "Clear everything")
        plane.connect(timeout=5.0)
        ...
        plane.disconnect()
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.client_id = client_id

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self.command_registry = CommandRegistry()

        self._ready = threading.Event()
        self._loop_running = False

    # ===== Lifecycle =====

    def connect(self, timeout: float = 5.0) -> bool:
        """Start the network loop; False if the broker is unreachable or slow to accept."""
        endpoint = f"{self.broker_host}:{self.broker_port}"
        logger.info(f"🔌 Control plane connecting to {endpoint}")
        try:
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
        except OSError as e:
            logger.error(f"❌ Control plane cannot reach {endpoint}: {e}")
            return False

        self.client.loop_start()
        self._loop_running = True

        if not self._ready.wait(timeout=timeout):
            logger.error(f"❌ No CONNACK from {endpoint} within {timeout}s")
            return False
        logger.info(f"✅ Listening for commands on {self.command_topic}")
        return True

    def disconnect(self) -> None:
        """Publish a final "disconnected" status and stop; idempotent."""
        if not self._loop_running:
            return
        self.publish_status("disconnected")
        self.client.loop_stop()
        self.client.disconnect()
        self._loop_running = False
        self._ready.clear()
        logger.info("👋 Control plane stopped")

    def is_connected(self) -> bool:
        return self._ready.is_set()

    # ===== Status =====

    def build_status(self, status: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        message: Dict[str, Any] = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
        }
        message.update(details or {})
        return message

    def publish_status(self, status: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Publish a retained status message (QoS 1)."""
        try:
            payload = json.dumps(self.build_status(status, details), default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"❌ Status '{status}' not serializable: {e}")
            return
        self.client.publish(self.status_topic, payload, qos=1, retain=True)
        logger.debug(f"📤 status={status}")

    # ===== Commands =====

    def handle_command(self, command_data: Dict[str, Any]) -> None:
        """
        Dispatch one decoded command and publish its single status reply.

        The reply is the handler's (status, details) tuple when it returns
        one, "ok" for any other return value, and "error" when the command
        is unknown, lacks a required field, or its handler raises
        ValueError/KeyError.
        """
        command = str(command_data.get("command", "")).lower()
        if not command:
            logger.warning("⚠️ Command payload without a 'command' field")
            self.publish_status("error", {"error": "empty command"})
            return

        logger.info(f"🎯 {command}")
        try:
            reply = self.command_registry.execute(command, command_data)
        except CommandNotAvailableError as e:
            available = sorted(self.command_registry.available_commands)
            logger.warning(f"⚠️ Unknown command '{command}' (have: {', '.join(available)})")
            self.publish_status("error", {
                "command": command,
                "error": str(e),
                "available_commands": available,
            })
            return
        except KeyError as e:
            # str(KeyError) adds quotes
            self._reject(command, str(e.args[0]) if e.args else str(e))
            return
        except ValueError as e:
            self._reject(command, str(e))
            return

        if isinstance(reply, tuple):
            status, details = reply
            self.publish_status(status, {"command": command, **(details or {})})
        else:
            self.publish_status("ok", {"command": command})

    def _reject(self, command: str, reason: str) -> None:
        logger.warning(f"⚠️ '{command}' rejected: {reason}")
        self.publish_status("error", {"command": command, "error": reason})

    # ===== paho callbacks (network thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"❌ Broker refused control plane: {reason_code}")
            self._ready.clear()
            return

        # Subscriptions do not survive a reconnect with a clean session
        client.subscribe(self.command_topic, qos=1)
        self.publish_status("connected")
        self._ready.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        self._ready.clear()
        if reason_code.is_failure:
            logger.warning(f"⚠️ Control plane lost the broker: {reason_code}")

    def _on_message(self, client, userdata, msg):
        try:
            command_data = json.loads(msg.payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Undecodable command {msg.payload!r}: {e}")
            self.publish_status("error", {"error": f"malformed command payload: {e}"})
            return

        if not isinstance(command_data, dict):
            logger.warning(f"⚠️ Command is a JSON {type(command_data).__name__}, not an object")
            self.publish_status("error", {"error": "command payload must be a JSON object"})
            return

        try:
            self.handle_command(command_data)
        except Exception:
            # A handler bug must not kill paho's network thread
            logger.exception("❌ Command handler crashed")
