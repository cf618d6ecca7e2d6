"""
MQTTControlPlane - MQTT Control Plane for the occupancy analyzer

Bounded Context: MQTT connection management + command reception
Responsibilities:
  - MQTT connection lifecycle (connect, disconnect)
  - Command message reception (subscribe to command topic)
  - Status publishing (publish to status topic, with optional details)
  - Command delegation to CommandRegistry

QoS Policy:
  - Commands: QoS 1 (at-least-once delivery)
  - Status: QoS 1 + retained (last status persisted)

Threading:
  - MQTT client runs own background thread (loop_start/loop_stop)
  - Command handlers run in MQTT thread; analysis handlers only submit
    work to the service pool and return
"""

import json
import logging
from datetime import datetime, timezone
from threading import Event
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandRegistry, CommandNotAvailableError, CommandValidationError

logger = logging.getLogger(__name__)


class MQTTControlPlane:
    """
    MQTT Control Plane for receiving commands and publishing status.

    Example:
        control_plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="occupancy/control/analyzer-1/commands",
            status_topic="occupancy/control/analyzer-1/status",
            client_id="analyzer-1_control"
        )
        control_plane.command_registry.register(
            'list_places', service.handle_list_places, "List managed places"
        )
        if control_plane.connect(timeout=5.0):
            print("Connected to MQTT broker")
        control_plane.disconnect()
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
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        if username and password:
            self.client.username_pw_set(username, password)

        self._connected = Event()
        self._running = False

        self.command_registry = CommandRegistry()

    def connect(self, timeout: float = 5.0) -> bool:
        """
        Connect to MQTT broker with timeout.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            logger.info(f"🔌 Connecting to MQTT broker: {self.broker_host}:{self.broker_port}")
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            self._running = True
        except (OSError, ValueError) as e:
            logger.error(f"❌ Error connecting to MQTT: {e}")
            return False

        if self._connected.wait(timeout=timeout):
            logger.info("✅ MQTT Control Plane connected")
            return True

        logger.error(f"❌ Connection timeout after {timeout}s")
        return False

    def disconnect(self) -> None:
        """Disconnect from MQTT broker. Safe to call multiple times."""
        if self._running:
            logger.info("🔌 Disconnecting from MQTT broker")
            self.publish_status("disconnected")
            self.client.loop_stop()
            self.client.disconnect()
            self._running = False
            self._connected.clear()
            logger.info("✅ MQTT Control Plane disconnected")

    def build_status(
        self,
        status: str,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Status payload; details carry command results (snapshot, history, ...)."""
        message = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
        }
        if details:
            message["details"] = details
        return message

    def publish_status(
        self,
        status: str,
        details: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Publish status update to status topic (QoS 1, retained).

        Safe to call from any thread.
        """
        message = self.build_status(status, details)
        result = self.client.publish(
            self.status_topic,
            json.dumps(message, default=str),
            qos=1,
            retain=True,
        )
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"⚠️ Status not published (rc={result.rc}): {status}")
            return False

        logger.debug(f"📤 Status published: {status}")
        return True

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if not reason_code.is_failure:
            logger.info(f"✅ Connected to broker ({reason_code})")

            client.subscribe(self.command_topic, qos=1)
            logger.info(f"📥 Subscribed to: {self.command_topic} (QoS 1)")

            self._connected.set()
            self.publish_status("connected")
        else:
            logger.error(f"❌ Connection failed ({reason_code})")
            self._connected.clear()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.warning(f"⚠️ Unexpected disconnection ({reason_code})")
        else:
            logger.info("✅ Disconnected from broker")
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        try:
            payload = msg.payload.decode('utf-8')
            command_data = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Error decoding command: {msg.payload!r} ({e})")
            return

        self.dispatch(command_data)

    def dispatch(self, command_data: Dict[str, Any]) -> bool:
        """
        Execute one decoded command payload via the registry.

        Returns:
            True if the handler ran, False if the command was rejected
        """
        if not isinstance(command_data, dict):
            logger.warning(f"⚠️ Command payload must be an object, got {type(command_data).__name__}")
            return False

        command = str(command_data.get('command', '')).lower()
        if not command:
            logger.warning("⚠️ Empty command received")
            return False

        logger.info(f"🎯 Executing command: {command}")

        try:
            self.command_registry.execute(command, command_data)
        except CommandNotAvailableError as e:
            logger.warning(f"⚠️ {e}")
            return False
        except CommandValidationError as e:
            logger.warning(f"⚠️ {e}")
            self.publish_status("rejected", {"command": command, "error": str(e)})
            return False
        except Exception as e:
            logger.error(f"❌ Error processing command '{command}': {e}", exc_info=True)
            return False

        logger.debug(f"✅ Command '{command}' executed successfully")
        return True
