"""
MQTT client wrapper for sending commands to the occupancy analyzer.

Handles MQTT connection, publishing, status replies and disconnection.
"""

import json
import threading
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """
    MQTT client for sending commands to the analyzer control plane.

    Publishes commands with QoS 1 and optionally waits for the next status
    message the analyzer publishes in reply.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.broker = broker
        self.port = port

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

        if username and password:
            self.client.username_pw_set(username, password)

    def _connect(self) -> None:
        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except ConnectionRefusedError:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                "Is mosquitto running?"
            ) from None

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        qos: int = 1
    ) -> None:
        """
        Send command to MQTT topic.

        Raises:
            ConnectionError: If unable to connect to MQTT broker
        """
        self._connect()
        self.client.loop_start()
        try:
            result = self.client.publish(topic, json.dumps(command), qos=qos)
            result.wait_for_publish(timeout=5.0)
        finally:
            self.client.loop_stop()
            self.client.disconnect()

        print(f"✅ Command sent: {command.get('command', 'unknown')}")

    def request(
        self,
        command_topic: str,
        status_topic: str,
        command: Dict[str, Any],
        timeout: float = 10.0,
    ) -> Optional[Dict[str, Any]]:
        """
        Send a command and return the first fresh status reply.

        Retained status (published before this request) is ignored.

        Returns:
            Decoded status payload, or None on timeout
        """
        reply: Dict[str, Any] = {}
        received = threading.Event()
        subscribed = threading.Event()

        def on_subscribe(client, userdata, mid, reason_codes, properties):
            subscribed.set()

        def on_message(client, userdata, msg):
            if msg.retain:
                return
            try:
                reply.update(json.loads(msg.payload.decode('utf-8')))
            except (UnicodeDecodeError, json.JSONDecodeError):
                return
            received.set()

        self.client.on_subscribe = on_subscribe
        self.client.on_message = on_message

        self._connect()
        self.client.loop_start()
        try:
            self.client.subscribe(status_topic, qos=1)
            subscribed.wait(timeout=timeout)
            self.client.publish(command_topic, json.dumps(command), qos=1)
            if not received.wait(timeout=timeout):
                return None
            return reply
        finally:
            self.client.loop_stop()
            self.client.disconnect()

    def read_status(self, status_topic: str, timeout: float = 5.0) -> Optional[Dict[str, Any]]:
        """Last retained status, or None if nothing arrives in time."""
        reply: Dict[str, Any] = {}
        received = threading.Event()

        def on_message(client, userdata, msg):
            reply.update(json.loads(msg.payload.decode('utf-8')))
            received.set()

        self.client.on_message = on_message

        self._connect()
        self.client.loop_start()
        try:
            self.client.subscribe(status_topic, qos=1)
            if not received.wait(timeout=timeout):
                return None
            return reply
        finally:
            self.client.loop_stop()
            self.client.disconnect()
