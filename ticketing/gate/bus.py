"""Message-bus adapters for the gate.

The gate pulls one message at a time through ``receive`` and publishes
JSON verdicts. ``MqttMessageBus`` is the broker-backed adapter; the
paho network loop reconnects on its own and resubscribes in
``on_connect``.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Protocol

import paho.mqtt.client as mqtt

logger = logging.getLogger("ticketing.gate.bus")

VALIDATION_REQUEST_TOPIC = "ticket/validation/request"
VALIDATION_RESPONSE_TOPIC = "ticket/validation/response"


def gate_request_topics(gate_id: str) -> list[str]:
    return [VALIDATION_REQUEST_TOPIC, f"{VALIDATION_REQUEST_TOPIC}/{gate_id}"]


@dataclass(frozen=True)
class BusMessage:
    topic: str
    payload: bytes


class MessageBus(Protocol):
    def connect(self, topics: list[str]) -> None:
        ...

    def receive(self, timeout: float) -> BusMessage | None:
        ...

    def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        ...

    def is_connected(self) -> bool:
        ...

    def close(self) -> None:
        ...


@dataclass(frozen=True)
class MqttConfig:
    host: str
    port: int = 1883
    client_id: str = "GATE-001"
    keepalive: int = 20
    qos: int = 1
    connect_timeout: float = 10.0
    publish_timeout: float = 5.0


class MqttMessageBus:
    def __init__(self, config: MqttConfig) -> None:
        self.config = config
        self._topics: list[str] = []
        self._inbox: queue.Queue[BusMessage] = queue.Queue()
        self._connected = threading.Event()
        self._client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
            clean_session=True,
        )
        self._client.reconnect_delay_set(min_delay=1, max_delay=30)
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

    def connect(self, topics: list[str]) -> None:
        self._topics = list(topics)
        logger.info("Connecting to MQTT broker %s:%s", self.config.host, self.config.port)
        self._client.connect(self.config.host, self.config.port, keepalive=self.config.keepalive)
        self._client.loop_start()
        if not self._connected.wait(self.config.connect_timeout):
            self._client.loop_stop()
            raise ConnectionError(f"MQTT broker {self.config.host}:{self.config.port} did not accept the connection")

    def receive(self, timeout: float) -> BusMessage | None:
        try:
            return self._inbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        body = json.dumps(payload, ensure_ascii=True, separators=(",", ":"))
        try:
            info = self._client.publish(topic, body, qos=self.config.qos)
            info.wait_for_publish(timeout=self.config.publish_timeout)
        except (RuntimeError, ValueError) as exc:
            logger.error("Publish to %s failed: %s", topic, exc)
            return False
        if not info.is_published():
            logger.error("Publish to %s not acknowledged (rc=%s)", topic, info.rc)
            return False
        return True

    def is_connected(self) -> bool:
        return self._client.is_connected()

    def close(self) -> None:
        self._client.loop_stop()
        if self._client.is_connected():
            self._client.disconnect()
            logger.info("Disconnected from MQTT broker")

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.warning("MQTT connection refused: %s", reason_code)
            return
        for topic in self._topics:
            client.subscribe(topic, qos=self.config.qos)
            logger.info("Subscribed to %s", topic)
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        self._connected.clear()
        logger.warning("MQTT connection lost: %s", reason_code)

    def _on_message(self, client, userdata, message) -> None:
        self._inbox.put(BusMessage(topic=message.topic, payload=message.payload))
