"""Run a gate validator: ``python -m ticketing.gate``."""

import logging

from ticketing.core.config import get_settings
from ticketing.core.logging_utils import configure_logging
from ticketing.gate.bus import MqttConfig, MqttMessageBus
from ticketing.gate.client import AuthorityClient
from ticketing.gate.service import GatePolicy, GateService

logger = logging.getLogger("ticketing.gate")


def main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    bus = MqttMessageBus(
        MqttConfig(
            host=settings.MQTT_HOST,
            port=settings.MQTT_PORT,
            client_id=f"GATE-{settings.GATE_ID}",
            keepalive=settings.MQTT_KEEPALIVE,
        )
    )
    authority = AuthorityClient(
        settings.AUTHORITY_URL,
        connect_timeout=settings.AUTHORITY_CONNECT_TIMEOUT,
        read_timeout=settings.AUTHORITY_READ_TIMEOUT,
    )
    policy = GatePolicy(
        report_every=settings.REPORT_EVERY,
        report_window=settings.REPORT_WINDOW,
        history_limit=settings.HISTORY_LIMIT,
        poll_timeout=settings.POLL_TIMEOUT,
        reconnect_delay=settings.RECONNECT_DELAY,
    )
    gate = GateService(settings.GATE_ID, bus, authority, policy)
    logger.info("Gate %s using authority %s", settings.GATE_ID, settings.AUTHORITY_URL)
    try:
        gate.run()
    except KeyboardInterrupt:
        gate.stop()
    finally:
        bus.close()
        authority.close()


if __name__ == "__main__":
    main()
