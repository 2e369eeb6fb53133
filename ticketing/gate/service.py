"""Gate validator: turns validation requests into open/close verdicts.

Each request is handled in one pass: decode the token, ask the Authority,
fall back to the local expiry check when the Authority cannot answer,
record the verdict, publish it, and every ``report_every`` requests push
a report to the Authority. Undecodable requests are dropped without a
verdict.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ticketing.core.errors import MalformedInputError, MalformedTokenError, UpstreamUnavailableError
from ticketing.gate.bus import VALIDATION_RESPONSE_TOPIC, MessageBus, gate_request_topics
from ticketing.gate.client import AuthorityClient
from ticketing.gate.history import MODE_OFFLINE, MODE_ONLINE, ReportSnapshot, ValidationHistory
from ticketing.ticket import codec

logger = logging.getLogger("ticketing.gate")

ACTION_OPEN = "OPEN"
ACTION_CLOSED = "CLOSED"
OFFLINE_VALID_MESSAGE = "Valid (offline check - expiry only)"
OFFLINE_INVALID_MESSAGE = "Expired (offline check)"


@dataclass(frozen=True)
class GatePolicy:
    report_every: int = 10
    report_window: int = 10
    history_limit: int = 100
    poll_timeout: float = 1.0
    reconnect_delay: float = 1.0


@dataclass(frozen=True)
class GateDecision:
    gate_id: str
    ticket_id: str
    valid: bool
    mode: str
    message: str

    @property
    def action(self) -> str:
        return ACTION_OPEN if self.valid else ACTION_CLOSED

    def to_payload(self) -> dict:
        return {
            "gateId": self.gate_id,
            "ticketId": self.ticket_id,
            "valid": self.valid,
            "gateAction": self.action,
            "validationMode": self.mode,
            "message": self.message,
        }


def parse_request(payload: bytes | str) -> str:
    """Extract the ticket token from a validation request payload."""
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise MalformedInputError(f"request is not JSON: {exc}") from exc
    token = data.get("ticketBase64") if isinstance(data, dict) else None
    if not isinstance(token, str) or not token:
        raise MalformedInputError("request has no ticketBase64 string")
    return token


class GateService:
    def __init__(
        self,
        gate_id: str,
        bus: MessageBus,
        authority: AuthorityClient,
        policy: GatePolicy | None = None,
        clock: Callable[[], datetime] = codec.utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.gate_id = gate_id
        self.bus = bus
        self.authority = authority
        self.policy = policy or GatePolicy()
        self.history = ValidationHistory(self.policy.history_limit)
        self._clock = clock
        self._sleep = sleep
        self._running = False

    def handle(self, payload: bytes | str) -> GateDecision | None:
        try:
            token = parse_request(payload)
            ticket = codec.decode(token)
        except (MalformedInputError, MalformedTokenError) as exc:
            logger.warning("Gate %s dropped request: %s", self.gate_id, exc)
            return None

        now = self._clock()
        try:
            verdict = self.authority.validate(token)
            valid, message, mode = verdict.valid, verdict.message, MODE_ONLINE
        except UpstreamUnavailableError as exc:
            logger.warning("Authority unavailable (%s); validating %s offline", exc, ticket.ticket_id)
            valid = codec.is_valid(ticket, now)
            message = OFFLINE_VALID_MESSAGE if valid else OFFLINE_INVALID_MESSAGE
            mode = MODE_OFFLINE

        self.history.record(ticket.ticket_id, valid, mode, now)
        decision = GateDecision(self.gate_id, ticket.ticket_id, valid, mode, message)
        logger.info(
            "Gate %s ticket=%s action=%s mode=%s message=%s",
            self.gate_id,
            decision.ticket_id,
            decision.action,
            decision.mode,
            decision.message,
        )
        self.bus.publish(VALIDATION_RESPONSE_TOPIC, decision.to_payload())

        if self.history.total_processed % self.policy.report_every == 0:
            self.send_report()
        return decision

    def build_report(self) -> ReportSnapshot:
        return self.history.snapshot(self.gate_id, self.policy.report_window, self._clock())

    def send_report(self) -> bool:
        report = self.build_report()
        try:
            self.authority.send_report(report.to_xml())
        except UpstreamUnavailableError as exc:
            logger.warning("Gate %s report not delivered: %s", self.gate_id, exc)
            return False
        logger.info("Gate %s report sent (total=%s)", self.gate_id, report.total_processed)
        return True

    def run(self, max_messages: int | None = None) -> None:
        self.bus.connect(gate_request_topics(self.gate_id))
        logger.info("Gate %s waiting for validation requests", self.gate_id)
        self._running = True
        handled = 0
        while self._running:
            message = self.bus.receive(self.policy.poll_timeout)
            if message is None:
                if not self.bus.is_connected():
                    logger.warning("Lost bus connection; retrying in %ss", self.policy.reconnect_delay)
                    self._sleep(self.policy.reconnect_delay)
                continue
            self.handle(message.payload)
            handled += 1
            if max_messages is not None and handled >= max_messages:
                break
        self._running = False

    def stop(self) -> None:
        self._running = False
