# ticketing/ticket/services.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ticketing.core.errors import SimulatedFailureError
from ticketing.ticket import codec
from ticketing.ticket.codec import Ticket
from ticketing.ticket.ledger import TicketLedger

logger = logging.getLogger("ticketing.ticket.services")

REASON_VALID = "valid"
REASON_EXPIRED = "expired"
REASON_NOT_FOUND = "not found"

MESSAGES = {
    REASON_VALID: "Ticket is valid",
    REASON_EXPIRED: "Ticket expired",
    REASON_NOT_FOUND: "Ticket not found in database",
}

FaultHook = Callable[[], None]


@dataclass(frozen=True)
class IssuedTicket:
    ticket: Ticket
    token: str


@dataclass(frozen=True)
class ValidationOutcome:
    ticket: Ticket
    exists: bool
    valid: bool
    reason: str

    @property
    def message(self) -> str:
        return MESSAGES[self.reason]


def random_fault_hook(rate: float, rng: random.Random | None = None) -> FaultHook:
    """Build a hook that fails validation with probability ``rate``."""
    rng = rng or random.Random()

    def _hook() -> None:
        if rng.random() < rate:
            raise SimulatedFailureError("Simulated validation service failure")

    return _hook


class TicketAuthority:
    def __init__(self, ledger: TicketLedger, clock: Callable[[], datetime] = codec.utc_now,
                 fault_hook: FaultHook | None = None) -> None:
        self.ledger = ledger
        self._clock = clock
        self._fault_hook = fault_hook

    def issue(self, validity_days: int, line_number: int) -> IssuedTicket:
        ticket = self.ledger.issue(validity_days, line_number)
        token = codec.encode(ticket)
        logger.info(
            "Ticket issued id=%s validity_days=%s line=%s",
            ticket.ticket_id,
            ticket.validity_days,
            ticket.line_number,
        )
        return IssuedTicket(ticket=ticket, token=token)

    def validate(self, token: str) -> ValidationOutcome:
        if self._fault_hook is not None:
            self._fault_hook()
        presented = codec.decode(token)
        stored = self.ledger.get(presented.ticket_id)
        if stored is None:
            outcome = ValidationOutcome(presented, exists=False, valid=False, reason=REASON_NOT_FOUND)
        elif codec.is_expired(stored, self._clock()):
            outcome = ValidationOutcome(stored, exists=True, valid=False, reason=REASON_EXPIRED)
        else:
            outcome = ValidationOutcome(stored, exists=True, valid=True, reason=REASON_VALID)
        logger.info("Ticket validated id=%s valid=%s reason=%s", presented.ticket_id, outcome.valid, outcome.reason)
        return outcome

    def tickets(self) -> list[Ticket]:
        return self.ledger.entries()
