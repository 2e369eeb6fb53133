# tests/test_authority.py
import random
from datetime import datetime, timedelta, timezone

import pytest

from ticketing.core.errors import MalformedTokenError, SimulatedFailureError
from ticketing.ticket import codec
from ticketing.ticket.codec import Ticket
from ticketing.ticket.ledger import HEADER, CsvTicketLedger
from ticketing.ticket.services import TicketAuthority, random_fault_hook


class _Sequence:
    def __init__(self, *values):
        self.values = list(values)

    def random(self):
        return self.values.pop(0)


@pytest.fixture
def authority(tmp_path):
    ledger = CsvTicketLedger(tmp_path / "tickets.csv")
    ledger.load()
    return TicketAuthority(ledger)


def test_issue_then_validate(authority):
    issued = authority.issue(7, 3)
    assert issued.ticket.validity_days == 7
    assert issued.ticket.line_number == 3
    assert codec.decode(issued.token) == issued.ticket
    assert codec.is_valid(codec.decode(issued.token))

    outcome = authority.validate(issued.token)
    assert outcome.exists
    assert outcome.valid
    assert outcome.reason == "valid"
    assert outcome.message == "Ticket is valid"


def test_validate_never_issued(authority):
    token = codec.encode(Ticket.create("TKT-999-1", 7, 3))
    outcome = authority.validate(token)
    assert outcome.exists is False
    assert outcome.valid is False
    assert outcome.reason == "not found"


def test_validate_uses_stored_fields(tmp_path):
    path = tmp_path / "tickets.csv"
    old = (datetime.now(timezone.utc) - timedelta(days=3650)).strftime(codec.DATE_FORMAT)
    path.write_text(f"{','.join(HEADER)}\nTKT-1-1,{old},1,3\n", encoding="utf-8")
    ledger = CsvTicketLedger(path)
    ledger.load()
    authority = TicketAuthority(ledger)

    forged = Ticket.create("TKT-1-1", 10000, 3)
    outcome = authority.validate(codec.encode(forged))
    assert outcome.exists
    assert outcome.valid is False
    assert outcome.reason == "expired"


def test_validate_malformed_token(authority):
    with pytest.raises(MalformedTokenError):
        authority.validate("%%%")


def test_fault_hook_runs_before_lookup(tmp_path):
    ledger = CsvTicketLedger(tmp_path / "tickets.csv")
    ledger.load()
    authority = TicketAuthority(ledger, fault_hook=random_fault_hook(0.5, _Sequence(0.1, 0.9)))
    token = authority.issue(7, 3).token

    with pytest.raises(SimulatedFailureError):
        authority.validate(token)
    assert authority.validate(token).valid


def test_seeded_fault_hook_is_reproducible():
    def outcomes(seed):
        hook = random_fault_hook(0.5, random.Random(seed))
        results = []
        for _ in range(20):
            try:
                hook()
                results.append(True)
            except SimulatedFailureError:
                results.append(False)
        return results

    assert outcomes(11) == outcomes(11)
