# tests/test_codec.py
import base64
import json
import string
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from ticketing.core.errors import MalformedTokenError
from ticketing.ticket import codec
from ticketing.ticket.codec import Ticket

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
B64_ALPHABET = set(string.ascii_letters + string.digits + "+/=")


def _token(payload) -> str:
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


@pytest.mark.parametrize(
    "ticket_id, validity, line",
    [
        ("TKT-1-1700000000000000000", 7, 3),
        ("TKT-42-1", 0, 0),
        ("x", -5, 99999),
        ("bilhete-ção", 365, 12),
    ],
)
def test_round_trip(ticket_id, validity, line):
    ticket = Ticket.create(ticket_id, validity, line, issued_at=NOW)
    token = codec.encode(ticket)
    assert codec.decode(token) == ticket
    assert codec.encode(codec.decode(token)) == token
    assert set(token) <= B64_ALPHABET
    assert len(token) % 4 == 0


def test_encoding_is_deterministic_and_ordered():
    a = Ticket.create("TKT-1-1", 7, 3, issued_at=NOW)
    b = Ticket(ticketId="TKT-1-1", creationDate="2026-03-01T12:00:00", validityDays=7, lineNumber=3)
    assert codec.encode(a) == codec.encode(b)
    body = base64.b64decode(codec.encode(a)).decode("utf-8")
    assert body == '{"ticketId":"TKT-1-1","creationDate":"2026-03-01T12:00:00","validityDays":7,"lineNumber":3}'


def test_decode_reads_fields_by_name():
    token = _token({"lineNumber": 4, "validityDays": 2, "creationDate": "2026-03-01T00:00:00", "ticketId": "T"})
    ticket = codec.decode(token)
    assert ticket.ticket_id == "T"
    assert ticket.line_number == 4
    assert ticket.validity_days == 2


@pytest.mark.parametrize(
    "token",
    [
        "",
        "not base64!!",
        "abc",
        base64.b64encode(b"not json").decode(),
        base64.b64encode(b"\xff\xfe\x00").decode(),
        _token([1, 2, 3]),
        _token({"ticketId": "T", "creationDate": "2026-03-01T00:00:00", "validityDays": 2}),
        _token({"ticketId": "T", "creationDate": "2026-03-01T00:00:00", "validityDays": "2", "lineNumber": 1}),
    ],
)
def test_decode_rejects_malformed_tokens(token):
    with pytest.raises(MalformedTokenError):
        codec.decode(token)


def test_expiry_boundary_and_monotonicity():
    ticket = Ticket.create("TKT-1-1", 1, 3, issued_at=NOW)
    assert not codec.is_expired(ticket, NOW)
    assert not codec.is_expired(ticket, NOW + timedelta(days=1))
    assert codec.is_expired(ticket, NOW + timedelta(days=1, seconds=1))
    later = [NOW + timedelta(days=1, seconds=1) + timedelta(hours=h) for h in range(0, 24 * 400, 97)]
    assert all(codec.is_expired(ticket, t) for t in later)


@pytest.mark.parametrize("validity", [0, -1, -30])
def test_non_positive_validity_is_never_valid(validity):
    ticket = Ticket.create("TKT-1-1", validity, 3, issued_at=NOW)
    assert not codec.is_valid(ticket, NOW)
    assert not codec.is_valid(ticket, NOW - timedelta(days=1))


def test_empty_id_is_never_valid():
    ticket = Ticket.create("", 7, 3, issued_at=NOW)
    assert not codec.is_valid(ticket, NOW)


def test_unparsable_creation_date_counts_as_expired():
    ticket = Ticket(ticketId="TKT-1-1", creationDate="yesterday", validityDays=7, lineNumber=1)
    assert codec.is_expired(ticket, NOW)
    assert not codec.is_valid(ticket, NOW)
    # still a structurally valid token
    assert codec.decode(codec.encode(ticket)) == ticket


def test_ten_year_old_ticket_is_expired():
    ticket = Ticket.create("TKT-1-1", 1, 3, issued_at=NOW - timedelta(days=3650))
    assert codec.is_expired(ticket, NOW)
    assert not codec.is_valid(codec.decode(codec.encode(ticket)), NOW)


def test_fresh_ticket_is_valid_after_re_decoding():
    ticket = Ticket.create("TKT-1-1", 7, 3)
    assert codec.is_valid(ticket)
    assert codec.is_valid(codec.decode(codec.encode(ticket)))


def test_ticket_is_immutable():
    ticket = Ticket.create("TKT-1-1", 7, 3, issued_at=NOW)
    with pytest.raises(ValidationError):
        ticket.validity_days = 30
