"""Ticket value type and its transport encoding.

A ticket travels as a *token*: the canonical JSON form of the ticket
(fields in a fixed order, compact separators) wrapped in standard base64.
The JSON form is field-labelled, so decoding reads fields by name and
rejects tokens that lack any of them.

Expiry only ever looks at ``creationDate`` and ``validityDays``; a
creation date that cannot be parsed makes the ticket expired.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ticketing.core.errors import MalformedTokenError

DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(DATE_FORMAT)


def parse_timestamp(text: str) -> datetime:
    """Parse a ledger/token timestamp; raises ValueError on bad input."""
    return datetime.strptime(text, DATE_FORMAT).replace(tzinfo=timezone.utc)


class Ticket(BaseModel):
    ticket_id: str = Field(alias="ticketId")
    issued_at: str = Field(alias="creationDate")
    validity_days: int = Field(alias="validityDays")
    line_number: int = Field(alias="lineNumber")

    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    @classmethod
    def create(cls, ticket_id: str, validity_days: int, line_number: int,
               issued_at: datetime | None = None) -> "Ticket":
        moment = issued_at or utc_now()
        return cls(
            ticket_id=ticket_id,
            issued_at=format_timestamp(moment),
            validity_days=validity_days,
            line_number=line_number,
        )

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


def to_json(ticket: Ticket) -> str:
    return json.dumps(ticket.to_payload(), ensure_ascii=True, separators=(",", ":"))


def from_json(text: str) -> Ticket:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise MalformedTokenError(f"ticket body is not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedTokenError("ticket body must be a JSON object")
    try:
        return Ticket.model_validate(data)
    except ValidationError as exc:
        missing = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        raise MalformedTokenError(f"ticket fields missing or invalid: {', '.join(missing)}") from exc


def encode(ticket: Ticket) -> str:
    return base64.b64encode(to_json(ticket).encode("utf-8")).decode("ascii")


def decode(token: str) -> Ticket:
    if not isinstance(token, str) or not token:
        raise MalformedTokenError("ticket token must be a non-empty string")
    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenError(f"ticket token is not valid base64: {exc}") from exc
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedTokenError("ticket token does not contain UTF-8 text") from exc
    return from_json(text)


def expires_at(ticket: Ticket) -> datetime:
    return parse_timestamp(ticket.issued_at) + timedelta(days=ticket.validity_days)


def is_expired(ticket: Ticket, now: datetime | None = None) -> bool:
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    try:
        return now > expires_at(ticket)
    except (ValueError, OverflowError):
        return True


def is_valid(ticket: Ticket, now: datetime | None = None) -> bool:
    return bool(ticket.ticket_id) and ticket.validity_days > 0 and not is_expired(ticket, now)
