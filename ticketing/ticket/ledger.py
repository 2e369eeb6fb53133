"""Durable ticket ledger owned by the Authority.

The ledger is a CSV file with one header row and one row per issued
ticket. It is rewritten in full on every issuance. All reads and writes
go through one lock together with the issuance sequence counter.
"""

from __future__ import annotations

import csv
import logging
import os
import re
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Protocol

from ticketing.core.errors import PersistenceError
from ticketing.ticket.codec import Ticket, parse_timestamp, utc_now

logger = logging.getLogger("ticketing.ticket.ledger")

HEADER = ("TicketID", "CreationDate", "ValidityDays", "LineNumber")
ID_PREFIX = "TKT"
_SEQUENCE_RE = re.compile(r"^[^-]*-(\d+)")


class TicketLedger(Protocol):
    def load(self) -> int:
        ...

    def issue(self, validity_days: int, line_number: int) -> Ticket:
        ...

    def get(self, ticket_id: str) -> Ticket | None:
        ...

    def entries(self) -> list[Ticket]:
        ...


def sequence_of(ticket_id: str) -> int | None:
    match = _SEQUENCE_RE.match(ticket_id)
    if not match:
        return None
    return int(match.group(1))


class CsvTicketLedger:
    def __init__(self, path: str | Path, clock: Callable = utc_now) -> None:
        self.path = Path(path)
        self._clock = clock
        self._lock = threading.Lock()
        self._tickets: dict[str, Ticket] = {}
        # file order; unparsable rows stay as raw cells and are written back untouched
        self._rows: list[Ticket | list[str]] = []
        self._sequence = 0

    @property
    def sequence(self) -> int:
        return self._sequence

    def __len__(self) -> int:
        with self._lock:
            return len(self._tickets)

    def unparsed_rows(self) -> list[list[str]]:
        with self._lock:
            return [list(row) for row in self._rows if not isinstance(row, Ticket)]

    def load(self) -> int:
        """Read the ledger file into memory; returns the number of tickets loaded."""
        with self._lock:
            self._tickets = {}
            self._rows = []
            self._sequence = 0
            if not self.path.exists():
                logger.warning("Ledger file %s not found; starting with an empty ledger", self.path)
                return 0
            skipped = 0
            with self.path.open("r", encoding="utf-8", errors="surrogateescape", newline="") as handle:
                reader = csv.reader(handle)
                next(reader, None)
                for lineno, row in enumerate(reader, start=2):
                    if not row or not any(cell.strip() for cell in row):
                        continue
                    if row[0]:
                        seq = sequence_of(row[0])
                        if seq is not None and seq > self._sequence:
                            self._sequence = seq
                    ticket = _ticket_from_row(row)
                    if ticket is None:
                        skipped += 1
                        self._rows.append(row)
                        logger.warning("Skipping unparsable ledger row %s in %s: %r", lineno, self.path, row)
                        continue
                    self._tickets[ticket.ticket_id] = ticket
                    self._rows.append(ticket)
            logger.info(
                "Ledger loaded path=%s tickets=%s skipped=%s sequence=%s",
                self.path,
                len(self._tickets),
                skipped,
                self._sequence,
            )
            return len(self._tickets)

    def issue(self, validity_days: int, line_number: int) -> Ticket:
        with self._lock:
            sequence = self._sequence + 1
            issued_at = self._clock()
            ticket_id = f"{ID_PREFIX}-{sequence}-{time.time_ns()}"
            ticket = Ticket.create(ticket_id, validity_days, line_number, issued_at=issued_at)
            self._tickets[ticket_id] = ticket
            self._rows.append(ticket)
            try:
                self._persist()
            except OSError as exc:
                del self._tickets[ticket_id]
                self._rows.pop()
                logger.error("Ledger write failed for %s; issuance rolled back: %s", ticket_id, exc)
                raise PersistenceError(f"could not persist ledger: {exc}") from exc
            self._sequence = sequence
            return ticket

    def get(self, ticket_id: str) -> Ticket | None:
        with self._lock:
            return self._tickets.get(ticket_id)

    def entries(self) -> list[Ticket]:
        with self._lock:
            return list(self._tickets.values())

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as handle:
                writer = csv.writer(handle, lineterminator="\n")
                writer.writerow(HEADER)
                for row in self._rows:
                    if isinstance(row, Ticket):
                        row = (row.ticket_id, row.issued_at, row.validity_days, row.line_number)
                    writer.writerow(row)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _ticket_from_row(row: list[str]) -> Ticket | None:
    if len(row) < 4:
        return None
    try:
        # undecodable bytes survive reading as lone surrogates
        "".join(row).encode("utf-8")
    except UnicodeEncodeError:
        return None
    ticket_id, issued_at, validity, line = (cell.strip() for cell in row[:4])
    if not ticket_id:
        return None
    try:
        parse_timestamp(issued_at)
        return Ticket(
            ticket_id=ticket_id,
            issued_at=issued_at,
            validity_days=int(validity),
            line_number=int(line),
        )
    except ValueError:
        return None
