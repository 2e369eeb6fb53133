"""Bounded validation history kept by a gate, and the reports built from it."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from ticketing.ticket.codec import format_timestamp

MODE_ONLINE = "online"
MODE_OFFLINE = "offline"


@dataclass(frozen=True)
class ValidationRecord:
    ticket_id: str
    timestamp: datetime
    valid: bool
    mode: str


@dataclass(frozen=True)
class ReportSnapshot:
    gate_id: str
    generated_at: datetime
    total_processed: int
    valid_count: int
    invalid_count: int
    recent: tuple[ValidationRecord, ...]

    def to_xml(self) -> str:
        root = ET.Element("GateReport")
        ET.SubElement(root, "GateId").text = self.gate_id
        ET.SubElement(root, "Timestamp").text = format_timestamp(self.generated_at)
        stats = ET.SubElement(root, "Statistics")
        ET.SubElement(stats, "TotalProcessed").text = str(self.total_processed)
        ET.SubElement(stats, "ValidCount").text = str(self.valid_count)
        ET.SubElement(stats, "InvalidCount").text = str(self.invalid_count)
        recent = ET.SubElement(root, "RecentValidations")
        for record in self.recent:
            item = ET.SubElement(recent, "Validation")
            ET.SubElement(item, "TicketId").text = record.ticket_id
            ET.SubElement(item, "Timestamp").text = format_timestamp(record.timestamp)
            ET.SubElement(item, "Valid").text = "true" if record.valid else "false"
            ET.SubElement(item, "Mode").text = record.mode
        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="UTF-8", xml_declaration=True).decode("utf-8") + "\n"


class ValidationHistory:
    def __init__(self, limit: int = 100) -> None:
        if limit < 1:
            raise ValueError("history limit must be positive")
        self._records: deque[ValidationRecord] = deque(maxlen=limit)
        self.total_processed = 0
        self.valid_count = 0
        self.invalid_count = 0

    def __len__(self) -> int:
        return len(self._records)

    @property
    def limit(self) -> int:
        return self._records.maxlen

    def record(self, ticket_id: str, valid: bool, mode: str, timestamp: datetime) -> ValidationRecord:
        entry = ValidationRecord(ticket_id=ticket_id, timestamp=timestamp, valid=valid, mode=mode)
        self._records.append(entry)
        self.total_processed += 1
        if valid:
            self.valid_count += 1
        else:
            self.invalid_count += 1
        return entry

    def records(self) -> list[ValidationRecord]:
        """Oldest first."""
        return list(self._records)

    def latest(self, count: int) -> list[ValidationRecord]:
        """Newest first, at most ``count`` records."""
        if count <= 0:
            return []
        out = []
        for entry in reversed(self._records):
            if len(out) >= count:
                break
            out.append(entry)
        return out

    def snapshot(self, gate_id: str, window: int, generated_at: datetime) -> ReportSnapshot:
        return ReportSnapshot(
            gate_id=gate_id,
            generated_at=generated_at,
            total_processed=self.total_processed,
            valid_count=self.valid_count,
            invalid_count=self.invalid_count,
            recent=tuple(self.latest(window)),
        )
