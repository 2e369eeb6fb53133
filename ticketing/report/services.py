"""Append-only log of operational reports pushed by gates.

Reports are stored as opaque text. The log has its own lock so that a
slow database never holds up ticket issuance or validation.
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ticketing.report.models import GateReport

logger = logging.getLogger("ticketing.report")

_GATE_ID_RE = re.compile(r"<GateId>\s*([^<]*?)\s*</GateId>")
PREVIEW_LINES = 5


def gate_id_of(body: str) -> str | None:
    match = _GATE_ID_RE.search(body)
    return match.group(1) if match else None


class ReportLog:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._lock = threading.Lock()

    def record(self, body: str, content_type: str | None = None) -> bool:
        """Store one report; returns False instead of raising when storage fails."""
        lines = body.splitlines()
        preview = "\n".join(lines[:PREVIEW_LINES])
        if len(lines) > PREVIEW_LINES:
            preview += "\n..."
        logger.info("Report received (%s bytes):\n%s", len(body), preview)
        entry = GateReport(
            received_at=datetime.now(timezone.utc),
            gate_id=gate_id_of(body),
            content_type=content_type,
            body=body,
        )
        with self._lock:
            db = self._session_factory()
            try:
                db.add(entry)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Failed to store report: %s", exc)
                return False
            finally:
                db.close()
        return True

    def recent(self, limit: int = 50) -> list[GateReport]:
        db = self._session_factory()
        try:
            return (
                db.query(GateReport)
                .order_by(GateReport.id.desc())
                .limit(limit)
                .all()
            )
        finally:
            db.close()
