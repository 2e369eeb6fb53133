"""Error taxonomy shared by the Authority and the Gate."""

from __future__ import annotations


class TicketingError(Exception):
    """Base class for every error raised by this package."""


class MalformedInputError(TicketingError):
    """Request body is not valid JSON or does not have the expected shape."""


class MalformedTokenError(TicketingError):
    """Ticket token cannot be decoded into a Ticket."""


class PersistenceError(TicketingError):
    """The ledger could not be written to durable storage."""


class UpstreamUnavailableError(TicketingError):
    """The Authority could not be reached or did not answer successfully."""


class SimulatedFailureError(TicketingError):
    """Raised by the fault-injection hook to exercise fallback paths."""
