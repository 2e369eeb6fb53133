"""HTTP client a gate uses to reach the Authority."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from ticketing.core.errors import UpstreamUnavailableError

logger = logging.getLogger("ticketing.gate.client")


@dataclass(frozen=True)
class OnlineVerdict:
    valid: bool
    message: str


class AuthorityClient:
    def __init__(
        self,
        base_url: str,
        connect_timeout: float = 2.0,
        read_timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
            transport=transport,
        )

    def validate(self, token: str) -> OnlineVerdict:
        """Ask the Authority for a verdict; any failure raises UpstreamUnavailableError."""
        try:
            response = self._client.post("/api/tickets/validate", json={"ticketBase64": token})
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(f"authority unreachable: {exc}") from exc
        if response.status_code != 200:
            raise UpstreamUnavailableError(f"authority answered HTTP {response.status_code}")
        try:
            body = response.json()
            return OnlineVerdict(valid=bool(body["valid"]), message=str(body["message"]))
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamUnavailableError(f"authority answer unreadable: {exc}") from exc

    def send_report(self, report_xml: str) -> None:
        try:
            response = self._client.post(
                "/api/reports",
                content=report_xml.encode("utf-8"),
                headers={"Content-Type": "application/xml"},
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(f"report not delivered: {exc}") from exc
        if response.status_code != 200:
            raise UpstreamUnavailableError(f"report rejected with HTTP {response.status_code}")

    def close(self) -> None:
        self._client.close()
