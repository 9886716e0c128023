"""Flight status lookups against the Aviationstack REST API.

Aviationstack docs: https://aviationstack.com/documentation
Requests authenticate with an ``access_key`` query parameter.

:meth:`AviationstackClient.get_flight_status` never raises for expected
problems (no flight number, no API key, provider error payload, nothing
found, network trouble).  It always returns a summary the model can turn
into a helpful answer.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from ota_assistant.config import (
    AVIATIONSTACK_API_BASE_URL,
    AVIATIONSTACK_API_KEY,
    AVIATIONSTACK_SKIP_DATE,
)
from ota_assistant.services.http_client import JsonHttpClient, UpstreamAPIError
from ota_assistant.services.metrics import metrics
from ota_assistant.tools.actions import FlightStatusParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlightStatusResult:
    summary: str
    raw: Any = None
    # Arrival airport name, used to chain a weather lookup
    arrival_location: str | None = None


class AviationstackClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        skip_date: bool | None = None,
        http: JsonHttpClient | None = None,
    ):
        self._api_key = AVIATIONSTACK_API_KEY if api_key is None else api_key
        self._skip_date = AVIATIONSTACK_SKIP_DATE if skip_date is None else skip_date
        self._http = http or JsonHttpClient("aviationstack", base_url or AVIATIONSTACK_API_BASE_URL)

    def get_flight_status(self, params: FlightStatusParams) -> FlightStatusResult:
        """Look up the current status of one flight by IATA code (e.g. ``UA2402``).

        Args:
            params: ``flight_number`` (required) and an optional ``date``
                    (YYYY-MM-DD).  The date is only sent when
                    ``AVIATIONSTACK_SKIP_DATE=false``; the free tier
                    rejects it with a 403.
        """
        flight_number = (params.flight_number or "").strip()
        date = (params.date or "").strip() or None
        if not flight_number:
            return FlightStatusResult(summary="No flight number provided.")
        if not self._api_key:
            logger.warning("AVIATIONSTACK_API_KEY not set")
            return FlightStatusResult(summary="Flight data is not configured. Please try again later.")

        flight_iata = flight_number.upper()
        query: dict[str, str] = {"access_key": self._api_key, "flight_iata": flight_iata}
        if date and not self._skip_date:
            query["flight_date"] = date

        try:
            with metrics.track("aviationstack", "GET /flights"):
                data = self._http.get("/flights", params=query) or {}
        except UpstreamAPIError as exc:
            logger.error("get_flight_status failed for %s: %s", flight_iata, exc)
            return FlightStatusResult(
                summary="Unable to fetch flight status. Please try again later.",
                raw={"error": str(exc)},
            )

        error_message = (data.get("error") or {}).get("message")
        if error_message:
            logger.warning("Aviationstack API error: %s", error_message)
            return FlightStatusResult(summary=f"Flight API error: {error_message}", raw=data)

        flights = data.get("data")
        if not isinstance(flights, list) or not flights:
            on_date = f" on {date}" if date else ""
            return FlightStatusResult(summary=f"No flight data found for {flight_iata}{on_date}.", raw=data)

        return self._summarise(flight_iata, flights[0])

    @staticmethod
    def _summarise(flight_iata: str, flight: dict[str, Any]) -> FlightStatusResult:
        status = flight.get("flight_status") or "unknown"
        airline = (flight.get("airline") or {}).get("name") or "Unknown airline"
        dep = flight.get("departure") or {}
        arr = flight.get("arrival") or {}

        parts = [f"Flight {flight_iata} ({airline}): {status}."]
        if dep.get("airport"):
            parts.append(f"Departure: {dep['airport']} ({dep.get('iata') or ''}) {dep.get('scheduled') or ''}.")
        if arr.get("airport"):
            parts.append(f"Arrival: {arr['airport']} ({arr.get('iata') or ''}) {arr.get('scheduled') or ''}.")

        arrival_location = (arr.get("airport") or "").strip() or None
        return FlightStatusResult(summary=" ".join(parts), raw=flight, arrival_location=arrival_location)


# ── Module-level singleton (thread-safe) ────────────────────────────
_client: AviationstackClient | None = None
_client_lock = threading.Lock()


def get_aviationstack_client() -> AviationstackClient:
    """Return a module-level AviationstackClient singleton."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = AviationstackClient()
    return _client
