"""Current-weather lookups with Open-Meteo (geocoding + forecast, no API key).

City names are resolved to coordinates with the geocoding API (results are
cached), then the forecast API's ``current`` block is summarised as
``"18.2°C, 70% humidity, wind 12.5 km/h"``.

Like the flight lookup, the public methods turn every expected problem
(missing name, unknown place, provider outage) into a readable summary
instead of raising.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from ota_assistant.config import OPEN_METEO_BASE_URL, OPEN_METEO_GEOCODING_BASE_URL
from ota_assistant.services.cache import TTLCache
from ota_assistant.services.http_client import JsonHttpClient, UpstreamAPIError
from ota_assistant.services.metrics import metrics
from ota_assistant.tools.actions import RouteWeatherParams

logger = logging.getLogger(__name__)

CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,weather_code,wind_speed_10m"
_CK_GEOCODE = "geocode:"


@dataclass(frozen=True)
class WeatherResult:
    summary: str
    raw: Any = None


class OpenMeteoClient:
    def __init__(
        self,
        base_url: str | None = None,
        geocoding_base_url: str | None = None,
        *,
        forecast_http: JsonHttpClient | None = None,
        geocoding_http: JsonHttpClient | None = None,
        cache: TTLCache | None = None,
    ):
        self._forecast = forecast_http or JsonHttpClient("open-meteo", base_url or OPEN_METEO_BASE_URL)
        self._geocoding = geocoding_http or JsonHttpClient(
            "open-meteo-geocoding", geocoding_base_url or OPEN_METEO_GEOCODING_BASE_URL,
        )
        self._cache = cache or TTLCache()

    # ── Internal helpers ─────────────────────────────────────────────

    def _geocode(self, name: str) -> tuple[float, float] | None:
        """Resolve a place name to ``(lat, lon)``, or ``None`` if unknown.

        Lookup failures are logged and reported as "unknown": the caller
        tells the customer to check the name, which is the right answer
        for a typo and a harmless one for an outage.
        """
        name = name.strip()
        if not name:
            return None

        cache_key = f"{_CK_GEOCODE}{name.lower()}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            with metrics.track("open-meteo", "GET /search"):
                data = self._geocoding.get("/search", params={"name": name, "count": 1}) or {}
        except UpstreamAPIError as exc:
            logger.warning("Geocoding failed for %r: %s", name, exc)
            return None

        results = data.get("results") or []
        first = results[0] if results else {}
        lat, lon = first.get("latitude"), first.get("longitude")
        if lat is None or lon is None:
            return None

        coords = (lat, lon)
        self._cache.put(cache_key, coords)
        return coords

    def _current_weather(self, coords: tuple[float, float]) -> str:
        """Summarise current conditions.  Raises ``UpstreamAPIError``."""
        lat, lon = coords
        with metrics.track("open-meteo", "GET /forecast"):
            data = self._forecast.get(
                "/forecast",
                params={"latitude": lat, "longitude": lon, "current": CURRENT_FIELDS},
            ) or {}

        current = data.get("current")
        if not current:
            return "No current weather data"
        temp = current.get("temperature_2m", 0)
        humidity = current.get("relative_humidity_2m", 0)
        wind = current.get("wind_speed_10m", 0)
        return f"{temp}°C, {humidity}% humidity, wind {wind} km/h"

    # ── Public API ───────────────────────────────────────────────────

    def get_route_weather(self, params: RouteWeatherParams) -> WeatherResult:
        """Current weather at both ends of a route.

        The two cities do not depend on each other, so each step (geocoding,
        then forecast) runs for both at once.
        """
        origin = (params.origin_city or "").strip()
        destination = (params.destination_city or "").strip()
        if not origin:
            return WeatherResult(summary="No origin city provided.")
        if not destination:
            return WeatherResult(summary="No destination city provided.")

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="route-weather") as pool:
            origin_coords, dest_coords = pool.map(self._geocode, (origin, destination))

            if origin_coords is None:
                return WeatherResult(
                    summary=f'City not found: "{origin}". Please check the name and try again.',
                )
            if dest_coords is None:
                return WeatherResult(
                    summary=f'City not found: "{destination}". Please check the name and try again.',
                )

            try:
                origin_weather, dest_weather = pool.map(self._current_weather, (origin_coords, dest_coords))
            except UpstreamAPIError as exc:
                logger.error("get_route_weather failed: %s", exc)
                return WeatherResult(
                    summary="Unable to fetch weather for the route. Please try again later.",
                    raw={"error": str(exc)},
                )

        return WeatherResult(
            summary=f"{origin}: {origin_weather}. {destination}: {dest_weather}.",
            raw={"origin": origin_weather, "destination": dest_weather},
        )

    def get_weather_for_place(self, place_name: str) -> WeatherResult:
        """Current weather for a single place, e.g. a flight's arrival airport."""
        name = (place_name or "").strip()
        if not name:
            return WeatherResult(summary="No place name provided.")

        coords = self._geocode(name)
        if coords is None:
            return WeatherResult(summary=f'Place not found: "{name}". Please check the name and try again.')

        try:
            weather = self._current_weather(coords)
        except UpstreamAPIError as exc:
            logger.warning("get_weather_for_place failed for %r: %s", name, exc)
            return WeatherResult(summary="Weather could not be fetched for this place.")
        return WeatherResult(summary=weather, raw={"place": name, "weather": weather})


# ── Module-level singleton (thread-safe) ────────────────────────────
_client: OpenMeteoClient | None = None
_client_lock = threading.Lock()


def get_open_meteo_client() -> OpenMeteoClient:
    """Return a module-level OpenMeteoClient singleton."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = OpenMeteoClient()
    return _client
