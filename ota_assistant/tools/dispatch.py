"""Run a parsed tool action against the travel data providers.

Each action maps to one lookup (or, for ``weather_at_flight_arrival``, a
flight lookup followed by a weather lookup).  The lookups report their own
soft failures as summaries; anything they raise is a real fault and is left
to fail the turn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from typing_extensions import assert_never

from ota_assistant.services.aviationstack_client import FlightStatusResult
from ota_assistant.services.open_meteo_client import WeatherResult
from ota_assistant.tools.actions import (
    FlightStatusAction,
    FlightStatusParams,
    NoAction,
    RouteWeatherAction,
    RouteWeatherParams,
    ToolAction,
    WeatherAtFlightArrivalAction,
)

logger = logging.getLogger(__name__)

TOOL_RESULT_PREFIX = "TOOL_RESULT"


class FlightLookup(Protocol):
    def get_flight_status(self, params: FlightStatusParams) -> FlightStatusResult: ...


class WeatherLookup(Protocol):
    def get_route_weather(self, params: RouteWeatherParams) -> WeatherResult: ...

    def get_weather_for_place(self, place_name: str) -> WeatherResult: ...


@dataclass(frozen=True)
class ToolResult:
    action: str
    summary: str
    # Provider payload, for logs only; never shown to the customer
    raw: Any = None
    arrival_location: str | None = None

    def as_context(self) -> str:
        """The assistant turn that carries this result into the grounding call."""
        return f"{TOOL_RESULT_PREFIX} {self.action}: {self.summary}"


def run_tool_action(
    action: ToolAction,
    flights: FlightLookup,
    weather: WeatherLookup,
) -> ToolResult:
    """Execute *action* and return its summary.

    ``NoAction`` is not dispatchable: the agent routes it to a
    natural-language re-ask before it gets here.
    """
    if isinstance(action, FlightStatusAction):
        logger.debug("Calling flight lookup with %s", action.params.model_dump())
        flight = flights.get_flight_status(action.params)
        return ToolResult(
            action=action.action,
            summary=flight.summary,
            raw=flight.raw,
            arrival_location=flight.arrival_location,
        )

    if isinstance(action, RouteWeatherAction):
        logger.debug("Calling route weather with %s", action.params.model_dump())
        result = weather.get_route_weather(action.params)
        return ToolResult(action=action.action, summary=result.summary, raw=result.raw)

    if isinstance(action, WeatherAtFlightArrivalAction):
        logger.debug("Calling flight lookup + arrival weather with %s", action.params.model_dump())
        flight = flights.get_flight_status(action.params)
        if not flight.arrival_location:
            return ToolResult(action=action.action, summary=flight.summary, raw=flight.raw)

        place = flight.arrival_location
        arrival_weather = weather.get_weather_for_place(place)
        return ToolResult(
            action=action.action,
            summary=f"{flight.summary} Weather at arrival ({place}): {arrival_weather.summary}",
            raw={"flight": flight.raw, "weather": arrival_weather.raw},
            arrival_location=place,
        )

    if isinstance(action, NoAction):
        raise ValueError("The 'none' action has nothing to dispatch")

    assert_never(action)
