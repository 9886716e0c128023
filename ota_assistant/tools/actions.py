"""Tool-action protocol between the language model and the agent.

The model is asked (see ``prompts.TOOL_CALLING_INSTRUCTIONS``) to answer with
a single JSON object when it needs live data::

    {"action": "flight_status", "params": {"flight_number": "UA2402"}}

Models do not always obey, so this module does two things:

* :func:`parse_tool_action` finds that object in a reply even when the model
  wrapped it in chatter, and turns it into one of the typed actions below.
* :func:`strip_tool_json_from_reply` removes every such fragment from a reply
  before it reaches a customer.  It is deliberately lossy: dropping a few
  characters of prose is better than showing raw JSON.

Only the JSON shape is checked here.  Whether a flight number is real is
the lookup's problem.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Collection
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

ActionId = Literal["none", "flight_status", "route_weather", "weather_at_flight_arrival"]

ACTION_IDS: tuple[str, ...] = (
    "none",
    "flight_status",
    "route_weather",
    "weather_at_flight_arrival",
)
LEGACY_ACTION_IDS: tuple[str, ...] = ("none", "flight_status", "route_weather")


# ── Parameter shapes ─────────────────────────────────────────────────


class _Params(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # {"flight_number": null} means "not given"; the lookup reports it
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class FlightStatusParams(_Params):
    flight_number: str = ""
    date: str | None = None


class RouteWeatherParams(_Params):
    origin_city: str = ""
    destination_city: str = ""
    departure_time: str | None = None


# ── Actions (closed union, discriminated on ``action``) ──────────────


class _Action(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("params", mode="before", check_fields=False)
    @classmethod
    def _null_params_are_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class NoAction(_Action):
    """The model needs no external data."""

    action: Literal["none"] = "none"


class FlightStatusAction(_Action):
    action: Literal["flight_status"] = "flight_status"
    params: FlightStatusParams = Field(default_factory=FlightStatusParams)


class RouteWeatherAction(_Action):
    action: Literal["route_weather"] = "route_weather"
    params: RouteWeatherParams = Field(default_factory=RouteWeatherParams)


class WeatherAtFlightArrivalAction(_Action):
    """Look the flight up, then fetch the weather where it lands."""

    action: Literal["weather_at_flight_arrival"] = "weather_at_flight_arrival"
    params: FlightStatusParams = Field(default_factory=FlightStatusParams)


ToolAction = Annotated[
    Union[NoAction, FlightStatusAction, RouteWeatherAction, WeatherAtFlightArrivalAction],
    Field(discriminator="action"),
]

_TOOL_ACTION_ADAPTER: TypeAdapter[ToolAction] = TypeAdapter(ToolAction)


# ── Detection ────────────────────────────────────────────────────────


def _try_parse(candidate: str, allowed: Collection[str]) -> ToolAction | None:
    """Parse *candidate* as a complete action object, or return ``None``."""
    try:
        obj = json.loads(candidate)
    except (ValueError, RecursionError):
        return None
    if not isinstance(obj, dict):
        return None
    action = obj.get("action")
    if not isinstance(action, str) or action not in allowed:
        return None
    try:
        return _TOOL_ACTION_ADAPTER.validate_python(obj)
    except ValidationError as exc:
        logger.debug("Tool JSON for %r has an unusable shape: %s", action, exc.errors())
        return None


def _balanced_objects(text: str) -> list[tuple[int, int]]:
    """Return ``(start, end)`` spans of brace-balanced substrings, last ``{`` first.

    Braces are paired in one pass with a stack, so opening braces without a
    matching close are simply never reported.  Inside an open brace, quoted
    strings are skipped (backslash escapes honoured); a line break also ends
    a string, so a stray quote in prose cannot swallow the rest of the reply.
    """
    spans: list[tuple[int, int]] = []
    open_at: list[int] = []
    in_string = escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch in '"\n':
                in_string = False
        elif ch == "{":
            open_at.append(i)
        elif ch == "}" and open_at:
            spans.append((open_at.pop(), i + 1))
        elif ch == '"' and open_at:
            in_string = True
    spans.sort(reverse=True)
    return spans


def parse_tool_action(
    raw: str,
    allowed: Collection[str] = ACTION_IDS,
) -> ToolAction | None:
    """Return the tool action embedded in a model reply, if there is one.

    The whole reply is tried first.  Failing that, every brace-balanced
    fragment is tried, starting from the last ``{``, because models tend to
    put the JSON after their chatter.  An unknown ``action`` counts as no
    action at all.
    """
    text = raw.strip()
    result = _try_parse(text, allowed)
    if result is not None:
        return result
    if '"action"' not in text:
        return None

    for start, end in _balanced_objects(text):
        result = _try_parse(text[start:end], allowed)
        if result is not None:
            return result
    return None


def looks_like_tool_json(text: str) -> bool:
    """True when a reply was probably meant as tool JSON (even if malformed)."""
    t = text.strip()
    return t.startswith("{") and "action" in t


# ── Stripping ────────────────────────────────────────────────────────

# Typographic quotes become ASCII; carriage returns are dropped
_NORMALISE = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'", "\r": None})

_KNOWN_IDS_RE = "|".join(ACTION_IDS)

# Optional bullet, then {"action":"<known id>" lazily up to a run of closing
# braces, or to the end of the text when the model was cut off mid-object.
# Every match starts at a bullet or a brace; surrounding blanks are tidied later.
_TOOL_JSON_RE = re.compile(
    r'(?:[*\-•][^\S\n]*)?\{\s*"action"\s*:\s*"(?:' + _KNOWN_IDS_RE + r')"'
    r"[\s\S]*?(?:\}(?:\s*\})*|\Z)"
)
_EMPTY_FENCE_PAIR_RE = re.compile(r"\s*```(?:json)?\s*```\s*")
_TRAILING_FENCE_RE = re.compile(r"\s*```(?:json)?\s*$")
_LEADING_FENCE_RE = re.compile(r"^\s*```(?:json)?[^\S\n]*\n?")
_HSPACE_RUN_RE = re.compile(r"[^\S\n]{2,}")
_TRAILING_HSPACE_RE = re.compile(r"[^\S\n]+$", re.MULTILINE)
_BULLET_ONLY_LINE_RE = re.compile(r"^[^\S\n]*[*\-•]+[^\S\n]*$", re.MULTILINE)
_BLANK_LINES_RE = re.compile(r"\n[^\S\n]*\n(?:[^\S\n]*\n)+")


def _remove_balanced_tool_objects(text: str) -> str:
    """Cut out every well-formed JSON object that parses as a known action."""
    while True:
        for start, end in _balanced_objects(text):
            if _try_parse(text[start:end], ACTION_IDS) is not None:
                text = text[:start] + " " + text[end:]
                break
        else:
            return text


def _tidy_whitespace(text: str) -> str:
    # Leaves no whitespace run longer than a couple of characters, which
    # keeps the fence patterns below linear
    t = _HSPACE_RUN_RE.sub(" ", text)
    t = _TRAILING_HSPACE_RE.sub("", t)
    t = _BULLET_ONLY_LINE_RE.sub("", t)
    return _BLANK_LINES_RE.sub("\n\n", t)


def _strip_once(text: str) -> str:
    t = text.translate(_NORMALISE)
    t = _remove_balanced_tool_objects(t)

    while True:
        stripped = _TOOL_JSON_RE.sub(" ", t).strip()
        if stripped == t:
            break
        t = stripped

    t = _tidy_whitespace(t)
    t = _EMPTY_FENCE_PAIR_RE.sub("\n", t).strip()
    t = _TRAILING_FENCE_RE.sub("", t).strip()
    t = _LEADING_FENCE_RE.sub("", t).strip()
    return _tidy_whitespace(t).strip()


def strip_tool_json_from_reply(reply: str) -> str:
    """Remove all tool-call JSON (and the code fences around it) from *reply*.

    Idempotent.  Never returns an empty string: if the reply was nothing
    but tool JSON, the original trimmed reply comes back and the caller
    decides what to do with it (see :func:`contains_tool_json`).
    """
    original = reply.strip()
    if "action" not in reply:
        return original

    t = original
    while True:
        cleaned = _strip_once(t)
        if cleaned == t:
            break
        t = cleaned

    return t or original


def contains_tool_json(text: str) -> bool:
    """True if *text* still holds something shaped like tool JSON."""
    return bool(_TOOL_JSON_RE.search(text.translate(_NORMALISE)))
