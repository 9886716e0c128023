"""LangGraph agent that turns one chat turn into a (possibly grounded) reply.

Architecture:
  The model is not given native tool calling.  Instead the system prompt
  asks it to answer with a small JSON object when it needs live data, and
  the graph below acts on that object:

    1. **tool_select**      — model call with the tool instructions; the reply
                              is scanned for a tool action
    2. **passthrough**      — no action and no attempt at one: the (cleaned)
                              reply is the answer
    3. **natural_language** — ``none`` action or malformed JSON: ask again
                              for a plain-language answer
    4. **dispatch**         — run the flight / weather lookup
    5. **ground**           — model call with the lookup summary appended

  Routing:
    tool_select → (no action)          → passthrough      → END
                → (none / bad JSON)    → natural_language → END
                → (flight or weather)  → dispatch → ground → END

  Every reply leaving the graph goes through ``strip_tool_json_from_reply``.
  Nothing is remembered between turns: the caller sends the history each
  time and the graph is compiled without a checkpointer.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Collection, Sequence

from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from ota_assistant.config import (
    ENABLED_TOOL_ACTIONS,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    MAX_MESSAGES,
)
from ota_assistant.llm.base import LLMClient, LLMOptions
from ota_assistant.llm.failover import build_llm_client
from ota_assistant.messages import ChatMessage, build_conversation
from ota_assistant.prompts import (
    GROUNDING_INSTRUCTION,
    OTA_SYSTEM_PROMPT,
    get_natural_language_prompt,
    get_tool_prompt,
)
from ota_assistant.services.aviationstack_client import get_aviationstack_client
from ota_assistant.services.open_meteo_client import get_open_meteo_client
from ota_assistant.tools.actions import (
    NoAction,
    ToolAction,
    contains_tool_json,
    looks_like_tool_json,
    parse_tool_action,
    strip_tool_json_from_reply,
)
from ota_assistant.tools.dispatch import (
    TOOL_RESULT_PREFIX,
    FlightLookup,
    ToolResult,
    WeatherLookup,
    run_tool_action,
)

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "Sorry, I couldn't put together an answer just now. "
    "Could you rephrase your question?"
)

# Models sometimes echo the label of the injected lookup result
_TOOL_RESULT_LABEL_RE = re.compile(TOOL_RESULT_PREFIX + r"(?:\s+\w+)?\s*:\s*")


# ── State schema ─────────────────────────────────────────────────────


class TurnState(TypedDict, total=False):
    """Everything one turn knows.  Nothing here outlives the turn.

    ``history`` is the caller's conversation.  ``first_reply`` and
    ``action`` come from the tool-selection call and are internal: the
    customer only ever sees ``reply``.
    """

    history: list[ChatMessage]
    first_reply: str
    action: ToolAction | None
    tool_result: ToolResult
    reply: str


def finalize_reply(raw: str) -> str:
    """Clean a model reply for display; refuse to show leftover tool JSON."""
    cleaned = strip_tool_json_from_reply(_TOOL_RESULT_LABEL_RE.sub("", raw))
    if contains_tool_json(cleaned):
        logger.warning("Reply still contained tool JSON after cleaning; using fallback text")
        return FALLBACK_REPLY
    return cleaned


# ── Nodes ────────────────────────────────────────────────────────────


def _make_tool_select_node(
    llm: LLMClient,
    options: LLMOptions,
    max_messages: int,
    enabled_actions: Collection[str],
):
    system_prompt = get_tool_prompt(enabled_actions)

    def tool_select_node(state: TurnState) -> dict:
        """Ask with tool instructions and look for a tool action in the reply."""
        conversation = build_conversation(system_prompt, state["history"], max_messages)
        t0 = time.perf_counter()
        first_reply = llm.generate_reply(conversation, options)
        logger.debug(
            "tool_select replied in %.0fms (first 400 chars): %s",
            (time.perf_counter() - t0) * 1000, first_reply[:400],
        )
        action = parse_tool_action(first_reply, enabled_actions)
        logger.debug("Parsed tool action: %s", action.model_dump() if action else None)
        return {"first_reply": first_reply, "action": action}

    return tool_select_node


def _passthrough_node(state: TurnState) -> dict:
    """The first reply is already a plain answer."""
    return {"reply": finalize_reply(state["first_reply"])}


def _make_natural_language_node(llm: LLMClient, options: LLMOptions, max_messages: int):
    system_prompt = get_natural_language_prompt()

    def natural_language_node(state: TurnState) -> dict:
        """Re-ask without tools.  The tool-biased first reply is not included."""
        conversation = build_conversation(system_prompt, state["history"], max_messages)
        return {"reply": finalize_reply(llm.generate_reply(conversation, options))}

    return natural_language_node


def _make_dispatch_node(flights: FlightLookup, weather: WeatherLookup):
    def dispatch_node(state: TurnState) -> dict:
        action = state["action"]
        result = run_tool_action(action, flights, weather)
        logger.debug("Tool %s summary: %s", result.action, result.summary[:200])
        return {"tool_result": result}

    return dispatch_node


def _make_ground_node(llm: LLMClient, options: LLMOptions, max_messages: int):
    def ground_node(state: TurnState) -> dict:
        """Answer again, this time with the lookup result in the conversation."""
        history = [
            *state["history"],
            ChatMessage.assistant(state["tool_result"].as_context()),
            ChatMessage.user(GROUNDING_INSTRUCTION),
        ]
        conversation = build_conversation(OTA_SYSTEM_PROMPT, history, max_messages)
        return {"reply": finalize_reply(llm.generate_reply(conversation, options))}

    return ground_node


# ── Conditional edges ────────────────────────────────────────────────


def route_after_tool_select(state: TurnState) -> str:
    """Pick the next node from the parsed action (or its absence)."""
    action = state.get("action")
    if action is None:
        if looks_like_tool_json(state.get("first_reply", "")):
            logger.info("Reply looked like tool JSON but did not parse; asking again")
            return "natural_language"
        return "passthrough"
    if isinstance(action, NoAction):
        return "natural_language"
    return "dispatch"


# ── Graph assembly ───────────────────────────────────────────────────


def create_ota_agent(
    llm: LLMClient | None = None,
    flights: FlightLookup | None = None,
    weather: WeatherLookup | None = None,
    *,
    max_messages: int = MAX_MESSAGES,
    options: LLMOptions | None = None,
    enabled_actions: Collection[str] = ENABLED_TOOL_ACTIONS,
):
    """Build and compile the help-center agent graph.

    Collaborators default to the configured failover chain and the module
    singletons; tests pass their own.  Invoke the result with
    ``graph.invoke({"history": [ChatMessage.user("...")]})``, or use
    :func:`handle_chat`.
    """
    llm = llm or build_llm_client()
    flights = flights or get_aviationstack_client()
    weather = weather or get_open_meteo_client()
    options = options or LLMOptions(temperature=LLM_TEMPERATURE, max_tokens=LLM_MAX_TOKENS)

    graph = StateGraph(TurnState)

    graph.add_node("tool_select", _make_tool_select_node(llm, options, max_messages, enabled_actions))
    graph.add_node("passthrough", _passthrough_node)
    graph.add_node("natural_language", _make_natural_language_node(llm, options, max_messages))
    graph.add_node("dispatch", _make_dispatch_node(flights, weather))
    graph.add_node("ground", _make_ground_node(llm, options, max_messages))

    graph.set_entry_point("tool_select")
    graph.add_conditional_edges(
        "tool_select",
        route_after_tool_select,
        {
            "passthrough": "passthrough",
            "natural_language": "natural_language",
            "dispatch": "dispatch",
        },
    )
    graph.add_edge("passthrough", END)
    graph.add_edge("natural_language", END)
    graph.add_edge("dispatch", "ground")
    graph.add_edge("ground", END)

    compiled = graph.compile()
    logger.debug(
        "OTA agent compiled — window: %d messages, actions: %s",
        max_messages, ", ".join(enabled_actions),
    )
    return compiled


def handle_chat(agent, messages: Sequence[ChatMessage]) -> dict[str, str]:
    """Run one chat turn and return ``{"reply": ...}``.

    Generation failures (every provider down) and unexpected lookup faults
    propagate; the caller turns them into its generic error response.
    """
    result = agent.invoke({"history": list(messages)})
    return {"reply": result["reply"]}
