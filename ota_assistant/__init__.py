"""OTA help-center assistant: a travel chatbot with live flight and weather data.

Architecture Overview
=====================

The assistant is a **LangGraph** state machine around a language model that
does not get native tool calling.  The system prompt asks the model to reply
with a small JSON object (``{"action": "flight_status", ...}``) when it
needs live data; the graph detects that object, runs the lookup and asks
the model again with the result.

1. **tool_select** — model call with the tool instructions.
2. **dispatch** — Aviationstack flight status and/or Open-Meteo weather.
3. **ground** — model call with the lookup summary, answered naturally.

Replies that need no data skip straight to the end (or to a plain-language
re-ask when the model answered ``none`` or produced broken JSON).

Key Design Decisions
--------------------
- **Prompt-based tools**: works with any chat API, including the self-hosted
  FreeFlow service that has no tool calling.  The price is parsing model
  text, which ``tools/actions.py`` does tolerantly; every outgoing reply
  is stripped of tool JSON.
- **Provider failover**: Gemini, OpenAI, Anthropic and FreeFlow sit behind
  one ``generate_reply``, tried in order from ``LLM_PROVIDER`` with an
  offline mock last.
- **Soft lookup failures**: an unknown city or a missing API key becomes a
  sentence the model can relay, never an error.
- **Stateless turns**: the client sends the whole conversation; nothing is
  stored server-side.

Package Structure
-----------------
- ``ota_assistant/agent.py`` — LangGraph StateGraph definition
- ``ota_assistant/config.py`` — Centralized configuration from environment variables
- ``ota_assistant/prompts.py`` — System prompts and tool instructions
- ``ota_assistant/messages.py`` — Chat message type and conversation window
- ``ota_assistant/server.py`` — FastAPI application
- ``ota_assistant/main.py`` — CLI chat interface
- ``ota_assistant/llm/`` — Model backends and the failover chain
- ``ota_assistant/services/`` — HTTP, flight and weather clients, cache, metrics
- ``ota_assistant/tools/`` — Tool-action protocol and dispatch
- ``ota_assistant/api/`` — FastAPI routes and Pydantic schemas
"""
