"""Tests for removing tool JSON from customer-facing replies."""

from __future__ import annotations

import time

import pytest

from ota_assistant.tools.actions import contains_tool_json, strip_tool_json_from_reply

FLIGHT_JSON = '{"action":"flight_status","params":{"flight_number":"UA2402"}}'
ROUTE_JSON = '{"action":"route_weather","params":{"origin_city":"Barcelona","destination_city":"Dublin"}}'

# Replies seen (or feared) in the wild
SAMPLES = [
    "Refunds usually take 5-10 business days.",
    f"Let me check that for you.\n{FLIGHT_JSON}",
    f"Sure!\n```json\n{ROUTE_JSON}\n```\nOne moment.",
    f'A {{"action":"none"}} B {FLIGHT_JSON} C',
    f'Here is what I found:\n- {{"action":"none"}}\n- Refunds take 5-10 days.',
    "Checking now. {“action”:“flight_status”,“params”:{“flight_number”:“BA123”}} Thanks!",
    'Looking it up: {"action":"flight_status","params":{"flight_number":"UA1"',
    f"```\n{FLIGHT_JSON}\n```",
    '{"action":"none"}',
    "You can take action now.\n\nStep one: open the app.",
]

# Everything except the replies that are nothing but tool JSON
SAMPLES_WITH_PROSE = [s for s in SAMPLES if not s.lstrip().startswith(("{", "```"))]


class TestStripBasics:
    def test_text_without_action_is_only_trimmed(self):
        assert strip_tool_json_from_reply("  Hello there!  \n") == "Hello there!"

    def test_json_after_prose(self):
        assert strip_tool_json_from_reply(f"Let me check that for you.\n{FLIGHT_JSON}") == (
            "Let me check that for you."
        )

    def test_fenced_json_between_paragraphs(self):
        reply = f"Sure!\n```json\n{ROUTE_JSON}\n```\nOne moment."
        assert strip_tool_json_from_reply(reply) == "Sure!\nOne moment."

    def test_multiple_fragments(self):
        reply = f'A {{"action":"none"}} B {FLIGHT_JSON} C'
        assert strip_tool_json_from_reply(reply) == "A B C"

    def test_smart_quotes(self):
        reply = "Checking now. {“action”:“flight_status”,“params”:{“flight_number”:“BA123”}} Thanks!"
        assert strip_tool_json_from_reply(reply) == "Checking now. Thanks!"

    def test_bullet_holding_only_json_is_dropped(self):
        reply = 'Here is what I found:\n- {"action":"none"}\n- Refunds take 5-10 days.'
        cleaned = strip_tool_json_from_reply(reply)
        assert "action" not in cleaned
        assert cleaned.startswith("Here is what I found:")
        assert cleaned.endswith("- Refunds take 5-10 days.")

    def test_truncated_json_at_end(self):
        reply = 'Looking it up: {"action":"flight_status","params":{"flight_number":"UA1"'
        assert strip_tool_json_from_reply(reply) == "Looking it up:"

    def test_paragraphs_are_preserved(self):
        reply = "You can take action now.\n\nStep one: open the app."
        assert strip_tool_json_from_reply(reply) == reply


class TestStripFallback:
    def test_only_json_returns_original(self):
        assert strip_tool_json_from_reply('{"action":"none"}') == '{"action":"none"}'

    def test_only_fenced_json_returns_original_trimmed(self):
        reply = f"  ```\n{FLIGHT_JSON}\n```  "
        assert strip_tool_json_from_reply(reply) == reply.strip()


class TestStripProperties:
    @pytest.mark.parametrize("reply", SAMPLES)
    def test_idempotent(self, reply):
        once = strip_tool_json_from_reply(reply)
        assert strip_tool_json_from_reply(once) == once

    @pytest.mark.parametrize("reply", SAMPLES)
    def test_never_empty(self, reply):
        assert strip_tool_json_from_reply(reply) != ""

    @pytest.mark.parametrize("reply", SAMPLES_WITH_PROSE)
    def test_no_tool_json_or_fence_left(self, reply):
        cleaned = strip_tool_json_from_reply(reply)
        assert not contains_tool_json(cleaned)
        assert "```" not in cleaned
        assert '"action"' not in cleaned.replace("“", '"').replace("”", '"')


class TestContainsToolJson:
    def test_detects_plain_json(self):
        assert contains_tool_json(FLIGHT_JSON) is True

    def test_detects_smart_quoted_json(self):
        assert contains_tool_json("{“action”:“none”}") is True

    def test_unknown_action_is_not_tool_json(self):
        assert contains_tool_json('{"action":"delete_booking"}') is False

    def test_prose(self):
        assert contains_tool_json("Take action before departure.") is False


class TestStripStringLiterals:
    def test_brace_inside_string_value(self):
        reply = (
            'Sure. {"action":"route_weather","params":{"origin_city":"A}",'
            '"destination_city":"Dublin"}} Bye.'
        )
        assert strip_tool_json_from_reply(reply) == "Sure. Bye."

    def test_escaped_quote_inside_string_value(self):
        reply = 'Ok {"action":"flight_status","params":{"flight_number":"UA\\"}2402"}} done'
        assert strip_tool_json_from_reply(reply) == "Ok done"


# ── Long inputs ──────────────────────────────────────────────────────


class TestStripLongInput:
    """Customer text is echoed back by some backends, so it must clean quickly."""

    @pytest.mark.parametrize(
        "reply",
        [
            "action" + " " * 4000 + "x",
            "action" + "\t " * 2000 + "x",
            "action" + "\n" * 4000 + "x",
            "action" + "{" * 4000,
            "action" + "- " * 2000 + "x",
            '"action"' + '{"' * 2000,
            '{"action":"none"' * 200,
        ],
    )
    def test_finishes_quickly(self, reply):
        t0 = time.perf_counter()
        cleaned = strip_tool_json_from_reply(reply)
        contains_tool_json(cleaned)
        assert time.perf_counter() - t0 < 1.0

    def test_long_space_run_is_collapsed(self):
        assert strip_tool_json_from_reply("action" + " " * 4000 + "x") == "action x"
