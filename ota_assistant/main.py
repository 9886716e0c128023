"""CLI entry point for the OTA help-center assistant.

A terminal chat loop for testing and development.  For production, use
the FastAPI server (ota_assistant/server.py).

Usage:
    python -m ota_assistant.main            # normal mode (quiet)
    python -m ota_assistant.main --debug    # debug mode (shows provider calls)
    python -m ota_assistant.main --offline  # mock backend only, no network LLM
"""

from __future__ import annotations

import argparse
import logging

from ota_assistant.agent import create_ota_agent, handle_chat
from ota_assistant.llm.failover import build_llm_client
from ota_assistant.messages import ChatMessage

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("ota_assistant").setLevel(logging.DEBUG if debug else logging.INFO)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="OTA help-center assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument(
        "--offline", action="store_true",
        help="Answer with the mock backend only (no LLM provider is called)",
    )
    args = parser.parse_args()

    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  OTA Help-Center Assistant - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' to clear the conversation.")
    print("=" * 60 + "\n")

    agent = create_ota_agent(llm=build_llm_client("mock") if args.offline else None)
    history: list[ChatMessage] = []

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye! Safe travels!")
            break

        if user_input.lower() == "new":
            history.clear()
            print("\n>> Conversation cleared.\n")
            continue

        history.append(ChatMessage.user(user_input))
        try:
            reply = handle_chat(agent, history)["reply"]
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except Exception as e:
            history.pop()
            logger.exception("Error processing message")
            print(f"\nAssistant: I'm sorry, something went wrong: {e}")
            print("     Please try again or type 'new' to start over.\n")
            continue

        history.append(ChatMessage.assistant(reply))
        print(f"\nAssistant: {reply}\n")


if __name__ == "__main__":
    main()
