"""Terminal chat with Digital Saathi, for local development.

Runs the same orchestrator as the API server (saathi/server.py), with the
in-memory stores unless ``MONGO_URI`` is set.

Usage:
    uv run python -m saathi.main                      # quiet
    uv run python -m saathi.main --debug              # show matcher/model/tool logs
    uv run python -m saathi.main --conversation <id>  # continue a stored conversation
"""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from saathi.errors import (
    ConversationNotFound,
    ModelRateLimited,
    ModelUnavailable,
    SaathiError,
)
from saathi.orchestrator import build_orchestrator

logger = logging.getLogger(__name__)

BANNER = """
============================================================
  Digital Saathi AI
  Type a message and press Enter.
  'new' starts a fresh conversation, 'quit' exits.
============================================================
"""
GOODBYE = "\nधन्यवाद, फिर मिलेंगे! (Goodbye!)\n"


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    if not debug:
        for noisy in ("httpx", "httpcore", "anthropic", "pymongo"):
            logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("saathi").setLevel(logging.DEBUG if debug else logging.INFO)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Digital Saathi terminal chat")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--user", default=None, help="User id for new conversations")
    parser.add_argument("--conversation", default=None, help="Conversation id to continue")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    load_dotenv()
    _configure_logging(args.debug)

    orchestrator = build_orchestrator()
    conversation_id: str | None = args.conversation
    print(BANNER)

    while True:
        try:
            text = input("आप: ").strip()
        except (KeyboardInterrupt, EOFError):
            print(GOODBYE)
            return

        if not text:
            continue
        command = text.lower()
        if command in ("quit", "exit", "q"):
            print(GOODBYE)
            return
        if command == "new":
            conversation_id = None
            print("\n(नई बातचीत / new conversation)\n")
            continue

        try:
            result = orchestrator.handle_message(
                text, conversation_id=conversation_id, user_id=args.user,
            )
        except ConversationNotFound:
            print(f"\nConversation {conversation_id} does not exist; starting a new one.\n")
            conversation_id = None
            continue
        except ModelRateLimited:
            print("\nSaathi: माफ़ करना, AI सेवा की दर सीमा पार हो गई है। थोड़ी देर बाद प्रयास करें।\n")
            continue
        except ModelUnavailable:
            logger.warning("Model unavailable", exc_info=args.debug)
            print("\nSaathi: माफ़ करना, AI सेवा अभी उपलब्ध नहीं है। कृपया फिर से प्रयास करें।\n")
            continue
        except SaathiError as exc:
            logger.exception("Turn failed")
            print(f"\nSaathi: माफ़ करना, कोई समस्या आ गई ({exc.code}).\n")
            continue

        if result.conversation_id != conversation_id:
            logger.info("Conversation %s", result.conversation_id)
        conversation_id = result.conversation_id
        source = result.service_matched or result.tool_used
        suffix = f"  [{source}]" if args.debug and source else ""
        print(f"\nSaathi: {result.reply}{suffix}\n")


if __name__ == "__main__":
    main()
