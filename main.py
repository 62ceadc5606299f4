"""hashtag-lookup - hashtag autocomplete and cooking tool

Simple CLI for exercising the hashtag endpoints from a terminal.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from hashtag_lookup.core.trigger import TriggerContext, should_trigger
from hashtag_lookup.errors import HashtagTransportError
from hashtag_lookup.models.hashtags import Resolved
from hashtag_lookup.session import HashtagSession


def _parse_order(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    return [t.strip() for t in raw.split(",") if t.strip()]


async def run_search(term: str, order: list[str] | None) -> int:
    async with HashtagSession(type_order=order, testing=True) as session:
        try:
            outcome = await session.search(term)
        except HashtagTransportError as e:
            print(f"[!] Error: {e}")
            return 1

    if not isinstance(outcome, Resolved):
        print(f"[ ] No results for '{term}'")
        return 0

    print(f"[*] {len(outcome.items)} results for '{term}':")
    for item in outcome.items:
        print(f"  #{item.ref:<30} {item.type:<10} {item.text}")
    return 0


async def run_cook(path: Path, order: list[str] | None) -> int:
    html = path.read_text(encoding="utf-8")
    async with HashtagSession(type_order=order, testing=True) as session:
        print(await session.cook_html(html))
    return 0


def run_trigger(text: str, caret: int | None, backspace: bool) -> int:
    context = TriggerContext.from_caret(
        text,
        len(text) if caret is None else caret,
        is_backspace=backspace,
    )
    result = should_trigger(context)
    print("trigger" if result else "no-trigger")
    return 0 if result else 1


def main():
    parser = argparse.ArgumentParser(description="Hashtag autocomplete and lookup tool")
    parser.add_argument("--order", "-o", help="Comma separated type order (default: from config)")
    sub = parser.add_subparsers(dest="command", required=True)

    search_parser = sub.add_parser("search", help="Search hashtags starting with TERM")
    search_parser.add_argument("term")

    cook_parser = sub.add_parser("cook", help="Resolve hashtag placeholders in an HTML file")
    cook_parser.add_argument("file", type=Path)

    trigger_parser = sub.add_parser("trigger", help="Evaluate the trigger rule for TEXT")
    trigger_parser.add_argument("text")
    trigger_parser.add_argument("--caret", type=int, help="Caret offset (default: end of text)")
    trigger_parser.add_argument("--backspace", action="store_true")

    args = parser.parse_args()
    order = _parse_order(args.order)

    if args.command == "search":
        sys.exit(asyncio.run(run_search(args.term, order)))
    if args.command == "cook":
        sys.exit(asyncio.run(run_cook(args.file, order)))
    sys.exit(run_trigger(args.text, args.caret, args.backspace))


if __name__ == "__main__":
    main()
