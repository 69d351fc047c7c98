"""
feedweave CLI
=============

Inspect threads and feeds of a running log gateway from a terminal.

COMMANDS:
- thread:   Print the whole thread containing a message
- get:      Print one message
- feed:     Latest posts of one author
- hashtag:  Latest posts tagged #TAG
- latest:   Latest posts overall
- popular:  Most voted posts of the last day
- mentions: Posts mentioning you
- inbox:    Private threads you can read
- likes:    Posts an author voted on

USAGE:
    python -m feedweave [--url URL] [-v] COMMAND [ARGS]
"""

from __future__ import annotations
from typing import Optional, Sequence
import argparse
import asyncio
import logging
import sys

from .config import EngineConfig
from .contracts.enriched import EnrichedMessage
from .contracts.events import QueryResult, QueryType
from .engine import FeedWeaveEngine


def plain_text(text: str, mentions) -> str:
    return text


def format_message(enriched: EnrichedMessage) -> str:
    meta = enriched.meta
    indent = "  " * (meta.thread.depth if meta.thread else 0)
    marker = ">" if meta.thread and meta.thread.is_target else "-"
    author = meta.author.name or enriched.message.author
    header = (
        f"{indent}{marker} {author} {meta.post_type.label} "
        f"[{meta.timestamp.since}] {enriched.key[:12]}... "
        f"votes={len(meta.votes)}{' (you)' if meta.voted else ''}"
    )
    if meta.body is None:
        return header
    body = meta.body.render(plain_text).replace("\n", f"\n{indent}    ")
    return f"{header}\n{indent}    {body}"


def print_result(result: QueryResult) -> int:
    if not result.success:
        print(f"[FAIL] {result.error.error_code.name}: {result.error.message}")
        return 1
    if not result.results:
        print("[!] Nothing found.")
        return 0
    for enriched in result.results:
        print(format_message(enriched))
    print(f"[INFO] {result.result_count} messages in {result.execution_time_ms:.0f} ms")
    return 0


COMMANDS = {
    "thread": (QueryType.THREAD_OF, "key", "Message key"),
    "get": (QueryType.SINGLE_MESSAGE, "key", "Message key"),
    "feed": (QueryType.BY_FEED, "feed", "Feed id"),
    "hashtag": (QueryType.BY_HASHTAG, "tag", "Hashtag without #"),
    "latest": (QueryType.LATEST_POSTS, None, None),
    "popular": (QueryType.POPULAR_POSTS, None, None),
    "mentions": (QueryType.MENTIONS_OF, None, None),
    "inbox": (QueryType.INBOX_FOR, None, None),
    "likes": (QueryType.LIKES_BY_FEED, "feed", "Feed id"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="feedweave", description="Thread and feed inspector")
    parser.add_argument("--url", help="Log gateway URL (default: FEEDWEAVE_LOG_URL or localhost)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, (_, argument, help_text) in COMMANDS.items():
        sub = subparsers.add_parser(name)
        if argument:
            sub.add_argument("target", metavar=argument.upper(), help=help_text)
    return parser


async def run(args: argparse.Namespace, config: EngineConfig) -> int:
    query_type, argument, _ = COMMANDS[args.command]
    target = args.target if argument else None
    async with FeedWeaveEngine(config) as engine:
        result = await engine.query(query_type, target)
    return print_result(result)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    config = EngineConfig.from_env()
    if args.url:
        config.log.base_url = args.url
    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
