"""
Popularity Ranker
=================

Ranks messages by raw vote volume over a trailing window.

SCORING:
  count = number of vote messages naming the target inside the window
  (no per-voter dedup: repeated votes all count)

ORDER:
  count descending; equal counts keep first-seen order in the vote stream

RESOLUTION:
  each of the top min(limit, targets) is fetched concurrently; targets that
  are unknown to the log, undecodable, undecryptable or private are dropped
  silently; an unreachable log still fails the ranking
"""

from __future__ import annotations
from collections import Counter
from typing import Any, AsyncIterable, List, Mapping, Optional, Tuple
import logging

from ..contracts.base import NotFound
from ..contracts.enriched import EnrichedMessage
from ..contracts.messages import Message, VoteContent
from ..query.adapter import configure, popular_votes
from ..storage.client import LogClient, fetch_message, read_messages
from .enrichment import MetadataEnricher
from .fanout import bounded_map

logger = logging.getLogger(__name__)


async def count_votes(votes: AsyncIterable[Message]) -> Counter:
    """target key -> number of vote messages, in first-seen order."""
    counts: Counter = Counter()
    async for message in votes:
        if isinstance(message.content, VoteContent):
            counts[message.content.link] += 1
    return counts


def rank_targets(counts: Counter, limit: int) -> List[Tuple[str, int]]:
    # sorted() is stable and Counter preserves insertion order
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return ranked[:min(limit, len(ranked))]


class PopularityRanker:

    def __init__(
        self,
        client: LogClient,
        enricher: MetadataEnricher,
        limit: int = 64,
        window_hours: float = 24.0,
        max_concurrency: int = 16
    ):
        self._client = client
        self._enricher = enricher
        self._limit = limit
        self._window_hours = window_hours
        self._max_concurrency = max_concurrency

    async def _resolve(self, key: str) -> Optional[Message]:
        try:
            message = await fetch_message(self._client, key, private=True)
        except (NotFound, ValueError) as e:
            logger.debug("dropping unresolved popular target %s: %s", key, e)
            return None
        if message.is_opaque or message.private:
            return None
        return message

    async def rank(
        self,
        viewer_id: Optional[str],
        now_ms: Optional[float] = None,
        overrides: Optional[Mapping[str, Any]] = None
    ) -> List[EnrichedMessage]:
        query = configure(popular_votes(self._window_hours, now_ms), overrides)
        counts = await count_votes(read_messages(self._client, query))
        ranked = rank_targets(counts, self._limit)
        logger.debug("ranking %s of %s voted targets", len(ranked), len(counts))

        resolved = await bounded_map(
            self._resolve, [key for key, _ in ranked], self._max_concurrency
        )
        messages = [message for message in resolved if message is not None]
        return await self._enricher.enrich(messages, viewer_id)
