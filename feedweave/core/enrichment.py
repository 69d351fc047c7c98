"""
Metadata Enricher
=================

The single contract every query funnels through: raw Messages in,
self-contained EnrichedMessages out.

PER MESSAGE (independently, concurrently across messages):
==========================================================
1. Deferred rich-text body over content.text / content.mentions
2. Backlink scan + Vote Tally -> liked-by set and viewer-voted flag
3. Author name and avatar via the identity resolver
4. ISO-8601 timestamp (claimed, falling back to received) and "since"
5. Classification -> post type label

GUARANTEES:
===========
- Order and cardinality preserved; None inputs stay None
- Raw messages are never modified
- Author metadata is resolved fresh on every call
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Callable, Collection, List, Mapping, Optional, Sequence
from urllib.parse import quote
import asyncio
import logging
import math
import time

from ..config import EnrichmentConfig
from ..contracts.enriched import (
    Avatar, AuthorMeta, EnrichedMessage, MessageMeta, RichText,
    ThreadPosition, TimestampMeta,
)
from ..contracts.messages import Message, PostContent, classify
from ..query.adapter import backlinks
from ..storage.client import LogClient, read_messages
from .fanout import bounded_map
from .votes import VoteTally, tally_votes

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

_UNITS = (
    ("y", 365 * 24 * 60 * 60 * 1000),
    ("d", 24 * 60 * 60 * 1000),
    ("h", 60 * 60 * 1000),
    ("m", 60 * 1000),
    ("s", 1000),
)


def format_since(elapsed_ms: float) -> str:
    """Compact elapsed time using only the largest unit: 5m, 3h, 2d."""
    if elapsed_ms < 0:
        return "-" + format_since(-elapsed_ms)
    for suffix, size in _UNITS:
        if elapsed_ms >= size:
            return f"{int(elapsed_ms // size)}{suffix}"
    return f"{int(elapsed_ms)}ms"


def _to_datetime(millis: Optional[float]) -> Optional[datetime]:
    if millis is None or not math.isfinite(millis):
        return None
    try:
        return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def to_iso8601(moment: datetime) -> str:
    """Millisecond precision with a Z suffix."""
    return moment.astimezone(timezone.utc).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def resolve_timestamp(message: Message) -> Optional[datetime]:
    """Claimed time if valid, else received time, else None."""
    moment = _to_datetime(message.claimed_timestamp)
    if moment is None:
        logger.debug("invalid claimed timestamp on %s, using received time", message.key)
        moment = _to_datetime(message.received_timestamp)
    return moment


def timestamp_meta(message: Message, now_ms: float) -> TimestampMeta:
    moment = resolve_timestamp(message)
    if moment is None:
        return TimestampMeta(iso8601="", since="")
    return TimestampMeta(
        iso8601=to_iso8601(moment),
        since=format_since(now_ms - moment.timestamp() * 1000.0)
    )


def _link_or_value(value: Any) -> Optional[str]:
    """The identity resolver answers either a value or an object with a link."""
    if isinstance(value, Mapping):
        link = value.get("link")
        return link if isinstance(link, str) and link else None
    if isinstance(value, str) and value:
        return value
    return None


class MetadataEnricher:

    def __init__(
        self,
        client: LogClient,
        config: Optional[EnrichmentConfig] = None,
        clock: Optional[Clock] = None
    ):
        self._client = client
        self._config = config or EnrichmentConfig()
        self._clock = clock or (lambda: time.time() * 1000.0)

    async def tally(self, key: str, viewer_id: Optional[str]) -> VoteTally:
        references = [ref async for ref in read_messages(self._client, backlinks(key))]
        return tally_votes(references, key, viewer_id)

    async def resolve_author(self, author: str) -> AuthorMeta:
        name, image = await asyncio.gather(
            self._client.social_value("name", author),
            self._client.social_value("image", author),
        )
        avatar_id = _link_or_value(image) or self._config.null_image
        url = self._config.avatar_url_template.format(avatar=quote(avatar_id, safe=""))
        return AuthorMeta(name=_link_or_value(name), avatar=Avatar(id=avatar_id, url=url))

    async def enrich_one(
        self,
        message: Message,
        viewer_id: Optional[str],
        thread: Optional[ThreadPosition] = None,
        unknown_provenance: bool = False
    ) -> EnrichedMessage:
        logger.debug("transforming %s", message.key)

        content = message.content
        body = None
        if isinstance(content, PostContent):
            body = RichText(text=content.text, mentions=content.mentions)

        votes, author = await asyncio.gather(
            self.tally(message.key, viewer_id),
            self.resolve_author(message.author),
        )

        meta = MessageMeta(
            author=author,
            timestamp=timestamp_meta(message, self._clock()),
            votes=votes.liked_by,
            voted=votes.voted,
            post_type=classify(content),
            body=body,
            thread=thread,
            unknown_provenance=unknown_provenance
        )
        return EnrichedMessage(message=message, meta=meta)

    async def enrich(
        self,
        messages: Sequence[Optional[Message]],
        viewer_id: Optional[str],
        positions: Optional[Mapping[str, ThreadPosition]] = None,
        unknown_provenance: Collection[str] = ()
    ) -> List[Optional[EnrichedMessage]]:
        """Enrich every message; `positions` attaches thread placement by key."""
        positions = positions or {}

        async def one(message: Optional[Message]) -> Optional[EnrichedMessage]:
            if message is None:
                return None
            return await self.enrich_one(
                message,
                viewer_id,
                thread=positions.get(message.key),
                unknown_provenance=message.key in unknown_provenance
            )

        return await bounded_map(one, messages, self._config.max_concurrency)
