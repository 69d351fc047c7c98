"""
Post Queries
============

Per-request entry points. Each read resolves the viewer once, builds its
index query through the Query Adapter, cuts the stream with the Stream
Filter/Limiter, and funnels the result through the Metadata Enricher.

The write path (publish, reply, reply_all) composes thread-linked posts
and hands them to the log unchanged.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

from ..config import EngineConfig
from ..contracts.base import InvalidReply
from ..contracts.enriched import EnrichedMessage, ThreadPosition
from ..contracts.messages import (
    Message, PostContent, PostType, VoteContent, classify, decode_content,
    decode_message, thread_root_key,
)
from ..query import adapter
from ..query.stream import not_authored_by, take_matching, unique_by
from ..storage.client import LogClient, fetch_message, read_messages
from .ancestry import AncestorResolver
from .enrichment import Clock, MetadataEnricher
from .fanout import bounded_map
from .popularity import PopularityRanker
from .replies import ROOT_DEPTH, ReplyTreeBuilder

logger = logging.getLogger(__name__)

Overrides = Optional[Mapping[str, Any]]


class PostQueries:
    """
    Read and reply operations against one log client.

    Holds no state between calls: every call re-reads and re-resolves.
    """

    def __init__(
        self,
        client: LogClient,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None
    ):
        self._client = client
        self._config = config or EngineConfig()
        self._limit = self._config.query.max_messages
        self._concurrency = self._config.enrichment.max_concurrency

        self.enricher = MetadataEnricher(client, self._config.enrichment, clock)
        self.ancestors = AncestorResolver(client)
        self.replies = ReplyTreeBuilder(client, self._concurrency)
        self.ranker = PopularityRanker(
            client,
            self.enricher,
            limit=self._limit,
            window_hours=self._config.query.popular_window_hours,
            max_concurrency=self._concurrency
        )

    async def viewer(self) -> str:
        whoami = await self._client.whoami()
        return whoami["id"]

    async def _posts(self, query: adapter.IndexQuery, viewer_id: str, predicate=None) -> List[EnrichedMessage]:
        messages = await take_matching(
            read_messages(self._client, query),
            PostContent,
            predicate=predicate,
            limit=self._limit
        )
        return await self.enricher.enrich(messages, viewer_id)

    # -------------------------------------------------------------------------
    # Feeds
    # -------------------------------------------------------------------------

    async def by_feed(self, feed_id: str, overrides: Overrides = None) -> List[EnrichedMessage]:
        viewer_id = await self.viewer()
        return await self._posts(adapter.configure(adapter.by_feed(feed_id), overrides), viewer_id)

    async def by_hashtag(self, hashtag: str, overrides: Overrides = None) -> List[EnrichedMessage]:
        viewer_id = await self.viewer()
        return await self._posts(adapter.configure(adapter.by_hashtag(hashtag), overrides), viewer_id)

    async def mentions_of(self, feed_id: Optional[str] = None, overrides: Overrides = None) -> List[EnrichedMessage]:
        """Posts mentioning `feed_id` (the viewer by default), minus the viewer's own."""
        viewer_id = await self.viewer()
        feed_id = feed_id or viewer_id
        query = adapter.configure(adapter.mentions_of(feed_id), overrides)
        return await self._posts(query, viewer_id, predicate=not_authored_by(viewer_id))

    async def latest_posts(self, overrides: Overrides = None) -> List[EnrichedMessage]:
        viewer_id = await self.viewer()
        return await self._posts(adapter.configure(adapter.latest_posts(), overrides), viewer_id)

    async def popular_posts(self, overrides: Overrides = None, now_ms: Optional[float] = None) -> List[EnrichedMessage]:
        viewer_id = await self.viewer()
        return await self.ranker.rank(viewer_id, now_ms=now_ms, overrides=overrides)

    async def likes_by_feed(self, feed_id: str, overrides: Overrides = None) -> List[EnrichedMessage]:
        """Messages `feed_id` voted on, newest vote first."""
        viewer_id = await self.viewer()
        query = adapter.configure(adapter.likes_by_feed(feed_id), overrides)
        votes = await take_matching(
            read_messages(self._client, query),
            VoteContent,
            predicate=lambda message: message.author == feed_id,
            limit=self._limit
        )
        targets = await bounded_map(
            lambda vote: fetch_message(self._client, vote.content.link),
            votes,
            self._concurrency
        )
        return await self.enricher.enrich(targets, viewer_id)

    async def inbox_for(self, feed_id: Optional[str] = None, overrides: Overrides = None) -> List[EnrichedMessage]:
        """Private posts the viewer can read, one per thread."""
        viewer_id = await self.viewer()
        query = adapter.configure(adapter.inbox_for(feed_id or viewer_id), overrides)
        first_in_thread = unique_by(thread_root_key)
        return await self._posts(
            query,
            viewer_id,
            predicate=lambda message: message.private and first_in_thread(message)
        )

    # -------------------------------------------------------------------------
    # Threads and single messages
    # -------------------------------------------------------------------------

    async def _get(self, key: str, overrides: Overrides) -> Message:
        query = adapter.configure(adapter.single_message(key), overrides)
        raw = await self._client.get(query.message_id, meta=query.meta, private=query.private)
        return decode_message(raw)

    async def thread_of(self, key: str, overrides: Overrides = None) -> List[EnrichedMessage]:
        """
        The whole thread containing `key`: its root followed by every reply,
        pre-order, each annotated with depth and whether it is the message
        the thread was requested for.
        """
        logger.debug("thread: %s", key)
        viewer_id = await self.viewer()
        requested = await self._get(key, overrides)

        resolution = await self.ancestors.resolve(requested)
        root = resolution.root
        nodes = await self.replies.thread_of(root)

        positions: Dict[str, ThreadPosition] = {
            root.key: ThreadPosition(depth=ROOT_DEPTH, is_reply=False, is_target=root.key == key)
        }
        for node in nodes:
            positions[node.message.key] = ThreadPosition(
                depth=node.depth, is_reply=True, is_target=node.message.key == key
            )

        messages = [root] + [node.message for node in nodes]
        unknown = {root.key} if resolution.unknown_provenance else set()
        return await self.enricher.enrich(messages, viewer_id, positions, unknown)

    async def single_message(self, key: str, overrides: Overrides = None) -> EnrichedMessage:
        logger.debug("get: %s", key)
        viewer_id = await self.viewer()
        message = await self._get(key, overrides)
        enriched = await self.enricher.enrich([message], viewer_id)
        return enriched[0]

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    async def branch(self, root: str) -> List[str]:
        return await self._client.branch(root)

    async def publish(self, content: Mapping[str, Any]) -> Message:
        body = {"type": "post", **content}
        logger.debug("publishing %s", body.get("type"))
        raw = await self._client.publish(body)
        return decode_message(raw)

    async def _compose(
        self,
        parent: Message,
        text: str,
        mentions: Sequence[Any],
        fork: bool
    ) -> Dict[str, Any]:
        if parent.is_opaque:
            raise InvalidReply(f"cannot reply to unreadable message {parent.key}")
        root = thread_root_key(parent)
        content: Dict[str, Any] = {"type": "post", "text": text, "root": root}
        if fork and parent.key != root:
            content["fork"] = parent.key
        if mentions:
            content["mentions"] = list(mentions)
        content["branch"] = await self.branch(root)
        return content

    async def reply(self, parent: Message, text: str, mentions: Sequence[Any] = ()) -> Message:
        """Reply to `parent` itself; forks from it unless it is the thread root."""
        content = await self._compose(parent, text, mentions, fork=True)
        expected = PostType.NESTED_REPLY if "fork" in content else PostType.REPLY
        if classify(decode_content(content)) is not expected:
            raise InvalidReply(f"message should be a valid reply to {parent.key}", content=repr(content))
        return await self.publish(content)

    async def reply_all(self, parent: Message, text: str, mentions: Sequence[Any] = ()) -> Message:
        """Reply to the thread `parent` belongs to."""
        content = await self._compose(parent, text, mentions, fork=False)
        if classify(decode_content(content)) is not PostType.REPLY:
            raise InvalidReply(f"message should be a valid thread reply to {parent.key}", content=repr(content))
        return await self.publish(content)
