"""
Engine Orchestration Module

The unified interface over all layers. Owns the single log connection
and hands the same client to every request.

DESIGN PRINCIPLES:
==================
1. One connection per engine: opened lazily on first use, reused after,
   closed explicitly (or by leaving `async with`)
2. Layers communicate ONLY through contracts
3. All query operations are traceable through observability
4. No state survives a request except the connection itself
"""

from __future__ import annotations
from typing import Any, List, Mapping, Optional
import logging

from .config import EngineConfig
from .contracts.enriched import EnrichedMessage
from .contracts.events import AuditEventType, QueryRequest, QueryResult, QueryType
from .contracts.messages import Message
from .core.enrichment import Clock
from .core.posts import PostQueries
from .observability import ObservabilityEngine
from .query.engine import QueryEngine
from .storage.client import ClientFactory, LogClient, LogConnection
from .storage.http import HttpLogClient

logger = logging.getLogger(__name__)


class FeedWeaveEngine:
    """
    Entry point for presentation code.

    Every read has two forms: a direct coroutine that raises on failure
    (thread_of, by_feed, ...) and execute(), which returns an explicit
    QueryResult and records audit entries and metrics.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        client_factory: Optional[ClientFactory] = None,
        clock: Optional[Clock] = None
    ):
        self._config = config or EngineConfig()
        self._connection = LogConnection(client_factory or self._http_client)
        self._observability = ObservabilityEngine(self._config.observability)
        self._clock = clock
        self._posts: Optional[PostQueries] = None
        self._queries: Optional[QueryEngine] = None

    @classmethod
    def with_client(cls, client: LogClient, config: Optional[EngineConfig] = None, **kwargs) -> FeedWeaveEngine:
        """Engine over an already constructed client (e.g. InMemoryLogStore)."""
        return cls(config=config, client_factory=lambda: client, **kwargs)

    def _http_client(self) -> LogClient:
        return HttpLogClient(
            base_url=self._config.log.base_url,
            timeout=self._config.log.timeout_seconds
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def open(self) -> PostQueries:
        """Open the connection once; later calls reuse it."""
        client = await self._connection.open()
        if self._posts is None:
            self._posts = PostQueries(client, self._config, self._clock)
            self._queries = QueryEngine(self._posts, self._observability)
            self._observability.log_audit(action="connection_opened", layer="storage")
        return self._posts

    async def close(self) -> None:
        if self._connection.is_open:
            self._observability.log_audit(action="connection_closed", layer="storage")
        await self._connection.close()
        self._posts = None
        self._queries = None

    async def __aenter__(self) -> FeedWeaveEngine:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Query interface (explicit results)
    # -------------------------------------------------------------------------

    async def execute(self, request: QueryRequest) -> QueryResult:
        await self.open()
        return await self._queries.execute(request)

    async def query(self, query_type: QueryType, target: Optional[str] = None, **overrides: Any) -> QueryResult:
        await self.open()
        return await self._queries.execute(self._queries.new_request(query_type, target, **overrides))

    # -------------------------------------------------------------------------
    # Direct interface (raises on failure)
    # -------------------------------------------------------------------------

    async def by_feed(self, feed_id: str, **overrides: Any) -> List[EnrichedMessage]:
        return await (await self.open()).by_feed(feed_id, overrides)

    async def by_hashtag(self, hashtag: str, **overrides: Any) -> List[EnrichedMessage]:
        return await (await self.open()).by_hashtag(hashtag, overrides)

    async def mentions_of(self, feed_id: Optional[str] = None, **overrides: Any) -> List[EnrichedMessage]:
        return await (await self.open()).mentions_of(feed_id, overrides)

    async def latest_posts(self, **overrides: Any) -> List[EnrichedMessage]:
        return await (await self.open()).latest_posts(overrides)

    async def popular_posts(self, **overrides: Any) -> List[EnrichedMessage]:
        return await (await self.open()).popular_posts(overrides)

    async def likes_by_feed(self, feed_id: str, **overrides: Any) -> List[EnrichedMessage]:
        return await (await self.open()).likes_by_feed(feed_id, overrides)

    async def inbox_for(self, feed_id: Optional[str] = None, **overrides: Any) -> List[EnrichedMessage]:
        return await (await self.open()).inbox_for(feed_id, overrides)

    async def thread_of(self, key: str, **overrides: Any) -> List[EnrichedMessage]:
        return await (await self.open()).thread_of(key, overrides)

    async def single_message(self, key: str, **overrides: Any) -> EnrichedMessage:
        return await (await self.open()).single_message(key, overrides)

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    def _published(self, message: Message, action: str) -> Message:
        self._observability.log_audit(
            action=action,
            entity_id=message.key,
            event_type=AuditEventType.PUBLISH,
            layer="core"
        )
        self._observability.collect_metric("messages_published_total", 1)
        return message

    async def publish(self, content: Mapping[str, Any]) -> Message:
        posts = await self.open()
        return self._published(await posts.publish(content), "publish")

    async def reply(self, parent: Message, text: str, mentions=()) -> Message:
        posts = await self.open()
        return self._published(await posts.reply(parent, text, mentions), "reply")

    async def reply_all(self, parent: Message, text: str, mentions=()) -> Message:
        posts = await self.open()
        return self._published(await posts.reply_all(parent, text, mentions), "reply_all")
