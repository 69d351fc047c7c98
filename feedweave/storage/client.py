"""
Log Client Interface

RESPONSIBILITY: The single seam to the external append-only log
ALLOWED INPUTS: IndexQuery descriptors, message keys
OUTPUTS: Raw message mappings (decoded into Messages at this boundary)

WHAT THIS LAYER MUST NOT DO:
============================
- Write to the log except through the explicit publish() operation
- Cache, retry or reorder anything the log returns
- Interpret content beyond decoding it into a variant

BOUNDARY ENFORCEMENT:
=====================
- Every implementation honours the same LogClient interface
- Connection failures surface as UpstreamUnavailable
- Unknown keys surface as NotFound
"""

from __future__ import annotations
from typing import Any, AsyncIterator, Awaitable, Callable, List, Mapping, Optional, Union
import asyncio
import logging

from ..contracts.base import FeedWeaveError, UpstreamUnavailable
from ..contracts.messages import Message, decode_message
from ..query.adapter import IndexQuery

logger = logging.getLogger(__name__)

RawMessage = Mapping[str, Any]


# =============================================================================
# CLIENT INTERFACE (Dependency Inversion)
# =============================================================================

class LogClient:
    """
    Abstract log client interface.

    Implementations can talk to different transports (memory, HTTP gateway)
    while keeping the same read semantics.
    """

    def read(self, query: IndexQuery) -> AsyncIterator[RawMessage]:
        """Lazy, ordered sequence of raw messages matching `query`."""
        raise NotImplementedError

    async def get(self, key: str, meta: bool = True, private: bool = True) -> RawMessage:
        """Single message by key; raises NotFound for unknown keys."""
        raise NotImplementedError

    async def whoami(self) -> Mapping[str, Any]:
        """Identity of the local viewer: {"id": feed id}."""
        raise NotImplementedError

    async def social_value(self, key: str, dest: str) -> Union[str, Mapping[str, Any], None]:
        """About-value (e.g. "name", "image") for `dest`, or None."""
        raise NotImplementedError

    async def branch(self, root: str) -> List[str]:
        """Current tips of the tangle rooted at `root`."""
        raise NotImplementedError

    async def publish(self, content: Mapping[str, Any]) -> RawMessage:
        """Append new content under the local identity."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


# =============================================================================
# CONNECTION (open once, reuse, close)
# =============================================================================

ClientFactory = Callable[[], Union[LogClient, Awaitable[LogClient]]]


class LogConnection:
    """
    Explicitly owned handle on one LogClient.

    open() is idempotent and safe under concurrent callers: the factory
    runs at most once until close().
    """

    def __init__(self, factory: ClientFactory):
        self._factory = factory
        self._client: Optional[LogClient] = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def open(self) -> LogClient:
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                logger.debug("opening log connection")
                try:
                    client = self._factory()
                    if asyncio.iscoroutine(client):
                        client = await client
                except FeedWeaveError:
                    raise
                except Exception as e:
                    raise UpstreamUnavailable(f"could not connect to log: {e}") from e
                self._client = client
        return self._client

    async def close(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
        if client is not None:
            logger.debug("closing log connection")
            await client.close()

    async def __aenter__(self) -> LogClient:
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


# =============================================================================
# DECODING HELPERS
# =============================================================================

async def read_messages(client: LogClient, query: IndexQuery) -> AsyncIterator[Message]:
    """Decode a raw read stream; entries without an envelope are skipped."""
    async for raw in client.read(query):
        try:
            yield decode_message(raw)
        except ValueError as e:
            logger.debug("skipping malformed log entry: %s", e)


async def fetch_message(client: LogClient, key: str, private: bool = True) -> Message:
    raw = await client.get(key, meta=True, private=private)
    return decode_message(raw)


