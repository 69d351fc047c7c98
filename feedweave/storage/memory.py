"""
In-Memory Log Store
===================

Append-only reference implementation of LogClient.

INVARIANTS:
- No updates or deletes - append only
- Every entry keeps its append position; ties in assertion time
  are ordered by that position, so reads are deterministic
- Suitable for tests, demos and small fixtures
"""

from __future__ import annotations
from typing import Any, AsyncIterator, Dict, Iterator, List, Mapping, Optional, Set, Tuple, Union
import base64
import hashlib
import json
import time

from ..contracts.base import NotFound
from ..query.adapter import IndexQuery, IndexSource
from .client import LogClient, RawMessage


def _claimed(raw: RawMessage) -> float:
    """Claimed time, else received time, else 0 for ordering purposes."""
    for value in (raw["value"].get("timestamp"), raw.get("timestamp")):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return 0.0


def _is_private(raw: RawMessage) -> bool:
    meta = raw["value"].get("meta")
    return isinstance(meta, Mapping) and bool(meta.get("private"))


def _references(content: Any) -> Set[str]:
    """Every key, feed id or #hashtag the content links to."""
    refs: Set[str] = set()
    if not isinstance(content, Mapping):
        return refs
    stack: List[Any] = [content]
    while stack:
        node = stack.pop()
        if isinstance(node, Mapping):
            for name, value in node.items():
                if name == "type":
                    continue
                if name == "channel" and isinstance(value, str):
                    refs.add(f"#{value}")
                stack.append(value)
        elif isinstance(node, (list, tuple)):
            stack.extend(node)
        elif isinstance(node, str) and node[:1] in ("%", "@", "&", "#"):
            refs.add(node)
    return refs


class InMemoryLogStore(LogClient):
    """
    Append-only in-memory log.

    Messages are stored raw, exactly as they would arrive from the log.
    Content given as a string stays opaque: nothing here decrypts.
    """

    def __init__(self, whoami: str = "@viewer.ed25519"):
        self._whoami = whoami
        self._entries: List[RawMessage] = []
        self._by_key: Dict[str, int] = {}
        self._about: Dict[Tuple[str, str], Union[str, Mapping[str, Any], None]] = {}
        self._clock = 0

    # -------------------------------------------------------------------------
    # Writes (fixture setup and publish)
    # -------------------------------------------------------------------------

    def append(self, raw: RawMessage) -> RawMessage:
        """Append a raw message. Re-appending an existing key is rejected."""
        key = raw["key"]
        if key in self._by_key:
            raise ValueError(f"duplicate key: {key}")
        self._by_key[key] = len(self._entries)
        self._entries.append(raw)
        return raw

    def add(
        self,
        key: str,
        author: str,
        content: Union[Mapping[str, Any], str],
        timestamp: Any = None,
        received: Optional[float] = None,
        private: bool = False
    ) -> RawMessage:
        """Build and append a raw message; timestamps default to a logical clock."""
        self._clock += 1
        claimed = self._clock if timestamp is None else timestamp
        value: Dict[str, Any] = {
            "author": author,
            "timestamp": claimed,
            "content": content,
        }
        if private:
            value["meta"] = {"private": True}
        return self.append({
            "key": key,
            "value": value,
            "timestamp": received if received is not None else (
                claimed if isinstance(claimed, (int, float)) else self._clock
            ),
        })

    def set_about(self, dest: str, key: str, value: Union[str, Mapping[str, Any], None]) -> None:
        """Latest about-value wins, as in the log's about index."""
        self._about[(key, dest)] = value

    # -------------------------------------------------------------------------
    # LogClient interface
    # -------------------------------------------------------------------------

    def _matches(self, raw: RawMessage, query: IndexQuery) -> bool:
        if not query.private and _is_private(raw):
            return False
        if query.gt is not None and not _claimed(raw) > query.gt:
            return False

        value = raw["value"]
        content = value.get("content")
        content_type = content.get("type") if isinstance(content, Mapping) else None

        if query.source is IndexSource.FEED:
            return value.get("author") == query.feed_id
        if query.source is IndexSource.BACKLINKS:
            return query.dest in _references(content)
        if query.source is IndexSource.CONTENT_TYPE:
            return content_type == query.content_type
        if query.source is IndexSource.AUTHOR_TYPE:
            return value.get("author") == query.author and (
                query.content_type is None or content_type == query.content_type
            )
        return False

    def _ordered(self, query: IndexQuery) -> Iterator[RawMessage]:
        if query.source is IndexSource.GET:
            raise ValueError("single-message queries go through get()")
        positions = sorted(
            range(len(self._entries)),
            key=lambda i: (_claimed(self._entries[i]), i)
        )
        if query.reverse:
            positions.reverse()
        for position in positions:
            raw = self._entries[position]
            if self._matches(raw, query):
                yield raw

    async def read(self, query: IndexQuery) -> AsyncIterator[RawMessage]:
        for raw in self._ordered(query):
            yield raw

    async def get(self, key: str, meta: bool = True, private: bool = True) -> RawMessage:
        position = self._by_key.get(key)
        if position is None:
            raise NotFound(key)
        raw = self._entries[position]
        if not private and _is_private(raw):
            raise NotFound(key)
        return raw

    async def whoami(self) -> Mapping[str, Any]:
        return {"id": self._whoami}

    async def social_value(self, key: str, dest: str) -> Union[str, Mapping[str, Any], None]:
        return self._about.get((key, dest))

    async def branch(self, root: str) -> List[str]:
        """Thread messages that no other thread message names in its branch."""
        members = [root] if root in self._by_key else []
        superseded: Set[str] = set()
        for raw in self._entries:
            content = raw["value"].get("content")
            if isinstance(content, Mapping) and content.get("root") == root:
                members.append(raw["key"])
                branch = content.get("branch") or []
                superseded.update([branch] if isinstance(branch, str) else branch)
        tips = [key for key in members if key not in superseded]
        return tips or [root]

    async def publish(self, content: Mapping[str, Any]) -> RawMessage:
        encoded = json.dumps(content, sort_keys=True).encode("utf-8")
        digest = hashlib.sha256(encoded + str(len(self._entries)).encode()).digest()
        key = f"%{base64.b64encode(digest).decode('ascii')}.sha256"
        return self.add(key, self._whoami, dict(content), timestamp=time.time() * 1000.0)
