"""
Query Adapter
=============

Turns a semantic request into an IndexQuery descriptor.

Pure parameter construction: no I/O, no clock reads except where a
request is explicitly relative to "now" (popular posts), and even then
`now_ms` can be supplied by the caller.
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional
import time

from ..contracts.base import InvalidQuery


class IndexSource(Enum):
    """Which index of the log a query reads."""
    FEED = "feed"              # one author's messages
    BACKLINKS = "backlinks"    # messages whose content references `dest`
    CONTENT_TYPE = "type"      # messages of one content type
    AUTHOR_TYPE = "query"      # one author's messages of one content type
    GET = "get"                # a single message by key


@dataclass(frozen=True)
class IndexQuery:
    """
    Immutable index query descriptor.

    Ordering is always ascending assertion time; `reverse` flips it.
    `gt` is an exclusive lower bound on assertion time in epoch ms.
    """
    source: IndexSource
    feed_id: Optional[str] = None
    dest: Optional[str] = None
    content_type: Optional[str] = None
    author: Optional[str] = None
    message_id: Optional[str] = None
    gt: Optional[float] = None
    reverse: bool = False
    private: bool = False
    meta: bool = True

    def to_params(self) -> Dict[str, Any]:
        """Wire form; unset fields are omitted."""
        params: Dict[str, Any] = {"source": self.source.value}
        for f in fields(self):
            if f.name == "source":
                continue
            value = getattr(self, f.name)
            if value is not None:
                params[f.name] = value
        return params


# Listing defaults: newest first, decrypted private messages included.
LISTING_DEFAULTS: Mapping[str, Any] = {"reverse": True, "private": True, "meta": True}

_FIELD_NAMES = frozenset(f.name for f in fields(IndexQuery))


def configure(query: IndexQuery, overrides: Optional[Mapping[str, Any]] = None) -> IndexQuery:
    """Apply caller overrides on top of a descriptor; overrides win."""
    if not overrides:
        return query
    unknown = set(overrides) - _FIELD_NAMES
    if unknown:
        raise InvalidQuery(f"unknown query option(s): {', '.join(sorted(unknown))}")
    values = dict(overrides)
    if "source" in values and not isinstance(values["source"], IndexSource):
        try:
            values["source"] = IndexSource(values["source"])
        except ValueError:
            raise InvalidQuery(f"unknown index source: {values['source']!r}") from None
    return replace(query, **values)


def _listing(source: IndexSource, **values: Any) -> IndexQuery:
    return IndexQuery(source=source, **{**LISTING_DEFAULTS, **values})


def by_feed(feed_id: str) -> IndexQuery:
    return _listing(IndexSource.FEED, feed_id=feed_id)


def by_hashtag(hashtag: str) -> IndexQuery:
    return _listing(IndexSource.BACKLINKS, dest=f"#{hashtag.lstrip('#')}")


def mentions_of(feed_id: str) -> IndexQuery:
    return _listing(IndexSource.BACKLINKS, dest=feed_id)


def latest_posts() -> IndexQuery:
    return _listing(IndexSource.CONTENT_TYPE, content_type="post")


def popular_votes(window_hours: float, now_ms: Optional[float] = None) -> IndexQuery:
    now_ms = time.time() * 1000.0 if now_ms is None else now_ms
    return _listing(
        IndexSource.CONTENT_TYPE,
        content_type="vote",
        gt=now_ms - window_hours * 60 * 60 * 1000
    )


def likes_by_feed(feed_id: str) -> IndexQuery:
    return _listing(IndexSource.AUTHOR_TYPE, author=feed_id, content_type="vote")


def inbox_for(feed_id: str) -> IndexQuery:
    # The viewer only scopes decryption; the index has no per-recipient filter.
    return _listing(IndexSource.CONTENT_TYPE, content_type="post")


def single_message(key: str) -> IndexQuery:
    return IndexQuery(source=IndexSource.GET, message_id=key, private=True, meta=True)


def backlinks(key: str, private: bool = True) -> IndexQuery:
    """References to `key`, oldest first; vote tallies depend on this order."""
    return IndexQuery(source=IndexSource.BACKLINKS, dest=key, private=private, meta=True)

