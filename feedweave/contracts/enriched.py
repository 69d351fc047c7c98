"""
Enrichment Contracts
====================

Derived, request-scoped records that travel alongside a raw Message.
The raw message is never modified; all derived fields live in MessageMeta.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

from .messages import Message, PostType


# Rich-text renderer: (text, mentions) -> markup. Pure, supplied by the
# presentation layer.
Renderer = Callable[[str, Tuple[Any, ...]], str]


@dataclass(frozen=True)
class RichText:
    """
    Deferred rich-text body.

    Holds the inputs only; nothing is rendered until the presentation
    boundary calls render() with its renderer.
    """
    text: str
    mentions: Tuple[Any, ...] = field(default_factory=tuple)

    def render(self, renderer: Renderer) -> str:
        return renderer(self.text, self.mentions)


@dataclass(frozen=True)
class Avatar:
    id: str
    url: str


@dataclass(frozen=True)
class AuthorMeta:
    name: Optional[str]
    avatar: Avatar


@dataclass(frozen=True)
class TimestampMeta:
    """ISO-8601 time of the message and a compact "time since" string."""
    iso8601: str
    since: str


@dataclass(frozen=True)
class ThreadPosition:
    """Position of a message inside a flattened thread (root depth is 0)."""
    depth: int
    is_reply: bool
    is_target: bool = False


@dataclass(frozen=True)
class MessageMeta:
    author: AuthorMeta
    timestamp: TimestampMeta
    votes: Tuple[str, ...]
    voted: bool
    post_type: PostType
    body: Optional[RichText] = None
    thread: Optional[ThreadPosition] = None
    unknown_provenance: bool = False


@dataclass(frozen=True)
class EnrichedMessage:
    """A raw message and its enrichment, side by side."""
    message: Message
    meta: MessageMeta

    @property
    def key(self) -> str:
        return self.message.key
